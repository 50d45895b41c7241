"""Registration and profile endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, status

from app.api.deps import CurrentPrincipal, get_profile_service
from app.core.middleware import register_limiter
from app.models.profile import Profile
from app.schemas.profile import ProfileResponse, RegistrationCreate
from app.services.profile_service import ProfileService, Registration

router = APIRouter()

Profiles = Annotated[ProfileService, Depends(get_profile_service)]


@router.post(
    "",
    response_model=ProfileResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(register_limiter)],
)
async def register(data: RegistrationCreate, profiles: Profiles) -> Profile:
    """Register a participant. Sign-in is handled by the auth provider."""
    return await profiles.register_participant(Registration(**data.model_dump()))


@router.get("/me", response_model=ProfileResponse)
async def get_me(principal: CurrentPrincipal, profiles: Profiles) -> Profile:
    return await profiles.get_profile(principal)
