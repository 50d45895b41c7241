"""Configuration endpoints."""

from typing import Annotated, Any

from fastapi import APIRouter, Depends

from app.api.deps import CurrentPrincipal, get_config_service
from app.schemas.config import (
    ConferenceDetails,
    ConferenceDetailsUpdate,
    ConfigUpdate,
    ConfigValueResponse,
    RegistrationAmountResponse,
)
from app.services.config_service import ConfigService

router = APIRouter()

Config = Annotated[ConfigService, Depends(get_config_service)]


@router.get("/registration-amount", response_model=RegistrationAmountResponse)
async def get_registration_amount(config: Config) -> dict[str, int]:
    """Public: current registration fee in naira."""
    return {"amount": await config.get_registration_amount()}


@router.get("/conference", response_model=ConferenceDetails)
async def get_conference_details(config: Config) -> dict[str, Any]:
    """Public: conference and bank transfer details."""
    return await config.get_conference_details()


@router.put("/conference", response_model=ConferenceDetails)
async def update_conference_details(
    data: ConferenceDetailsUpdate,
    principal: CurrentPrincipal,
    config: Config,
) -> dict[str, Any]:
    return await config.update_conference_details(principal, **data.model_dump(exclude_none=True))


@router.get("/{key}", response_model=ConfigValueResponse)
async def get_config_value(key: str, principal: CurrentPrincipal, config: Config) -> dict[str, Any]:
    """Admin: read a key, bypassing the cache."""
    return {"key": key, "value": await config.admin_get(principal, key)}


@router.put("/{key}", response_model=ConfigValueResponse)
async def set_config_value(
    key: str,
    data: ConfigUpdate,
    principal: CurrentPrincipal,
    config: Config,
) -> dict[str, Any]:
    await config.set(principal, key, data.value)
    return {"key": key, "value": data.value}
