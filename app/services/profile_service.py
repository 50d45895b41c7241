"""Participant registration and profile lookups."""

import logging
import uuid
from dataclasses import dataclass
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ProfileNotFoundError, ValidationError
from app.core.permissions import Capability, Principal, Role, authorize_self_or_admin
from app.domain.payment_state import NOT_REGISTERED
from app.models.profile import Profile
from app.services.ledger_store import LedgerStore
from app.utils.validators import validate_email, validate_nigerian_phone

logger = logging.getLogger(__name__)


async def lock_profile(session: AsyncSession, *criteria: Any) -> Profile | None:
    """Load a single profile with ``SELECT ... FOR UPDATE``."""
    result = await session.execute(select(Profile).where(*criteria).with_for_update())
    return result.scalar_one_or_none()


@dataclass
class Registration:
    email: str
    full_name: str
    phone: str | None = None
    school: str | None = None
    state: str | None = None
    chapter: str | None = None
    role: Role = Role.PARTICIPANT


class ProfileService:
    """Creates and reads profiles."""

    def __init__(self, ledger: LedgerStore) -> None:
        self.ledger = ledger

    async def register_participant(self, data: Registration) -> Profile:
        """Create a profile in ``not_registered`` payment state.

        Raises:
            ValidationError: Bad email or phone, or missing name
            UniqueConstraintError: Email or phone already registered
        """
        email = data.email.strip().lower()
        if not validate_email(email):
            raise ValidationError("Invalid email address")
        if data.phone and not validate_nigerian_phone(data.phone):
            raise ValidationError(
                "Invalid phone number. Use +234XXXXXXXXXX or 0XXXXXXXXXX format"
            )
        full_name = (data.full_name or "").strip()
        if not full_name:
            raise ValidationError("Full name is required")

        profile = Profile(
            id=uuid.uuid4(),
            email=email,
            phone=data.phone.strip() if data.phone else None,
            full_name=full_name,
            role=data.role.value,
            school=data.school,
            state=data.state,
            chapter=data.chapter,
            payment_status=NOT_REGISTERED,
            accreditation_status="pending",
        )

        async def _insert(session: AsyncSession) -> Profile:
            session.add(profile)
            await session.flush()
            await session.refresh(profile)
            return profile

        created = await self.ledger.run_in_transaction(_insert)
        logger.info(f"Registered {created.role} {created.id}")
        return created

    async def get_profile(self, principal: Principal | None, profile_id: uuid.UUID | None = None) -> Profile:
        subject_id = authorize_self_or_admin(
            principal, profile_id, Capability.VIEW_OWN_PROFILE, Capability.VIEW_ALL_PAYMENTS
        )
        rows = await self.ledger.run_query(select(Profile).where(Profile.id == subject_id))
        if not rows:
            raise ProfileNotFoundError(str(subject_id))
        return rows[0]["Profile"]
