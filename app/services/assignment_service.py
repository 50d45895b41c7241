"""Validator schedule service."""

import logging
import uuid
from datetime import UTC, date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AssignmentNotFoundError, ForbiddenError, ValidationError
from app.core.permissions import Capability, Principal, Role, authorize, authorize_self_or_admin
from app.domain.assignment_state import assert_assignment_transition
from app.domain.scan_rules import ScanType
from app.models.assignment import ValidatorAssignment
from app.models.profile import Profile
from app.services.ledger_store import LedgerStore
from app.services.revalidation_service import ASSIGNMENT_PATHS, RevalidationService

logger = logging.getLogger(__name__)

SHIFT_LENGTH = timedelta(hours=4)


def shift_end(start: time) -> time:
    """Start plus four hours, wrapping past midnight."""
    return (datetime.combine(date.min, start) + SHIFT_LENGTH).time()


class AssignmentService:
    """Create, list and progress validator assignments."""

    def __init__(
        self,
        ledger: LedgerStore,
        revalidation: RevalidationService,
        timezone: str = "Africa/Lagos",
    ) -> None:
        self.ledger = ledger
        self.revalidation = revalidation
        self.tz = ZoneInfo(timezone)

    async def create_assignment(
        self,
        principal: Principal | None,
        validator_id: uuid.UUID,
        meal_type: str,
        location: str,
        schedule_date: date,
        schedule_time: time,
    ) -> ValidatorAssignment:
        authorize(principal, Capability.MANAGE_ASSIGNMENTS)
        try:
            meal_type = ScanType(meal_type).value
        except ValueError:
            raise ValidationError(f"Invalid assignment type: {meal_type}") from None
        if not location or not location.strip():
            raise ValidationError("Location is required")

        async def _create(session: AsyncSession) -> ValidatorAssignment:
            role = (
                await session.execute(select(Profile.role).where(Profile.id == validator_id))
            ).scalar_one_or_none()
            if role != Role.VALIDATOR.value:
                raise ValidationError("Assignments can only be given to validators")

            assignment = ValidatorAssignment(
                id=uuid.uuid4(),
                validator_id=validator_id,
                meal_type=meal_type,
                location=location.strip(),
                schedule_date=schedule_date,
                schedule_time=schedule_time,
                end_time=shift_end(schedule_time),
                status="pending",
            )
            session.add(assignment)
            await session.flush()
            await session.refresh(assignment)
            return assignment

        assignment = await self.ledger.run_in_transaction(_create)
        logger.info(
            f"Assignment {assignment.id} created for validator {validator_id} "
            f"on {schedule_date} {schedule_time}"
        )
        self.revalidation.notify(ASSIGNMENT_PATHS)
        return assignment

    async def get_validator_assignments(
        self, principal: Principal | None, validator_id: uuid.UUID | None = None
    ) -> list[ValidatorAssignment]:
        """Upcoming (today onwards) assignments for one validator."""
        subject_id = authorize_self_or_admin(
            principal, validator_id, Capability.VIEW_OWN_ASSIGNMENTS, Capability.MANAGE_ASSIGNMENTS
        )
        today = datetime.now(self.tz).date()
        rows = await self.ledger.run_query(
            select(ValidatorAssignment)
            .where(
                ValidatorAssignment.validator_id == subject_id,
                ValidatorAssignment.schedule_date >= today,
                ValidatorAssignment.deleted_at.is_(None),
            )
            .order_by(ValidatorAssignment.schedule_date, ValidatorAssignment.schedule_time)
        )
        return [row["ValidatorAssignment"] for row in rows]

    async def list_assignments(self, principal: Principal | None) -> list[dict]:
        """Every live assignment with its validator's name and phone."""
        authorize(principal, Capability.MANAGE_ASSIGNMENTS)
        rows = await self.ledger.run_query(
            select(
                ValidatorAssignment,
                Profile.full_name.label("validator_name"),
                Profile.phone.label("validator_phone"),
            )
            .join(Profile, Profile.id == ValidatorAssignment.validator_id)
            .where(ValidatorAssignment.deleted_at.is_(None))
            .order_by(ValidatorAssignment.schedule_date, ValidatorAssignment.schedule_time)
        )
        return [
            {
                "assignment": row["ValidatorAssignment"],
                "validator_name": row["validator_name"],
                "validator_phone": row["validator_phone"],
            }
            for row in rows
        ]

    async def update_assignment_status(
        self, principal: Principal | None, assignment_id: uuid.UUID, status: str
    ) -> ValidatorAssignment:
        """Progress an assignment. Owners and admins only."""
        if principal is not None and principal.is_admin:
            authorize(principal, Capability.MANAGE_ASSIGNMENTS)
        else:
            authorize(principal, Capability.UPDATE_OWN_ASSIGNMENT)

        async def _update(session: AsyncSession) -> ValidatorAssignment:
            assignment = (
                await session.execute(
                    select(ValidatorAssignment)
                    .where(
                        ValidatorAssignment.id == assignment_id,
                        ValidatorAssignment.deleted_at.is_(None),
                    )
                    .with_for_update()
                )
            ).scalar_one_or_none()
            if assignment is None:
                raise AssignmentNotFoundError(str(assignment_id))
            if not principal.is_admin and assignment.validator_id != principal.id:
                raise ForbiddenError("You can only update your own assignments")
            assert_assignment_transition(assignment.status, status)
            assignment.status = status
            await session.flush()
            return assignment

        assignment = await self.ledger.run_in_transaction(_update)
        logger.info(f"Assignment {assignment_id} → {status} by {principal.id}")
        self.revalidation.notify(ASSIGNMENT_PATHS)
        return assignment

    async def delete_assignment(self, principal: Principal | None, assignment_id: uuid.UUID) -> None:
        """Soft delete."""
        authorize(principal, Capability.MANAGE_ASSIGNMENTS)

        async def _delete(session: AsyncSession) -> None:
            assignment = (
                await session.execute(
                    select(ValidatorAssignment)
                    .where(
                        ValidatorAssignment.id == assignment_id,
                        ValidatorAssignment.deleted_at.is_(None),
                    )
                    .with_for_update()
                )
            ).scalar_one_or_none()
            if assignment is None:
                raise AssignmentNotFoundError(str(assignment_id))
            assignment.deleted_at = datetime.now(UTC)
            await session.flush()

        await self.ledger.run_in_transaction(_delete)
        logger.info(f"Assignment {assignment_id} deleted by {principal.id}")
        self.revalidation.notify(ASSIGNMENT_PATHS)
