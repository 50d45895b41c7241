"""Scan / validation engine.

A scan always appends an immutable ``Scan`` row. Depending on its type it also
accredits the participant or records a meal validation, in the same
transaction. Repeat accreditations and meal validations are reported as soft
results rather than errors, and the audit row still commits.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import UTC, date, datetime
from typing import Any
from zoneinfo import ZoneInfo

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from app.core.exceptions import (
    AlreadyAccreditedError,
    AlreadyValidatedError,
    ParticipantNotFoundError,
    ValidationError,
)
from app.core.permissions import Capability, Principal, authorize, authorize_self_or_admin
from app.domain.scan_rules import (
    ALREADY_ACCREDITED,
    ALREADY_VALIDATED,
    ScanEffect,
    ScanType,
    effect_for,
    success_message,
)
from app.models.profile import Profile
from app.models.scan import MealValidation, Scan
from app.services.ledger_store import LedgerStore, dialect_insert
from app.services.profile_service import lock_profile
from app.services.revalidation_service import SCAN_PATHS, RevalidationService
from app.utils.validators import mask_phone

logger = logging.getLogger(__name__)

MAX_HISTORY_LIMIT = 200


@dataclass
class ParticipantInfo:
    id: uuid.UUID
    full_name: str
    phone: str | None
    school: str | None
    accreditation_status: str
    accreditation_date: datetime | None


@dataclass
class ScanResult:
    success: bool
    message: str
    scan_id: uuid.UUID
    scan_type: str
    participant: ParticipantInfo


def _participant_info(profile: Profile) -> ParticipantInfo:
    return ParticipantInfo(
        id=profile.id,
        full_name=profile.full_name,
        phone=profile.phone,
        school=profile.school,
        accreditation_status=profile.accreditation_status,
        accreditation_date=profile.accreditation_date,
    )


class ScanService:
    """Records validator scans and applies their side effects."""

    def __init__(
        self,
        ledger: LedgerStore,
        revalidation: RevalidationService,
        timezone: str = "Africa/Lagos",
    ) -> None:
        self.ledger = ledger
        self.revalidation = revalidation
        self.tz = ZoneInfo(timezone)

    def today(self) -> date:
        """Current date in the conference timezone."""
        return datetime.now(self.tz).date()

    async def record_scan(
        self,
        principal: Principal | None,
        scan_type: ScanType | str,
        subject_id: uuid.UUID | None = None,
        phone: str | None = None,
        location: str | None = None,
        notes: str | None = None,
    ) -> ScanResult:
        """Record a scan of a participant identified by id or exact phone.

        Raises:
            ForbiddenError: Caller is not a validator
            ValidationError: Neither id nor phone supplied, or unknown scan type
            ParticipantNotFoundError: No matching profile
        """
        authorize(principal, Capability.RECORD_SCAN)
        try:
            scan_type = ScanType(scan_type)
        except ValueError:
            raise ValidationError(f"Invalid scan type: {scan_type}") from None
        if subject_id is None and not phone:
            raise ValidationError("Participant id or phone number is required")

        async def _record(session: AsyncSession) -> ScanResult:
            if subject_id is not None:
                profile = await lock_profile(session, Profile.id == subject_id)
            else:
                profile = await lock_profile(session, Profile.phone == phone.strip())
            if profile is None:
                raise ParticipantNotFoundError(
                    str(subject_id) if subject_id is not None else mask_phone(phone.strip())
                )

            scan = Scan(
                id=uuid.uuid4(),
                user_id=profile.id,
                scanned_by=principal.id,
                scan_type=scan_type.value,
                location=location,
                notes=notes,
                created_at=datetime.now(UTC),
            )
            session.add(scan)
            await session.flush()

            try:
                await self._apply_effect(session, scan, profile, principal)
            except (AlreadyAccreditedError, AlreadyValidatedError) as e:
                logger.info(f"Scan {scan.id} ({scan_type.value}) for {profile.id}: {e.detail}")
                return ScanResult(
                    success=False,
                    message=e.detail,
                    scan_id=scan.id,
                    scan_type=scan_type.value,
                    participant=_participant_info(profile),
                )

            return ScanResult(
                success=True,
                message=success_message(scan_type),
                scan_id=scan.id,
                scan_type=scan_type.value,
                participant=_participant_info(profile),
            )

        result = await self.ledger.run_in_transaction(_record)
        if result.success:
            logger.info(
                f"Scan {result.scan_id} ({result.scan_type}) for {result.participant.id} "
                f"by validator {principal.id}"
            )
        self.revalidation.notify(SCAN_PATHS)
        return result

    async def _apply_effect(
        self, session: AsyncSession, scan: Scan, profile: Profile, principal: Principal
    ) -> None:
        effect = effect_for(scan.scan_type)
        if effect is ScanEffect.ACCREDIT:
            await self._accredit(session, profile)
        elif effect is ScanEffect.VALIDATE_MEAL:
            await self._validate_meal(session, scan, profile, principal)

    async def _accredit(self, session: AsyncSession, profile: Profile) -> None:
        """pending → completed, one way."""
        result = await session.execute(
            update(Profile)
            .where(Profile.id == profile.id, Profile.accreditation_status != "completed")
            .values(accreditation_status="completed", accreditation_date=datetime.now(UTC))
        )
        if result.rowcount == 0:
            raise AlreadyAccreditedError(ALREADY_ACCREDITED)
        await session.refresh(profile)

    async def _validate_meal(
        self, session: AsyncSession, scan: Scan, profile: Profile, principal: Principal
    ) -> None:
        """Insert-if-absent on (participant, meal type, today)."""
        validator_name = (
            await session.execute(select(Profile.full_name).where(Profile.id == principal.id))
        ).scalar_one_or_none()
        values: dict[str, Any] = {
            "id": uuid.uuid4(),
            "participant_id": profile.id,
            "meal_type": scan.scan_type,
            "date": self.today(),
            "status": "validated",
            "validated_at": datetime.now(UTC),
            "validator_name": validator_name,
            "scan_id": scan.id,
        }

        stmt = dialect_insert(session, MealValidation)
        if stmt is not None:
            result = await session.execute(
                stmt.values(**values).on_conflict_do_nothing(
                    index_elements=["participant_id", "meal_type", "date"]
                )
            )
            inserted = result.rowcount == 1
        else:
            try:
                async with session.begin_nested():
                    session.add(MealValidation(**values))
                    await session.flush()
                inserted = True
            except IntegrityError:
                inserted = False

        if not inserted:
            raise AlreadyValidatedError(ALREADY_VALIDATED)

    async def get_scan_history(
        self, principal: Principal | None, limit: int = 50
    ) -> list[dict[str, Any]]:
        """Newest scans first. Validators only see their own."""
        if principal is not None and principal.is_admin:
            authorize(principal, Capability.VIEW_ALL_SCANS)
        else:
            authorize(principal, Capability.VIEW_OWN_SCANS)
        limit = max(1, min(limit, MAX_HISTORY_LIMIT))

        subject = aliased(Profile)
        validator = aliased(Profile)
        stmt = (
            select(
                Scan.id,
                Scan.scan_type,
                Scan.location,
                Scan.notes,
                Scan.created_at,
                Scan.user_id.label("participant_id"),
                Scan.scanned_by,
                subject.full_name.label("participant_name"),
                subject.phone.label("participant_phone"),
                validator.full_name.label("validator_name"),
            )
            .join(subject, subject.id == Scan.user_id)
            .outerjoin(validator, validator.id == Scan.scanned_by)
            .order_by(Scan.created_at.desc())
            .limit(limit)
        )
        if not principal.is_admin:
            stmt = stmt.where(Scan.scanned_by == principal.id)

        rows = await self.ledger.run_query(stmt)
        return [dict(row) for row in rows]

    async def get_meal_validations(
        self, principal: Principal | None, profile_id: uuid.UUID | None = None
    ) -> list[MealValidation]:
        """A participant's meal validations, most recent day first."""
        subject_id = authorize_self_or_admin(
            principal, profile_id, Capability.VIEW_OWN_PROFILE, Capability.VIEW_ALL_SCANS
        )
        rows = await self.ledger.run_query(
            select(MealValidation)
            .where(MealValidation.participant_id == subject_id)
            .order_by(MealValidation.date.desc(), MealValidation.validated_at.desc())
        )
        return [row["MealValidation"] for row in rows]
