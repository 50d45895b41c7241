"""
Scan engine tests: accreditation, meal validation and the scan audit trail.
"""
import asyncio
from datetime import timedelta

import pytest
from sqlalchemy import func, select

from app.core.exceptions import ForbiddenError, ParticipantNotFoundError, ValidationError
from app.core.immutability import ImmutabilityViolationError
from app.core.permissions import Role
from app.domain.scan_rules import ALREADY_ACCREDITED, ALREADY_VALIDATED
from app.models.profile import Profile
from app.models.scan import MealValidation, Scan


async def _count(session_factory, model, *criteria) -> int:
    async with session_factory() as session:
        return (await session.execute(select(func.count()).select_from(model).where(*criteria))).scalar_one()


class TestAccreditation:

    @pytest.mark.asyncio
    async def test_first_scan_accredits(self, services, make_profile, principal_for, session_factory) -> None:
        validator = await make_profile(role=Role.VALIDATOR, full_name="Gate Keeper")
        participant = await make_profile()

        result = await services.scans.record_scan(
            principal_for(validator), "accreditation", subject_id=participant.id, location="Main Hall"
        )

        assert result.success
        assert result.message == "Accreditation completed"
        assert result.participant.accreditation_status == "completed"
        assert result.participant.accreditation_date is not None
        assert await _count(session_factory, Scan, Scan.user_id == participant.id) == 1

    @pytest.mark.asyncio
    async def test_repeat_scan_is_soft_failure_and_still_audited(
        self, services, make_profile, principal_for, session_factory
    ) -> None:
        validator = await make_profile(role=Role.VALIDATOR)
        participant = await make_profile()
        principal = principal_for(validator)
        first = await services.scans.record_scan(principal, "accreditation", subject_id=participant.id)

        second = await services.scans.record_scan(principal, "accreditation", subject_id=participant.id)

        assert not second.success
        assert second.message == ALREADY_ACCREDITED
        assert second.scan_id != first.scan_id
        assert await _count(session_factory, Scan, Scan.user_id == participant.id) == 2

    @pytest.mark.asyncio
    async def test_lookup_by_phone(self, services, make_profile, principal_for) -> None:
        validator = await make_profile(role=Role.VALIDATOR)
        participant = await make_profile(phone="+2348012345678")

        result = await services.scans.record_scan(
            principal_for(validator), "accreditation", phone="+2348012345678"
        )

        assert result.participant.id == participant.id

    @pytest.mark.asyncio
    async def test_does_not_require_payment(self, services, make_profile, principal_for) -> None:
        validator = await make_profile(role=Role.VALIDATOR)
        participant = await make_profile(payment_status="not_registered")

        result = await services.scans.record_scan(
            principal_for(validator), "accreditation", subject_id=participant.id
        )

        assert result.success


class TestMealValidation:

    @pytest.mark.asyncio
    async def test_one_breakfast_per_day(self, services, make_profile, principal_for, session_factory) -> None:
        validator = await make_profile(role=Role.VALIDATOR, full_name="Kitchen Lead")
        participant = await make_profile()
        principal = principal_for(validator)

        first = await services.scans.record_scan(principal, "breakfast", subject_id=participant.id)
        second = await services.scans.record_scan(principal, "breakfast", subject_id=participant.id)

        assert first.success
        assert first.message == "Breakfast validated"
        assert not second.success
        assert second.message == ALREADY_VALIDATED
        assert await _count(session_factory, MealValidation, MealValidation.participant_id == participant.id) == 1
        assert await _count(session_factory, Scan, Scan.user_id == participant.id) == 2

    @pytest.mark.asyncio
    async def test_breakfast_and_dinner_are_independent(self, services, make_profile, principal_for) -> None:
        validator = await make_profile(role=Role.VALIDATOR)
        participant = await make_profile()
        principal = principal_for(validator)

        breakfast = await services.scans.record_scan(principal, "breakfast", subject_id=participant.id)
        dinner = await services.scans.record_scan(principal, "dinner", subject_id=participant.id)

        assert breakfast.success
        assert dinner.success

    @pytest.mark.asyncio
    async def test_validation_is_per_conference_day(
        self, services, make_profile, principal_for, monkeypatch
    ) -> None:
        validator = await make_profile(role=Role.VALIDATOR)
        participant = await make_profile()
        principal = principal_for(validator)
        today = services.scans.today()

        monkeypatch.setattr(services.scans, "today", lambda: today - timedelta(days=1))
        yesterday = await services.scans.record_scan(principal, "dinner", subject_id=participant.id)
        monkeypatch.setattr(services.scans, "today", lambda: today)
        tonight = await services.scans.record_scan(principal, "dinner", subject_id=participant.id)

        assert yesterday.success
        assert tonight.success

    @pytest.mark.asyncio
    async def test_concurrent_scans_validate_once(
        self, services, make_profile, principal_for, session_factory
    ) -> None:
        validator = await make_profile(role=Role.VALIDATOR)
        participant = await make_profile()
        principal = principal_for(validator)

        results = await asyncio.gather(
            *(services.scans.record_scan(principal, "breakfast", subject_id=participant.id) for _ in range(4))
        )

        assert sum(1 for r in results if r.success) == 1
        assert all(r.message == ALREADY_VALIDATED for r in results if not r.success)
        assert await _count(session_factory, MealValidation, MealValidation.participant_id == participant.id) == 1
        assert await _count(session_factory, Scan, Scan.user_id == participant.id) == 4

    @pytest.mark.asyncio
    async def test_validation_records_validator_name(self, services, make_profile, principal_for) -> None:
        validator = await make_profile(role=Role.VALIDATOR, full_name="Kitchen Lead")
        participant = await make_profile()
        await services.scans.record_scan(principal_for(validator), "breakfast", subject_id=participant.id)

        validations = await services.scans.get_meal_validations(principal_for(participant))

        assert len(validations) == 1
        assert validations[0].validator_name == "Kitchen Lead"
        assert validations[0].status == "validated"


class TestAuditOnlyScans:

    @pytest.mark.asyncio
    async def test_check_in_has_no_side_effect(self, services, make_profile, principal_for, session_factory) -> None:
        validator = await make_profile(role=Role.VALIDATOR)
        participant = await make_profile()

        result = await services.scans.record_scan(principal_for(validator), "check_in", subject_id=participant.id)

        assert result.success
        assert result.message == "Check in recorded"
        assert result.participant.accreditation_status == "pending"
        assert await _count(session_factory, MealValidation) == 0


class TestScanGuards:

    @pytest.mark.asyncio
    async def test_only_validators_scan(self, services, make_profile, principal_for) -> None:
        admin = await make_profile(role=Role.ADMIN)
        participant = await make_profile()

        with pytest.raises(ForbiddenError):
            await services.scans.record_scan(principal_for(admin), "accreditation", subject_id=participant.id)
        with pytest.raises(ForbiddenError):
            await services.scans.record_scan(principal_for(participant), "accreditation", subject_id=participant.id)

    @pytest.mark.asyncio
    async def test_unknown_participant(self, services, make_profile, principal_for, session_factory) -> None:
        validator = await make_profile(role=Role.VALIDATOR)

        with pytest.raises(ParticipantNotFoundError):
            await services.scans.record_scan(principal_for(validator), "breakfast", phone="+2348000000000")

        assert await _count(session_factory, Scan) == 0

    @pytest.mark.asyncio
    async def test_requires_subject(self, services, make_profile, principal_for) -> None:
        validator = await make_profile(role=Role.VALIDATOR)

        with pytest.raises(ValidationError):
            await services.scans.record_scan(principal_for(validator), "breakfast")

    @pytest.mark.asyncio
    async def test_unknown_scan_type(self, services, make_profile, principal_for) -> None:
        validator = await make_profile(role=Role.VALIDATOR)
        participant = await make_profile()

        with pytest.raises(ValidationError):
            await services.scans.record_scan(principal_for(validator), "lunch", subject_id=participant.id)


class TestScanHistory:

    @pytest.mark.asyncio
    async def test_validators_see_only_their_scans(self, services, make_profile, principal_for) -> None:
        alice = await make_profile(role=Role.VALIDATOR, full_name="Alice")
        bola = await make_profile(role=Role.VALIDATOR, full_name="Bola")
        admin = await make_profile(role=Role.ADMIN)
        participant = await make_profile(full_name="Chidi")
        await services.scans.record_scan(principal_for(alice), "check_in", subject_id=participant.id)
        await services.scans.record_scan(principal_for(bola), "session", subject_id=participant.id)

        alice_history = await services.scans.get_scan_history(principal_for(alice))
        admin_history = await services.scans.get_scan_history(principal_for(admin))

        assert [row["validator_name"] for row in alice_history] == ["Alice"]
        assert alice_history[0]["participant_name"] == "Chidi"
        assert len(admin_history) == 2

    @pytest.mark.asyncio
    async def test_participant_cannot_read_history(self, services, make_profile, principal_for) -> None:
        participant = await make_profile()

        with pytest.raises(ForbiddenError):
            await services.scans.get_scan_history(principal_for(participant))


class TestScanImmutability:

    @pytest.mark.asyncio
    async def test_scans_cannot_be_updated(self, services, make_profile, principal_for, session_factory) -> None:
        validator = await make_profile(role=Role.VALIDATOR)
        participant = await make_profile()
        result = await services.scans.record_scan(principal_for(validator), "check_in", subject_id=participant.id)

        async with session_factory() as session:
            scan = await session.get(Scan, result.scan_id)
            scan.notes = "edited"
            with pytest.raises(ImmutabilityViolationError):
                await session.flush()

    @pytest.mark.asyncio
    async def test_scans_cannot_be_deleted(self, services, make_profile, principal_for, session_factory) -> None:
        validator = await make_profile(role=Role.VALIDATOR)
        participant = await make_profile()
        result = await services.scans.record_scan(principal_for(validator), "check_in", subject_id=participant.id)

        async with session_factory() as session:
            scan = await session.get(Scan, result.scan_id)
            await session.delete(scan)
            with pytest.raises(ImmutabilityViolationError):
                await session.flush()

        async with session_factory() as session:
            assert (await session.get(Profile, participant.id)) is not None
