"""
Validator schedule tests.
"""
from datetime import time, timedelta

import pytest

from app.core.exceptions import AssignmentNotFoundError, ForbiddenError, ValidationError
from app.core.permissions import Role


@pytest.fixture
def tomorrow(services):
    return services.scans.today() + timedelta(days=1)


class TestCreateAssignment:

    @pytest.mark.asyncio
    async def test_creates_four_hour_shift(self, services, make_profile, principal_for, tomorrow) -> None:
        admin = await make_profile(role=Role.ADMIN)
        validator = await make_profile(role=Role.VALIDATOR)

        assignment = await services.assignments.create_assignment(
            principal_for(admin), validator.id, "breakfast", " Dining Hall A ", tomorrow, time(6, 30)
        )

        assert assignment.status == "pending"
        assert assignment.location == "Dining Hall A"
        assert assignment.end_time == time(10, 30)

    @pytest.mark.asyncio
    async def test_target_must_be_validator(self, services, make_profile, principal_for, tomorrow) -> None:
        admin = await make_profile(role=Role.ADMIN)
        participant = await make_profile()

        with pytest.raises(ValidationError):
            await services.assignments.create_assignment(
                principal_for(admin), participant.id, "dinner", "Hall", tomorrow, time(18, 0)
            )

    @pytest.mark.asyncio
    async def test_rejects_unknown_type(self, services, make_profile, principal_for, tomorrow) -> None:
        admin = await make_profile(role=Role.ADMIN)
        validator = await make_profile(role=Role.VALIDATOR)

        with pytest.raises(ValidationError):
            await services.assignments.create_assignment(
                principal_for(admin), validator.id, "lunch", "Hall", tomorrow, time(12, 0)
            )

    @pytest.mark.asyncio
    async def test_validators_cannot_create(self, services, make_profile, principal_for, tomorrow) -> None:
        validator = await make_profile(role=Role.VALIDATOR)

        with pytest.raises(ForbiddenError):
            await services.assignments.create_assignment(
                principal_for(validator), validator.id, "dinner", "Hall", tomorrow, time(18, 0)
            )


class TestAssignmentLifecycle:

    @pytest.mark.asyncio
    async def test_owner_progresses_status(self, services, make_profile, principal_for, tomorrow) -> None:
        admin = await make_profile(role=Role.ADMIN)
        validator = await make_profile(role=Role.VALIDATOR)
        assignment = await services.assignments.create_assignment(
            principal_for(admin), validator.id, "dinner", "Hall", tomorrow, time(18, 0)
        )

        started = await services.assignments.update_assignment_status(
            principal_for(validator), assignment.id, "in_progress"
        )
        finished = await services.assignments.update_assignment_status(
            principal_for(validator), assignment.id, "completed"
        )

        assert started.status == "in_progress"
        assert finished.status == "completed"
        with pytest.raises(ValidationError):
            await services.assignments.update_assignment_status(
                principal_for(admin), assignment.id, "pending"
            )

    @pytest.mark.asyncio
    async def test_other_validator_cannot_update(self, services, make_profile, principal_for, tomorrow) -> None:
        admin = await make_profile(role=Role.ADMIN)
        owner = await make_profile(role=Role.VALIDATOR)
        other = await make_profile(role=Role.VALIDATOR)
        assignment = await services.assignments.create_assignment(
            principal_for(admin), owner.id, "dinner", "Hall", tomorrow, time(18, 0)
        )

        with pytest.raises(ForbiddenError):
            await services.assignments.update_assignment_status(
                principal_for(other), assignment.id, "in_progress"
            )

    @pytest.mark.asyncio
    async def test_soft_delete_hides_assignment(self, services, make_profile, principal_for, tomorrow) -> None:
        admin = await make_profile(role=Role.ADMIN)
        validator = await make_profile(role=Role.VALIDATOR, full_name="Seun", phone="+2348011111111")
        keep = await services.assignments.create_assignment(
            principal_for(admin), validator.id, "breakfast", "Hall", tomorrow, time(7, 0)
        )
        drop = await services.assignments.create_assignment(
            principal_for(admin), validator.id, "dinner", "Hall", tomorrow, time(18, 0)
        )

        await services.assignments.delete_assignment(principal_for(admin), drop.id)

        mine = await services.assignments.get_validator_assignments(principal_for(validator))
        listed = await services.assignments.list_assignments(principal_for(admin))
        assert [a.id for a in mine] == [keep.id]
        assert [row["assignment"].id for row in listed] == [keep.id]
        assert listed[0]["validator_name"] == "Seun"
        assert listed[0]["validator_phone"] == "+2348011111111"
        with pytest.raises(AssignmentNotFoundError):
            await services.assignments.delete_assignment(principal_for(admin), drop.id)

    @pytest.mark.asyncio
    async def test_past_assignments_are_not_upcoming(self, services, make_profile, principal_for) -> None:
        admin = await make_profile(role=Role.ADMIN)
        validator = await make_profile(role=Role.VALIDATOR)
        yesterday = services.scans.today() - timedelta(days=1)
        await services.assignments.create_assignment(
            principal_for(admin), validator.id, "dinner", "Hall", yesterday, time(18, 0)
        )

        assert await services.assignments.get_validator_assignments(principal_for(validator)) == []
