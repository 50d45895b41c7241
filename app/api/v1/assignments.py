"""Validator assignment endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status

from app.api.deps import CurrentPrincipal, get_assignment_service
from app.models.assignment import ValidatorAssignment
from app.schemas.assignment import (
    AssignmentCreate,
    AssignmentResponse,
    AssignmentStatusUpdate,
    AssignmentWithValidatorResponse,
)
from app.services.assignment_service import AssignmentService

router = APIRouter()

Assignments = Annotated[AssignmentService, Depends(get_assignment_service)]


@router.post("", response_model=AssignmentResponse, status_code=status.HTTP_201_CREATED)
async def create_assignment(
    data: AssignmentCreate,
    principal: CurrentPrincipal,
    assignments: Assignments,
) -> ValidatorAssignment:
    return await assignments.create_assignment(
        principal,
        validator_id=data.validator_id,
        meal_type=data.meal_type.value,
        location=data.location,
        schedule_date=data.schedule_date,
        schedule_time=data.schedule_time,
    )


@router.get("", response_model=list[AssignmentWithValidatorResponse])
async def list_assignments(
    principal: CurrentPrincipal, assignments: Assignments
) -> list[AssignmentWithValidatorResponse]:
    rows = await assignments.list_assignments(principal)
    return [
        AssignmentWithValidatorResponse(
            **AssignmentResponse.model_validate(row["assignment"]).model_dump(),
            validator_name=row["validator_name"],
            validator_phone=row["validator_phone"],
        )
        for row in rows
    ]


@router.get("/me", response_model=list[AssignmentResponse])
async def get_my_assignments(principal: CurrentPrincipal, assignments: Assignments) -> list[ValidatorAssignment]:
    """Upcoming assignments for the calling validator."""
    return await assignments.get_validator_assignments(principal)


@router.get("/validator/{validator_id}", response_model=list[AssignmentResponse])
async def get_validator_assignments(
    validator_id: UUID, principal: CurrentPrincipal, assignments: Assignments
) -> list[ValidatorAssignment]:
    return await assignments.get_validator_assignments(principal, validator_id)


@router.patch("/{assignment_id}/status", response_model=AssignmentResponse)
async def update_assignment_status(
    assignment_id: UUID,
    data: AssignmentStatusUpdate,
    principal: CurrentPrincipal,
    assignments: Assignments,
) -> ValidatorAssignment:
    return await assignments.update_assignment_status(principal, assignment_id, data.status)


@router.delete("/{assignment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_assignment(
    assignment_id: UUID, principal: CurrentPrincipal, assignments: Assignments
) -> None:
    await assignments.delete_assignment(principal, assignment_id)
