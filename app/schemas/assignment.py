"""Validator assignment schemas."""

from datetime import date, datetime, time
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.domain.scan_rules import ScanType


class AssignmentCreate(BaseModel):
    validator_id: UUID
    meal_type: ScanType
    location: str = Field(..., min_length=1, max_length=200)
    schedule_date: date
    schedule_time: time


class AssignmentStatusUpdate(BaseModel):
    status: Literal["in_progress", "completed"]


class AssignmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    validator_id: UUID
    meal_type: str
    location: str
    schedule_date: date
    schedule_time: time
    end_time: time
    status: str
    created_at: datetime | None = None


class AssignmentWithValidatorResponse(AssignmentResponse):
    validator_name: str
    validator_phone: str | None
