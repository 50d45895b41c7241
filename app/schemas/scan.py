"""Scan and meal validation schemas."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.domain.scan_rules import ScanType


class ScanCreate(BaseModel):
    """Schema for recording a scan. Identify the participant by id or phone."""

    scan_type: ScanType
    participant_id: UUID | None = None
    phone: str | None = Field(None, max_length=20)
    location: str | None = Field(None, max_length=200)
    notes: str | None = Field(None, max_length=1000)

    @model_validator(mode="after")
    def require_subject(self) -> "ScanCreate":
        if self.participant_id is None and not self.phone:
            raise ValueError("participant_id or phone is required")
        return self


class ParticipantInfoResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    full_name: str
    phone: str | None
    school: str | None
    accreditation_status: str
    accreditation_date: datetime | None


class ScanResultResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    success: bool
    message: str
    scan_id: UUID
    scan_type: str
    participant: ParticipantInfoResponse


class ScanHistoryItem(BaseModel):
    id: UUID
    scan_type: str
    location: str | None
    notes: str | None
    created_at: datetime
    participant_id: UUID
    scanned_by: UUID
    participant_name: str
    participant_phone: str | None
    validator_name: str | None


class MealValidationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    meal_type: str
    date: date
    status: str
    validated_at: datetime
    validator_name: str | None
