"""Registration and profile schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class RegistrationCreate(BaseModel):
    """Schema for participant self-registration."""

    email: EmailStr
    full_name: str = Field(..., min_length=2, max_length=200)
    phone: str | None = Field(None, max_length=20)
    school: str | None = Field(None, max_length=255)
    state: str | None = Field(None, max_length=100)
    chapter: str | None = Field(None, max_length=100)


class ProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    full_name: str
    phone: str | None
    role: str
    school: str | None
    state: str | None
    chapter: str | None
    payment_status: str
    accreditation_status: str
    accreditation_date: datetime | None
    created_at: datetime | None = None
