"""Payment-related Pydantic schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class PaymentInitializeRequest(BaseModel):
    """Schema for starting a payment. Amount defaults to the registration fee."""

    amount: int | None = Field(None, gt=0)


class PaymentInitializeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    reference: str
    amount: int
    status: str


class ProofSubmissionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    reference: str
    proof: str
    status: str


class PaymentReferenceRequest(BaseModel):
    """Schema for admin verify / gateway confirmation."""

    reference: str = Field(..., min_length=1, max_length=64)


class PaymentRejectRequest(PaymentReferenceRequest):
    reason: str | None = Field(None, max_length=500)


class PaymentSummaryResponse(BaseModel):
    """Schema for a profile's payment state."""

    model_config = ConfigDict(from_attributes=True)

    profile_id: UUID
    full_name: str
    email: str
    status: str
    amount: int
    reference: str | None
    proof: str | None
    payment_date: datetime | None
    completed_at: datetime | None


class GatewayConfirmationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    verified: bool
    reference: str
    status: str
    message: str
