"""Admin analytics schemas."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel


class StateBreakdown(BaseModel):
    state: str
    count: int
    completed: int


class RecentPayment(BaseModel):
    id: UUID
    full_name: str
    payment_reference: str | None
    payment_amount: int | None
    payment_completed_at: datetime | None


class PaymentStatsResponse(BaseModel):
    total_registrations: int
    completed: int
    pending: int
    pending_proofs: int
    total_collected: int
    completion_rate: int
    by_state: list[StateBreakdown]
    recent: list[RecentPayment]


class AccreditationStateBreakdown(BaseModel):
    state: str
    paid: int
    accredited: int


class RecentAccreditation(BaseModel):
    participant: str
    validator: str | None
    location: str | None
    created_at: datetime


class AccreditationStatsResponse(BaseModel):
    paid_participants: int
    accredited: int
    pending: int
    completion_rate: int
    by_state: list[AccreditationStateBreakdown]
    recent: list[RecentAccreditation]


class MealStatsResponse(BaseModel):
    date: date
    meals: dict[str, int]
    total: int
