"""Registrant profile model."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.database import Base


class Profile(Base):
    """One row per registrant, carrying payment and accreditation state."""

    __tablename__ = "profiles"
    __table_args__ = (
        UniqueConstraint("email", name="uq_profiles_email"),
        UniqueConstraint("phone", name="uq_profiles_phone"),
        UniqueConstraint("payment_reference", name="uq_profiles_payment_reference"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    phone: Mapped[str | None] = mapped_column(String(20), index=True)
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default="participant"
    )  # participant, validator, admin

    # Registration details
    school: Mapped[str | None] = mapped_column(String(255))
    state: Mapped[str | None] = mapped_column(String(100))
    chapter: Mapped[str | None] = mapped_column(String(100))

    # Payment (state machine: not_registered → pending → proof_submitted → completed)
    payment_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="not_registered"
    )
    payment_reference: Mapped[str | None] = mapped_column(String(64))
    payment_amount: Mapped[int | None] = mapped_column(Integer)  # in naira
    payment_proof: Mapped[str | None] = mapped_column(Text)  # URL or "whatsapp"
    payment_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    payment_completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Accreditation (pending → completed, one way)
    accreditation_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="pending"
    )  # pending, completed, declined
    accreditation_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
