"""Scan audit events and the meal validations derived from them."""

from __future__ import annotations

import datetime as dt
import uuid
from typing import TYPE_CHECKING

from sqlalchemy import Date, DateTime, ForeignKey, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from app.database import Base

if TYPE_CHECKING:
    from app.models.profile import Profile


class Scan(Base):
    """Append-only record of a validator's action against a participant."""

    __tablename__ = "scans"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("profiles.id"), nullable=False, index=True
    )
    scanned_by: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("profiles.id"), nullable=False, index=True
    )
    scan_type: Mapped[str] = mapped_column(
        String(20), nullable=False
    )  # accreditation, breakfast, dinner, check_in, session
    location: Mapped[str | None] = mapped_column(String(200))
    notes: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), index=True
    )

    # Relationships
    subject: Mapped["Profile"] = relationship("Profile", foreign_keys=[user_id])
    validator: Mapped["Profile"] = relationship("Profile", foreign_keys=[scanned_by])


class MealValidation(Base):
    """At most one row per participant, meal type and day."""

    __tablename__ = "meal_validations"
    __table_args__ = (
        UniqueConstraint(
            "participant_id",
            "meal_type",
            "date",
            name="uq_meal_validations_participant_meal_date",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    participant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("profiles.id"), nullable=False
    )
    meal_type: Mapped[str] = mapped_column(String(20), nullable=False)  # breakfast, dinner
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="validated")  # validated, expired
    validated_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    validator_name: Mapped[str | None] = mapped_column(String(200))
    scan_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("scans.id"))
