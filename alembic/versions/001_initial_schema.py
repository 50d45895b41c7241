"""Initial database schema.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-17

Creates all initial tables for the summit portal:
- Profiles (registration, payment and accreditation state)
- Scans and meal validations
- Validator assignments
- Config
"""

from typing import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers
revision: str = "001_initial"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create all database tables."""

    # ==================== PROFILES ====================
    op.create_table(
        "profiles",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False, index=True),
        sa.Column("phone", sa.String(20), index=True),
        sa.Column("full_name", sa.String(200), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default="participant"),
        sa.Column("school", sa.String(255)),
        sa.Column("state", sa.String(100)),
        sa.Column("chapter", sa.String(100)),
        sa.Column("payment_status", sa.String(20), nullable=False, server_default="not_registered"),
        sa.Column("payment_reference", sa.String(64)),
        sa.Column("payment_amount", sa.Integer),
        sa.Column("payment_proof", sa.Text),
        sa.Column("payment_date", sa.DateTime(timezone=True)),
        sa.Column("payment_completed_at", sa.DateTime(timezone=True)),
        sa.Column("accreditation_status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("accreditation_date", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("email", name="uq_profiles_email"),
        sa.UniqueConstraint("phone", name="uq_profiles_phone"),
        sa.UniqueConstraint("payment_reference", name="uq_profiles_payment_reference"),
    )
    op.create_index("ix_profiles_payment_status", "profiles", ["payment_status"])

    # ==================== SCANS ====================
    op.create_table(
        "scans",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("profiles.id"), nullable=False, index=True),
        sa.Column("scanned_by", postgresql.UUID(as_uuid=True), sa.ForeignKey("profiles.id"), nullable=False, index=True),
        sa.Column("scan_type", sa.String(20), nullable=False),
        sa.Column("location", sa.String(200)),
        sa.Column("notes", sa.Text),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), index=True),
    )

    op.create_table(
        "meal_validations",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("participant_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("profiles.id"), nullable=False),
        sa.Column("meal_type", sa.String(20), nullable=False),
        sa.Column("date", sa.Date, nullable=False),
        sa.Column("status", sa.String(20), server_default="validated"),
        sa.Column("validated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("validator_name", sa.String(200)),
        sa.Column("scan_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("scans.id")),
        sa.UniqueConstraint(
            "participant_id",
            "meal_type",
            "date",
            name="uq_meal_validations_participant_meal_date",
        ),
    )

    # ==================== ASSIGNMENTS ====================
    op.create_table(
        "validator_assignments",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("validator_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("profiles.id"), nullable=False, index=True),
        sa.Column("meal_type", sa.String(20), nullable=False),
        sa.Column("location", sa.String(200), nullable=False),
        sa.Column("schedule_date", sa.Date, nullable=False),
        sa.Column("schedule_time", sa.Time, nullable=False),
        sa.Column("end_time", sa.Time, nullable=False),
        sa.Column("status", sa.String(20), server_default="pending"),
        sa.Column("deleted_at", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # ==================== CONFIG ====================
    op.create_table(
        "config",
        sa.Column("key", sa.String(100), primary_key=True),
        sa.Column("value", postgresql.JSONB),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # Scans are append-only
    op.execute(
        """
        CREATE OR REPLACE FUNCTION reject_scan_mutation() RETURNS trigger AS $$
        BEGIN
            RAISE EXCEPTION 'scans are append-only';
        END;
        $$ LANGUAGE plpgsql;
        """
    )
    op.execute(
        """
        CREATE TRIGGER scans_append_only
        BEFORE UPDATE OR DELETE ON scans
        FOR EACH ROW EXECUTE FUNCTION reject_scan_mutation();
        """
    )


def downgrade() -> None:
    """Drop all database tables in reverse order."""
    op.execute("DROP TRIGGER IF EXISTS scans_append_only ON scans")
    op.execute("DROP FUNCTION IF EXISTS reject_scan_mutation()")
    op.drop_table("config")
    op.drop_table("validator_assignments")
    op.drop_table("meal_validations")
    op.drop_table("scans")
    op.drop_index("ix_profiles_payment_status", table_name="profiles")
    op.drop_table("profiles")
