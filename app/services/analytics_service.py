"""Admin dashboard analytics.

Read-only aggregates over profiles, scans and meal validations.
"""

import logging
from datetime import date, datetime
from typing import Any
from zoneinfo import ZoneInfo

from sqlalchemy import case, func, select
from sqlalchemy.orm import aliased

from app.core.permissions import Capability, Principal, authorize
from app.domain.payment_state import COMPLETED, PENDING, PROOF_SUBMITTED
from app.domain.scan_rules import MEAL_TYPES, ScanType
from app.models.profile import Profile
from app.models.scan import MealValidation, Scan
from app.services.ledger_store import LedgerStore

logger = logging.getLogger(__name__)

RECENT_LIMIT = 10


def _rate(part: int, whole: int) -> int:
    """Whole-number percentage, 0 when there is nothing to divide."""
    if not whole:
        return 0
    return round(part * 100 / whole)


class AnalyticsService:
    """Aggregates for the admin dashboard."""

    def __init__(self, ledger: LedgerStore, timezone: str = "Africa/Lagos") -> None:
        self.ledger = ledger
        self.tz = ZoneInfo(timezone)

    def today(self) -> date:
        return datetime.now(self.tz).date()

    async def get_payment_stats(self, principal: Principal | None) -> dict[str, Any]:
        authorize(principal, Capability.VIEW_ANALYTICS)
        participants = Profile.role == "participant"

        totals = (
            await self.ledger.run_query(
                select(
                    func.count(Profile.id).label("total"),
                    func.sum(case((Profile.payment_status == COMPLETED, 1), else_=0)).label("completed"),
                    func.sum(case((Profile.payment_status == PROOF_SUBMITTED, 1), else_=0)).label("proof_submitted"),
                    func.sum(case((Profile.payment_status == PENDING, 1), else_=0)).label("pending"),
                    func.sum(
                        case((Profile.payment_status == COMPLETED, Profile.payment_amount), else_=0)
                    ).label("total_collected"),
                ).where(participants)
            )
        )[0]

        by_state = await self.ledger.run_query(
            select(
                func.coalesce(Profile.state, "Unspecified").label("state"),
                func.count(Profile.id).label("count"),
                func.sum(case((Profile.payment_status == COMPLETED, 1), else_=0)).label("completed"),
            )
            .where(participants)
            .group_by(func.coalesce(Profile.state, "Unspecified"))
            .order_by(func.count(Profile.id).desc())
        )

        recent = await self.ledger.run_query(
            select(
                Profile.id,
                Profile.full_name,
                Profile.payment_reference,
                Profile.payment_amount,
                Profile.payment_completed_at,
            )
            .where(participants, Profile.payment_status == COMPLETED)
            .order_by(Profile.payment_completed_at.desc())
            .limit(RECENT_LIMIT)
        )

        total = totals["total"] or 0
        completed = totals["completed"] or 0
        return {
            "total_registrations": total,
            "completed": completed,
            "pending": totals["pending"] or 0,
            "pending_proofs": totals["proof_submitted"] or 0,
            "total_collected": totals["total_collected"] or 0,
            "completion_rate": _rate(completed, total),
            "by_state": [
                {"state": row["state"], "count": row["count"], "completed": row["completed"] or 0}
                for row in by_state
            ],
            "recent": [dict(row) for row in recent],
        }

    async def get_accreditation_stats(self, principal: Principal | None) -> dict[str, Any]:
        """Accreditation progress among participants who have paid."""
        authorize(principal, Capability.VIEW_ANALYTICS)
        paid = (Profile.role == "participant", Profile.payment_status == COMPLETED)

        totals = (
            await self.ledger.run_query(
                select(
                    func.count(Profile.id).label("paid"),
                    func.sum(case((Profile.accreditation_status == "completed", 1), else_=0)).label("accredited"),
                ).where(*paid)
            )
        )[0]

        by_state = await self.ledger.run_query(
            select(
                func.coalesce(Profile.state, "Unspecified").label("state"),
                func.count(Profile.id).label("paid"),
                func.sum(case((Profile.accreditation_status == "completed", 1), else_=0)).label("accredited"),
            )
            .where(*paid)
            .group_by(func.coalesce(Profile.state, "Unspecified"))
            .order_by(func.count(Profile.id).desc())
        )

        subject = aliased(Profile)
        validator = aliased(Profile)
        recent = await self.ledger.run_query(
            select(
                subject.full_name.label("participant"),
                validator.full_name.label("validator"),
                Scan.location,
                Scan.created_at,
            )
            .join(subject, subject.id == Scan.user_id)
            .outerjoin(validator, validator.id == Scan.scanned_by)
            .where(Scan.scan_type == ScanType.ACCREDITATION.value)
            .order_by(Scan.created_at.desc())
            .limit(RECENT_LIMIT)
        )

        paid_count = totals["paid"] or 0
        accredited = totals["accredited"] or 0
        return {
            "paid_participants": paid_count,
            "accredited": accredited,
            "pending": paid_count - accredited,
            "completion_rate": _rate(accredited, paid_count),
            "by_state": [
                {"state": row["state"], "paid": row["paid"], "accredited": row["accredited"] or 0}
                for row in by_state
            ],
            "recent": [dict(row) for row in recent],
        }

    async def get_meal_stats(self, principal: Principal | None, day: date) -> dict[str, Any]:
        authorize(principal, Capability.VIEW_ANALYTICS)
        rows = await self.ledger.run_query(
            select(MealValidation.meal_type, func.count(MealValidation.id).label("count"))
            .where(MealValidation.date == day)
            .group_by(MealValidation.meal_type)
        )
        counts = {meal: 0 for meal in sorted(MEAL_TYPES)}
        counts.update({row["meal_type"]: row["count"] for row in rows})
        return {"date": day, "meals": counts, "total": sum(counts.values())}
