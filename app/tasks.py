"""Celery background tasks."""

import asyncio
import logging
from datetime import date, datetime
from zoneinfo import ZoneInfo

from celery import shared_task
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import settings
from app.database import create_engine_from_settings
from app.models.scan import MealValidation
from app.services.ledger_store import LedgerStore

logger = logging.getLogger(__name__)


# ==================== MEAL VALIDATIONS ====================


async def expire_validations_before(ledger: LedgerStore, today: date) -> int:
    """Mark ``validated`` rows from days before ``today`` as ``expired``.

    Returns:
        int: Number of rows expired
    """

    async def _expire(session: AsyncSession) -> int:
        result = await session.execute(
            update(MealValidation)
            .where(MealValidation.status == "validated", MealValidation.date < today)
            .values(status="expired")
        )
        return result.rowcount

    return await ledger.run_in_transaction(_expire)


async def _expire_meal_validations() -> int:
    # Each task run gets its own event loop, so it also gets its own engine
    engine = create_engine_from_settings()
    try:
        ledger = LedgerStore(async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False))
        today = datetime.now(ZoneInfo(settings.conference_timezone)).date()
        return await expire_validations_before(ledger, today)
    finally:
        await engine.dispose()


@shared_task(bind=True, max_retries=3)
def expire_meal_validations(self):
    """Expire meal validations from previous days.

    Runs daily at 00:05 conference time.
    """
    try:
        expired = asyncio.run(_expire_meal_validations())
    except Exception as exc:
        logger.error(f"Expiring meal validations failed: {exc}")
        raise self.retry(exc=exc, countdown=300)

    logger.info(f"Expired {expired} meal validations")
    return {"status": "success", "expired": expired}
