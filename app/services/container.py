"""Service composition root.

Builds every service once per process from settings. The FastAPI lifespan
stores the result on ``app.state.services``; Celery tasks and scripts call
:func:`build_services` themselves. Tests construct services directly with fakes.
"""

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import Settings
from app.core.cache import RedisCache
from app.core.immutability import register_immutability_enforcement
from app.database import get_session_factory
from app.services.analytics_service import AnalyticsService
from app.services.assignment_service import AssignmentService
from app.services.config_service import ConfigService
from app.services.gateway_service import GatewayService
from app.services.ledger_store import LedgerStore
from app.services.payment_service import PaymentService
from app.services.profile_service import ProfileService
from app.services.revalidation_service import RevalidationService
from app.services.scan_service import ScanService
from app.services.storage_service import StorageService

logger = logging.getLogger(__name__)


@dataclass
class Services:
    ledger: LedgerStore
    cache: RedisCache
    config: ConfigService
    payments: PaymentService
    scans: ScanService
    assignments: AssignmentService
    profiles: ProfileService
    analytics: AnalyticsService
    storage: StorageService
    gateway: GatewayService
    revalidation: RevalidationService

    async def close(self) -> None:
        await self.revalidation.drain()
        await self.cache.close()


def build_services(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    cache: RedisCache | None = None,
    storage: StorageService | None = None,
    gateway: GatewayService | None = None,
    revalidation: RevalidationService | None = None,
) -> Services:
    """Wire up all services. Any collaborator can be supplied to override the default."""
    register_immutability_enforcement()

    ledger = LedgerStore(session_factory or get_session_factory())
    cache = cache or RedisCache.from_url(settings.redis_url)
    storage = storage or StorageService(settings)
    gateway = gateway or GatewayService.from_settings(settings)
    revalidation = revalidation or RevalidationService(
        settings.revalidate_url,
        settings.revalidate_secret,
        settings.revalidate_timeout_seconds,
    )

    config = ConfigService(ledger, cache, settings, revalidation)
    services = Services(
        ledger=ledger,
        cache=cache,
        config=config,
        payments=PaymentService(
            ledger,
            config,
            gateway,
            storage,
            revalidation,
            reference_prefix=settings.payment_reference_prefix,
        ),
        scans=ScanService(ledger, revalidation, settings.conference_timezone),
        assignments=AssignmentService(ledger, revalidation, settings.conference_timezone),
        profiles=ProfileService(ledger),
        analytics=AnalyticsService(ledger, settings.conference_timezone),
        storage=storage,
        gateway=gateway,
        revalidation=revalidation,
    )
    logger.info(f"Services built (gateway={gateway.gateway_type.value})")
    return services
