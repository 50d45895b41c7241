"""Configuration service.

Read-through cache in front of the ``config`` table. The table is the source
of truth; Redis only saves round trips and may be down without affecting
correctness.
"""

import logging
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings
from app.core.cache import RedisCache
from app.core.exceptions import NotFoundError
from app.core.permissions import Capability, Principal, authorize
from app.models.config import ConfigEntry
from app.services.ledger_store import LedgerStore, dialect_insert
from app.services.revalidation_service import CONFIG_PATHS, RevalidationService

logger = logging.getLogger(__name__)

CONFIG_CACHE_PREFIX = "config:"
CONFERENCE_DETAILS_KEY = "conference_details"

REGISTRATION_AMOUNT_KEY = "registrationAmount"

# Public field name → config key
CONFERENCE_FIELDS = {
    "name": "conference_name",
    "date": "conference_date",
    "venue": "conference_venue",
    "theme": "conference_theme",
    "bank_name": "bankName",
    "account_number": "accountNumber",
    "account_name": "accountName",
}

DEFAULT_CONFIG: dict[str, Any] = {
    REGISTRATION_AMOUNT_KEY: 20000,
    "conference_name": "6th Annual NAPPS North Central Zonal Education Summit 2025",
    "conference_date": "May 21-22, 2025",
    "conference_venue": "Lafia City Hall, Lafia",
    "conference_theme": "ADVANCING INTEGRATED TECHNOLOGY FOR SUSTAINABLE PRIVATE EDUCATION PRACTICE",
    "payment_split_code": None,
    "bankName": "First Bank",
    "accountNumber": "1234567890",
    "accountName": "NAPPS NORTH CENTRAL ZONE",
}


class ConfigService:
    """Cached access to slow-changing settings."""

    def __init__(
        self,
        ledger: LedgerStore,
        cache: RedisCache,
        settings: Settings,
        revalidation: RevalidationService | None = None,
    ) -> None:
        self.ledger = ledger
        self.cache = cache
        self.settings = settings
        self.revalidation = revalidation

    def _cache_key(self, key: str) -> str:
        return f"{CONFIG_CACHE_PREFIX}{key}"

    def _ttl_for(self, key: str) -> int:
        if key in CONFERENCE_FIELDS.values():
            return self.settings.conference_cache_ttl_seconds
        return self.settings.config_cache_ttl_seconds

    async def _load(self, key: str) -> tuple[bool, Any]:
        rows = await self.ledger.run_query(
            select(ConfigEntry.value).where(ConfigEntry.key == key)
        )
        if not rows:
            return False, None
        return True, rows[0]["value"]

    async def get(self, key: str, default: Any = None) -> Any:
        """Get a config value, reading through the cache.

        Missing keys are not cached, so seeding a key takes effect on the
        next read.
        """
        hit, value = await self.cache.get(self._cache_key(key))
        if hit:
            return value

        found, value = await self._load(key)
        if not found:
            return default

        # A concurrent set() repopulates the entry; never overwrite it with this read
        await self.cache.set(self._cache_key(key), value, self._ttl_for(key), only_if_missing=True)
        return value

    async def get_fresh(self, key: str, default: Any = None) -> Any:
        """Bypass the cache, then re-cache with the short admin TTL."""
        await self.cache.delete(self._cache_key(key))

        found, value = await self._load(key)
        if not found:
            return default

        await self.cache.set(
            self._cache_key(key), value, self.settings.config_fresh_ttl_seconds, only_if_missing=True
        )
        return value

    async def admin_get(self, principal: Principal | None, key: str) -> Any:
        """Admin read of a single key, bypassing the cache.

        Raises:
            NotFoundError: Key is not set
        """
        authorize(principal, Capability.MANAGE_CONFIG)
        missing = object()
        value = await self.get_fresh(key, default=missing)
        if value is missing:
            raise NotFoundError("Config", key)
        return value

    async def set(self, principal: Principal | None, key: str, value: Any) -> None:
        """Write a config value through to the table, then re-cache the committed value."""
        authorize(principal, Capability.MANAGE_CONFIG)
        await self.ledger.run_in_transaction(lambda session: self._upsert(session, {key: value}))
        await self._invalidate([key])
        await self._refresh([key])
        logger.info(f"Config {key} updated by {principal.id}")

    async def invalidate_pattern(self, prefix: str) -> int:
        """Drop every cached entry whose key starts with ``prefix``."""
        deleted = await self.cache.invalidate_pattern(prefix)
        logger.debug(f"Invalidated {deleted} cache entries with prefix {prefix!r}")
        return deleted

    async def get_registration_amount(self) -> int:
        value = await self.get(REGISTRATION_AMOUNT_KEY)
        try:
            return int(value)
        except (TypeError, ValueError):
            return self.settings.default_registration_amount

    async def get_conference_details(self) -> dict[str, Any]:
        """Grouped conference and bank details, cached for an hour."""
        hit, details = await self.cache.get(CONFERENCE_DETAILS_KEY)
        if hit:
            return details

        details = await self._load_conference_details()
        await self.cache.set(
            CONFERENCE_DETAILS_KEY,
            details,
            self.settings.conference_cache_ttl_seconds,
            only_if_missing=True,
        )
        return details

    async def _load_conference_details(self) -> dict[str, Any]:
        rows = await self.ledger.run_query(
            select(ConfigEntry.key, ConfigEntry.value).where(
                ConfigEntry.key.in_(CONFERENCE_FIELDS.values())
            )
        )
        stored = {row["key"]: row["value"] for row in rows}
        return {
            field: DEFAULT_CONFIG[key] if stored.get(key) is None else stored[key]
            for field, key in CONFERENCE_FIELDS.items()
        }

    async def update_conference_details(
        self, principal: Principal | None, **details: Any
    ) -> dict[str, Any]:
        """Update any subset of the conference fields in one transaction."""
        authorize(principal, Capability.MANAGE_CONFIG)
        values = {
            CONFERENCE_FIELDS[field]: value
            for field, value in details.items()
            if field in CONFERENCE_FIELDS and value is not None
        }
        if values:
            await self.ledger.run_in_transaction(lambda session: self._upsert(session, values))
            await self._invalidate(list(values))
            await self._refresh(list(values))
            logger.info(f"Conference details {sorted(values)} updated by {principal.id}")
        return await self.get_conference_details()

    async def initialize_defaults(self) -> list[str]:
        """Seed default config keys that are missing. Existing values are kept.

        Returns:
            list: Keys that were inserted
        """

        async def _seed(session: AsyncSession) -> list[str]:
            result = await session.execute(select(ConfigEntry.key))
            existing = set(result.scalars().all())
            missing = [key for key in DEFAULT_CONFIG if key not in existing]
            for key in missing:
                stmt = dialect_insert(session, ConfigEntry)
                if stmt is None:
                    session.add(ConfigEntry(key=key, value=DEFAULT_CONFIG[key]))
                else:
                    await session.execute(
                        stmt.values(key=key, value=DEFAULT_CONFIG[key]).on_conflict_do_nothing(
                            index_elements=[ConfigEntry.key]
                        )
                    )
            return missing

        inserted = await self.ledger.run_in_transaction(_seed)
        if inserted:
            await self._invalidate(inserted)
            logger.info(f"Seeded default config keys: {inserted}")
        return inserted

    async def _upsert(self, session: AsyncSession, values: dict[str, Any]) -> None:
        for key, value in values.items():
            stmt = dialect_insert(session, ConfigEntry)
            if stmt is None:
                await session.merge(ConfigEntry(key=key, value=value))
                continue
            stmt = stmt.values(key=key, value=value)
            await session.execute(
                stmt.on_conflict_do_update(
                    index_elements=[ConfigEntry.key],
                    set_={"value": stmt.excluded.value, "updated_at": func.now()},
                )
            )

    async def _invalidate(self, keys: list[str]) -> None:
        await self.cache.delete(*(self._cache_key(k) for k in keys), CONFERENCE_DETAILS_KEY)
        if self.revalidation is not None:
            self.revalidation.notify(CONFIG_PATHS)

    async def _refresh(self, keys: list[str]) -> None:
        """Re-cache committed values so a read that started before the write cannot win."""
        rows = await self.ledger.run_query(
            select(ConfigEntry.key, ConfigEntry.value).where(ConfigEntry.key.in_(keys))
        )
        for row in rows:
            await self.cache.set(self._cache_key(row["key"]), row["value"], self._ttl_for(row["key"]))
        await self.cache.set(
            CONFERENCE_DETAILS_KEY,
            await self._load_conference_details(),
            self.settings.conference_cache_ttl_seconds,
        )
