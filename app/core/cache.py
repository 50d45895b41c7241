"""Redis-backed cache for slow-changing settings.

The cache is an optimization only. Every failure is logged and treated as a
miss so callers fall through to the ledger store.
"""

import json
import logging
import re
from typing import Any

import redis.asyncio as redis

logger = logging.getLogger(__name__)

# Characters with meaning in a Redis MATCH pattern
_GLOB_CHARS = re.compile(r"([\\*?\[\]])")


class RedisCache:
    """JSON value cache with per-key TTLs."""

    def __init__(self, client: redis.Redis, namespace: str = "summit") -> None:
        self._client = client
        self._namespace = namespace

    @classmethod
    def from_url(cls, url: str, namespace: str = "summit") -> "RedisCache":
        client = redis.from_url(url, encoding="utf-8", decode_responses=True)
        return cls(client, namespace=namespace)

    def _key(self, key: str) -> str:
        return f"{self._namespace}:{key}"

    async def get(self, key: str) -> tuple[bool, Any]:
        """Return ``(hit, value)``; a cached JSON ``null`` is still a hit."""
        try:
            raw = await self._client.get(self._key(key))
        except redis.RedisError as e:
            logger.warning(f"Cache get failed for {key}: {e}")
            return False, None
        if raw is None:
            return False, None
        try:
            return True, json.loads(raw)
        except ValueError:
            logger.warning(f"Discarding undecodable cache entry {key}")
            await self.delete(key)
            return False, None

    async def set(
        self,
        key: str,
        value: Any,
        ttl_seconds: int | None = None,
        only_if_missing: bool = False,
    ) -> None:
        """Store ``value`` as JSON; with ``only_if_missing`` an existing entry wins (SET NX)."""
        try:
            await self._client.set(
                self._key(key), json.dumps(value), ex=ttl_seconds, nx=only_if_missing
            )
        except (redis.RedisError, TypeError) as e:
            logger.warning(f"Cache set failed for {key}: {e}")

    async def delete(self, *keys: str) -> None:
        if not keys:
            return
        try:
            await self._client.delete(*(self._key(k) for k in keys))
        except redis.RedisError as e:
            logger.warning(f"Cache delete failed for {keys}: {e}")

    async def invalidate_pattern(self, prefix: str) -> int:
        """Delete every entry whose key starts with ``prefix``."""
        match = _GLOB_CHARS.sub(r"\\\1", self._key(prefix)) + "*"
        deleted = 0
        try:
            batch: list[str] = []
            async for full_key in self._client.scan_iter(match=match):
                batch.append(full_key)
                if len(batch) >= 100:
                    deleted += await self._client.delete(*batch)
                    batch = []
            if batch:
                deleted += await self._client.delete(*batch)
        except redis.RedisError as e:
            logger.warning(f"Cache invalidate failed for prefix {prefix}: {e}")
        return deleted

    async def ping(self) -> bool:
        try:
            return bool(await self._client.ping())
        except redis.RedisError as e:
            logger.error(f"Redis ping error: {e}")
            return False

    async def close(self) -> None:
        try:
            await self._client.aclose()
        except redis.RedisError as e:
            logger.error(f"Error closing Redis connection: {e}")
