"""Revalidation hook.

After a committed state change the dashboard front-end is told which pages
are stale. Delivery is fire-and-forget: failures are logged and never affect
the transaction that triggered them.
"""

import asyncio
import logging
from collections.abc import Iterable

import httpx

logger = logging.getLogger(__name__)

# Page groups invalidated by each kind of change
PAYMENT_PATHS = ("/participant/payment", "/payment", "/admin/payments")
SCAN_PATHS = ("/validator/dashboard", "/admin/validators", "/admin/accreditation")
CONFIG_PATHS = ("/admin/settings", "/payment")
ASSIGNMENT_PATHS = ("/validator/dashboard", "/admin/validators")


class RevalidationService:
    """POSTs stale paths to the configured revalidation endpoint."""

    def __init__(
        self,
        url: str | None,
        secret: str | None = None,
        timeout_seconds: float = 5.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = url
        self._secret = secret
        self._timeout = timeout_seconds
        self._client = client
        self._tasks: set[asyncio.Task] = set()

    @property
    def enabled(self) -> bool:
        return bool(self._url)

    def notify(self, paths: Iterable[str]) -> asyncio.Task | None:
        """Schedule delivery on a background task and return immediately."""
        paths = list(dict.fromkeys(paths))
        if not self.enabled or not paths:
            return None

        task = asyncio.create_task(self._deliver(paths))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _deliver(self, paths: list[str]) -> None:
        headers = {}
        if self._secret:
            headers["Authorization"] = f"Bearer {self._secret}"

        try:
            if self._client is not None:
                response = await self._client.post(
                    self._url, json={"paths": paths}, headers=headers, timeout=self._timeout
                )
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.post(self._url, json={"paths": paths}, headers=headers)
            response.raise_for_status()
            logger.debug(f"Revalidated {paths}")
        except httpx.HTTPError as e:
            logger.warning(f"Revalidation failed for {paths}: {e}")

    async def drain(self) -> None:
        """Wait for in-flight notifications (used on shutdown)."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
