"""Upstream inventory row sources for the row cache scheduler.

Two sources:
  - HttpInventorySource — GET <base_url>/<row_id> returning JSON
  - DemoInventorySource — stub rows, used when no upstream URL is configured
"""

import logging
import time
from collections.abc import Callable
from typing import Protocol
from urllib.parse import quote

import httpx

from shopcache.config import Settings
from shopcache.errors import UpstreamFetchFailed
from shopcache.schemas import InventoryRow

logger = logging.getLogger(__name__)


class RowSource(Protocol):
    async def fetch_row(self, row_id: str) -> InventoryRow: ...


class DemoInventorySource:
    """Returns a placeholder row stamped with the fetch time."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock

    async def fetch_row(self, row_id: str) -> InventoryRow:
        return InventoryRow(id=row_id, data="data to cache...", cached_at=self._clock())


class HttpInventorySource:
    """Async client for an inventory REST endpoint."""

    def __init__(
        self,
        base_url: str,
        timeout: int = 10,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._clock = clock

    def row_url(self, row_id: str) -> str:
        return f"{self.base_url}/{quote(row_id, safe='')}"

    async def fetch_row(self, row_id: str) -> InventoryRow:
        url = self.row_url(row_id)
        start = time.monotonic()
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(url)
        except httpx.TimeoutException as e:
            elapsed_ms = int((time.monotonic() - start) * 1000)
            logger.warning("Inventory timeout | row=%s | %dms", row_id, elapsed_ms)
            raise UpstreamFetchFailed(row_id, "timeout") from e
        except httpx.HTTPError as e:
            logger.warning("Inventory transport error | row=%s | %s", row_id, str(e)[:200])
            raise UpstreamFetchFailed(row_id, str(e)[:200]) from e

        elapsed_ms = int((time.monotonic() - start) * 1000)
        if response.status_code != 200:
            logger.warning(
                "Inventory | status=%d | %dms | row=%s",
                response.status_code, elapsed_ms, row_id,
            )
            raise UpstreamFetchFailed(row_id, f"status {response.status_code}")

        try:
            payload = response.json()
        except ValueError as e:
            raise UpstreamFetchFailed(row_id, "invalid JSON body") from e

        logger.debug("Inventory OK | row=%s | %dms", row_id, elapsed_ms)
        return InventoryRow(id=row_id, data=payload, cached_at=self._clock())


def build_row_source(settings: Settings) -> RowSource:
    if settings.has_inventory_api:
        return HttpInventorySource(settings.inventory_api_url, timeout=settings.inventory_timeout_seconds)
    logger.info("No inventory API configured — using demo rows")
    return DemoInventorySource()
