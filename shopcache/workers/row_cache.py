"""RowCacheScheduler — republishes cached row snapshots on a per-row cadence.

Layout:
  delay:      zset  row_id -> refresh interval in seconds (<= 0 means uncache)
  schedule:   zset  row_id -> next due time (epoch seconds)
  inv:<row>   str   JSON snapshot (InventoryRow)

Each cycle looks at the single earliest due row. Rows are refreshed and
rescheduled at now + delay, or removed entirely when their delay is <= 0.
A zset member is unique, so rescheduling overwrites and never duplicates.

A failed fetch (any error from the row source) leaves the row at the head
of the queue and the worker waits out an exponential backoff before
retrying it. The failure counter is shared by the whole scheduler, so while
one row keeps failing every other due row waits behind it, up to
retry_backoff_max_seconds per attempt.
"""

import logging
import time
from collections.abc import Callable

from shopcache.errors import UpstreamFetchFailed
from shopcache.integrations.inventory import RowSource
from shopcache.schemas import InventoryRow
from shopcache.services.store import Keys, OrderedStore
from shopcache.workers import BackgroundWorker

logger = logging.getLogger(__name__)


class RowCacheScheduler(BackgroundWorker):
    name = "row-cache"

    def __init__(
        self,
        store: OrderedStore,
        keys: Keys,
        source: RowSource,
        poll_seconds: float = 0.05,
        retry_backoff_seconds: float = 1.0,
        retry_backoff_max_seconds: float = 30.0,
        clock: Callable[[], float] = time.time,
    ):
        super().__init__(poll_seconds)
        self._store = store
        self._keys = keys
        self.source = source
        self.retry_backoff_seconds = retry_backoff_seconds
        self.retry_backoff_max_seconds = retry_backoff_max_seconds
        self._clock = clock
        self._consecutive_failures = 0
        self.refreshed = 0

    # ─── Foreground API ───

    async def schedule(self, row_id: str, delay: float) -> None:
        """Set the refresh interval for a row and make it due immediately."""
        await self._store.zadd(self._keys.delay, {row_id: delay})
        await self._store.zadd(self._keys.schedule, {row_id: self._clock()})

    async def cached(self, row_id: str) -> InventoryRow | None:
        raw = await self._store.get(self._keys.row(row_id))
        if raw is None:
            return None
        return InventoryRow.model_validate_json(raw)

    async def due_time(self, row_id: str) -> float | None:
        return await self._store.zscore(self._keys.schedule, row_id)

    async def scheduled(self) -> list[tuple[str, float]]:
        return await self._store.zrange(self._keys.schedule, 0, -1, withscores=True)

    # ─── Worker ───

    def backoff_for(self, failures: int) -> float:
        if failures <= 0:
            return 0.0
        return min(self.retry_backoff_seconds * 2 ** (failures - 1), self.retry_backoff_max_seconds)

    async def run_cycle(self) -> bool:
        head = await self._store.zrange(self._keys.schedule, 0, 0, withscores=True)
        now = self._clock()
        if not head or head[0][1] > now:
            return False

        row_id, _due = head[0]
        delay = await self._store.zscore(self._keys.delay, row_id)
        if delay is None or delay <= 0:
            await self._uncache(row_id)
            return True

        try:
            row = await self.source.fetch_row(row_id)
        except Exception as e:
            failure = e if isinstance(e, UpstreamFetchFailed) else UpstreamFetchFailed(row_id, str(e)[:200])
            # Schedule entry and cached snapshot stay as they are; retry after backoff
            self._consecutive_failures += 1
            backoff = self.backoff_for(self._consecutive_failures)
            logger.warning(
                "Row refresh failed | row=%s | failures=%d | retry in %.1fs | %s",
                row_id, self._consecutive_failures, backoff, failure,
            )
            await self.sleep(backoff)
            return True

        self._consecutive_failures = 0
        # schedule() may have changed the delay while the fetch was in flight
        delay = await self._store.zscore(self._keys.delay, row_id)
        if delay is None or delay <= 0:
            await self._uncache(row_id)
            return True

        await self._store.zadd(self._keys.schedule, {row_id: now + delay})
        await self._store.set(self._keys.row(row_id), row.model_dump_json())
        self.refreshed += 1
        logger.debug("Row refreshed | row=%s | next in %.1fs", row_id, delay)
        return True

    async def _uncache(self, row_id: str) -> None:
        await self._store.zrem(self._keys.delay, row_id)
        await self._store.zrem(self._keys.schedule, row_id)
        await self._store.delete(self._keys.row(row_id))
        logger.info("Row uncached | row=%s", row_id)

    def health(self) -> dict:
        report = super().health()
        report.update(refreshed=self.refreshed, consecutive_failures=self._consecutive_failures)
        return report
