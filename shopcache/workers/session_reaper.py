"""SessionReaper — trims the session index to a capacity limit.

Each cycle evicts at most `batch_size` of the oldest sessions, cascading to
their view history and, in full-cleanup mode, their carts. Carts are cleared
before the recency entry is dropped, so a cycle interrupted by a store
failure leaves the token in recent: and the next cycle finishes the job.
"""

import logging

from shopcache.services.cart import CartStore
from shopcache.services.sessions import SessionIndex
from shopcache.workers import BackgroundWorker

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 100


class SessionReaper(BackgroundWorker):
    name = "session-reaper"

    def __init__(
        self,
        sessions: SessionIndex,
        limit: int,
        carts: CartStore | None = None,
        full_cleanup: bool = False,
        batch_size: int = DEFAULT_BATCH_SIZE,
        idle_seconds: float = 1.0,
    ):
        if full_cleanup and carts is None:
            raise ValueError("full_cleanup requires a CartStore")
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        super().__init__(idle_seconds)
        self.sessions = sessions
        self.carts = carts
        self.limit = max(limit, 0)
        self.full_cleanup = full_cleanup
        self.batch_size = batch_size
        self.evicted = 0

    async def run_cycle(self) -> bool:
        size = await self.sessions.size()
        if size <= self.limit:
            return False

        excess = min(size - self.limit, self.batch_size)
        tokens = await self.sessions.oldest(excess)
        if not tokens:
            return False

        if self.full_cleanup:
            await self.carts.clear_many(tokens)
        await self.sessions.evict_batch(tokens)

        self.evicted += len(tokens)
        logger.info(
            "Sessions evicted | count=%d | size=%d | limit=%d | full=%s",
            len(tokens), size, self.limit, self.full_cleanup,
        )
        return True

    async def run_until_idle(self, max_cycles: int = 10_000) -> int:
        """Run cycles until the index is within its limit. Returns cycles used."""
        for cycle in range(max_cycles):
            if not await self.run_cycle():
                return cycle
        return max_cycles

    def health(self) -> dict:
        report = super().health()
        report.update(limit=self.limit, evicted=self.evicted, full_cleanup=self.full_cleanup)
        return report
