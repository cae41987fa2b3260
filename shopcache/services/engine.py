"""CacheEngine — wires every component to one OrderedStore.

Owns the lifecycle of the two background workers: start() launches them,
shutdown() signals both and waits for each to exit.
"""

import logging
import time
from collections.abc import Callable
from typing import Any

from shopcache.config import Settings
from shopcache.integrations.inventory import RowSource, build_row_source
from shopcache.services.cart import CartStore
from shopcache.services.page_cache import PageCache
from shopcache.services.popularity import PopularityIndex
from shopcache.services.sessions import SessionIndex
from shopcache.services.store import Keys, OrderedStore
from shopcache.workers.row_cache import RowCacheScheduler
from shopcache.workers.session_reaper import SessionReaper

logger = logging.getLogger(__name__)


class CacheEngine:
    def __init__(
        self,
        store: OrderedStore,
        settings: Settings,
        row_source: RowSource | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.settings = settings
        self.keys = Keys(settings.key_prefix)

        self.popularity = PopularityIndex(store, self.keys)
        self.sessions = SessionIndex(
            store, self.keys, self.popularity,
            history_size=settings.view_history_size,
            clock=clock,
        )
        self.carts = CartStore(store, self.keys)
        self.pages = PageCache(
            store, self.keys, self.popularity,
            ttl=settings.page_cache_ttl,
            admission_threshold=settings.page_admission_threshold,
        )

        self.reaper = SessionReaper(
            self.sessions,
            limit=settings.session_limit,
            carts=self.carts,
            full_cleanup=settings.full_session_cleanup,
            batch_size=settings.reaper_batch_size,
            idle_seconds=settings.reaper_idle_seconds,
        )
        self.rows = RowCacheScheduler(
            store, self.keys,
            source=row_source or build_row_source(settings),
            poll_seconds=settings.row_poll_seconds,
            retry_backoff_seconds=settings.row_retry_backoff_seconds,
            retry_backoff_max_seconds=settings.row_retry_backoff_max_seconds,
            clock=clock,
        )

    def start(self) -> None:
        self.reaper.start()
        self.rows.start()
        logger.info(
            "Workers started | session_limit=%d | full_cleanup=%s",
            self.settings.session_limit, self.settings.full_session_cleanup,
        )

    async def shutdown(self) -> bool:
        """Stop both workers and wait for them. Returns True if both exited in time."""
        self.reaper.stop()
        self.rows.stop()
        timeout = self.settings.worker_join_timeout
        reaper_ok = await self.reaper.join(timeout)
        rows_ok = await self.rows.join(timeout)
        logger.info("Workers stopped | clean=%s", reaper_ok and rows_ok)
        return reaper_ok and rows_ok

    async def close(self) -> None:
        await self.shutdown()
        await self.store.close()

    def health(self) -> dict[str, Any]:
        return {
            "store": type(self.store).__name__,
            "session_reaper": self.reaper.health(),
            "row_cache": self.rows.health(),
        }
