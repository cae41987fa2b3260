"""SessionIndex — login tokens, recency ordering and per-session view history.

Layout:
  login:          hash   token -> user id
  recent:         zset   token -> last touch (epoch seconds)
  viewed:<token>  zset   item  -> view time, capped at the most recent N
"""

import logging
import time
from collections.abc import Callable

from shopcache.services.popularity import PopularityIndex
from shopcache.services.store import Keys, OrderedStore

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_SIZE = 25


class SessionIndex:
    """Recency-ordered session index. Owns login:, recent: and viewed:<token>."""

    def __init__(
        self,
        store: OrderedStore,
        keys: Keys,
        popularity: PopularityIndex,
        history_size: int = DEFAULT_HISTORY_SIZE,
        clock: Callable[[], float] = time.time,
    ):
        self._store = store
        self._keys = keys
        self._popularity = popularity
        self.history_size = history_size
        self._clock = clock

    async def touch(self, token: str, user: str, item: str | None = None) -> None:
        """Refresh a session and optionally record an item view."""
        timestamp = int(self._clock())
        await self._store.hset(self._keys.login, token, user)
        await self._store.zadd(self._keys.recent, {token: timestamp})

        if item:
            viewed = self._keys.viewed(token)
            await self._store.zadd(viewed, {item: timestamp})
            # Keep only the newest history_size entries
            await self._store.zremrangebyrank(viewed, 0, -(self.history_size + 1))
            await self._popularity.decrement_view(item)

    async def lookup(self, token: str) -> str | None:
        return await self._store.hget(self._keys.login, token)

    async def recent_items(self, token: str) -> list[str]:
        """Viewed items for a session, newest first."""
        items = await self._store.zrange(self._keys.viewed(token), 0, -1)
        return list(reversed(items))

    async def size(self) -> int:
        return await self._store.zcard(self._keys.recent)

    async def oldest(self, count: int) -> list[str]:
        """The `count` least recently touched tokens, oldest first."""
        if count <= 0:
            return []
        return await self._store.zrange(self._keys.recent, 0, count - 1)

    async def evict_batch(self, tokens: list[str]) -> None:
        """Remove identity, recency and history for each token. Missing tokens are ignored."""
        if not tokens:
            return
        await self._store.delete(*(self._keys.viewed(t) for t in tokens))
        await self._store.hdel(self._keys.login, *tokens)
        await self._store.zrem(self._keys.recent, *tokens)
