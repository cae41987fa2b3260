"""PopularityIndex — global item ranking by view count.

Each view lowers the item's score by one, so rank 0 (lowest score) is the
most viewed item. Entries are never evicted.
"""

from shopcache.services.store import Keys, OrderedStore


class PopularityIndex:
    """Shared ordered index of item views. Only increments and rank reads are exposed."""

    def __init__(self, store: OrderedStore, keys: Keys):
        self._store = store
        self._key = keys.popularity

    async def decrement_view(self, item: str) -> float:
        """Record one view of `item`. Returns the new (negative) score."""
        return await self._store.zincrby(self._key, -1, item)

    async def rank(self, item: str) -> int | None:
        """0-based rank by ascending score, or None for items never viewed."""
        return await self._store.zrank(self._key, item)

    async def views(self, item: str) -> int:
        score = await self._store.zscore(self._key, item)
        return int(-score) if score is not None else 0

    async def top(self, count: int) -> list[str]:
        if count <= 0:
            return []
        return await self._store.zrange(self._key, 0, count - 1)
