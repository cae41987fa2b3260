"""CartStore — per-session item quantities in cart:<token> hashes."""

import logging

from shopcache.services.store import Keys, OrderedStore

logger = logging.getLogger(__name__)


class CartStore:
    def __init__(self, store: OrderedStore, keys: Keys):
        self._store = store
        self._keys = keys

    async def set_quantity(self, token: str, item: str, quantity: int) -> None:
        """Upsert a cart line; a quantity of zero or less removes it."""
        key = self._keys.cart(token)
        if quantity <= 0:
            await self._store.hdel(key, item)
        else:
            await self._store.hset(key, item, str(quantity))

    async def get_cart(self, token: str) -> dict[str, int]:
        raw = await self._store.hgetall(self._keys.cart(token))
        return {item: int(qty) for item, qty in raw.items()}

    async def clear(self, token: str) -> None:
        await self._store.delete(self._keys.cart(token))

    async def clear_many(self, tokens: list[str]) -> None:
        if not tokens:
            return
        removed = await self._store.delete(*(self._keys.cart(t) for t in tokens))
        logger.debug("Carts cleared | tokens=%d | removed=%d", len(tokens), removed)
