"""OrderedStore — the key-value service every engine component talks to.

Modelled on the Redis command set: hashes, sets, score-ordered sets and
strings with expiry. Two implementations exist:
  - RedisOrderedStore (redis.asyncio) — production backend
  - InMemoryOrderedStore (cachetools) — fallback when Redis is down, and tests

Graceful degradation: connect_store() returns the in-memory store if Redis
cannot be reached at startup.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping

from shopcache.config import Settings
from shopcache.errors import StoreUnavailable

logger = logging.getLogger(__name__)


class OrderedStore(ABC):
    """Async key-value store with hash, set, sorted-set and string types.

    Implementations guarantee atomicity of each single-key command and
    nothing more; there are no multi-key transactions.
    """

    # ─── Hash ───

    @abstractmethod
    async def hset(self, key: str, field: str, value: str) -> int: ...

    @abstractmethod
    async def hget(self, key: str, field: str) -> str | None: ...

    @abstractmethod
    async def hgetall(self, key: str) -> dict[str, str]: ...

    @abstractmethod
    async def hdel(self, key: str, *fields: str) -> int: ...

    @abstractmethod
    async def hlen(self, key: str) -> int: ...

    # ─── Set ───

    @abstractmethod
    async def sadd(self, key: str, *members: str) -> int: ...

    @abstractmethod
    async def srem(self, key: str, *members: str) -> int: ...

    @abstractmethod
    async def sismember(self, key: str, member: str) -> bool: ...

    # ─── Sorted set ───

    @abstractmethod
    async def zadd(self, key: str, mapping: Mapping[str, float]) -> int:
        """Add or update members; returns the number of new members."""

    @abstractmethod
    async def zincrby(self, key: str, amount: float, member: str) -> float: ...

    @abstractmethod
    async def zscore(self, key: str, member: str) -> float | None: ...

    @abstractmethod
    async def zrank(self, key: str, member: str) -> int | None:
        """0-based rank by ascending score, or None if absent."""

    @abstractmethod
    async def zrem(self, key: str, *members: str) -> int: ...

    @abstractmethod
    async def zrange(
        self, key: str, start: int, end: int, withscores: bool = False,
    ) -> list:
        """Members by rank, inclusive end; negative indexes count from the tail.

        With withscores=True returns (member, score) tuples.
        """

    @abstractmethod
    async def zrangebyscore(
        self,
        key: str,
        min_score: float,
        max_score: float,
        start: int | None = None,
        num: int | None = None,
        withscores: bool = False,
    ) -> list: ...

    @abstractmethod
    async def zremrangebyrank(self, key: str, start: int, end: int) -> int: ...

    @abstractmethod
    async def zcard(self, key: str) -> int: ...

    # ─── String ───

    @abstractmethod
    async def set(self, key: str, value: str) -> None: ...

    @abstractmethod
    async def get(self, key: str) -> str | None: ...

    @abstractmethod
    async def setex(self, key: str, ttl_seconds: int, value: str) -> None: ...

    @abstractmethod
    async def delete(self, *keys: str) -> int: ...

    # ─── Keyspace ───

    @abstractmethod
    async def expireat(self, key: str, epoch_seconds: int) -> bool: ...

    @abstractmethod
    async def ping(self) -> bool: ...

    async def close(self) -> None:
        """Release connections. No-op by default."""


class Keys:
    """Key layout shared by all components."""

    def __init__(self, prefix: str = ""):
        self.prefix = prefix

    @property
    def login(self) -> str:
        return f"{self.prefix}login:"

    @property
    def recent(self) -> str:
        return f"{self.prefix}recent:"

    @property
    def popularity(self) -> str:
        return f"{self.prefix}viewed:"

    def viewed(self, token: str) -> str:
        return f"{self.prefix}viewed:{token}"

    def cart(self, token: str) -> str:
        return f"{self.prefix}cart:{token}"

    @property
    def delay(self) -> str:
        return f"{self.prefix}delay:"

    @property
    def schedule(self) -> str:
        return f"{self.prefix}schedule:"

    def row(self, row_id: str) -> str:
        return f"{self.prefix}inv:{row_id}"

    def page(self, fingerprint: str) -> str:
        return f"{self.prefix}cache:{fingerprint}"


async def connect_store(settings: Settings) -> OrderedStore:
    """Connect to Redis, falling back to the in-memory store on failure."""
    from shopcache.services.memory_store import InMemoryOrderedStore
    from shopcache.services.redis_store import RedisOrderedStore

    store = RedisOrderedStore.from_url(settings.redis_url)
    try:
        await store.ping()
        logger.info("Store connected | backend=redis | url=%s", settings.redis_url)
        return store
    except StoreUnavailable as e:
        logger.warning("Redis connection failed — using in-memory fallback: %s", str(e)[:100])
        await store.close()
        return InMemoryOrderedStore()
