"""Redis backend for OrderedStore (redis.asyncio).

Every Redis or socket failure surfaces as StoreUnavailable so callers never
see driver exceptions.
"""

import logging
from collections.abc import Awaitable, Mapping
from typing import TypeVar

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from shopcache.errors import StoreUnavailable
from shopcache.services.store import OrderedStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RedisOrderedStore(OrderedStore):
    """OrderedStore over a single redis.asyncio client."""

    def __init__(self, client: aioredis.Redis):
        self._redis = client

    @classmethod
    def from_url(cls, url: str) -> "RedisOrderedStore":
        client = aioredis.from_url(
            url,
            decode_responses=True,
            socket_connect_timeout=3,
        )
        return cls(client)

    async def _run(self, command: str, pending: Awaitable[T]) -> T:
        try:
            return await pending
        except (RedisError, OSError) as e:
            logger.debug("Redis %s error: %s", command, str(e)[:100])
            raise StoreUnavailable(command, str(e)[:200]) from e

    # ─── Hash ───

    async def hset(self, key: str, field: str, value: str) -> int:
        return await self._run("HSET", self._redis.hset(key, field, value))

    async def hget(self, key: str, field: str) -> str | None:
        return await self._run("HGET", self._redis.hget(key, field))

    async def hgetall(self, key: str) -> dict[str, str]:
        return await self._run("HGETALL", self._redis.hgetall(key))

    async def hdel(self, key: str, *fields: str) -> int:
        if not fields:
            return 0
        return await self._run("HDEL", self._redis.hdel(key, *fields))

    async def hlen(self, key: str) -> int:
        return await self._run("HLEN", self._redis.hlen(key))

    # ─── Set ───

    async def sadd(self, key: str, *members: str) -> int:
        if not members:
            return 0
        return await self._run("SADD", self._redis.sadd(key, *members))

    async def srem(self, key: str, *members: str) -> int:
        if not members:
            return 0
        return await self._run("SREM", self._redis.srem(key, *members))

    async def sismember(self, key: str, member: str) -> bool:
        return bool(await self._run("SISMEMBER", self._redis.sismember(key, member)))

    # ─── Sorted set ───

    async def zadd(self, key: str, mapping: Mapping[str, float]) -> int:
        if not mapping:
            return 0
        return await self._run("ZADD", self._redis.zadd(key, dict(mapping)))

    async def zincrby(self, key: str, amount: float, member: str) -> float:
        return await self._run("ZINCRBY", self._redis.zincrby(key, amount, member))

    async def zscore(self, key: str, member: str) -> float | None:
        return await self._run("ZSCORE", self._redis.zscore(key, member))

    async def zrank(self, key: str, member: str) -> int | None:
        return await self._run("ZRANK", self._redis.zrank(key, member))

    async def zrem(self, key: str, *members: str) -> int:
        if not members:
            return 0
        return await self._run("ZREM", self._redis.zrem(key, *members))

    async def zrange(
        self, key: str, start: int, end: int, withscores: bool = False,
    ) -> list:
        result = await self._run(
            "ZRANGE", self._redis.zrange(key, start, end, withscores=withscores),
        )
        if withscores:
            return [(member, float(score)) for member, score in result]
        return list(result)

    async def zrangebyscore(
        self,
        key: str,
        min_score: float,
        max_score: float,
        start: int | None = None,
        num: int | None = None,
        withscores: bool = False,
    ) -> list:
        result = await self._run(
            "ZRANGEBYSCORE",
            self._redis.zrangebyscore(
                key, min_score, max_score, start=start, num=num, withscores=withscores,
            ),
        )
        if withscores:
            return [(member, float(score)) for member, score in result]
        return list(result)

    async def zremrangebyrank(self, key: str, start: int, end: int) -> int:
        return await self._run("ZREMRANGEBYRANK", self._redis.zremrangebyrank(key, start, end))

    async def zcard(self, key: str) -> int:
        return await self._run("ZCARD", self._redis.zcard(key))

    # ─── String ───

    async def set(self, key: str, value: str) -> None:
        await self._run("SET", self._redis.set(key, value))

    async def get(self, key: str) -> str | None:
        return await self._run("GET", self._redis.get(key))

    async def setex(self, key: str, ttl_seconds: int, value: str) -> None:
        await self._run("SETEX", self._redis.setex(key, ttl_seconds, value))

    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        return await self._run("DEL", self._redis.delete(*keys))

    # ─── Keyspace ───

    async def expireat(self, key: str, epoch_seconds: int) -> bool:
        return bool(await self._run("EXPIREAT", self._redis.expireat(key, epoch_seconds)))

    async def ping(self) -> bool:
        return bool(await self._run("PING", self._redis.ping()))

    async def close(self) -> None:
        await self._redis.aclose()
