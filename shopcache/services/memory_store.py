"""In-memory OrderedStore — fallback when Redis is unavailable.

String values live in a cachetools.TLRUCache so per-key TTLs expire on the
same wall clock that EXPIREAT uses. Hashes, sets and sorted sets are plain
dicts with lazy expiry checked on access.

Every method body is free of awaits, so each command is atomic with respect
to other coroutines on the same event loop.
"""

import logging
import math
import time
from collections.abc import Callable, Mapping
from typing import NamedTuple

from cachetools import TLRUCache

from shopcache.services.store import OrderedStore

logger = logging.getLogger(__name__)


class _StringEntry(NamedTuple):
    value: str
    expires_at: float


def _string_ttu(_key, entry: _StringEntry, _now: float) -> float:
    return entry.expires_at


def _rank_bounds(length: int, start: int, end: int) -> tuple[int, int]:
    """Normalise Redis-style inclusive rank bounds to a Python slice."""
    if start < 0:
        start = max(start + length, 0)
    if end < 0:
        end += length
    end = min(end, length - 1)
    if start > end:
        return 0, 0
    return start, end + 1


class InMemoryOrderedStore(OrderedStore):
    """Process-local store mirroring Redis semantics closely enough for the engine."""

    def __init__(self, clock: Callable[[], float] = time.time, string_maxsize: int = 100_000):
        self._clock = clock
        self._hashes: dict[str, dict[str, str]] = {}
        self._sets: dict[str, set[str]] = {}
        self._zsets: dict[str, dict[str, float]] = {}
        self._strings = TLRUCache(maxsize=string_maxsize, ttu=_string_ttu, timer=clock)
        self._expiry: dict[str, float] = {}

    def _purge(self, key: str) -> None:
        expires_at = self._expiry.get(key)
        if expires_at is not None and self._clock() >= expires_at:
            self._drop(key)

    def _drop(self, key: str) -> bool:
        self._expiry.pop(key, None)
        found = False
        for table in (self._hashes, self._sets, self._zsets):
            if table.pop(key, None) is not None:
                found = True
        if self._strings.pop(key, None) is not None:
            found = True
        return found

    def _sorted(self, key: str) -> list[tuple[str, float]]:
        self._purge(key)
        zset = self._zsets.get(key, {})
        return sorted(zset.items(), key=lambda kv: (kv[1], kv[0]))

    def _cleanup_empty(self, table: dict, key: str) -> None:
        if key in table and not table[key]:
            del table[key]
            self._expiry.pop(key, None)

    # ─── Hash ───

    async def hset(self, key: str, field: str, value: str) -> int:
        self._purge(key)
        fields = self._hashes.setdefault(key, {})
        created = field not in fields
        fields[field] = str(value)
        return int(created)

    async def hget(self, key: str, field: str) -> str | None:
        self._purge(key)
        return self._hashes.get(key, {}).get(field)

    async def hgetall(self, key: str) -> dict[str, str]:
        self._purge(key)
        return dict(self._hashes.get(key, {}))

    async def hdel(self, key: str, *fields: str) -> int:
        self._purge(key)
        existing = self._hashes.get(key)
        if not existing:
            return 0
        removed = sum(1 for f in fields if existing.pop(f, None) is not None)
        self._cleanup_empty(self._hashes, key)
        return removed

    async def hlen(self, key: str) -> int:
        self._purge(key)
        return len(self._hashes.get(key, {}))

    # ─── Set ───

    async def sadd(self, key: str, *members: str) -> int:
        self._purge(key)
        existing = self._sets.setdefault(key, set())
        before = len(existing)
        existing.update(members)
        self._cleanup_empty(self._sets, key)
        return len(existing) - before

    async def srem(self, key: str, *members: str) -> int:
        self._purge(key)
        existing = self._sets.get(key)
        if not existing:
            return 0
        removed = len(existing & set(members))
        existing.difference_update(members)
        self._cleanup_empty(self._sets, key)
        return removed

    async def sismember(self, key: str, member: str) -> bool:
        self._purge(key)
        return member in self._sets.get(key, set())

    # ─── Sorted set ───

    async def zadd(self, key: str, mapping: Mapping[str, float]) -> int:
        self._purge(key)
        zset = self._zsets.setdefault(key, {})
        added = 0
        for member, score in mapping.items():
            if member not in zset:
                added += 1
            zset[member] = float(score)
        self._cleanup_empty(self._zsets, key)
        return added

    async def zincrby(self, key: str, amount: float, member: str) -> float:
        self._purge(key)
        zset = self._zsets.setdefault(key, {})
        zset[member] = zset.get(member, 0.0) + amount
        return zset[member]

    async def zscore(self, key: str, member: str) -> float | None:
        self._purge(key)
        return self._zsets.get(key, {}).get(member)

    async def zrank(self, key: str, member: str) -> int | None:
        self._purge(key)
        zset = self._zsets.get(key, {})
        score = zset.get(member)
        if score is None:
            return None
        target = (score, member)
        return sum(1 for m, s in zset.items() if (s, m) < target)

    async def zrem(self, key: str, *members: str) -> int:
        self._purge(key)
        zset = self._zsets.get(key)
        if not zset:
            return 0
        removed = sum(1 for m in members if zset.pop(m, None) is not None)
        self._cleanup_empty(self._zsets, key)
        return removed

    async def zrange(
        self, key: str, start: int, end: int, withscores: bool = False,
    ) -> list:
        if start == 0 and end == 0:
            # Head peek without sorting the whole set
            self._purge(key)
            zset = self._zsets.get(key)
            window = [min(zset.items(), key=lambda kv: (kv[1], kv[0]))] if zset else []
        else:
            ordered = self._sorted(key)
            lo, hi = _rank_bounds(len(ordered), start, end)
            window = ordered[lo:hi]
        if withscores:
            return window
        return [member for member, _score in window]

    async def zrangebyscore(
        self,
        key: str,
        min_score: float,
        max_score: float,
        start: int | None = None,
        num: int | None = None,
        withscores: bool = False,
    ) -> list:
        window = [(m, s) for m, s in self._sorted(key) if min_score <= s <= max_score]
        if start is not None and num is not None:
            window = window[start:] if num < 0 else window[start:start + num]
        if withscores:
            return window
        return [member for member, _score in window]

    async def zremrangebyrank(self, key: str, start: int, end: int) -> int:
        ordered = self._sorted(key)
        lo, hi = _rank_bounds(len(ordered), start, end)
        doomed = [member for member, _score in ordered[lo:hi]]
        return await self.zrem(key, *doomed) if doomed else 0

    async def zcard(self, key: str) -> int:
        self._purge(key)
        return len(self._zsets.get(key, {}))

    # ─── String ───

    async def set(self, key: str, value: str) -> None:
        self._drop(key)
        self._strings[key] = _StringEntry(str(value), math.inf)

    async def get(self, key: str) -> str | None:
        entry = self._strings.get(key)
        return entry.value if entry is not None else None

    async def setex(self, key: str, ttl_seconds: int, value: str) -> None:
        self._drop(key)
        self._strings[key] = _StringEntry(str(value), self._clock() + ttl_seconds)

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            self._purge(key)
            if self._drop(key):
                removed += 1
        return removed

    # ─── Keyspace ───

    async def expireat(self, key: str, epoch_seconds: int) -> bool:
        self._purge(key)
        entry = self._strings.get(key)
        if entry is not None:
            if float(epoch_seconds) <= self._clock():
                self._strings.pop(key, None)
            else:
                self._strings[key] = _StringEntry(entry.value, float(epoch_seconds))
            return True
        if key in self._hashes or key in self._sets or key in self._zsets:
            self._expiry[key] = float(epoch_seconds)
            self._purge(key)
            return True
        return False

    async def ping(self) -> bool:
        return True
