"""Tests for the in-memory OrderedStore — Redis-compatible semantics."""

import pytest


class TestHash:
    @pytest.mark.asyncio
    async def test_set_get(self, store):
        assert await store.hset("h", "a", "1") == 1
        assert await store.hset("h", "a", "2") == 0
        assert await store.hget("h", "a") == "2"
        assert await store.hget("h", "missing") is None

    @pytest.mark.asyncio
    async def test_hdel_and_hlen(self, store):
        await store.hset("h", "a", "1")
        await store.hset("h", "b", "2")
        assert await store.hlen("h") == 2
        assert await store.hdel("h", "a", "nope") == 1
        assert await store.hgetall("h") == {"b": "2"}

    @pytest.mark.asyncio
    async def test_empty_hash_removed(self, store):
        await store.hset("h", "a", "1")
        await store.hdel("h", "a")
        assert await store.delete("h") == 0


class TestSet:
    @pytest.mark.asyncio
    async def test_membership(self, store):
        assert await store.sadd("s", "x", "y") == 2
        assert await store.sadd("s", "x") == 0
        assert await store.sismember("s", "x") is True
        assert await store.srem("s", "x", "z") == 1
        assert await store.sismember("s", "x") is False


class TestSortedSet:
    @pytest.mark.asyncio
    async def test_rank_orders_by_score_then_member(self, store):
        await store.zadd("z", {"b": 1, "a": 1, "c": 0})
        assert await store.zrange("z", 0, -1) == ["c", "a", "b"]
        assert await store.zrank("z", "a") == 1
        assert await store.zrank("z", "missing") is None

    @pytest.mark.asyncio
    async def test_zadd_updates_without_duplicating(self, store):
        assert await store.zadd("z", {"a": 1}) == 1
        assert await store.zadd("z", {"a": 5}) == 0
        assert await store.zcard("z") == 1
        assert await store.zscore("z", "a") == 5.0

    @pytest.mark.asyncio
    async def test_zincrby(self, store):
        assert await store.zincrby("z", -1, "a") == -1.0
        assert await store.zincrby("z", -1, "a") == -2.0

    @pytest.mark.asyncio
    async def test_zrange_with_scores_and_negative_indexes(self, store):
        await store.zadd("z", {"a": 1, "b": 2, "c": 3})
        assert await store.zrange("z", 0, 0, withscores=True) == [("a", 1.0)]
        assert await store.zrange("z", -2, -1) == ["b", "c"]
        assert await store.zrange("z", 5, 10) == []
        assert await store.zrange("empty", 0, -1) == []

    @pytest.mark.asyncio
    async def test_zrangebyscore(self, store):
        await store.zadd("z", {"a": 1, "b": 2, "c": 3, "d": 4})
        assert await store.zrangebyscore("z", 2, 3) == ["b", "c"]
        assert await store.zrangebyscore("z", 0, 10, start=1, num=2) == ["b", "c"]

    @pytest.mark.asyncio
    async def test_zremrangebyrank_keeps_newest(self, store):
        await store.zadd("z", {f"m{i}": i for i in range(30)})
        removed = await store.zremrangebyrank("z", 0, -26)
        assert removed == 5
        assert await store.zcard("z") == 25
        assert (await store.zrange("z", 0, 0)) == ["m5"]

    @pytest.mark.asyncio
    async def test_zremrangebyrank_small_set_untouched(self, store):
        await store.zadd("z", {"a": 1, "b": 2})
        assert await store.zremrangebyrank("z", 0, -26) == 0
        assert await store.zcard("z") == 2

    @pytest.mark.asyncio
    async def test_zrem(self, store):
        await store.zadd("z", {"a": 1, "b": 2})
        assert await store.zrem("z", "a", "x") == 1
        assert await store.zrange("z", 0, -1) == ["b"]


class TestStringsAndExpiry:
    @pytest.mark.asyncio
    async def test_set_get_delete(self, store):
        await store.set("k", "v")
        assert await store.get("k") == "v"
        assert await store.delete("k", "other") == 1
        assert await store.get("k") is None

    @pytest.mark.asyncio
    async def test_setex_expires(self, store, clock):
        await store.setex("k", 300, "v")
        clock.advance(299)
        assert await store.get("k") == "v"
        clock.advance(2)
        assert await store.get("k") is None

    @pytest.mark.asyncio
    async def test_set_clears_ttl(self, store, clock):
        await store.setex("k", 10, "v")
        await store.set("k", "w")
        clock.advance(100)
        assert await store.get("k") == "w"

    @pytest.mark.asyncio
    async def test_expireat_on_string(self, store, clock):
        await store.set("k", "v")
        assert await store.expireat("k", int(clock.now) + 5) is True
        clock.advance(6)
        assert await store.get("k") is None

    @pytest.mark.asyncio
    async def test_expireat_on_hash(self, store, clock):
        await store.hset("h", "a", "1")
        assert await store.expireat("h", int(clock.now) + 5) is True
        assert await store.hget("h", "a") == "1"
        clock.advance(5)
        assert await store.hgetall("h") == {}

    @pytest.mark.asyncio
    async def test_expireat_missing_key(self, store, clock):
        assert await store.expireat("nope", int(clock.now) + 5) is False

    @pytest.mark.asyncio
    async def test_ping(self, store):
        assert await store.ping() is True


class TestSortedSetPeek:
    @pytest.mark.asyncio
    async def test_head_peek_matches_full_order(self, store):
        await store.zadd("z", {"b": 1, "a": 1, "c": 0.5, "d": 3})
        assert await store.zrange("z", 0, 0, withscores=True) == [("c", 0.5)]
        await store.zrem("z", "c")
        assert await store.zrange("z", 0, 0) == ["a"]
        assert await store.zrange("empty", 0, 0, withscores=True) == []

    @pytest.mark.asyncio
    async def test_rank_ties_broken_by_member(self, store):
        await store.zadd("z", {"b": 1, "a": 1, "c": 0})
        ordered = await store.zrange("z", 0, -1)
        for expected, member in enumerate(ordered):
            assert await store.zrank("z", member) == expected
