"""Tests for configuration and the engine wiring both workers together."""

import asyncio
import uuid

import pytest

from shopcache.config import Settings
from shopcache.services.engine import CacheEngine
from shopcache.services.memory_store import InMemoryOrderedStore


class TestSettings:
    def test_defaults(self):
        s = Settings(_env_file=None)
        assert s.view_history_size == 25
        assert s.reaper_batch_size == 100
        assert s.reaper_idle_seconds == 1.0
        assert s.row_poll_seconds == 0.05
        assert s.page_cache_ttl == 300
        assert s.page_admission_threshold == 10000

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("SESSION_LIMIT", "5")
        monkeypatch.setenv("FULL_SESSION_CLEANUP", "true")
        s = Settings(_env_file=None)
        assert s.session_limit == 5
        assert s.full_session_cleanup is True

    def test_cors_origins(self):
        assert Settings(allowed_origins="*").cors_origins == ["*"]
        assert Settings(allowed_origins="http://a, http://b").cors_origins == ["http://a", "http://b"]


class TestEngine:
    @pytest.mark.asyncio
    async def test_key_prefix_applied(self):
        store = InMemoryOrderedStore()
        engine = CacheEngine(store, Settings(key_prefix="shop:", inventory_api_url=""))
        await engine.sessions.touch("t1", "alice")
        assert await store.hget("shop:login:", "t1") == "alice"
        assert await store.hget("login:", "t1") is None

    @pytest.mark.asyncio
    async def test_workers_converge_and_stop(self, test_settings):
        settings = test_settings.model_copy(update={"full_session_cleanup": True})
        engine = CacheEngine(InMemoryOrderedStore(), settings)

        token = str(uuid.uuid4())
        await engine.sessions.touch(token, "username", "itemX")
        await engine.carts.set_quantity(token, "itemY", 3)
        await engine.rows.schedule("itemX", 5)

        engine.start()
        for _ in range(200):
            done = (
                await engine.sessions.size() == 0
                and await engine.rows.cached("itemX") is not None
            )
            if done:
                break
            await asyncio.sleep(0.01)

        assert await engine.sessions.lookup(token) is None
        assert await engine.carts.get_cart(token) == {}
        assert await engine.rows.cached("itemX") is not None
        # Popularity outlives the session
        assert await engine.popularity.rank("itemX") == 0

        assert await engine.shutdown() is True
        health = engine.health()
        assert health["session_reaper"]["running"] is False
        assert health["row_cache"]["running"] is False
