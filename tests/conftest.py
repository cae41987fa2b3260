"""Shared test fixtures and configuration."""

import os

import pytest

# Keep tests off any real upstream inventory API
os.environ.setdefault("INVENTORY_API_URL", "")

from shopcache.config import Settings
from shopcache.services.cart import CartStore
from shopcache.services.memory_store import InMemoryOrderedStore
from shopcache.services.page_cache import PageCache
from shopcache.services.popularity import PopularityIndex
from shopcache.services.sessions import SessionIndex
from shopcache.services.store import Keys


class FakeClock:
    """Manually advanced wall clock."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return InMemoryOrderedStore(clock=clock)


@pytest.fixture
def keys():
    return Keys()


@pytest.fixture
def popularity(store, keys):
    return PopularityIndex(store, keys)


@pytest.fixture
def sessions(store, keys, popularity, clock):
    return SessionIndex(store, keys, popularity, clock=clock)


@pytest.fixture
def carts(store, keys):
    return CartStore(store, keys)


@pytest.fixture
def pages(store, keys, popularity):
    return PageCache(store, keys, popularity)


@pytest.fixture
def test_settings():
    return Settings(
        session_limit=0,
        reaper_idle_seconds=0.01,
        row_poll_seconds=0.01,
        row_retry_backoff_seconds=0.01,
        worker_join_timeout=2.0,
        inventory_api_url="",
    )
