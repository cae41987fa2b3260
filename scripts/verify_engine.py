#!/usr/bin/env python3
"""Live verification script — runs the engine against a real Redis.

Usage:
  1. Start Redis locally (or set REDIS_URL in .env)
  2. Run: python scripts/verify_engine.py

Uses database 15 of the configured server and flushes nothing outside the
keys it creates.

Steps:
  Step 1: Connect to Redis
  Step 2: Login tokens + session reaper
  Step 3: Shopping carts + full-cleanup reaper
  Step 4: Row caching scheduler
  Step 5: Request (page) caching
"""

import asyncio
import os
import sys
import uuid

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

VERIFY_REDIS_URL = os.environ.get("VERIFY_REDIS_URL", "redis://localhost:6379/15")


def step_header(n: int, title: str) -> None:
    print(f"\n{'='*60}")
    print(f"  Step {n}: {title}")
    print(f"{'='*60}\n")


def ok(msg: str) -> None:
    print(f"  ✅ {msg}")


def fail(msg: str) -> None:
    print(f"  ❌ {msg}")


def info(msg: str) -> None:
    print(f"  ℹ️  {msg}")


async def step1_connect():
    step_header(1, "Connect to Redis")
    from shopcache.errors import StoreUnavailable
    from shopcache.services.redis_store import RedisOrderedStore

    store = RedisOrderedStore.from_url(VERIFY_REDIS_URL)
    try:
        await store.ping()
    except StoreUnavailable as e:
        fail(f"Redis unreachable at {VERIFY_REDIS_URL}: {e}")
        await store.close()
        return None
    ok(f"Connected: {VERIFY_REDIS_URL}")
    return store


def _engine(store, **overrides):
    from shopcache.config import Settings
    from shopcache.services.engine import CacheEngine

    settings = Settings(
        key_prefix=f"verify:{uuid.uuid4().hex[:8]}:",
        session_limit=0,
        inventory_api_url="",
        **overrides,
    )
    return CacheEngine(store, settings)


async def step2_login_tokens(store):
    step_header(2, "Login tokens + session reaper")
    engine = _engine(store)

    token = str(uuid.uuid4())
    await engine.sessions.touch(token, "username", "itemX")
    info(f"Logged in token {token} for 'username'")

    user = await engine.sessions.lookup(token)
    if user != "username":
        fail(f"Lookup returned {user!r}")
        return False
    ok("Lookup returned 'username'")

    info("Starting reaper with limit 0 for one second...")
    engine.reaper.start()
    await asyncio.sleep(1)
    await engine.reaper.shutdown(timeout=2)
    if engine.reaper.is_running:
        fail("The clean sessions worker is still alive")
        return False

    remaining = await store.hlen(engine.keys.login)
    if remaining:
        fail(f"{remaining} sessions still present")
        return False
    ok("All sessions reaped")
    return True


async def step3_carts(store):
    step_header(3, "Shopping carts + full-cleanup reaper")
    engine = _engine(store, full_session_cleanup=True)

    token = str(uuid.uuid4())
    await engine.sessions.touch(token, "username", "itemX")
    await engine.carts.set_quantity(token, "itemY", 3)
    cart = await engine.carts.get_cart(token)
    info(f"Cart contains: {cart}")
    if not cart:
        fail("Cart is empty after add")
        return False

    engine.reaper.start()
    await asyncio.sleep(1)
    await engine.reaper.shutdown(timeout=2)

    cart = await engine.carts.get_cart(token)
    if cart:
        fail(f"Cart still contains {cart}")
        return False
    ok("Cart cleared with its session")
    return True


async def step4_row_cache(store):
    step_header(4, "Row caching scheduler")
    engine = _engine(store)

    await engine.rows.schedule("itemX", 5)
    info(f"Schedule: {await engine.rows.scheduled()}")
    engine.rows.start()

    await asyncio.sleep(1)
    first = await engine.rows.cached("itemX")
    if first is None:
        fail("Row was not cached")
        await engine.rows.shutdown(timeout=2)
        return False
    ok(f"Cached: {first.model_dump_json()}")

    info("Checking again in 5 seconds...")
    await asyncio.sleep(5)
    second = await engine.rows.cached("itemX")
    if second is None or second == first:
        fail("Row was not refreshed")
        await engine.rows.shutdown(timeout=2)
        return False
    ok(f"Refreshed: {second.model_dump_json()}")

    await engine.rows.schedule("itemX", -1)
    await asyncio.sleep(1)
    cleared = await engine.rows.cached("itemX") is None
    await engine.rows.shutdown(timeout=2)
    if not cleared:
        fail("Row still cached after uncache")
        return False
    ok("Row uncached")
    return True


async def step5_page_cache(store):
    step_header(5, "Request caching")
    engine = _engine(store)

    await engine.sessions.touch(str(uuid.uuid4()), "username", "itemX")
    url = "http://test.com/?item=itemX"
    first = await engine.pages.fetch(url, lambda request: "content for " + request)
    second = await engine.pages.fetch(url, None)
    if first is None or first != second:
        fail(f"Expected a cache hit, got {second!r}")
        return False
    ok(f"Cache hit: {second}")

    if await engine.pages.can_cache("http://test.com/"):
        fail("Request without item was cacheable")
        return False
    if await engine.pages.can_cache("http://test.com/?item=itemX&_=1234536"):
        fail("Dynamic request was cacheable")
        return False
    ok("Non-cacheable requests rejected")
    return True


async def main():
    print("\n🛒 ShopCache — Live Engine Verification")
    results = {}

    store = await step1_connect()
    results[1] = store is not None
    if store is None:
        print("\n⚠️  Skipping engine steps (no Redis)")
        results[2] = results[3] = results[4] = results[5] = False
    else:
        results[2] = await step2_login_tokens(store)
        results[3] = await step3_carts(store)
        results[4] = await step4_row_cache(store)
        results[5] = await step5_page_cache(store)
        await store.close()

    # Summary
    print(f"\n{'='*60}")
    print("  SUMMARY")
    print(f"{'='*60}")
    for step_n, passed in sorted(results.items()):
        status = "✅ PASS" if passed else "❌ FAIL"
        print(f"  Step {step_n}: {status}")

    total_passed = sum(1 for v in results.values() if v)
    total = len(results)
    print(f"\n  {total_passed}/{total} steps passed")
    print(f"{'='*60}\n")

    sys.exit(0 if all(results.values()) else 1)


if __name__ == "__main__":
    asyncio.run(main())
