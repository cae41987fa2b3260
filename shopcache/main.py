"""ShopCache — FastAPI host for the session index and cache engine.

The lifespan connects the ordered store (Redis, or in-memory fallback),
starts the session reaper and row cache workers, and stops them on shutdown.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from shopcache.config import settings
from shopcache.errors import StoreUnavailable
from shopcache.schemas import (
    CartResponse,
    CartUpdate,
    PageResponse,
    RankResponse,
    ScheduleRequest,
    SessionResponse,
    TouchRequest,
)
from shopcache.services.engine import CacheEngine
from shopcache.services.memory_store import InMemoryOrderedStore
from shopcache.services.store import connect_store

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
)
logger = logging.getLogger("shopcache")

# Replaced by the lifespan once the real store is connected
engine = CacheEngine(InMemoryOrderedStore(), settings)


def render_page(request: str) -> str:
    """Stand-in renderer for the page endpoint."""
    return f"content for {request}"


def _unavailable(e: StoreUnavailable) -> JSONResponse:
    logger.error("Store unavailable | %s", str(e)[:200])
    return JSONResponse(status_code=503, content={"error": "store unavailable"})


# ═══════════════ LIFESPAN ═══════════════

@asynccontextmanager
async def lifespan(app: FastAPI):
    global engine
    logger.info("ShopCache starting | redis=%s", settings.redis_url)

    store = await connect_store(settings)
    engine = CacheEngine(store, settings)
    engine.start()

    yield

    await engine.close()
    logger.info("ShopCache shutting down")


# ═══════════════ APP ═══════════════

app = FastAPI(
    title="ShopCache API",
    description="Session index, row cache and page cache over Redis",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET", "POST", "PUT", "OPTIONS"],
    allow_headers=["Content-Type"],
)


# ═══════════════ ENDPOINTS ═══════════════

@app.get("/health")
async def health():
    return {"status": "ok", **engine.health()}


@app.post("/api/sessions/{token}")
async def touch_session(token: str, body: TouchRequest):
    try:
        await engine.sessions.touch(token, body.user, body.item)
    except StoreUnavailable as e:
        return _unavailable(e)
    return {"token": token, "user": body.user}


@app.get("/api/sessions/{token}", response_model=SessionResponse)
async def get_session(token: str):
    try:
        user = await engine.sessions.lookup(token)
        recent = await engine.sessions.recent_items(token) if user else []
    except StoreUnavailable as e:
        logger.warning("Session read failed — treating as miss: %s", str(e)[:100])
        return SessionResponse(token=token)
    return SessionResponse(token=token, user=user, recent_items=recent)


@app.put("/api/carts/{token}/{item}", response_model=CartResponse)
async def update_cart(token: str, item: str, body: CartUpdate):
    try:
        await engine.carts.set_quantity(token, item, body.quantity)
        items = await engine.carts.get_cart(token)
    except StoreUnavailable as e:
        return _unavailable(e)
    return CartResponse(token=token, items=items)


@app.get("/api/carts/{token}", response_model=CartResponse)
async def get_cart(token: str):
    try:
        items = await engine.carts.get_cart(token)
    except StoreUnavailable as e:
        logger.warning("Cart read failed — treating as empty: %s", str(e)[:100])
        items = {}
    return CartResponse(token=token, items=items)


@app.put("/api/rows/{row_id}/schedule")
async def schedule_row(row_id: str, body: ScheduleRequest):
    try:
        await engine.rows.schedule(row_id, body.delay)
    except StoreUnavailable as e:
        return _unavailable(e)
    return {"row_id": row_id, "delay": body.delay}


@app.get("/api/rows/{row_id}")
async def get_row(row_id: str):
    try:
        row = await engine.rows.cached(row_id)
    except StoreUnavailable as e:
        logger.warning("Row read failed — treating as miss: %s", str(e)[:100])
        row = None
    if row is None:
        return JSONResponse(status_code=404, content={"error": "row not cached"})
    return row.model_dump()


@app.get("/api/items/{item}/rank", response_model=RankResponse)
async def item_rank(item: str):
    try:
        rank = await engine.popularity.rank(item)
        views = await engine.popularity.views(item)
    except StoreUnavailable as e:
        logger.warning("Rank read failed — treating as miss: %s", str(e)[:100])
        return RankResponse(item=item)
    return RankResponse(item=item, rank=rank, views=views)


@app.get("/api/pages", response_model=PageResponse)
async def get_page(url: str):
    content, cacheable = await engine.pages.fetch_with_admission(url, render_page)
    return PageResponse(url=url, cacheable=cacheable, content=content)
