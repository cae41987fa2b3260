"""Pydantic models for cached snapshots and API input/output."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


# ═══════════════ CACHED SNAPSHOTS ═══════════════

class InventoryRow(BaseModel):
    """Snapshot of an upstream row as stored under inv:<row_id>."""
    id: str
    data: Any = None
    cached_at: float = 0.0


# ═══════════════ API INPUTS ═══════════════

class TouchRequest(BaseModel):
    user: str
    item: str | None = None


class CartUpdate(BaseModel):
    quantity: int


class ScheduleRequest(BaseModel):
    delay: float = Field(description="Refresh interval in seconds; <= 0 uncaches the row")


# ═══════════════ API OUTPUTS ═══════════════

class SessionResponse(BaseModel):
    token: str
    user: str | None = None
    recent_items: list[str] = Field(default_factory=list)


class CartResponse(BaseModel):
    token: str
    items: dict[str, int] = Field(default_factory=dict)


class RankResponse(BaseModel):
    item: str
    rank: int | None = None
    views: int = 0


class PageResponse(BaseModel):
    url: str
    cacheable: bool = False
    content: str | None = None
