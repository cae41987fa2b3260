"""Tests for upstream inventory row sources."""

import httpx
import pytest

from shopcache.config import Settings
from shopcache.errors import UpstreamFetchFailed
from shopcache.integrations.inventory import (
    DemoInventorySource,
    HttpInventorySource,
    build_row_source,
)


def _source(handler, clock=None) -> HttpInventorySource:
    kwargs = {"clock": clock} if clock else {}
    return HttpInventorySource(
        "http://inventory.test/rows/",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


class TestDemoSource:
    @pytest.mark.asyncio
    async def test_row_stamped_with_clock(self, clock):
        row = await DemoInventorySource(clock=clock).fetch_row("itemX")
        assert row.id == "itemX"
        assert row.data == "data to cache..."
        assert row.cached_at == clock.now


class TestHttpSource:
    def test_row_url_escapes_id(self):
        source = HttpInventorySource("http://inventory.test/rows/")
        assert source.row_url("item X/1") == "http://inventory.test/rows/item%20X%2F1"

    @pytest.mark.asyncio
    async def test_fetch_ok(self, clock):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/rows/itemX"
            return httpx.Response(200, json={"qty": 4, "price": 9.5})

        row = await _source(handler, clock).fetch_row("itemX")
        assert row.id == "itemX"
        assert row.data == {"qty": 4, "price": 9.5}
        assert row.cached_at == clock.now

    @pytest.mark.asyncio
    async def test_non_200_raises(self):
        source = _source(lambda request: httpx.Response(503))
        with pytest.raises(UpstreamFetchFailed) as exc:
            await source.fetch_row("itemX")
        assert exc.value.row_id == "itemX"
        assert "503" in exc.value.reason

    @pytest.mark.asyncio
    async def test_invalid_json_raises(self):
        source = _source(lambda request: httpx.Response(200, content=b"<html>"))
        with pytest.raises(UpstreamFetchFailed):
            await source.fetch_row("itemX")

    @pytest.mark.asyncio
    async def test_timeout_raises(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(UpstreamFetchFailed) as exc:
            await _source(handler).fetch_row("itemX")
        assert exc.value.reason == "timeout"

    @pytest.mark.asyncio
    async def test_transport_error_raises(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(UpstreamFetchFailed):
            await _source(handler).fetch_row("itemX")


class TestBuildRowSource:
    def test_demo_when_unconfigured(self):
        assert isinstance(build_row_source(Settings(inventory_api_url="")), DemoInventorySource)

    def test_http_when_configured(self):
        source = build_row_source(Settings(inventory_api_url="http://inventory.test"))
        assert isinstance(source, HttpInventorySource)
        assert source.base_url == "http://inventory.test"
