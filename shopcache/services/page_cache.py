"""PageCache — popularity-gated cache of rendered responses.

Only requests for items ranked inside the admission threshold are cached,
which keeps the cache footprint bounded to head-of-distribution traffic.
Entries expire through the store's TTL; nothing invalidates them explicitly.

Store failures on the read path degrade to a miss: the page is rendered
directly rather than failing the request.
"""

import hashlib
import inspect
import logging
from collections.abc import Callable
from typing import Any
from urllib.parse import parse_qsl, urlsplit

from shopcache.errors import MalformedRequest, StoreUnavailable
from shopcache.services.popularity import PopularityIndex
from shopcache.services.store import Keys, OrderedStore

logger = logging.getLogger(__name__)

DEFAULT_TTL = 300
DEFAULT_ADMISSION_THRESHOLD = 10000

# Parameter reserved for cache-busting nonces
DYNAMIC_PARAM = "_"
ITEM_PARAM = "item"

Renderer = Callable[[str], Any]


def parse_request(request: str) -> dict[str, str]:
    """Return the query parameters of an absolute request URL."""
    try:
        parts = urlsplit(request)
    except ValueError as e:
        raise MalformedRequest(request, str(e)) from e
    if not parts.scheme or not parts.netloc:
        raise MalformedRequest(request, "not an absolute URL")
    return dict(parse_qsl(parts.query, keep_blank_values=True))


def extract_item_id(params: dict[str, str]) -> str | None:
    return params.get(ITEM_PARAM) or None


def is_dynamic(params: dict[str, str]) -> bool:
    return DYNAMIC_PARAM in params


def fingerprint(request: str) -> str:
    """Stable cache key for a request string."""
    return hashlib.sha256(request.encode()).hexdigest()[:32]


class PageCache:
    """Admission-gated page cache in front of a caller-supplied renderer."""

    def __init__(
        self,
        store: OrderedStore,
        keys: Keys,
        popularity: PopularityIndex,
        ttl: int = DEFAULT_TTL,
        admission_threshold: int = DEFAULT_ADMISSION_THRESHOLD,
    ):
        self._store = store
        self._keys = keys
        self._popularity = popularity
        self.ttl = ttl
        self.admission_threshold = admission_threshold

    async def can_cache(self, request: str) -> bool:
        try:
            params = parse_request(request)
        except MalformedRequest as e:
            logger.debug("Page not cacheable | %s", e)
            return False

        item = extract_item_id(params)
        if item is None or is_dynamic(params):
            return False

        try:
            rank = await self._popularity.rank(item)
        except StoreUnavailable as e:
            logger.warning("Popularity lookup failed | item=%s | %s", item, str(e)[:100])
            return False
        return rank is not None and rank < self.admission_threshold

    async def fetch(self, request: str, render: Renderer | None = None) -> str | None:
        """Return cached content for `request`, rendering and caching on a miss.

        Non-cacheable requests always go straight to `render`. A miss with no
        renderer yields None.
        """
        content, _cacheable = await self.fetch_with_admission(request, render)
        return content

    async def fetch_with_admission(
        self, request: str, render: Renderer | None = None,
    ) -> tuple[str | None, bool]:
        """Like fetch(), also reporting whether the request was cache-admissible."""
        if not await self.can_cache(request):
            content = await _call_renderer(render, request) if render else None
            return content, False

        key = self._keys.page(fingerprint(request))
        try:
            content = await self._store.get(key)
        except StoreUnavailable as e:
            logger.warning("Page cache read failed — rendering directly: %s", str(e)[:100])
            content = None

        if content is not None:
            logger.info("Page cache HIT | key=%s", key[:24])
            return content, True
        if render is None:
            return None, True

        content = await _call_renderer(render, request)
        if content is not None:
            try:
                await self._store.setex(key, self.ttl, content)
                logger.info("Page cache SET | key=%s | ttl=%ds", key[:24], self.ttl)
            except StoreUnavailable as e:
                logger.warning("Page cache write failed: %s", str(e)[:100])
        return content, True


async def _call_renderer(render: Renderer, request: str) -> str | None:
    result = render(request)
    if inspect.isawaitable(result):
        result = await result
    return result
