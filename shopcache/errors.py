"""Typed failures raised by the cache engine."""


class ShopCacheError(Exception):
    """Base class for engine errors."""


class StoreUnavailable(ShopCacheError):
    """The ordered store could not complete a command."""

    def __init__(self, command: str, reason: str = ""):
        self.command = command
        self.reason = reason
        super().__init__(f"store command {command} failed: {reason}" if reason else f"store command {command} failed")


class UpstreamFetchFailed(ShopCacheError):
    """The upstream row source could not produce a snapshot."""

    def __init__(self, row_id: str, reason: str = ""):
        self.row_id = row_id
        self.reason = reason
        super().__init__(f"fetch of row {row_id!r} failed: {reason}" if reason else f"fetch of row {row_id!r} failed")


class MalformedRequest(ShopCacheError):
    """A page request could not be parsed."""

    def __init__(self, request: str, reason: str = ""):
        self.request = request
        self.reason = reason
        super().__init__(f"malformed request {request[:100]!r}: {reason}")
