"""
Market Data Error Taxonomy

Every failure the acquisition core can surface is a subclass of MarketDataError,
so consumers can tell "data temporarily unavailable" (retry-worthy) apart from
"request is invalid" and "caller must back off".

Hierarchy:
    MarketDataError
    ├── RateLimitExceeded       caller exceeded its own outbound budget
    ├── UpstreamTimeoutError    one endpoint variant exceeded its deadline
    ├── UpstreamError           meaningful non-success status (not 404)
    │   └── DataFormatError     2xx response that failed shape validation
    ├── UpstreamUnavailable     every endpoint variant exhausted
    └── MarketNotFound          market id absent from the current listing
"""

from typing import Optional


class MarketDataError(Exception):
    """Base class for all market data acquisition failures."""


class RateLimitExceeded(MarketDataError):
    """
    Raised before any network I/O when the per-endpoint budget is spent.

    Attributes:
        endpoint: Logical endpoint label (markets, orderbook, trades)
        limit: Configured requests per minute
    """

    def __init__(self, endpoint: str, limit: int):
        self.endpoint = endpoint
        self.limit = limit
        super().__init__(
            f"Rate limit exceeded for {endpoint}. Max {limit} requests per minute."
        )


class UpstreamTimeoutError(MarketDataError, TimeoutError):
    """A single endpoint-variant attempt exceeded its deadline."""

    def __init__(self, path: str, timeout: float):
        self.path = path
        self.timeout = timeout
        super().__init__(f"Request timeout after {timeout:g}s on {path}")


class UpstreamError(MarketDataError):
    """
    The upstream answered with a meaningful non-success status.

    Attributes:
        status: HTTP status code (None for payload-level failures)
        path: Request path that produced the error
    """

    def __init__(self, message: str, status: Optional[int] = None, path: Optional[str] = None):
        self.status = status
        self.path = path
        super().__init__(message)


class DataFormatError(UpstreamError):
    """A response parsed at the transport level but failed shape validation."""


class UpstreamUnavailable(MarketDataError):
    """
    All configured endpoint variants were exhausted without success.

    Attributes:
        resource: Logical resource that was being fetched
        last_error: The last underlying failure observed, if any
    """

    def __init__(self, resource: str, last_error: Optional[BaseException] = None):
        self.resource = resource
        self.last_error = last_error
        detail = f": {last_error}" if last_error else ""
        super().__init__(f"All endpoint variants failed for {resource}{detail}")


class MarketNotFound(MarketDataError, LookupError):
    """The requested market id does not exist in the current market list."""

    def __init__(self, market_id: str):
        self.market_id = market_id
        super().__init__(f"Market '{market_id}' not found")


def is_retryable(error: BaseException) -> bool:
    """
    Check whether a failure is transient and worth retrying later.

    Returns:
        True for timeouts and exhausted variants, False otherwise
    """
    return isinstance(error, (UpstreamTimeoutError, UpstreamUnavailable))
