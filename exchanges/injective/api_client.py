"""
Injective REST API Client

This module provides an async HTTP client for the Injective exchange REST API.
It handles:
- Endpoint-variant fallback (the upstream serves the same resource under
  several path forms, and which ones answer changes between deployments)
- Per-endpoint outbound rate limiting, checked before any network I/O
- Time-boxed response caching with per-key in-flight de-duplication
- Per-attempt timeouts
- Call-outcome telemetry
- Data normalization to our schemas

Fallback Rules (per endpoint variant, in configured order):
    - 2xx        -> parse, normalize, cache and return
    - 404        -> "no data under this path form", try the next variant
    - timeout    -> try the next variant
    - transport  -> (connection refused, reset, ...) try the next variant
    - other HTTP -> fatal UpstreamError, no further variants
    - bad shape  -> fatal DataFormatError
    - budget     -> RateLimitExceeded aborts the whole operation
    When every variant is exhausted, UpstreamUnavailable is raised with the
    last observed error attached.

Usage:
    async with InjectiveAPIClient() as client:
        markets = await client.list_markets()
        book = await client.get_orderbook(markets[0].id)
        trades = await client.get_recent_trades(markets[0].id, limit=120)
"""

import asyncio
import time
from typing import Any, Awaitable, Callable, Dict, List, NamedTuple, Optional, Sequence
from urllib.parse import quote

import aiohttp

from core.cache import ResponseCache
from core.call_metrics import CallMetricsRecorder
from core.config import Settings
from core.exceptions import (
    DataFormatError,
    MarketNotFound,
    MarketDataError,
    UpstreamError,
    UpstreamTimeoutError,
    UpstreamUnavailable,
)
from core.logging import get_logger, log_api_request, log_api_response
from core.rate_limiter import RateLimiter
from core.schemas import CallMetricsSummary, CallOutcome, MarketDescriptor, OrderBookSnapshot, Trade
from core.utils.time import current_utc_datetime
from exchanges.injective.parsers import parse_markets, parse_orderbook, parse_trades


class UpstreamResponse(NamedTuple):
    status: int
    reason: str
    payload: Any


class InjectiveAPIClient:
    """
    Async HTTP client for the Injective exchange REST API

    All public methods return normalized data using our Pydantic schemas and
    raise only MarketDataError subclasses for acquisition failures.

    Attributes:
        BASE_URL: Default Injective API base URL
        base_url: Base URL in use
        timeout: Per-attempt timeout in seconds
        endpoint_variants: Ordered path variants per logical resource
        cache: ResponseCache for normalized responses
        rate_limiter: RateLimiter keyed by logical resource
        metrics: CallMetricsRecorder for call telemetry
        session: aiohttp ClientSession for HTTP requests

    Example:
        >>> async with InjectiveAPIClient(timeout=5.0) as client:
        ...     market = await client.get_market("0x0611780b...")
        ...     print(market.symbol)
        INJ/USDT

    Notes:
        - Uses context manager for automatic session cleanup
        - Concurrent callers missing on the same cache key share one upstream load
    """

    BASE_URL = "https://api.injective.exchange"
    EXCHANGE = "injective"

    DEFAULT_ENDPOINT_VARIANTS: Dict[str, List[str]] = {
        "markets": ["/api/exchange/v1/markets", "/markets", "/api/v1/markets"],
        "orderbook": ["/api/exchange/v1/orderbooks", "/orderbook", "/api/v1/orderbook"],
        "trades": ["/api/exchange/v1/trades", "/trades", "/api/v1/trades"],
    }

    DEFAULT_TRADES_LIMIT = 120

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: float = 10.0,
        cache: Optional[ResponseCache] = None,
        rate_limiter: Optional[RateLimiter] = None,
        metrics: Optional[CallMetricsRecorder] = None,
        endpoint_variants: Optional[Dict[str, Sequence[str]]] = None,
        enable_metrics: bool = True,
    ):
        """
        Initialize the Injective API client.

        Args:
            base_url: API base URL (defaults to BASE_URL)
            timeout: Per-attempt timeout in seconds
            cache: Response cache (a 5s cache is created when omitted)
            rate_limiter: Outbound limiter (60 req/min per endpoint when omitted)
            metrics: Call-outcome recorder (created when omitted)
            endpoint_variants: Ordered path variants per resource, merged over the defaults
            enable_metrics: Record call outcomes
        """
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.timeout = timeout
        self.cache = cache or ResponseCache(default_ttl=5.0)
        self.rate_limiter = rate_limiter or RateLimiter(limit_per_minute=60)
        self.metrics = metrics or CallMetricsRecorder()
        self.enable_metrics = enable_metrics

        variants = {k: list(v) for k, v in self.DEFAULT_ENDPOINT_VARIANTS.items()}
        for resource, paths in (endpoint_variants or {}).items():
            variants[resource] = list(paths)
        for resource, paths in variants.items():
            if not paths:
                raise ValueError(f"No endpoint variants configured for '{resource}'")
        self.endpoint_variants = variants

        self.logger = get_logger(__name__)
        self.session: Optional[aiohttp.ClientSession] = None
        self._in_flight: Dict[str, "asyncio.Future[Any]"] = {}

    @classmethod
    def from_settings(cls, config: Settings) -> "InjectiveAPIClient":
        """Build a client and its collaborators from application settings."""
        return cls(
            base_url=config.injective_api_url,
            timeout=config.injective_api_timeout,
            cache=ResponseCache(
                default_ttl=config.injective_api_cache_ttl,
                max_entries=config.cache_bound,
            ),
            rate_limiter=RateLimiter(limit_per_minute=config.injective_api_rate_limit_per_minute),
            metrics=CallMetricsRecorder(max_entries=config.api_metrics_max_entries),
            endpoint_variants=config.endpoint_variants,
            enable_metrics=config.enable_api_metrics,
        )

    # ============================================
    # Session Lifecycle
    # ============================================

    async def initialize(self) -> None:
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession()
            self.logger.debug("InjectiveAPIClient session created")

    async def shutdown(self) -> None:
        if self.session and not self.session.closed:
            await self.session.close()
            self.logger.debug("InjectiveAPIClient session closed")
        self.session = None

    async def __aenter__(self):
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.shutdown()

    # ============================================
    # Transport
    # ============================================

    async def _send(self, path: str, params: Optional[Dict[str, Any]] = None) -> UpstreamResponse:
        """
        Issue one GET request against one path variant.

        Returns:
            UpstreamResponse with the decoded JSON payload on 2xx, the body text otherwise

        Raises:
            RuntimeError: If the session is not initialized
            DataFormatError: If a 2xx body is not valid JSON
            aiohttp.ClientError: On transport failures
        """
        if not self.session:
            raise RuntimeError("Client session not initialized. Use 'async with' statement.")

        url = f"{self.base_url}{path}"
        headers = {"Content-Type": "application/json"}
        log_api_request(self.EXCHANGE, path, params)

        async with self.session.get(url, params=params, headers=headers) as resp:
            if 200 <= resp.status < 300:
                try:
                    payload = await resp.json(content_type=None)
                except ValueError as e:
                    raise DataFormatError(f"Invalid JSON from {path}: {e}", status=resp.status, path=path)
            else:
                payload = await resp.text()
            return UpstreamResponse(status=resp.status, reason=resp.reason or "", payload=payload)

    def _record(
        self,
        resource: str,
        path: str,
        started: float,
        success: bool,
        status: Optional[int] = None,
        error: Optional[str] = None,
    ) -> float:
        elapsed = time.perf_counter() - started
        if self.enable_metrics:
            self.metrics.record(CallOutcome(
                endpoint=resource,
                method="GET",
                success=success,
                status_code=status,
                response_time_ms=elapsed * 1000.0,
                timestamp=current_utc_datetime(),
                error=error,
                path=path,
            ))
        return elapsed

    async def _attempt(
        self,
        resource: str,
        path: str,
        params: Optional[Dict[str, Any]],
        parser: Callable[[Any], Any],
    ) -> UpstreamResponse:
        """
        Run one rate-limited, time-boxed attempt against a single variant.

        On 2xx the returned payload is already parsed. Every attempt that
        reaches the network is recorded exactly once.
        """
        self.rate_limiter.check_and_record(resource)

        started = time.perf_counter()
        try:
            response = await asyncio.wait_for(self._send(path, params), timeout=self.timeout)
        except DataFormatError as e:
            self._record(resource, path, started, False, e.status, str(e))
            raise
        except asyncio.TimeoutError:
            error = UpstreamTimeoutError(path, self.timeout)
            self._record(resource, path, started, False, None, str(error))
            raise error
        except aiohttp.ClientError as e:
            self._record(resource, path, started, False, None, f"{type(e).__name__}: {e}")
            raise

        if not 200 <= response.status < 300:
            elapsed = self._record(
                resource, path, started, False, response.status,
                f"{response.status} {response.reason}".strip(),
            )
            log_api_response(self.EXCHANGE, path, response.status, elapsed)
            return response

        try:
            parsed = parser(response.payload)
        except DataFormatError as e:
            e.status, e.path = response.status, path
            self._record(resource, path, started, False, response.status, str(e))
            raise

        elapsed = self._record(resource, path, started, True, response.status)
        log_api_response(self.EXCHANGE, path, response.status, elapsed)
        return response._replace(payload=parsed)

    async def _fetch(
        self,
        resource: str,
        parser: Callable[[Any], Any],
        suffix: str = "",
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Resolve a logical resource by trying each configured path variant in order.

        Args:
            resource: Logical resource ("markets", "orderbook", "trades")
            parser: Normalizes a successful payload
            suffix: Path suffix appended to every variant (e.g. "/{market_id}")
            params: Query parameters

        Returns:
            Parsed payload from the first variant that succeeds

        Raises:
            RateLimitExceeded: Budget spent; no further variants are tried
            UpstreamError: Fatal non-404 status or DataFormatError
            UpstreamUnavailable: Every variant failed with a skip-worthy error
        """
        last_error: Optional[BaseException] = None

        for variant in self.endpoint_variants[resource]:
            path = f"{variant}{suffix}"
            try:
                response = await self._attempt(resource, path, params, parser)
            except (UpstreamTimeoutError, aiohttp.ClientError) as e:
                self.logger.warning(f"{resource}: {path} failed ({e}); trying next variant")
                last_error = e
                continue

            if 200 <= response.status < 300:
                return response.payload

            if response.status == 404:
                self.logger.debug(f"{resource}: {path} returned 404; trying next variant")
                last_error = UpstreamError(f"404 {response.reason} on {path}".strip(), status=404, path=path)
                continue

            error = UpstreamError(
                f"API error: {response.status} {response.reason} on {path}",
                status=response.status,
                path=path,
            )
            self.logger.error(f"{resource}: {error}")
            raise error

        self.logger.error(f"{resource}: all {len(self.endpoint_variants[resource])} endpoint variants failed")
        raise UpstreamUnavailable(resource, last_error) from last_error

    async def _cached(self, key: str, loader: Callable[[], Awaitable[Any]]) -> Any:
        """
        Return the cached value for key, or load it once for all concurrent callers.

        A load that fails leaves nothing in the cache.
        """
        cached = self.cache.get(key)
        if cached is not None:
            self.logger.debug(f"Cache hit: {key}")
            return cached

        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._load_and_store(key, loader))
            self._in_flight[key] = task
            task.add_done_callback(lambda t, k=key: self._finish_load(k, t))
        else:
            self.logger.debug(f"Joining in-flight load: {key}")

        return await asyncio.shield(task)

    def _finish_load(self, key: str, task: "asyncio.Future[Any]") -> None:
        self._in_flight.pop(key, None)
        # Every waiter may have been cancelled; mark the error as retrieved
        if not task.cancelled():
            error = task.exception()
            if error is not None:
                self.logger.debug(f"Load failed for {key}: {type(error).__name__}")

    async def _load_and_store(self, key: str, loader: Callable[[], Awaitable[Any]]) -> Any:
        value = await loader()
        self.cache.set(key, value)
        return value

    # ============================================
    # API Methods
    # ============================================

    async def list_markets(self) -> List[MarketDescriptor]:
        """
        Fetch all markets listed by the upstream.

        Returns:
            List of MarketDescriptor objects, symbol normalized to BASE/QUOTE

        Response Format:
            {
              "markets": [
                {
                  "marketId": "0x0611780b...",
                  "ticker": "INJ/USDT",
                  "baseDenom": "inj",
                  "quoteDenom": "peggy0xdAC17F958D2ee523a2206206994597C13D831ec7",
                  "baseTokenMeta": {"symbol": "INJ"},
                  "quoteTokenMeta": {"symbol": "USDT"}
                }
              ]
            }
        """
        markets = await self._cached(
            "injective:markets",
            lambda: self._fetch("markets", parse_markets),
        )
        self.logger.debug(f"Markets available: {len(markets)}")
        return list(markets)

    async def get_market_by_id(self, market_id: str) -> Optional[MarketDescriptor]:
        """
        Look up a market in the (cached) market list.

        Returns:
            MarketDescriptor, or None when the id is not listed
        """
        for market in await self.list_markets():
            if market.id == market_id:
                return market
        return None

    async def get_market(self, market_id: str) -> MarketDescriptor:
        """
        Look up a market in the (cached) market list.

        Raises:
            MarketNotFound: If the id is not listed
        """
        market = await self.get_market_by_id(market_id)
        if market is None:
            raise MarketNotFound(market_id)
        return market

    async def get_orderbook(self, market_id: str) -> OrderBookSnapshot:
        """
        Fetch the order book for a market.

        Args:
            market_id: Upstream market identifier

        Returns:
            OrderBookSnapshot with bids descending and asks ascending

        Response Format (either naming convention):
            {"bids": [{"price": "24.51", "quantity": "120.5"}], "asks": [...]}
            {"buys": [{"price": "24.51", "quantity": "120.5"}], "sells": [...]}
        """
        suffix = f"/{quote(market_id, safe='')}"
        book = await self._cached(
            f"injective:orderbook:{market_id}",
            lambda: self._fetch("orderbook", parse_orderbook, suffix),
        )
        self.logger.debug(f"Order book {market_id}: {len(book.bids)} bids / {len(book.asks)} asks")
        return book

    async def get_recent_trades(self, market_id: str, limit: int = DEFAULT_TRADES_LIMIT) -> List[Trade]:
        """
        Fetch the most recent trades for a market.

        Args:
            market_id: Upstream market identifier
            limit: Number of trades requested from the upstream

        Returns:
            List of Trade objects sorted by timestamp (oldest first)

        Response Format:
            {"trades": [{"price": "24.5", "quantity": "3", "timestamp": "2024-01-01T12:00:00Z"}]}
            {"trades": [{"price": "24.5", "quantity": "3", "executedAt": 1704110400000}]}
        """
        if limit < 1:
            raise ValueError(f"limit must be at least 1, got {limit}")

        suffix = f"/{quote(market_id, safe='')}"
        trades = await self._cached(
            f"injective:trades:{market_id}:{limit}",
            lambda: self._fetch("trades", parse_trades, suffix, {"limit": limit}),
        )
        self.logger.debug(f"Trades {market_id}: {len(trades)} (limit={limit})")
        return list(trades)

    # ============================================
    # Telemetry
    # ============================================

    def get_call_metrics_summary(self, window_seconds: float = CallMetricsRecorder.DEFAULT_SUMMARY_WINDOW) -> CallMetricsSummary:
        return self.metrics.get_summary(window_seconds)

    def get_recent_failures(self, limit: int = 10) -> List[CallOutcome]:
        return self.metrics.get_recent_failures(limit)

    async def health_check(self) -> bool:
        """
        Check that the market listing is reachable.

        Returns:
            True if markets could be fetched (cached results count), False otherwise
        """
        try:
            await self.list_markets()
            return True
        except MarketDataError as e:
            self.logger.warning(f"Injective health check failed: {e}")
            return False
