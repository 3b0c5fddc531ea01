"""
Market Intelligence Service

Consumer-side composition of the acquisition client and the metrics engine.
Builds per-market summaries (cached for a short TTL), single-bundle views,
human-readable insights, and a ranking of markets by recent activity.

Failures from the client are never swallowed here: single-market operations
propagate the typed MarketDataError, and the activity ranking reports each
market's failure separately from the successfully scored markets.
"""

import asyncio
from typing import Any, List, Optional

from core.cache import ResponseCache
from core.exceptions import MarketDataError
from core.logging import get_logger
from core.schemas import (
    ActiveMarket,
    ActiveMarketsResult,
    MarketDescriptor,
    MarketEnvelope,
    MarketFailure,
)
from core.utils.time import current_utc_datetime
from exchanges.injective.api_client import InjectiveAPIClient
from services.metrics_engine import build_signals, compute_activity_metrics, compute_market_metrics


VALID_WINDOWS = ("1m", "5m", "15m", "1h", "4h", "1d", "7d")
DEFAULT_WINDOW = "1h"
DEFAULT_LOOKBACK = 2
DEFAULT_LIMIT = 10

MIN_SUMMARY_TRADES = 60
MAX_SUMMARY_TRADES = 2_000
ACTIVITY_TRADES_LIMIT = 120

METRIC_BUNDLES = ("liquidity", "volatility", "activity", "health")


# ============================================
# Query Parameter Parsing
# ============================================

def parse_window(value: Any) -> str:
    """Return value when it is a supported window, else DEFAULT_WINDOW."""
    if isinstance(value, str) and value in VALID_WINDOWS:
        return value
    return DEFAULT_WINDOW


def parse_positive_int(value: Any, default: int) -> int:
    """
    Parse a positive integer query value, falling back to default.

    Example:
        >>> parse_positive_int("24", 2), parse_positive_int("-1", 2), parse_positive_int("abc", 2)
        (24, 2, 2)
    """
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return default
    return parsed if parsed > 0 else default


def trade_limit_for(lookback: int) -> int:
    """Trades to fetch for a summary: 60 per lookback unit, within [60, 2000]."""
    return min(MAX_SUMMARY_TRADES, max(MIN_SUMMARY_TRADES, lookback * 60))


class MarketService:
    """
    Summaries and rankings over an InjectiveAPIClient.

    Attributes:
        client: Upstream acquisition client
        summary_cache: Cache of computed summary envelopes
    """

    def __init__(self, client: InjectiveAPIClient, summary_cache: ResponseCache):
        self.client = client
        self.summary_cache = summary_cache
        self.logger = get_logger(__name__)

    async def list_markets(self) -> List[MarketDescriptor]:
        return await self.client.list_markets()

    async def build_summary(
        self,
        market_id: str,
        window: str = DEFAULT_WINDOW,
        lookback: int = DEFAULT_LOOKBACK,
    ) -> MarketEnvelope:
        """
        Compute all metric bundles and signals for one market.

        Raises:
            MarketNotFound: If the market is not listed
            MarketDataError: Any other acquisition failure
        """
        cache_key = f"summary:{market_id}:{window}:{lookback}"
        cached = self.summary_cache.get(cache_key)
        if cached is not None:
            return cached

        market = await self.client.get_market(market_id)
        book, trades = await asyncio.gather(
            self.client.get_orderbook(market.id),
            self.client.get_recent_trades(market.id, trade_limit_for(lookback)),
        )

        metrics = compute_market_metrics(book, trades)
        envelope = MarketEnvelope(
            market_id=market.id,
            symbol=market.symbol,
            timestamp=current_utc_datetime(),
            window=window,
            metrics=metrics,
            signals=build_signals(metrics),
        )

        self.logger.info(
            f"Summary {market.symbol}: health={metrics.health.score} "
            f"liquidity={metrics.liquidity.score} volatility={metrics.volatility.score} "
            f"activity={metrics.activity.score}"
        )
        self.summary_cache.set(cache_key, envelope)
        return envelope

    async def get_metric(
        self,
        market_id: str,
        bundle: str,
        window: str = DEFAULT_WINDOW,
        lookback: int = DEFAULT_LOOKBACK,
    ) -> MarketEnvelope:
        """Summary envelope narrowed to one metric bundle (e.g. "liquidity")."""
        if bundle not in METRIC_BUNDLES:
            raise ValueError(f"Unknown metric bundle '{bundle}'. Must be one of: {', '.join(METRIC_BUNDLES)}")
        summary = await self.build_summary(market_id, window, lookback)
        return summary.model_copy(update={"metrics": getattr(summary.metrics, bundle)})

    async def get_insights(
        self,
        market_id: str,
        window: str = DEFAULT_WINDOW,
        lookback: int = DEFAULT_LOOKBACK,
    ) -> MarketEnvelope:
        """Summary envelope whose metrics are the signals rendered as text lines."""
        summary = await self.build_summary(market_id, window, lookback)
        insights = [f"{signal.severity.upper()}: {signal.message}" for signal in summary.signals]
        return summary.model_copy(update={"metrics": {"insights": insights}})

    async def rank_active_markets(
        self,
        window: str = DEFAULT_WINDOW,
        limit: int = DEFAULT_LIMIT,
    ) -> ActiveMarketsResult:
        """
        Rank every listed market by activity score, highest first.

        Recent trades are fetched for all markets concurrently. A market whose
        fetch fails is left out of the ranking and reported under `failures`;
        it never aborts the other markets.

        Returns:
            ActiveMarketsResult with the top `limit` items; `count` is the number
            of markets that were scored
        """
        markets = await self.client.list_markets()
        results = await asyncio.gather(
            *(self.client.get_recent_trades(m.id, ACTIVITY_TRADES_LIMIT) for m in markets),
            return_exceptions=True,
        )

        ranked: List[ActiveMarket] = []
        failures: List[MarketFailure] = []
        for market, result in zip(markets, results):
            if isinstance(result, MarketDataError):
                failures.append(MarketFailure(
                    market_id=market.id,
                    symbol=market.symbol,
                    category=type(result).__name__,
                    error=str(result),
                ))
                continue
            if isinstance(result, BaseException):
                raise result
            ranked.append(ActiveMarket(
                market_id=market.id,
                symbol=market.symbol,
                activity_score=compute_activity_metrics(result).score,
            ))

        if failures:
            self.logger.warning(f"Activity ranking: {len(failures)}/{len(markets)} markets failed")

        ranked.sort(key=lambda item: item.activity_score, reverse=True)
        return ActiveMarketsResult(
            timestamp=current_utc_datetime(),
            window=window,
            items=ranked[:limit],
            count=len(ranked),
            failures=failures,
        )

    async def warm(self, markets: Optional[List[MarketDescriptor]] = None) -> int:
        """
        Pre-compute summaries for markets (all listed markets by default).

        Returns:
            Number of markets warmed successfully
        """
        markets = markets if markets is not None else await self.client.list_markets()
        warmed = 0
        for market in markets:
            try:
                summary = await self.build_summary(market.id)
            except MarketDataError as e:
                self.logger.error(f"Warm cache failed for {market.symbol}: {e}")
                continue
            warmed += 1
            self.logger.info(
                f"Warmed {market.symbol}: health={summary.metrics.health.score}, "
                f"liquidity={summary.metrics.liquidity.score}, activity={summary.metrics.activity.score}"
            )
        return warmed
