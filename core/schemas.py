"""
Normalized Data Schemas

This module defines Pydantic models for all market data types.

Key Principle:
    However the upstream shapes its payloads (alternate field names, ISO or
    epoch timestamps, levels as mappings or pairs), everything is normalized
    into these schemas before it reaches the metrics engine or a consumer.

Models:
    - MarketDescriptor: Tradable market (id, BASE/QUOTE symbol)
    - PriceLevel / OrderBookSnapshot: Sorted order book sides
    - Trade: Single executed trade
    - LiquidityMetrics / VolatilityMetrics / ActivityMetrics / HealthMetrics
    - MarketSummaryMetrics: The four metric bundles together
    - Signal: Threshold-triggered alert
    - CallOutcome / EndpointStats / CallMetricsSummary: Upstream call telemetry
    - MarketEnvelope / ActiveMarket / ActiveMarketsResult: Consumer responses

Market data models are frozen: they are produced once per fetch and never mutated.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ============================================
# Markets
# ============================================

class MarketDescriptor(BaseModel):
    """
    Normalized description of a tradable market.

    Attributes:
        id: Upstream market identifier (e.g. "0x0611780b...")
        symbol: Trading pair as BASE/QUOTE (e.g. "INJ/USDT")
        base: Base asset code
        quote: Quote asset code

    Example:
        >>> MarketDescriptor(id="0xabc", symbol="INJ/USDT", base="INJ", quote="USDT")
    """

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "id": "0x0611780ba69656949525013d947713300f56c37b6175e02f26bffa495c3208fe",
                "symbol": "INJ/USDT",
                "base": "INJ",
                "quote": "USDT"
            }
        }
    )

    id: str = Field(..., min_length=1, description="Upstream market identifier")
    symbol: str = Field(..., description="Trading pair as BASE/QUOTE")
    base: str = Field(..., min_length=1, description="Base asset code")
    quote: str = Field(..., min_length=1, description="Quote asset code")


# ============================================
# Order Book
# ============================================

class PriceLevel(BaseModel):
    """A single (price, size) level of an order book side."""

    model_config = ConfigDict(frozen=True)

    price: float = Field(..., ge=0, allow_inf_nan=False, description="Level price")
    size: float = Field(..., ge=0, allow_inf_nan=False, description="Resting size at this price")


class OrderBookSnapshot(BaseModel):
    """
    Order book snapshot with bids sorted descending and asks ascending by price.

    Best bid <= best ask is expected but not enforced; upstream data may be crossed
    and the metrics engine degrades gracefully when it is.
    """

    model_config = ConfigDict(frozen=True)

    bids: Tuple[PriceLevel, ...] = Field(default=(), description="Bid levels, best (highest) first")
    asks: Tuple[PriceLevel, ...] = Field(default=(), description="Ask levels, best (lowest) first")

    @field_validator("bids")
    @classmethod
    def validate_bid_order(cls, v):
        if any(v[i].price < v[i + 1].price for i in range(len(v) - 1)):
            raise ValueError("bids must be sorted by descending price")
        return v

    @field_validator("asks")
    @classmethod
    def validate_ask_order(cls, v):
        if any(v[i].price > v[i + 1].price for i in range(len(v) - 1)):
            raise ValueError("asks must be sorted by ascending price")
        return v

    @classmethod
    def from_pairs(cls, bids, asks) -> "OrderBookSnapshot":
        """
        Build a snapshot from raw (price, size) pairs, sorting each side.

        Example:
            >>> book = OrderBookSnapshot.from_pairs([[100, 5]], [[101, 5]])
            >>> book.best_bid, book.best_ask
            (100.0, 101.0)
        """
        bid_levels = sorted(
            (PriceLevel(price=p, size=s) for p, s in bids), key=lambda lvl: lvl.price, reverse=True
        )
        ask_levels = sorted(
            (PriceLevel(price=p, size=s) for p, s in asks), key=lambda lvl: lvl.price
        )
        return cls(bids=tuple(bid_levels), asks=tuple(ask_levels))

    @property
    def best_bid(self) -> Optional[float]:
        return self.bids[0].price if self.bids else None

    @property
    def best_ask(self) -> Optional[float]:
        return self.asks[0].price if self.asks else None


# ============================================
# Trades
# ============================================

class Trade(BaseModel):
    """
    A single executed trade.

    Attributes:
        price: Execution price (> 0)
        size: Executed quantity in base asset (> 0)
        timestamp: Execution time in UTC
    """

    model_config = ConfigDict(frozen=True)

    price: float = Field(..., gt=0, allow_inf_nan=False, description="Execution price")
    size: float = Field(..., gt=0, allow_inf_nan=False, description="Executed quantity")
    timestamp: datetime = Field(..., description="Execution time in UTC")

    @property
    def notional(self) -> float:
        """Quote-denominated value of the trade (price x size)."""
        return self.price * self.size


# ============================================
# Metric Bundles
# ============================================

class LiquidityMetrics(BaseModel):
    """Spread, depth, turnover and imbalance with a 0-100 liquidity score."""

    model_config = ConfigDict(frozen=True)

    spread_bps: float = Field(..., ge=0, description="Top-of-book spread in basis points")
    depth_25bps: float = Field(..., ge=0, description="Resting size within 25 bps of mid, both sides")
    turnover: float = Field(..., ge=0, description="Traded size divided by depth at 25 bps")
    imbalance: float = Field(..., ge=-1, le=1, description="(bid depth - ask depth) / total depth")
    score: int = Field(..., ge=0, le=100)


class VolatilityMetrics(BaseModel):
    """Realized and EWMA volatility with trend vs baseline and a 0-100 score."""

    model_config = ConfigDict(frozen=True)

    realized: float = Field(..., ge=0, description="Std-dev of consecutive log returns")
    ewma: float = Field(..., ge=0, description="EWMA volatility of log returns")
    trend: float = Field(..., ge=0, description="Realized volatility relative to baseline")
    score: int = Field(..., ge=0, le=100)


class ActivityMetrics(BaseModel):
    """Traded volume and trade count with a 0-100 activity score."""

    model_config = ConfigDict(frozen=True)

    volume_quote: float = Field(..., ge=0, description="Quote-denominated volume (sum of price x size)")
    trades: int = Field(..., ge=0, description="Number of trades")
    avg_trade_size: float = Field(..., ge=0, description="Average quote value per trade")
    score: int = Field(..., ge=0, le=100)


class HealthMetrics(BaseModel):
    """Weighted composite of the liquidity, volatility and activity scores."""

    model_config = ConfigDict(frozen=True)

    score: int = Field(..., ge=0, le=100)


class MarketSummaryMetrics(BaseModel):
    """All four metric bundles for one market."""

    model_config = ConfigDict(frozen=True)

    liquidity: LiquidityMetrics
    volatility: VolatilityMetrics
    activity: ActivityMetrics
    health: HealthMetrics


SignalSeverity = Literal["info", "warn", "critical"]


class Signal(BaseModel):
    """
    Threshold-triggered alert derived from metric values.

    Example:
        >>> Signal(code="LIQ_SPREAD_WIDE", severity="warn", message="Spread above 25 bps.")
    """

    model_config = ConfigDict(frozen=True)

    code: str = Field(..., description="Stable machine-readable signal code")
    severity: SignalSeverity = Field(..., description="info, warn or critical")
    message: str = Field(..., description="Human-readable description")


# ============================================
# Upstream Call Telemetry
# ============================================

class CallOutcome(BaseModel):
    """
    Outcome of one outbound attempt against a single endpoint variant.

    Attributes:
        endpoint: Logical endpoint label (markets, orderbook, trades)
        method: HTTP method
        success: True for a 2xx response
        status_code: HTTP status, None when no response arrived (timeout, transport error)
        response_time_ms: Latency from just before the call to completion
        timestamp: When the attempt completed (UTC)
        error: Error text for failed attempts
        path: Concrete path variant that was requested
    """

    model_config = ConfigDict(frozen=True)

    endpoint: str
    method: str = "GET"
    success: bool
    status_code: Optional[int] = None
    response_time_ms: float = Field(..., ge=0)
    timestamp: datetime
    error: Optional[str] = None
    path: Optional[str] = None


class EndpointStats(BaseModel):
    """Per-endpoint aggregation inside a CallMetricsSummary."""

    calls: int = 0
    successes: int = 0
    failures: int = 0
    avg_response_time_ms: float = 0.0


class CallMetricsSummary(BaseModel):
    """Windowed aggregation of recorded call outcomes."""

    window_seconds: float
    total_calls: int
    success_count: int
    failure_count: int
    success_rate: float = Field(..., ge=0, le=1)
    average_response_time_ms: float
    endpoint_stats: Dict[str, EndpointStats] = Field(default_factory=dict)


# ============================================
# Consumer Envelopes
# ============================================

Window = Literal["1m", "5m", "15m", "1h", "4h", "1d", "7d"]


class MarketEnvelope(BaseModel):
    """
    Response envelope wrapping a metrics payload for one market.

    The `metrics` field holds the full summary, a single bundle, or an
    insights mapping depending on the endpoint.
    """

    market_id: str
    symbol: str
    timestamp: datetime
    window: Window
    metrics: Any
    signals: List[Signal]


class ActiveMarket(BaseModel):
    """One entry of the activity ranking."""

    market_id: str
    symbol: str
    activity_score: int = Field(..., ge=0, le=100)


class MarketFailure(BaseModel):
    """A market that could not be scored during a fan-out, with its error category."""

    market_id: str
    symbol: str
    category: str
    error: str


class ActiveMarketsResult(BaseModel):
    """Markets ranked by activity, with per-market failures kept apart."""

    timestamp: datetime
    window: Window
    items: List[ActiveMarket]
    count: int
    failures: List[MarketFailure] = Field(default_factory=list)
