"""
Market Metrics Engine

Pure, deterministic transformation of an order book snapshot and a trade
sequence into bounded 0-100 scores plus threshold-driven alert signals.
No I/O and no shared state: the same inputs always give the same outputs.

Scores:
    - Liquidity:  0.35 spread + 0.35 depth + 0.20 turnover + 0.10 balance
    - Volatility: falls as realized volatility trends above its baseline
    - Activity:   0.60 quote volume + 0.40 trade count
    - Health:     0.45 liquidity + 0.35 volatility + 0.20 activity

Usage:
    metrics = compute_market_metrics(book, trades)
    signals = build_signals(metrics)
"""

import math
from typing import List, Optional, Sequence, Tuple

from core.schemas import (
    ActivityMetrics,
    HealthMetrics,
    LiquidityMetrics,
    MarketSummaryMetrics,
    OrderBookSnapshot,
    Signal,
    Trade,
    VolatilityMetrics,
)
from core.utils.math import clamp, ewma, normalize, round_to, std_dev, to_score


BPS = 10_000
DEPTH_BAND_BPS = 25
DEFAULT_EWMA_DECAY = 0.94
BASELINE_FALLBACK_RATIO = 0.8

# Normalization ranges (low, high)
SPREAD_RANGE_BPS = (5, 50)
DEPTH_RANGE = (5_000, 200_000)
TURNOVER_RANGE = (0.05, 1.2)
TREND_RANGE = (1, 3)
VOLUME_RANGE = (10_000, 5_000_000)
TRADE_COUNT_RANGE = (10, 2_000)

# Health weights in percent (liquidity, volatility, activity)
HEALTH_WEIGHTS_PCT = (45, 35, 20)

# Signal thresholds
SPREAD_WIDE_BPS = 25
DEPTH_THIN = 20_000
VOL_TREND_UP = 1.8
ACTIVITY_LOW = 30
HEALTH_CRITICAL = 40


# ============================================
# Order Book Measures
# ============================================

def _top_of_book(book: OrderBookSnapshot) -> Optional[Tuple[float, float, float]]:
    """(best bid, best ask, mid), or None when a side is empty or mid is not positive."""
    if not book.bids or not book.asks:
        return None
    best_bid, best_ask = book.bids[0].price, book.asks[0].price
    mid = (best_bid + best_ask) / 2
    if mid <= 0:
        return None
    return best_bid, best_ask, mid


def _side_depths(book: OrderBookSnapshot, bps: float) -> Tuple[float, float]:
    top = _top_of_book(book)
    if top is None:
        return 0.0, 0.0
    _, _, mid = top
    bid_floor = mid * (1 - bps / BPS)
    ask_ceil = mid * (1 + bps / BPS)
    bid_depth = sum(level.size for level in book.bids if level.price >= bid_floor)
    ask_depth = sum(level.size for level in book.asks if level.price <= ask_ceil)
    return bid_depth, ask_depth


def compute_spread_bps(book: OrderBookSnapshot) -> float:
    """
    Top-of-book spread in basis points of mid.

    Returns 0 when either side is empty. A crossed book (bid above ask)
    also reports 0 rather than a negative spread.

    Example:
        >>> compute_spread_bps(OrderBookSnapshot.from_pairs([[100, 5]], [[101, 5]]))
        99.50248756218906
    """
    top = _top_of_book(book)
    if top is None:
        return 0.0
    best_bid, best_ask, mid = top
    return max(0.0, (best_ask - best_bid) / mid * BPS)


def compute_depth_at_bps(book: OrderBookSnapshot, bps: float) -> float:
    """Resting size within `bps` basis points of mid, both sides combined."""
    bid_depth, ask_depth = _side_depths(book, bps)
    return bid_depth + ask_depth


def compute_orderbook_imbalance(book: OrderBookSnapshot, bps: float = DEPTH_BAND_BPS) -> float:
    """(bid depth - ask depth) / (bid depth + ask depth) within the band; 0 when empty."""
    bid_depth, ask_depth = _side_depths(book, bps)
    total = bid_depth + ask_depth
    if total == 0:
        return 0.0
    return (bid_depth - ask_depth) / total


def compute_liquidity_metrics(book: OrderBookSnapshot, trades: Sequence[Trade]) -> LiquidityMetrics:
    """
    Blend spread, depth, turnover and book balance into a liquidity score.

    Turnover is traded size divided by depth at 25 bps, i.e. how much of the
    visible liquidity traded through in the observed window.
    """
    spread_bps = compute_spread_bps(book)
    depth = compute_depth_at_bps(book, DEPTH_BAND_BPS)
    imbalance = compute_orderbook_imbalance(book, DEPTH_BAND_BPS)
    traded_size = sum(trade.size for trade in trades)
    turnover = traded_size / depth if depth > 0 else 0.0

    spread_score = 1 - normalize(spread_bps, *SPREAD_RANGE_BPS)
    depth_score = normalize(depth, *DEPTH_RANGE)
    turnover_score = normalize(turnover, *TURNOVER_RANGE)
    balance_score = 1 - abs(imbalance)

    blended = 0.35 * spread_score + 0.35 * depth_score + 0.20 * turnover_score + 0.10 * balance_score

    return LiquidityMetrics(
        spread_bps=round_to(spread_bps, 2),
        depth_25bps=round_to(depth, 2),
        turnover=round_to(turnover, 4),
        imbalance=round_to(clamp(imbalance, -1.0, 1.0), 4),
        score=to_score(blended),
    )


# ============================================
# Volatility
# ============================================

def _log_returns(prices: Sequence[float]) -> List[float]:
    returns = []
    for prev, current in zip(prices, prices[1:]):
        if prev <= 0 or current <= 0:
            continue
        returns.append(math.log(current / prev))
    return returns


def compute_realized_volatility(prices: Sequence[float]) -> float:
    """
    Standard deviation of consecutive log returns.

    Pairs involving a non-positive price are skipped; fewer than two usable
    prices (or a flat series) gives exactly 0.
    """
    return std_dev(_log_returns(prices))


def compute_ewma_volatility(prices: Sequence[float], decay: float = DEFAULT_EWMA_DECAY) -> float:
    """Square root of the EWMA of squared log returns, seeded with the first one."""
    squared = [r * r for r in _log_returns(prices)]
    return math.sqrt(ewma(squared, decay))


def compute_volatility_metrics(
    trades: Sequence[Trade],
    baseline: Optional[float] = None,
) -> VolatilityMetrics:
    """
    Realized and EWMA volatility with a trend ratio against a baseline.

    Args:
        trades: Trades in ascending time order
        baseline: Reference volatility (e.g. realized volatility over a longer
            window). Defaults to 0.8 x realized, which reads as trend 1.25.

    Notes:
        A zero baseline (including the flat-price case) yields trend 1.0.
    """
    prices = [trade.price for trade in trades]
    realized = compute_realized_volatility(prices)
    ewma_vol = compute_ewma_volatility(prices)

    if baseline is None:
        baseline = realized * BASELINE_FALLBACK_RATIO
    trend = realized / baseline if baseline > 0 else 1.0

    return VolatilityMetrics(
        realized=round_to(realized, 6),
        ewma=round_to(ewma_vol, 6),
        trend=round_to(trend, 4),
        score=to_score(1 - normalize(trend, *TREND_RANGE)),
    )


# ============================================
# Activity & Health
# ============================================

def compute_activity_metrics(trades: Sequence[Trade]) -> ActivityMetrics:
    volume_quote = sum(trade.price * trade.size for trade in trades)
    count = len(trades)
    avg_trade_size = volume_quote / count if count else 0.0

    blended = 0.6 * normalize(volume_quote, *VOLUME_RANGE) + 0.4 * normalize(count, *TRADE_COUNT_RANGE)

    return ActivityMetrics(
        volume_quote=round_to(volume_quote, 2),
        trades=count,
        avg_trade_size=round_to(avg_trade_size, 2),
        score=to_score(blended),
    )


def compute_health_metrics(
    liquidity: LiquidityMetrics,
    volatility: VolatilityMetrics,
    activity: ActivityMetrics,
) -> HealthMetrics:
    """
    0.45 liquidity + 0.35 volatility + 0.20 activity, rounded half up.

    Weights are applied as integer percentages so exact .5 sums round up.
    """
    liq_w, vol_w, act_w = HEALTH_WEIGHTS_PCT
    weighted_pct = liq_w * liquidity.score + vol_w * volatility.score + act_w * activity.score
    score = (weighted_pct + 50) // 100
    return HealthMetrics(score=int(clamp(score, 0, 100)))


def compute_market_metrics(
    book: OrderBookSnapshot,
    trades: Sequence[Trade],
    baseline: Optional[float] = None,
) -> MarketSummaryMetrics:
    """Compute all four metric bundles for one market."""
    liquidity = compute_liquidity_metrics(book, trades)
    volatility = compute_volatility_metrics(trades, baseline)
    activity = compute_activity_metrics(trades)
    health = compute_health_metrics(liquidity, volatility, activity)
    return MarketSummaryMetrics(
        liquidity=liquidity,
        volatility=volatility,
        activity=activity,
        health=health,
    )


# ============================================
# Signals
# ============================================

def build_signals(metrics: MarketSummaryMetrics) -> List[Signal]:
    """
    Derive alert signals from metric thresholds.

    Rules run in a fixed order and each adds at most one signal. When none
    fires, a single info-level HEALTH_OK signal is returned, so the result is
    never empty.
    """
    signals: List[Signal] = []

    if metrics.liquidity.spread_bps > SPREAD_WIDE_BPS:
        signals.append(Signal(code="LIQ_SPREAD_WIDE", severity="warn", message="Spread above 25 bps."))

    if metrics.liquidity.depth_25bps < DEPTH_THIN:
        signals.append(Signal(code="LIQ_DEPTH_THIN", severity="warn", message="Depth inside 25 bps is thin."))

    if metrics.volatility.trend > VOL_TREND_UP:
        signals.append(Signal(code="VOL_TREND_UP", severity="warn", message="Volatility trending up vs baseline."))

    if metrics.activity.score < ACTIVITY_LOW:
        signals.append(Signal(code="ACTIVITY_LOW", severity="warn", message="Activity score below 30."))

    if metrics.health.score < HEALTH_CRITICAL:
        signals.append(Signal(
            code="HEALTH_DETERIORATING", severity="critical", message="Market health score below 40."
        ))

    if not signals:
        signals.append(Signal(code="HEALTH_OK", severity="info", message="No material degradation detected."))

    return signals
