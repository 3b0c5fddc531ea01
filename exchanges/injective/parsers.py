"""
Injective Payload Parsers

Validate and normalize raw Injective REST payloads into our schemas.

The upstream is loose about shapes, so each parser accepts every observed
variant and rejects anything incomplete with DataFormatError instead of
passing partial values on:

Markets:
    {"markets": [...]}, {"market": {...}} or a bare list. Each entry:
    {
      "marketId": "0x...",
      "ticker": "INJ/USDT",
      "baseDenom": "inj",
      "quoteDenom": "peggy0xdAC17F958D2ee523a2206206994597C13D831ec7",
      "baseTokenMeta": {"symbol": "INJ"},      # optional
      "quoteTokenMeta": {"symbol": "USDT"}     # optional
    }

Order book (optionally wrapped in {"orderbook": {...}}):
    {"bids": [...], "asks": [...]}  or  {"buys": [...], "sells": [...]}
    levels as {"price": "1.5", "quantity": "10"} or ["1.5", "10"]

Trades:
    {"trades": [{"price": "1.5", "quantity": "2", "timestamp": "2024-...Z"}]}
    with "executedAt": 1704110400000 accepted in place of "timestamp"
"""

import math
from typing import Any, Iterable, List, Mapping, Optional, Tuple

from core.exceptions import DataFormatError
from core.schemas import MarketDescriptor, OrderBookSnapshot, PriceLevel, Trade
from core.utils.time import parse_timestamp


# ============================================
# Field Helpers
# ============================================

def _to_number(value: Any, field: str) -> float:
    """
    Convert an upstream numeric field (usually a decimal string) to float.

    Values are kept at full precision: Injective spot prices are quoted in
    chain units and are often far below 1e-8.

    Raises:
        DataFormatError: If missing, non-numeric, non-finite or negative
    """
    if value is None or isinstance(value, bool):
        raise DataFormatError(f"Missing or invalid numeric field '{field}': {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise DataFormatError(f"Non-numeric value for '{field}': {value!r}")
    if not math.isfinite(number) or number < 0:
        raise DataFormatError(f"Out-of-range value for '{field}': {value!r}")
    return number


def _as_list(value: Any, field: str) -> List[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise DataFormatError(f"Expected a list for '{field}', got {type(value).__name__}")
    return value


def _require_mapping(payload: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(payload, Mapping):
        raise DataFormatError(f"Expected a JSON object for {what}, got {type(payload).__name__}")
    return payload


# ============================================
# Markets
# ============================================

def _asset_symbol(meta: Any, denom: Optional[str], field: str) -> str:
    """Prefer token metadata symbol; fall back to the last path segment of the denom."""
    if isinstance(meta, Mapping):
        symbol = meta.get("symbol")
        if isinstance(symbol, str) and symbol.strip():
            return symbol.strip()
    if isinstance(denom, str) and denom.strip():
        return denom.strip().split("/")[-1] or denom.strip()
    raise DataFormatError(f"Market entry has no usable '{field}'")


def parse_market(entry: Any) -> MarketDescriptor:
    """
    Normalize one upstream market entry.

    Example:
        >>> parse_market({"marketId": "0x1", "ticker": "ATOM/USDT",
        ...               "baseDenom": "ibc/C4CFF46FD6DE35CA4CF4CE031E643C8FDC9BA4B99AE598E9B0ED98FE3A2319F9/ATOM",
        ...               "quoteDenom": "peggy0xdAC1/USDT"}).symbol
        'ATOM/USDT'
    """
    entry = _require_mapping(entry, "market entry")

    base = _asset_symbol(entry.get("baseTokenMeta"), entry.get("baseDenom"), "baseDenom")
    quote = _asset_symbol(entry.get("quoteTokenMeta"), entry.get("quoteDenom"), "quoteDenom")

    market_id = entry.get("marketId")
    if not market_id:
        ticker = entry.get("ticker")
        if not isinstance(ticker, str) or not ticker:
            raise DataFormatError("Market entry has neither 'marketId' nor 'ticker'")
        market_id = ticker.lower().replace("/", "-")

    return MarketDescriptor(id=str(market_id), symbol=f"{base}/{quote}", base=base, quote=quote)


def parse_markets(payload: Any) -> List[MarketDescriptor]:
    """Normalize a market listing payload into MarketDescriptors (upstream order kept)."""
    if isinstance(payload, list):
        entries = payload
    else:
        payload = _require_mapping(payload, "market listing")
        if "markets" in payload:
            entries = _as_list(payload["markets"], "markets")
        elif "market" in payload:
            entries = [payload["market"]]
        else:
            raise DataFormatError("Market listing has neither 'markets' nor 'market'")
    return [parse_market(entry) for entry in entries]


# ============================================
# Order Book
# ============================================

def _parse_level(level: Any, side: str) -> Tuple[float, float]:
    if isinstance(level, Mapping):
        price, size = level.get("price"), level.get("quantity", level.get("size"))
    elif isinstance(level, (list, tuple)) and len(level) >= 2:
        price, size = level[0], level[1]
    else:
        raise DataFormatError(f"Unrecognized {side} level: {level!r}")
    return _to_number(price, f"{side}.price"), _to_number(size, f"{side}.quantity")


def _pick_side(payload: Mapping[str, Any], primary: str, alternate: str) -> Iterable[Any]:
    if payload.get(primary) is not None:
        return _as_list(payload[primary], primary)
    return _as_list(payload.get(alternate), alternate)


def parse_orderbook(payload: Any) -> OrderBookSnapshot:
    """
    Normalize an order book payload; bids sorted descending, asks ascending.

    Example:
        >>> book = parse_orderbook({"buys": [{"price": "99", "quantity": "1"},
        ...                                  {"price": "100", "quantity": "2"}],
        ...                         "sells": [["101", "3"]]})
        >>> [lvl.price for lvl in book.bids]
        [100.0, 99.0]
    """
    payload = _require_mapping(payload, "order book")
    if isinstance(payload.get("orderbook"), Mapping):
        payload = payload["orderbook"]

    bids = [_parse_level(level, "bids") for level in _pick_side(payload, "bids", "buys")]
    asks = [_parse_level(level, "asks") for level in _pick_side(payload, "asks", "sells")]

    bids.sort(key=lambda lvl: lvl[0], reverse=True)
    asks.sort(key=lambda lvl: lvl[0])

    return OrderBookSnapshot(
        bids=tuple(PriceLevel(price=p, size=s) for p, s in bids),
        asks=tuple(PriceLevel(price=p, size=s) for p, s in asks),
    )


# ============================================
# Trades
# ============================================

def parse_trade(entry: Any) -> Trade:
    entry = _require_mapping(entry, "trade")

    price = _to_number(entry.get("price"), "price")
    size = _to_number(entry.get("quantity", entry.get("size")), "quantity")
    if price <= 0 or size <= 0:
        raise DataFormatError(f"Trade price and quantity must be positive: {entry!r}")

    raw_ts = entry.get("timestamp")
    if raw_ts in (None, ""):
        raw_ts = entry.get("executedAt")
    if raw_ts in (None, ""):
        raise DataFormatError("Trade has neither 'timestamp' nor 'executedAt'")
    try:
        timestamp = parse_timestamp(raw_ts)
    except ValueError as e:
        raise DataFormatError(f"Invalid trade timestamp {raw_ts!r}: {e}")

    return Trade(price=price, size=size, timestamp=timestamp)


def parse_trades(payload: Any) -> List[Trade]:
    """Normalize a trades payload, sorted ascending by timestamp."""
    if isinstance(payload, list):
        entries = payload
    else:
        payload = _require_mapping(payload, "trades")
        entries = _as_list(payload.get("trades"), "trades")
    trades = [parse_trade(entry) for entry in entries]
    trades.sort(key=lambda t: t.timestamp)
    return trades
