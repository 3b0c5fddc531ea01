"""
Unit Tests for Injective Payload Parsers

These tests verify that the parsers:
- Accept every observed payload shape (wrappers, alternate field names, pairs)
- Normalize symbols, ids, numbers and timestamps
- Reject incomplete or malformed payloads with DataFormatError

Run with:
    pytest tests/unit/test_parsers.py -v
"""

from datetime import datetime, timezone

import pytest

from core.exceptions import DataFormatError, UpstreamError
from core.schemas import MarketDescriptor, OrderBookSnapshot, Trade
from exchanges.injective.parsers import (
    parse_market,
    parse_markets,
    parse_orderbook,
    parse_trade,
    parse_trades,
)


INJ_USDT = {
    "marketId": "0x0611780ba69656949525013d947713300f56c37b6175e02f26bffa495c3208fe",
    "ticker": "INJ/USDT",
    "baseDenom": "inj",
    "quoteDenom": "peggy0xdAC17F958D2ee523a2206206994597C13D831ec7",
    "baseTokenMeta": {"symbol": "INJ"},
    "quoteTokenMeta": {"symbol": "USDT"},
}


# ============================================
# Markets
# ============================================

class TestParseMarkets:
    """Tests for market listing normalization"""

    def test_parse_market_uses_token_metadata(self):
        market = parse_market(INJ_USDT)
        assert isinstance(market, MarketDescriptor)
        assert market.id == INJ_USDT["marketId"]
        assert market.symbol == "INJ/USDT"
        assert market.base == "INJ"
        assert market.quote == "USDT"

    def test_parse_market_falls_back_to_denom_segment(self):
        entry = {"marketId": "0x1", "baseDenom": "factory/inj1abc/WETH", "quoteDenom": "usdt"}
        market = parse_market(entry)
        assert market.symbol == "WETH/usdt"

    def test_parse_market_derives_id_from_ticker(self):
        entry = dict(INJ_USDT)
        del entry["marketId"]
        assert parse_market(entry).id == "inj-usdt"

    def test_parse_market_without_id_or_ticker_fails(self):
        with pytest.raises(DataFormatError):
            parse_market({"baseDenom": "inj", "quoteDenom": "usdt"})

    def test_parse_market_without_denoms_fails(self):
        with pytest.raises(DataFormatError):
            parse_market({"marketId": "0x1"})

    def test_parse_markets_accepts_wrapped_list(self):
        markets = parse_markets({"markets": [INJ_USDT, dict(INJ_USDT, marketId="0x2")]})
        assert [m.id for m in markets] == [INJ_USDT["marketId"], "0x2"]

    def test_parse_markets_accepts_bare_list(self):
        assert len(parse_markets([INJ_USDT])) == 1

    def test_parse_markets_accepts_single_market(self):
        assert parse_markets({"market": INJ_USDT})[0].symbol == "INJ/USDT"

    def test_parse_markets_rejects_unknown_shape(self):
        with pytest.raises(DataFormatError):
            parse_markets({"data": []})

    def test_parse_markets_rejects_non_list_markets(self):
        with pytest.raises(DataFormatError):
            parse_markets({"markets": "oops"})


# ============================================
# Order Book
# ============================================

class TestParseOrderbook:
    """Tests for order book normalization"""

    def test_bids_and_asks_with_mapping_levels(self):
        book = parse_orderbook({
            "bids": [{"price": "24.50", "quantity": "10"}],
            "asks": [{"price": "24.60", "quantity": "5"}],
        })
        assert isinstance(book, OrderBookSnapshot)
        assert book.best_bid == 24.5
        assert book.best_ask == 24.6
        assert book.asks[0].size == 5.0

    def test_buys_and_sells_with_pair_levels_are_sorted(self):
        book = parse_orderbook({
            "buys": [["99", "1"], ["100", "2"], ["98", "3"]],
            "sells": [["103", "1"], ["101", "2"]],
        })
        assert [lvl.price for lvl in book.bids] == [100.0, 99.0, 98.0]
        assert [lvl.price for lvl in book.asks] == [101.0, 103.0]

    def test_orderbook_wrapper_is_unwrapped(self):
        book = parse_orderbook({"orderbook": {"buys": [["1", "1"]], "sells": []}})
        assert book.best_bid == 1.0
        assert book.asks == ()

    def test_size_alias_accepted(self):
        book = parse_orderbook({"bids": [{"price": "1", "size": "7"}], "asks": []})
        assert book.bids[0].size == 7.0

    def test_empty_book(self):
        book = parse_orderbook({})
        assert book.bids == () and book.asks == ()

    def test_non_numeric_price_fails(self):
        with pytest.raises(DataFormatError):
            parse_orderbook({"bids": [{"price": "abc", "quantity": "1"}], "asks": []})

    def test_negative_size_fails(self):
        with pytest.raises(DataFormatError):
            parse_orderbook({"bids": [["1", "-2"]], "asks": []})

    def test_non_finite_price_fails(self):
        with pytest.raises(DataFormatError):
            parse_orderbook({"bids": [["nan", "1"]], "asks": []})

    def test_sub_1e8_prices_keep_full_precision(self):
        book = parse_orderbook({
            "buys": [{"price": "0.000000000024", "quantity": "5"}],
            "sells": [{"price": "0.000000000025", "quantity": "3"}],
        })
        assert book.bids[0].price == 2.4e-11
        assert book.asks[0].price == 2.5e-11
        assert book.best_bid < book.best_ask

    def test_non_object_payload_fails(self):
        with pytest.raises(DataFormatError):
            parse_orderbook(["not", "a", "book"])

    def test_data_format_error_is_upstream_error(self):
        with pytest.raises(UpstreamError):
            parse_orderbook({"bids": ["garbage"], "asks": []})


# ============================================
# Trades
# ============================================

class TestParseTrades:
    """Tests for trade normalization"""

    def test_iso_timestamp(self):
        trade = parse_trade({"price": "24.5", "quantity": "3", "timestamp": "2024-01-01T12:00:00Z"})
        assert isinstance(trade, Trade)
        assert trade.price == 24.5
        assert trade.size == 3.0
        assert trade.timestamp == datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def test_executed_at_millis(self):
        trade = parse_trade({"price": "1", "quantity": "1", "executedAt": 1704110400000})
        assert trade.timestamp == datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def test_numeric_string_timestamp(self):
        trade = parse_trade({"price": "1", "quantity": "1", "timestamp": "1704110400000"})
        assert trade.timestamp.year == 2024

    def test_missing_timestamp_fails(self):
        with pytest.raises(DataFormatError):
            parse_trade({"price": "1", "quantity": "1"})

    def test_unparseable_timestamp_fails(self):
        with pytest.raises(DataFormatError):
            parse_trade({"price": "1", "quantity": "1", "timestamp": "yesterday-ish"})

    def test_sub_1e8_trade_price_accepted(self):
        trades = parse_trades({"trades": [
            {"price": "0.000000000024", "quantity": "1e18", "executedAt": 1704110400000},
        ]})
        assert trades[0].price == 2.4e-11
        assert trades[0].size == 1e18

    def test_zero_price_fails(self):
        with pytest.raises(DataFormatError):
            parse_trade({"price": "0", "quantity": "1", "timestamp": "2024-01-01T00:00:00Z"})

    def test_missing_quantity_fails(self):
        with pytest.raises(DataFormatError):
            parse_trade({"price": "1", "timestamp": "2024-01-01T00:00:00Z"})

    def test_parse_trades_sorted_ascending(self):
        trades = parse_trades({"trades": [
            {"price": "2", "quantity": "1", "timestamp": "2024-01-01T12:00:02Z"},
            {"price": "1", "quantity": "1", "timestamp": "2024-01-01T12:00:00Z"},
            {"price": "3", "quantity": "1", "timestamp": "2024-01-01T12:00:01Z"},
        ]})
        assert [t.price for t in trades] == [1.0, 3.0, 2.0]

    def test_parse_trades_missing_key_is_empty(self):
        assert parse_trades({}) == []

    def test_parse_trades_bare_list(self):
        trades = parse_trades([{"price": "1", "quantity": "1", "timestamp": 1704110400}])
        assert len(trades) == 1

    def test_notional(self):
        trade = parse_trade({"price": "2.5", "quantity": "4", "timestamp": "2024-01-01T00:00:00Z"})
        assert trade.notional == 10.0
