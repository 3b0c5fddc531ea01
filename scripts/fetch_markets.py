#!/usr/bin/env python3
"""
List Injective markets straight from the upstream API (no server needed).

Prints one line per market, optionally with top-of-book and recent trade count,
then the upstream call telemetry for the run.

Usage examples:
  python scripts/fetch_markets.py
  python scripts/fetch_markets.py --details --max 5
"""

import argparse
import asyncio
import sys

from core.config import settings
from core.context import MarketIntelContext
from core.exceptions import MarketDataError


def parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="List Injective markets.")
    p.add_argument("--details", action="store_true", help="Fetch order book and trades per market")
    p.add_argument("--max", type=int, default=0, help="Only show the first N markets (0 = all)")
    return p.parse_args()


async def run(args: argparse.Namespace) -> int:
    async with MarketIntelContext(settings) as ctx:
        try:
            markets = await ctx.client.list_markets()
        except MarketDataError as e:
            print(f"[Error] {type(e).__name__}: {e}")
            return 2

        shown = markets[: args.max] if args.max > 0 else markets
        print(f"[Info] {len(markets)} markets listed by {ctx.client.base_url}")

        for market in shown:
            line = f"{market.symbol:<20} {market.id}"
            if args.details:
                try:
                    book = await ctx.client.get_orderbook(market.id)
                    trades = await ctx.client.get_recent_trades(market.id)
                except MarketDataError as e:
                    line += f"  [{type(e).__name__}: {e}]"
                else:
                    line += f"  bid={book.best_bid} ask={book.best_ask} trades={len(trades)}"
            print(line)

        summary = ctx.client.get_call_metrics_summary()
        print(
            f"[Info] Upstream calls: {summary.total_calls} "
            f"(success rate {summary.success_rate:.0%}, avg {summary.average_response_time_ms:.0f} ms)"
        )
    return 0


def main() -> int:
    return asyncio.run(run(parse_args()))


if __name__ == "__main__":
    sys.exit(main())
