#!/usr/bin/env python3
"""
Pre-compute market summaries for every listed market and report the scores.

Useful as a smoke test of the whole pipeline against the live upstream.

Usage examples:
  python scripts/warm_cache.py
  python scripts/warm_cache.py --max 10 --log-level DEBUG
"""

import argparse
import asyncio
import sys

from core.config import settings
from core.context import MarketIntelContext
from core.exceptions import MarketDataError
from core.logging import set_log_level


def parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Warm the market summary cache.")
    p.add_argument("--max", type=int, default=0, help="Only warm the first N markets (0 = all)")
    p.add_argument("--log-level", default=None, help="Override LOG_LEVEL for this run")
    return p.parse_args()


async def run(args: argparse.Namespace) -> int:
    async with MarketIntelContext(settings) as ctx:
        try:
            markets = await ctx.client.list_markets()
        except MarketDataError as e:
            print(f"[Error] {type(e).__name__}: {e}")
            return 2

        if args.max > 0:
            markets = markets[: args.max]

        warmed = await ctx.markets.warm(markets)
        print(f"[OK] Warmed {warmed}/{len(markets)} markets")
        return 0 if warmed == len(markets) else 1


def main() -> int:
    args = parse_args()
    if args.log_level:
        set_log_level(args.log_level)
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
