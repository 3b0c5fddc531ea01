#!/usr/bin/env python3
"""
Validate the market summary endpoint of the server.

Checks performed:
- HTTP 200 and JSON object
- Envelope fields present (market_id, symbol, timestamp, window, metrics, signals)
- window matches request; timestamp parses as ISO-8601
- Every bundle score is an integer in [0, 100]
- spread_bps and depth_25bps non-negative; imbalance within [-1, 1]
- At least one signal, each with a known severity

Usage examples:
  python scripts/validate_summary.py --market 0x0611780b... --window 1h
  python scripts/validate_summary.py --host 127.0.0.1 --port 8000 --market 0x0611780b... --lookback 24
"""

import argparse
import sys
from typing import Any, Tuple

import httpx
from dateutil import parser as dateparser


REQUIRED_FIELDS = ["market_id", "symbol", "timestamp", "window", "metrics", "signals"]
BUNDLES = ["liquidity", "volatility", "activity", "health"]
SEVERITIES = {"info", "warn", "critical"}


def parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Validate market summary endpoint response.")
    p.add_argument("--host", default="localhost", help="Server host (default: localhost)")
    p.add_argument("--port", type=int, default=8000, help="Server port (default: 8000)")
    p.add_argument("--market", required=True, help="Injective market id")
    p.add_argument("--window", default="1h", help="Window (1m, 5m, 15m, 1h, 4h, 1d, 7d)")
    p.add_argument("--lookback", type=int, default=2, help="Lookback units")
    p.add_argument("--print", dest="print_body", action="store_true", help="Print the response body")
    return p.parse_args()


def is_score(x: Any) -> bool:
    return isinstance(x, int) and not isinstance(x, bool) and 0 <= x <= 100


def validate_summary(body: dict, req_window: str) -> Tuple[bool, str]:
    for f in REQUIRED_FIELDS:
        if f not in body:
            return False, f"missing field: {f}"

    if body["window"] != req_window:
        return False, f"window mismatch: expected {req_window}, got {body['window']}"

    try:
        dateparser.isoparse(body["timestamp"])
    except (TypeError, ValueError):
        return False, f"invalid timestamp: {body['timestamp']}"

    metrics = body["metrics"]
    for bundle in BUNDLES:
        if bundle not in metrics:
            return False, f"missing metric bundle: {bundle}"
        if not is_score(metrics[bundle].get("score")):
            return False, f"{bundle}.score must be an int in [0, 100], got {metrics[bundle].get('score')!r}"

    liquidity = metrics["liquidity"]
    if liquidity["spread_bps"] < 0 or liquidity["depth_25bps"] < 0:
        return False, "spread_bps/depth_25bps must be non-negative"
    if not -1 <= liquidity["imbalance"] <= 1:
        return False, f"imbalance out of range: {liquidity['imbalance']}"

    if not body["signals"]:
        return False, "signals must never be empty"
    for signal in body["signals"]:
        if signal.get("severity") not in SEVERITIES:
            return False, f"unknown severity: {signal.get('severity')!r}"

    return True, ""


def main() -> int:
    args = parse_args()
    url = f"http://{args.host}:{args.port}/api/v1/markets/{args.market}/summary"
    params = {"window": args.window, "lookback": args.lookback}
    print(f"[Info] Requesting: {url} {params}")

    try:
        resp = httpx.get(url, params=params, timeout=30.0)
    except httpx.HTTPError as e:
        print(f"[Error] Request failed: {e}")
        return 2

    if resp.status_code != 200:
        print(f"[Error] HTTP {resp.status_code}: {resp.text[:300]}")
        return 2

    try:
        body = resp.json()
    except ValueError as e:
        print(f"[Error] Invalid JSON: {e}")
        return 2

    if not isinstance(body, dict):
        print("[Error] Response is not an object")
        return 2

    ok, msg = validate_summary(body, args.window)
    if not ok:
        print(f"[Error] Summary invalid: {msg}")
        return 1

    if args.print_body:
        print(body)

    scores = ", ".join(f"{b}={body['metrics'][b]['score']}" for b in BUNDLES)
    print(f"[OK] Validated summary for {body['symbol']} ({args.window}): {scores}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
