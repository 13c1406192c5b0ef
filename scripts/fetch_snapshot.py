#!/usr/bin/env python3
"""
Fetch one OKX order book snapshot and print the extracted levels.

Nothing is written to the database. Useful to check an instrument ID and
see how the extractor treats the provider's current response.

Usage examples:
  python scripts/fetch_snapshot.py --instrument BTC-USDT
  python scripts/fetch_snapshot.py --instrument ETH-USDT --depth 10 --timeout 5
"""

import argparse
import asyncio
import sys

from core.errors import ExtractError, FetchError
from core.extractor import extract_levels
from exchanges.okx import OKXAPIClient


async def fetch_and_print(instrument: str, depth: int, base_url: str, timeout: float) -> int:
    async with OKXAPIClient(base_url=base_url, timeout=timeout) as client:
        try:
            snapshot = await client.fetch_order_book(instrument, depth)
        except FetchError as e:
            print(f"Fetch failed ({e.kind.value}): {e}")
            return 1

    print(f"Raw snapshot: {len(snapshot.bids)} bids, {len(snapshot.asks)} asks, ts={snapshot.ts}")

    try:
        levels = extract_levels(snapshot, depth)
    except ExtractError as e:
        print(f"Extraction failed ({e.kind.value}): {e}")
        return 1

    print(f"{'side':<5} {'rank':>4} {'price':>20} {'size':>20}")
    for level in levels:
        print(f"{level.side:<5} {level.rank:>4} {str(level.price):>20} {str(level.size):>20}")
    print(f"Snapshot time: {levels[0].snapshot_timestamp.isoformat()}")
    return 0


def main() -> int:
    ap = argparse.ArgumentParser(description="Fetch and print one OKX order book snapshot")
    ap.add_argument("--instrument", default="BTC-USDT", help="OKX instrument ID")
    ap.add_argument("--depth", type=int, default=5, help="Levels per side")
    ap.add_argument("--base-url", default=OKXAPIClient.BASE_URL, help="OKX API base URL")
    ap.add_argument("--timeout", type=float, default=10.0, help="Request timeout in seconds")
    args = ap.parse_args()

    if args.depth <= 0:
        print("--depth must be positive")
        return 2

    return asyncio.run(fetch_and_print(args.instrument, args.depth, args.base_url, args.timeout))


if __name__ == "__main__":
    sys.exit(main())
