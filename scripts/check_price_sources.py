#!/usr/bin/env -S uv run python
"""
Check price sources: resolve the default price and every chain, print per-source status.
Exits non-zero if the default request fell back to the default quote or fewer than
--min-chains chains produced a price.
Usage: uv run python scripts/check_price_sources.py [--min-chains N] [--debug]
"""

import argparse
import asyncio
import sys

# Add src to path so ring_oracle is importable
sys.path.insert(0, __file__.rsplit("/", 1)[0].replace("\\", "/") + "/../src")

from ring_oracle.logging_config import configure_logging
from ring_oracle.models import PriceSource, Resolution
from ring_oracle.oracle.factory import build_price_oracle


def print_resolution(label: str, resolution: Resolution) -> None:
    quote = resolution.quote
    if quote is None:
        print(f"{label}: no price")
    else:
        print(
            f"{label}: price={quote.price} source={quote.source.value} "
            f"confidence={quote.confidence} chain_id={quote.chain_id}"
        )
    for a in resolution.attempts:
        chain = f" chain_id={a.chain_id}" if a.chain_id is not None else ""
        err = f" error={a.error}" if a.error else ""
        print(f"  {a.source.value}{chain}: {a.status}{err}")


async def run_check(min_chains: int = 1) -> int:
    """Resolve default and per-chain prices (cache starts empty); return 0 if ok, 1 otherwise."""
    oracle = build_price_oracle()
    service = oracle.service

    default = await service.get_price_with_trace()
    print_resolution("default", default)

    resolved = 0
    for chain_id in oracle.aggregator.chain_ids:
        resolution = await service.resolver.resolve_with_trace(chain_id)
        print_resolution(f"chain {chain_id}", resolution)
        if resolution.quote is not None:
            resolved += 1

    if default.quote is None or default.quote.source == PriceSource.DEFAULT:
        print("Check failed: default price fell back to the default quote", file=sys.stderr)
        return 1
    if resolved < min_chains:
        print(
            f"Check failed: {resolved} chains resolved (min required: {min_chains})",
            file=sys.stderr,
        )
        return 1
    print("Check passed.", file=sys.stderr)
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Check price sources (feeds and fallbacks)")
    parser.add_argument(
        "--min-chains",
        type=int,
        default=1,
        help="Min number of chains that must produce a price (default: 1)",
    )
    parser.add_argument("--debug", action="store_true", help="Console log output")
    args = parser.parse_args()
    configure_logging(debug=args.debug)
    return asyncio.run(run_check(args.min_chains))


if __name__ == "__main__":
    sys.exit(main())
