#!/usr/bin/env python3
"""Send a single stingray beacon from the command line.

Usage
-----
::

    export STINGRAY_SERVER="https://collector.example/beacon.gif"
    python scripts/send_beacon.py --set page=cli --set build=42

Options::

    --server URL        Collector URL (default: $STINGRAY_SERVER)
    --set KEY=VALUE     Add a dataset entry (repeatable)
    --ignore NAMES      Comma separated sources to leave out
    --limit N           Maximum URL length
    --timeout MS        Delivery timeout in milliseconds
    --dry-run           Print the payload instead of sending it
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from stingray import IgnoreSet, Stingray, StingrayConfig, StingrayConfigError  # noqa: E402
from stingray.config import split_names  # noqa: E402


def _parse_value(raw: str) -> Any:
    """Interpret ``true``/``false`` and numbers; everything else stays a string."""
    if raw in {"true", "false"}:
        return raw == "true"
    for cast in (int, float):
        try:
            return cast(raw)
        except ValueError:
            continue
    return raw


def _parse_pairs(pairs: list[str]) -> dict[str, Any]:
    dataset: dict[str, Any] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise SystemExit(f"--set expects KEY=VALUE, got {pair!r}")
        dataset[key] = _parse_value(value)
    return dataset


async def main() -> int:
    parser = argparse.ArgumentParser(description="Send one stingray beacon.")
    parser.add_argument("--server", help="Collector URL (default: $STINGRAY_SERVER)")
    parser.add_argument("--set", action="append", default=[], dest="pairs", metavar="KEY=VALUE")
    parser.add_argument("--ignore", help="Comma separated environment sources to leave out")
    parser.add_argument("--limit", type=int, help="Maximum URL length")
    parser.add_argument("--timeout", type=int, help="Delivery timeout in milliseconds")
    parser.add_argument("--dry-run", action="store_true", help="Print the payload instead of sending it")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    overrides: dict[str, Any] = {"dataset": _parse_pairs(args.pairs)}
    if args.server:
        overrides["server"] = args.server
    if args.limit is not None:
        overrides["limit"] = args.limit
    if args.timeout is not None:
        overrides["timeout"] = args.timeout

    try:
        if args.ignore:
            overrides["ignore"] = IgnoreSet.from_names(split_names(args.ignore))
        config = StingrayConfig.from_env(**overrides)
    except StingrayConfigError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    errors: list[BaseException] = []
    async with Stingray(config, on_error=errors.append) as beacon:
        if args.dry_run:
            print(json.dumps(beacon.payload(), indent=2, ensure_ascii=False))
            return 0

        if not beacon.write():
            print(f"error: beacon URL exceeds the {beacon.limit} character limit", file=sys.stderr)
            return 1

    if errors:
        print(f"error: {errors[-1]}", file=sys.stderr)
        return 1
    print("beacon sent")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
