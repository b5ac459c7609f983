#!/usr/bin/env python3
"""Run a minimal collector that prints every beacon it receives.

Usage
-----
::

    python scripts/beacon_server.py --path /beacon.gif --port 8080

Point a sender at ``http://localhost:8080/beacon.gif``. Requests to any
other path get a 404 from the fallback route.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from aiohttp import web

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from stingray import beacon_middleware  # noqa: E402

LOG = logging.getLogger("beacon_server")


def _on_beacon(data: dict[str, str], request: web.Request) -> None:
    LOG.info("beacon from %s", request.remote)
    print(json.dumps(data, ensure_ascii=False, sort_keys=True), flush=True)


async def _not_found(_request: web.Request) -> web.Response:
    return web.Response(status=404, text="not found")


def build_app(path: str) -> web.Application:
    app = web.Application(middlewares=[beacon_middleware(path, _on_beacon)])
    app.router.add_route("*", "/{tail:.*}", _not_found)
    return app


def main() -> None:
    parser = argparse.ArgumentParser(description="Print stingray beacons as JSON lines.")
    parser.add_argument("--path", default="/beacon.gif", help="Beacon path to intercept")
    parser.add_argument("--host", default="127.0.0.1", help="Interface to bind")
    parser.add_argument("--port", type=int, default=8080, help="Port to listen on")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    web.run_app(build_app(args.path), host=args.host, port=args.port)


if __name__ == "__main__":
    main()
