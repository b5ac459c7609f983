"""Server-side beacon endpoint for aiohttp applications.

Requests whose path equals the configured beacon path are answered with an
empty ``204 No Content`` that browsers will neither cache nor hide from the
Resource Timing API. The decoded query string is handed to the application
callback together with the original request. Every other request passes
through untouched.

Usage::

    def on_beacon(data: dict[str, str], request: web.Request) -> None:
        ...

    app = web.Application(middlewares=[beacon_middleware("/beacon.gif", on_beacon)])
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any
from urllib.parse import urlsplit

from aiohttp import web
from aiohttp.typedefs import Handler
from pydantic import BaseModel, ConfigDict, field_validator

from stingray._constants import ACK_HEADERS, ACK_STATUS
from stingray.codec import decode

_logger = logging.getLogger(__name__)

BeaconCallback = Callable[[dict[str, str], Any], Any]
BeaconMiddleware = Callable[[web.Request, Handler], Awaitable[web.StreamResponse]]


class BeaconEndpoint(BaseModel):
    """Exact-match beacon path and the callback receiving decoded hits."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    path: str
    callback: Callable[..., Any]

    @field_validator("path")
    @classmethod
    def _check_path(cls, value: str) -> str:
        if not value.startswith("/"):
            raise ValueError(f"beacon path must start with '/', got {value!r}")
        return value

    def matches(self, path: str) -> bool:
        return path == self.path

    def parse(self, raw_url: str) -> tuple[str, dict[str, str]]:
        """Split a raw request target into its path and decoded query."""
        parts = urlsplit(raw_url)
        return parts.path, decode(parts.query)


def _first_values(query: Mapping[str, str]) -> dict[str, str]:
    # aiohttp exposes repeated keys as a multidict; keep the first value
    result: dict[str, str] = {}
    for key, value in query.items():
        result.setdefault(key, value)
    return result


def acknowledge() -> web.Response:
    """Build the empty response sent for every beacon hit."""
    return web.Response(status=ACK_STATUS, headers=ACK_HEADERS)


def beacon_middleware(path: str, callback: BeaconCallback) -> BeaconMiddleware:
    """Create middleware that intercepts beacon requests on *path*.

    The 204 is sent before the callback runs. The callback's return value
    is ignored (an awaitable is awaited first) and exceptions it raises
    propagate to aiohttp; they cannot change the response already sent.
    """
    endpoint = BeaconEndpoint(path=path, callback=callback)

    @web.middleware
    async def stingray_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
        if not endpoint.matches(request.path):
            return await handler(request)

        # the acknowledgement is final before application code runs
        response = acknowledge()
        await response.prepare(request)
        await response.write_eof()

        data = _first_values(request.query)
        _logger.debug("Beacon hit on %s with %d field(s)", endpoint.path, len(data))

        result = endpoint.callback(data, request)
        if inspect.isawaitable(result):
            await result
        return response

    return stingray_middleware
