from __future__ import annotations

import asyncio
from typing import Any

import aiohttp
import pydantic
import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer, make_mocked_request

from stingray.client import Stingray
from stingray.environment import Environment
from stingray.middleware import BeaconEndpoint, beacon_middleware


class _Next:
    def __init__(self) -> None:
        self.calls = 0

    async def __call__(self, request: web.Request) -> web.StreamResponse:
        self.calls += 1
        return web.Response(text="app")


@pytest.mark.asyncio
async def test_beacon_path_is_acknowledged_and_dispatched() -> None:
    hits: list[tuple[dict[str, str], Any]] = []
    middleware = beacon_middleware("/beacon.gif", lambda data, req: hits.append((data, req)))
    request = make_mocked_request("GET", "/beacon.gif?x=1&y=2")
    handler = _Next()

    response = await middleware(request, handler)

    assert response.status == 204
    assert response.headers["Cache-Control"] == "no-cache"
    assert response.headers["Timing-Allow-Origin"] == "*"
    assert response.body is None
    assert handler.calls == 0
    assert hits == [({"x": "1", "y": "2"}, request)]


@pytest.mark.asyncio
async def test_other_paths_pass_through() -> None:
    hits: list[Any] = []
    middleware = beacon_middleware("/beacon.gif", lambda data, req: hits.append(data))
    handler = _Next()

    response = await middleware(make_mocked_request("GET", "/other"), handler)

    assert handler.calls == 1
    assert response.status == 200
    assert "Timing-Allow-Origin" not in response.headers
    assert hits == []


@pytest.mark.asyncio
async def test_path_match_is_exact() -> None:
    hits: list[Any] = []
    middleware = beacon_middleware("/beacon.gif", lambda data, req: hits.append(data))
    handler = _Next()

    await middleware(make_mocked_request("GET", "/beacon.gif/extra"), handler)
    await middleware(make_mocked_request("GET", "/Beacon.gif"), handler)

    assert handler.calls == 2
    assert hits == []


@pytest.mark.asyncio
async def test_repeated_query_keys_keep_first_value() -> None:
    hits: list[dict[str, str]] = []
    middleware = beacon_middleware("/b", lambda data, req: hits.append(data))

    await middleware(make_mocked_request("GET", "/b?a=1&a=2&msg=hello+world"), _Next())

    assert hits == [{"a": "1", "msg": "hello world"}]


@pytest.mark.asyncio
async def test_coroutine_callback_is_awaited() -> None:
    hits: list[dict[str, str]] = []

    async def on_beacon(data: dict[str, str], _request: web.Request) -> None:
        hits.append(data)

    middleware = beacon_middleware("/b", on_beacon)

    await middleware(make_mocked_request("GET", "/b?k=v"), _Next())

    assert hits == [{"k": "v"}]


@pytest.mark.asyncio
async def test_callback_errors_propagate() -> None:
    def on_beacon(_data: dict[str, str], _request: web.Request) -> None:
        raise ValueError("application bug")

    middleware = beacon_middleware("/b", on_beacon)

    with pytest.raises(ValueError):
        await middleware(make_mocked_request("GET", "/b"), _Next())


def test_endpoint_requires_absolute_path() -> None:
    with pytest.raises(pydantic.ValidationError):
        BeaconEndpoint(path="beacon.gif", callback=print)


def test_endpoint_parses_raw_url() -> None:
    endpoint = BeaconEndpoint(path="/beacon.gif", callback=print)

    path, query = endpoint.parse("/beacon.gif?x=1&y=2")

    assert endpoint.matches(path)
    assert query == {"x": "1", "y": "2"}
    assert not endpoint.matches(endpoint.parse("/other?x=1")[0])


@pytest.mark.asyncio
async def test_sender_and_middleware_round_trip() -> None:
    hits: list[dict[str, str]] = []

    async def fallback(_request: web.Request) -> web.Response:
        return web.Response(status=404)

    app = web.Application(middlewares=[beacon_middleware("/beacon.gif", lambda data, req: hits.append(data))])
    app.router.add_get("/{tail:.*}", fallback)

    async with TestServer(app) as server:
        results: list[Any] = []
        env = Environment(navigator={"userAgent": "Mozilla/5.0", "cookieEnabled": True})
        async with Stingray.for_server(str(server.make_url("/beacon.gif")), environment=env) as beacon:
            beacon.set("page", "checkout").set("step", 2)
            assert beacon.write(results.append) is True

    assert results == [None]
    assert hits == [{"page": "checkout", "step": "2", "userAgent": "Mozilla/5.0", "cookieEnabled": "true"}]


def _beacon_app(callback: Any) -> web.Application:
    async def fallback(_request: web.Request) -> web.Response:
        return web.Response(status=404)

    app = web.Application(middlewares=[beacon_middleware("/b", callback)])
    app.router.add_get("/{tail:.*}", fallback)
    return app


@pytest.mark.asyncio
async def test_failing_callback_still_answers_204() -> None:
    def on_beacon(_data: dict[str, str], _request: web.Request) -> None:
        raise ValueError("application bug")

    async with TestServer(_beacon_app(on_beacon)) as server, aiohttp.ClientSession() as session:
        async with session.get(f"{server.make_url('/b')}?x=1") as resp:
            status = resp.status
            headers = dict(resp.headers)
            body = await resp.read()

    assert status == 204
    assert headers["Cache-Control"] == "no-cache"
    assert headers["Timing-Allow-Origin"] == "*"
    assert body == b""


@pytest.mark.asyncio
async def test_slow_callback_does_not_delay_acknowledgement() -> None:
    release = asyncio.Event()
    hits: list[dict[str, str]] = []

    async def on_beacon(data: dict[str, str], _request: web.Request) -> None:
        await release.wait()
        hits.append(data)

    async with TestServer(_beacon_app(on_beacon)) as server, aiohttp.ClientSession() as session:
        async with session.get(f"{server.make_url('/b')}?x=1") as resp:
            status = resp.status
        assert hits == []
        release.set()
        for _ in range(50):
            if hits:
                break
            await asyncio.sleep(0.01)

    assert status == 204
    assert hits == [{"x": "1"}]
