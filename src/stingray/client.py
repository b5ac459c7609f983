"""Beacon sender: curates a dataset and ships it to a collector."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from typing import Any

import aiohttp

from stingray._constants import detect_limit
from stingray._redact import redact_url_for_log
from stingray._transport import Delivery, HttpDelivery
from stingray.codec import build_url
from stingray.config import IgnoreSet, StingrayConfig, split_names
from stingray.environment import Environment, read_sources, user_agent_of
from stingray.exceptions import StingrayDeliveryError, StingrayError
from stingray.payload import Scalar, assemble

_logger = logging.getLogger(__name__)

ErrorObserver = Callable[[BaseException], None]
CompletionCallback = Callable[[StingrayDeliveryError | None], None]

_CLIENT_OPTIONS = ("environment", "delivery", "session", "on_error")


class Stingray:
    """Collect environment data and send it as a URL-encoded beacon.

    Usage::

        async with Stingray.for_server("https://example.com/beacon.gif") as beacon:
            beacon.set("page", "checkout").set("step", 2)
            beacon.write(lambda err: print("sent" if err is None else err))

    ``write`` never raises for delivery problems. Failures are passed to
    every registered error observer and then to the completion callback.
    """

    def __init__(
        self,
        config: StingrayConfig,
        *,
        environment: Environment | None = None,
        delivery: Delivery | None = None,
        session: aiohttp.ClientSession | None = None,
        on_error: ErrorObserver | None = None,
    ) -> None:
        self._config = config
        self.server: str = config.server
        self.environment = environment if environment is not None else Environment.host()
        self.ignore: IgnoreSet = config.ignore
        self.timeout: int = config.timeout
        self.user_agent: str | None = config.user_agent or user_agent_of(self.environment)
        self.limit: int = config.limit if config.limit is not None else detect_limit(self.user_agent)
        self.dataset: dict[str, Any] = dict(config.dataset)

        self._http_session = session
        self._external_session = session is not None
        self._delivery = delivery
        self._owns_delivery = False
        if self._delivery is None and session is not None:
            self._delivery = HttpDelivery(session, user_agent=self.user_agent)

        self._error_observers: list[ErrorObserver] = []
        if on_error is not None:
            self._error_observers.append(on_error)
        self._tasks: set[asyncio.Task[None]] = set()

    @classmethod
    def for_server(cls, server: str, **options: Any) -> Stingray:
        """Build a sender for *server*.

        Keyword options are split between :class:`StingrayConfig` fields
        and the client arguments (``environment``, ``delivery``,
        ``session``, ``on_error``).
        """
        client_kwargs = {name: options.pop(name) for name in _CLIENT_OPTIONS if name in options}
        return cls(StingrayConfig(server=server, **options), **client_kwargs)

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> Stingray:
        if self._delivery is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._delivery = HttpDelivery(self._http_session, user_agent=self.user_agent)
            self._owns_delivery = True
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.flush()
        if self._owns_delivery:
            self._delivery = None
            self._owns_delivery = False
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None

    # ------------------------------------------------------------------
    # Error channel
    # ------------------------------------------------------------------

    def add_error_observer(self, observer: ErrorObserver) -> None:
        """Register *observer* to be called with every reported error."""
        self._error_observers.append(observer)

    def remove_error_observer(self, observer: ErrorObserver) -> None:
        with contextlib.suppress(ValueError):
            self._error_observers.remove(observer)

    def _emit_error(self, error: BaseException) -> None:
        for observer in list(self._error_observers):
            try:
                observer(error)
            except Exception:
                _logger.debug("error observer failed", exc_info=True)

    # ------------------------------------------------------------------
    # Dataset
    # ------------------------------------------------------------------

    def set(self, key: str, value: Scalar) -> Stingray:
        """Store *value* under *key*, replacing any previous value."""
        self.dataset[key] = value
        return self

    def remove(self, *keys: str) -> Stingray:
        """Remove keys from the dataset.

        A single string argument may name several keys separated by commas
        and/or whitespace: ``remove("a, b")`` equals ``remove("a", "b")``.
        Missing keys are ignored.
        """
        names: list[str] | tuple[str, ...] = keys
        if len(keys) == 1 and isinstance(keys[0], str):
            names = split_names(keys[0])

        for key in names:
            self.dataset.pop(key, None)
        return self

    # ------------------------------------------------------------------
    # Transmission
    # ------------------------------------------------------------------

    def payload(self) -> dict[str, Scalar]:
        """Build the payload the next beacon would carry."""
        sources = read_sources(self.environment, self.ignore, self._emit_error)
        return assemble(self.dataset, sources)

    @property
    def pending(self) -> int:
        """Number of beacons dispatched but not yet completed."""
        return len(self._tasks)

    def write(self, callback: CompletionCallback | None = None) -> bool:
        """Send the current payload.

        Returns ``False`` without touching the network when the URL would
        exceed :attr:`limit`; *callback* is not called in that case.
        Otherwise the beacon is dispatched on the running event loop and
        ``True`` is returned. That means the attempt was issued, not that
        it arrived; *callback* receives ``None`` or the delivery error.
        """
        url = build_url(self.server, self.payload())
        if len(url) > self.limit:
            _logger.debug("Beacon URL is %d characters, limit is %d; not sent", len(url), self.limit)
            return False

        delivery = self._require_delivery()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as exc:
            raise StingrayError("write() must be called from a running event loop") from exc

        task = loop.create_task(self._send(delivery, url, callback))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return True

    async def flush(self) -> None:
        """Wait until every dispatched beacon has completed."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _require_delivery(self) -> Delivery:
        if self._delivery is None:
            raise StingrayError("Client not initialized. Use 'async with Stingray(...)' or pass delivery=...")
        return self._delivery

    async def _send(self, delivery: Delivery, url: str, callback: CompletionCallback | None) -> None:
        error: StingrayDeliveryError | None = None
        try:
            await delivery.deliver(url, self.timeout)
        except StingrayDeliveryError as exc:
            error = exc
        except Exception as exc:
            error = StingrayDeliveryError(f"Beacon delivery failed: {exc}", url=url)
            error.__cause__ = exc

        if error is not None:
            _logger.debug("Beacon to %s failed: %s", redact_url_for_log(url), error)
            self._emit_error(error)

        if callback is not None:
            try:
                callback(error)
            except Exception:
                _logger.debug("beacon completion callback failed", exc_info=True)
