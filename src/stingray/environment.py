"""Read-only snapshot of the host environment merged into every beacon.

An :class:`Environment` bundles up to three optional capabilities, modelled
on what a browser exposes to page scripts:

* ``navigator`` - client identification, merged as-is.
* ``document`` - page state, reduced to a fixed set of fields.
* ``performance`` - carries ``timing`` and ``memory`` sub-sources.

Each capability may be a mapping or a plain object. ``None`` means the
capability is not available on this host and the source is skipped.
"""

from __future__ import annotations

import locale
import logging
import os
import platform
import sys
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

import aiohttp

from stingray.config import IgnoreSet

_logger = logging.getLogger(__name__)

ErrorReporter = Callable[[BaseException], None]

_LOADED_AT_MS = int(time.time() * 1000)

# (wire key, document attribute)
_DOCUMENT_FIELDS: tuple[tuple[str, str], ...] = (
    ("charset", "charset"),
    ("domain", "domain"),
    ("encoding", "input_encoding"),
    ("readyState", "ready_state"),
    ("referrer", "referrer"),
    ("url", "url"),
    ("visibility", "visibility_state"),
)


def _present(capability: Any) -> bool:
    """Return True when *capability* is an object we can read fields from."""
    if capability is None or isinstance(capability, (str, bytes, int, float, bool, list, tuple)):
        return False
    return not callable(capability)


def _field(capability: Any, name: str) -> Any:
    if isinstance(capability, Mapping):
        return capability.get(name)
    return getattr(capability, name, None)


def _host_language() -> str | None:
    lang = locale.getlocale()[0]
    if not lang or lang == "C":
        return None
    return lang.replace("_", "-")


def host_user_agent() -> str:
    from stingray import __version__

    return f"stingray/{__version__} aiohttp/{aiohttp.__version__} Python/{platform.python_version()}"


class HostPerformance:
    """Process timing and memory figures, read fresh on every access."""

    @property
    def timing(self) -> dict[str, int]:
        return {
            "navigationStart": _LOADED_AT_MS,
            "now": int(time.time() * 1000),
        }

    @property
    def memory(self) -> dict[str, int] | None:
        # ru_maxrss is not available on Windows
        if sys.platform == "win32":
            return None
        import resource

        return {"maxRss": resource.getrusage(resource.RUSAGE_SELF).ru_maxrss}


@dataclass(frozen=True)
class Environment:
    """Injectable environment capabilities."""

    navigator: Any = None
    document: Any = None
    performance: Any = None

    @classmethod
    def host(cls) -> Environment:
        """Capabilities of the running Python process.

        There is no document outside a browser, so only the navigator and
        performance sources are populated.
        """
        navigator = {
            "userAgent": host_user_agent(),
            "platform": sys.platform,
            "language": _host_language(),
            "hardwareConcurrency": os.cpu_count(),
            "pythonVersion": platform.python_version(),
        }
        return cls(navigator=navigator, performance=HostPerformance())


def user_agent_of(environment: Environment) -> str | None:
    """Return the navigator user agent, if the environment exposes one."""
    navigator = environment.navigator
    if not _present(navigator):
        return None
    value = _field(navigator, "userAgent")
    return value if isinstance(value, str) else None


def read_document(document: Any, on_error: ErrorReporter) -> dict[str, Any]:
    """Reduce *document* to the fields sent with a beacon.

    Sandboxed documents may refuse access to ``domain``; the failure is
    reported through *on_error* and the field is left out.
    """
    data: dict[str, Any] = {}
    for key, attr in _DOCUMENT_FIELDS:
        if key == "domain":
            try:
                data[key] = _field(document, attr)
            except Exception as exc:
                _logger.debug("document.domain is not readable: %s", exc)
                on_error(exc)
            continue
        data[key] = _field(document, attr)
    return data


def read_sources(
    environment: Environment,
    ignore: IgnoreSet,
    on_error: ErrorReporter,
) -> list[Any]:
    """Collect the environment sources in merge order.

    Earlier sources win when the same key appears more than once.
    """
    sources: list[Any] = []

    if not ignore.navigator and _present(environment.navigator):
        sources.append(environment.navigator)

    if not ignore.document and _present(environment.document):
        sources.append(read_document(environment.document, on_error))

    performance = environment.performance
    if not ignore.performance and _present(performance):
        if not ignore.timing:
            timing = _field(performance, "timing")
            if _present(timing):
                sources.append(timing)

        if not ignore.memory:
            memory = _field(performance, "memory")
            if _present(memory):
                sources.append(memory)

    return sources
