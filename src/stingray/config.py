"""Sender configuration for stingray."""

from __future__ import annotations

import dataclasses
import os
import re
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError

from stingray._constants import DEFAULT_TIMEOUT_MS, SOURCE_NAMES
from stingray.exceptions import StingrayConfigError
from stingray.payload import Scalar

_NAME_SPLIT_RE = re.compile(r"[,|\s]+")


def split_names(value: str) -> list[str]:
    """Split a comma and/or whitespace separated list, dropping empty parts."""
    return [part for part in _NAME_SPLIT_RE.split(value) if part]


class IgnoreSet(BaseModel):
    """Environment sources that should not be merged into the payload.

    ``timing`` and ``memory`` are sub-sources of ``performance``; ignoring
    ``performance`` implies both.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    navigator: bool = False
    document: bool = False
    performance: bool = False
    timing: bool = False
    memory: bool = False

    @classmethod
    def from_names(cls, names: Iterable[str]) -> IgnoreSet:
        """Build an ignore set where every named source is ignored.

        Raises :class:`StingrayConfigError` for an unknown source name.
        """
        names = list(names)
        try:
            return cls.model_validate({name: True for name in names})
        except ValidationError as exc:
            raise StingrayConfigError(f"Unknown environment source in {names!r}; expected {SOURCE_NAMES}") from exc

    def names(self) -> list[str]:
        return [name for name in SOURCE_NAMES if getattr(self, name)]


def _positive_int(name: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise StingrayConfigError(f"{name} must be a positive integer, got {value!r}")


@dataclasses.dataclass(frozen=True)
class StingrayConfig:
    """Sender configuration.

    Parameters
    ----------
    server : str
        Collector URL the beacon is sent to. Used verbatim; the query
        string is appended after a ``?``.
    limit : int or None
        Maximum length of the generated URL. ``None`` detects it from the
        client user agent: 2083 for Internet Explorer, 60000 otherwise.
    timeout : int
        Milliseconds a beacon may take before it is reported as failed.
    ignore : IgnoreSet
        Environment sources to leave out of the payload. A plain mapping
        of source name to bool is accepted and converted.
    dataset : dict
        Initial key/value pairs sent with every beacon.
    user_agent : str or None
        ``User-Agent`` sent with beacons and used for limit detection.
        Defaults to the host navigator's user agent.
    """

    server: str
    limit: int | None = None
    timeout: int = DEFAULT_TIMEOUT_MS
    ignore: IgnoreSet = dataclasses.field(default_factory=IgnoreSet)
    dataset: dict[str, Scalar] = dataclasses.field(default_factory=dict)
    user_agent: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.server, str) or not self.server.strip():
            raise StingrayConfigError("server must be a non-empty URL")
        if self.limit is not None:
            _positive_int("limit", self.limit)
        _positive_int("timeout", self.timeout)

        ignore = self.ignore
        if not isinstance(ignore, IgnoreSet):
            if not isinstance(ignore, Mapping):
                raise StingrayConfigError(f"ignore must be a mapping of source name to bool, got {ignore!r}")
            try:
                ignore = IgnoreSet.model_validate(dict(ignore))
            except ValidationError as exc:
                raise StingrayConfigError(f"Invalid ignore set: {exc}") from exc
            object.__setattr__(self, "ignore", ignore)

        if not isinstance(self.dataset, Mapping):
            raise StingrayConfigError(f"dataset must be a mapping, got {self.dataset!r}")
        object.__setattr__(self, "dataset", dict(self.dataset))

    @classmethod
    def from_env(cls, **overrides: Any) -> StingrayConfig:
        """Create configuration from environment variables.

        Reads ``STINGRAY_SERVER``, ``STINGRAY_LIMIT``, ``STINGRAY_TIMEOUT``,
        ``STINGRAY_IGNORE`` (comma or space separated source names) and
        ``STINGRAY_USER_AGENT``. Explicit keyword arguments override
        environment values.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        server = env.get("STINGRAY_SERVER")
        if server is not None:
            config_kwargs["server"] = server

        user_agent = env.get("STINGRAY_USER_AGENT")
        if user_agent is not None:
            config_kwargs["user_agent"] = user_agent

        for env_key, field_name in (("STINGRAY_LIMIT", "limit"), ("STINGRAY_TIMEOUT", "timeout")):
            raw = env.get(env_key)
            if raw is None or field_name in overrides:
                continue
            try:
                config_kwargs[field_name] = int(raw)
            except ValueError as exc:
                raise StingrayConfigError(f"{env_key} must be an integer, got {raw!r}") from exc

        ignore_env = env.get("STINGRAY_IGNORE")
        if ignore_env is not None and "ignore" not in overrides:
            config_kwargs["ignore"] = IgnoreSet.from_names(split_names(ignore_env))

        config_kwargs.update(overrides)

        if "server" not in config_kwargs:
            raise StingrayConfigError("No server configured (set STINGRAY_SERVER or pass server=...)")

        return cls(**config_kwargs)
