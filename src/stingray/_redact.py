"""Helpers for safe debug logging.

Beacon URLs carry whatever the caller put in the dataset plus page
referrers and URLs, which may embed credentials. This module masks
sensitive query parameters and caps the length of logged URLs.
"""

from __future__ import annotations

from urllib.parse import urlsplit

from stingray.codec import decode, encode

_SENSITIVE_VALUE_KEYS: frozenset[str] = frozenset(
    {
        "password",
        "passwd",
        "secret",
        "token",
        "accesstoken",
        "refreshtoken",
        "apikey",
        "api_key",
        "authorization",
        "cookie",
        "session",
        "sessionid",
    }
)


def redact_url_for_log(url: str, *, max_length: int = 512) -> str:
    """Return a copy of *url* suitable for debug logs."""
    parts = urlsplit(url)
    if parts.query:
        query = decode(parts.query)
        for key in query:
            if key.lower() in _SENSITIVE_VALUE_KEYS:
                query[key] = "<redacted>"
        url = parts._replace(query=encode(query)).geturl()

    if len(url) > max_length:
        return f"{url[:max_length]}…<truncated:{len(url)}>"
    return url
