"""Query string codec for beacon URLs.

Encoding follows the browser ``encodeURIComponent`` rules so the collector
sees the same bytes a page script would have produced.
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping
from decimal import Decimal
from typing import Any
from urllib.parse import quote, unquote_plus

# quote() already leaves letters, digits and "_.-~" alone.
_SAFE = "!'()*"

# "%" not followed by two hex digits
_BAD_ESCAPE_RE = re.compile(r"%(?![0-9A-Fa-f]{2})")


def stringify(value: Any) -> str:
    """Render a scalar the way a browser converts it to a string."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        return _format_float(value)
    return str(value)


def _format_float(value: float) -> str:
    # positional notation for exponents -7 < e < 21, like Number#toString
    if value == 0:
        return "0"
    text = repr(value)
    if "e" not in text:
        return text[:-2] if text.endswith(".0") else text
    mantissa, _, exponent = text.partition("e")
    power = int(exponent)
    if -7 < power < 21:
        return format(Decimal(text), "f")
    return f"{mantissa}e{'+' if power > 0 else '-'}{abs(power)}"


def _unquote(text: str) -> str | None:
    """Percent-decode *text*, or return None when it is malformed."""
    if _BAD_ESCAPE_RE.search(text):
        return None
    try:
        return unquote_plus(text, errors="strict")
    except UnicodeDecodeError:
        return None


def encode(data: Mapping[str, Any]) -> str:
    """Encode *data* as ``key=value`` pairs joined by ``&``."""
    pairs = (f"{quote(str(key), safe=_SAFE)}={quote(stringify(value), safe=_SAFE)}" for key, value in data.items())
    return "&".join(pairs)


def decode(query: str) -> dict[str, str]:
    """Decode a query string into a flat mapping.

    A leading ``?`` is ignored and ``+`` is read as a space. When a key
    repeats, the first occurrence wins. Pairs with a malformed percent
    escape are skipped.
    """
    if query.startswith("?"):
        query = query[1:]

    result: dict[str, str] = {}
    for part in query.split("&"):
        if not part:
            continue
        raw_key, _, raw_value = part.partition("=")
        key = _unquote(raw_key)
        value = _unquote(raw_value)
        if not key or value is None or key in result:
            continue
        result[key] = value
    return result


def build_url(server: str, data: Mapping[str, Any]) -> str:
    """Append the encoded *data* to *server*; an empty payload adds nothing."""
    query = encode(data)
    if not query:
        return server
    return f"{server}?{query}"
