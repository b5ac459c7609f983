"""Internal constants shared across the library."""

import re

#: URL ceiling for Internet Explorer, the lowest known browser limit.
LEGACY_URL_LIMIT = 2083

#: URL ceiling for everything else (older Safari tops out around 60k).
DEFAULT_URL_LIMIT = 60000

#: Delivery timeout in milliseconds.
DEFAULT_TIMEOUT_MS = 1000

LEGACY_USER_AGENT_RE = re.compile(r"([MS]?IE).\d")

#: Source names understood by :class:`stingray.config.IgnoreSet`.
SOURCE_NAMES: tuple[str, ...] = ("navigator", "document", "performance", "timing", "memory")

# ------------------------------------------------------------------
# Beacon acknowledgement (receiving side)
# ------------------------------------------------------------------

ACK_STATUS = 204

ACK_HEADERS: dict[str, str] = {
    "Cache-Control": "no-cache",
    "Timing-Allow-Origin": "*",
}


def detect_limit(user_agent: str | None) -> int:
    """Return the URL length ceiling for a client identified by *user_agent*."""
    if user_agent and LEGACY_USER_AGENT_RE.search(user_agent):
        return LEGACY_URL_LIMIT
    return DEFAULT_URL_LIMIT
