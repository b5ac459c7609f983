"""One-shot beacon delivery over aiohttp."""

from __future__ import annotations

import logging
from typing import Protocol

import aiohttp

from stingray._redact import redact_url_for_log
from stingray.exceptions import StingrayDeliveryError, StingrayTimeoutError

_logger = logging.getLogger(__name__)


class Delivery(Protocol):
    """Structural delivery interface used by :class:`stingray.client.Stingray`.

    ``deliver`` returns once the beacon was accepted and raises
    :class:`StingrayDeliveryError` (or :class:`StingrayTimeoutError`)
    otherwise. Enforcing the timeout is the implementation's job.
    """

    async def deliver(self, url: str, timeout_ms: int) -> None:
        ...


class HttpDelivery:
    """Send a beacon as a single GET request and discard the response body."""

    def __init__(
        self,
        http_session: aiohttp.ClientSession,
        *,
        user_agent: str | None = None,
    ) -> None:
        self._http = http_session
        self._user_agent = user_agent

    async def deliver(self, url: str, timeout_ms: int) -> None:
        headers: dict[str, str] = {}
        if self._user_agent:
            headers["user-agent"] = self._user_agent

        timeout = aiohttp.ClientTimeout(total=timeout_ms / 1000)
        _logger.debug("GET %s", redact_url_for_log(url))

        try:
            async with self._http.get(url, headers=headers, timeout=timeout, allow_redirects=True) as resp:
                if resp.status >= 400:
                    raise StingrayDeliveryError(
                        f"HTTP {resp.status} from beacon endpoint",
                        url=url,
                        status_code=resp.status,
                    )
        except StingrayDeliveryError:
            raise
        except TimeoutError as exc:
            raise StingrayTimeoutError(
                f"Beacon did not complete within {timeout_ms} ms",
                url=url,
            ) from exc
        except aiohttp.ClientError as exc:
            raise StingrayDeliveryError(
                f"Beacon request failed: {exc}",
                url=url,
            ) from exc
