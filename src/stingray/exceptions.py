"""Custom exception hierarchy for stingray."""

from __future__ import annotations


class StingrayError(Exception):
    """Base exception for all stingray errors."""


class StingrayConfigError(StingrayError):
    """Invalid or missing configuration."""


class StingrayDeliveryError(StingrayError):
    """Beacon transmission failed (network error or HTTP status >= 400)."""

    def __init__(
        self,
        message: str,
        *,
        url: str = "",
        status_code: int | None = None,
    ) -> None:
        self.url = url
        self.status_code = status_code
        super().__init__(message)


class StingrayTimeoutError(StingrayDeliveryError):
    """The beacon did not complete within the configured timeout."""
