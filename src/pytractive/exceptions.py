"""Custom exception hierarchy for pytractive.

Every exception carries a short ``reason`` category.  Devices use it as
the unavailability reason so raw transport details never reach the user.
"""

from __future__ import annotations


class TractiveError(Exception):
    """Base exception for all pytractive errors."""

    reason = "Unexpected error"


class TractiveConfigError(TractiveError):
    """Invalid or missing configuration."""

    reason = "Invalid configuration"


class TractiveAuthError(TractiveError):
    """Login failed or the access token is unusable."""

    reason = "Authentication required"


class NoTokenError(TractiveAuthError):
    """No access token is available (not logged in yet)."""


class TractiveSessionExpiredError(TractiveAuthError):
    """Access token rejected by the server (HTTP 401).

    The client catches this internally to refresh the token and retry
    the call once.
    """


class TractiveTransportError(TractiveError):
    """HTTP-level failure (network, non-200, invalid JSON)."""

    reason = "Network error"

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class MalformedPayloadError(TractiveError):
    """Unparsable stream chunk or payload missing an expected field."""

    reason = "Invalid data received"


class ZoneLookupError(TractiveError, LookupError):
    """Zone or address resolution failed."""

    reason = "Location lookup failed"


class CommandRejectedError(TractiveError):
    """Tracker command was not accepted."""

    reason = "Command rejected"


def unavailable_reason(exc: BaseException) -> str:
    """Return the user-facing unavailability reason for *exc*."""
    if isinstance(exc, TractiveError):
        return exc.reason
    return str(exc) or exc.__class__.__name__
