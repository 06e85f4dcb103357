"""Token endpoint.

Endpoint:
  - POST /auth/token?grant_type=tractive&platform_email=…&platform_token=…
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from pytractive._redact import redact_for_log
from pytractive._transport import Transport
from pytractive.config import TractiveConfig
from pytractive.exceptions import TractiveAuthError, TractiveTransportError
from pytractive.models.token import AccessToken

_logger = logging.getLogger(__name__)

TOKEN_PATH = "/auth/token"


def build_login_params(config: TractiveConfig) -> dict[str, str]:
    """Query parameters for the credential grant."""
    return {
        "grant_type": "tractive",
        "platform_email": config.username,
        "platform_token": config.password,
    }


def parse_login_response(response: Any) -> AccessToken:
    """Parse the token response.

    Raises
    ------
    TractiveAuthError
        If the response does not carry an access token.
    """
    if not isinstance(response, dict) or not response.get("access_token"):
        _logger.debug("Token response without access_token: %s", redact_for_log(response))
        raise TractiveAuthError("Token response did not contain an access token")
    try:
        return AccessToken.model_validate(response)
    except ValidationError as exc:
        raise TractiveAuthError(f"Unparsable token response: {exc}") from exc


async def fetch_token(config: TractiveConfig, transport: Transport) -> AccessToken:
    """Exchange the configured credentials for an access token."""
    if not config.username or not config.password:
        raise TractiveAuthError("Username and password are required")
    try:
        response = await transport.request_json("POST", TOKEN_PATH, params=build_login_params(config))
    except TractiveTransportError as exc:
        if exc.status_code in (400, 401, 403):
            raise TractiveAuthError(f"Login rejected (HTTP {exc.status_code})") from exc
        raise
    return parse_login_response(response)
