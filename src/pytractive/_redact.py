"""Credential masking for API traces.

The token request carries the account password as ``platform_token`` and
every response to it carries the bearer token.  Traces pass through
:func:`redact_for_log` so neither reaches the log.  Vendor payloads are
plain JSON, so only mappings, lists and strings need handling.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

MASK = "<redacted>"

_SECRET_KEYS: frozenset[str] = frozenset(
    {
        "password",
        "authorization",
        "cookie",
        "xtractiveclient",
    }
)


def _is_secret(key: Any) -> bool:
    name = str(key).lower().replace("_", "").replace("-", "")
    # access_token, accessToken, platform_token ...
    return name in _SECRET_KEYS or name.endswith("token")


def redact_for_log(value: Any, *, max_string: int = 512) -> Any:
    """Copy *value* with secret fields masked and long strings cut short.

    Email addresses are kept.
    """
    if isinstance(value, Mapping):
        return {
            str(key): MASK if _is_secret(key) else redact_for_log(item, max_string=max_string)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [redact_for_log(item, max_string=max_string) for item in value]
    if isinstance(value, str) and len(value) > max_string:
        return f"{value[:max_string]}…<truncated>"
    return value
