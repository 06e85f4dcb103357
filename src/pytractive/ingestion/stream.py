"""Push channel line parsing.

The channel emits newline-delimited JSON objects.  Each one is either a
keep-alive heartbeat::

    {"message": "keep-alive", "keepAlive": 1700000000}

or a typed update such as::

    {"message": "tracker_status", "tracker_id": "ABCDEFGH", ...}
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from pytractive.exceptions import MalformedPayloadError
from pytractive.ingestion.normalize import safe_float, safe_str

KEEP_ALIVE = "keep-alive"
TRACKER_STATUS = "tracker_status"


@dataclass(frozen=True, slots=True)
class ChannelMessage:
    """One decoded push channel message."""

    message: str
    payload: dict[str, Any] = field(default_factory=dict)

    @property
    def is_keep_alive(self) -> bool:
        return self.message == KEEP_ALIVE

    @property
    def tracker_id(self) -> str | None:
        return safe_str(self.payload.get("tracker_id"))

    @property
    def keep_alive_at(self) -> float | None:
        """Server epoch carried by a keep-alive message."""
        return safe_float(self.payload.get("keepAlive"))


def parse_line(line: bytes | str) -> ChannelMessage | None:
    """Decode one channel line.

    Returns ``None`` for blank lines and objects without a ``message``
    discriminator.

    Raises
    ------
    MalformedPayloadError
        If the line is not a JSON object.
    """
    if isinstance(line, bytes):
        try:
            line = line.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedPayloadError("Channel line is not valid UTF-8") from exc
    text = line.strip()
    if not text:
        return None
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise MalformedPayloadError(f"Invalid JSON on channel: {text[:200]}") from exc
    if not isinstance(data, dict):
        raise MalformedPayloadError(f"Channel message is not an object: {text[:200]}")
    message = safe_str(data.get("message"))
    if message is None:
        return None
    return ChannelMessage(message=message, payload=data)
