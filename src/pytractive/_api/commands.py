"""Tracker command endpoint: GET /tracker/{id}/command/{command}/{on|off}.

The server acknowledges an accepted command with ``{"pending": true}``;
the tracker's new state then arrives on the push channel.
"""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import Any

from pytractive._redact import redact_for_log
from pytractive._transport import Transport
from pytractive.exceptions import CommandRejectedError

_logger = logging.getLogger(__name__)


class TrackerCommand(StrEnum):
    BUZZER = "buzzer_control"
    LED = "led_control"
    LIVE_TRACKING = "live_tracking"


def command_path(tracker_id: str, command: TrackerCommand | str, enable: bool) -> str:
    state = "on" if enable else "off"
    return f"/tracker/{tracker_id}/command/{TrackerCommand(command).value}/{state}"


async def send_command(
    transport: Transport,
    token: str,
    tracker_id: str,
    command: TrackerCommand | str,
    enable: bool,
) -> dict[str, Any]:
    """Send a command and return the acknowledgement.

    Raises
    ------
    CommandRejectedError
        If the server did not mark the command as pending.
    """
    response = await transport.request_json("GET", command_path(tracker_id, command, enable), token=token)
    if not isinstance(response, dict) or not response.get("pending"):
        _logger.debug("Command %s not accepted: %s", command, redact_for_log(response))
        raise CommandRejectedError(f"Tracker {tracker_id} did not accept {command}")
    return response
