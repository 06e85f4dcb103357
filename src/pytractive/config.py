"""Client configuration for pytractive."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pytractive._constants import API_URL, CHANNEL_URL, HEARTBEAT_CHECK_INTERVAL, POLL_INTERVAL, REGISTER_DELAY


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class TractiveConfig:
    """Client configuration.

    Parameters
    ----------
    username : str
        Tractive account email.
    password : str
        Tractive account password.
    client_id : str
        Application id sent as ``X-Tractive-Client`` with every request.
    api_url : str
        REST API base URL.
    channel_url : str
        URL of the streaming push channel.
    poll_interval : float
        Seconds between full-state refreshes of each tracker.
    heartbeat_check_interval : float
        Seconds between evaluations of the push channel heartbeat.
    register_delay : float
        Seconds to wait before opening the push channel.
    request_timeout : float
        Total timeout in seconds for regular (non-stream) requests.
    api_trace_enabled : bool
        Log redacted request/response bodies at DEBUG level.
    """

    username: str
    password: str
    client_id: str = ""
    api_url: str = API_URL
    channel_url: str = CHANNEL_URL
    poll_interval: float = POLL_INTERVAL
    heartbeat_check_interval: float = HEARTBEAT_CHECK_INTERVAL
    register_delay: float = REGISTER_DELAY
    request_timeout: float = 30.0
    api_trace_enabled: bool = False

    @classmethod
    def from_env(cls, **overrides: Any) -> TractiveConfig:
        """Create configuration from environment variables.

        Reads ``TRACTIVE_USERNAME``, ``TRACTIVE_PASSWORD``,
        ``TRACTIVE_CLIENT_ID`` and the optional ``TRACTIVE_*`` tuning
        variables. Explicit keyword arguments override environment values.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "TRACTIVE_USERNAME": "username",
            "TRACTIVE_PASSWORD": "password",
            "TRACTIVE_CLIENT_ID": "client_id",
            "TRACTIVE_API_URL": "api_url",
            "TRACTIVE_CHANNEL_URL": "channel_url",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        poll_env = env.get("TRACTIVE_POLL_INTERVAL")
        if poll_env is not None and "poll_interval" not in overrides:
            config_kwargs["poll_interval"] = float(poll_env)

        check_env = env.get("TRACTIVE_HEARTBEAT_CHECK_INTERVAL")
        if check_env is not None and "heartbeat_check_interval" not in overrides:
            config_kwargs["heartbeat_check_interval"] = float(check_env)

        if "api_trace_enabled" not in overrides:
            config_kwargs["api_trace_enabled"] = _env_bool(
                env.get("TRACTIVE_API_TRACE_ENABLED"),
                False,
            )

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
