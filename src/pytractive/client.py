"""High-level async client for the Tractive API."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import aiohttp

from pytractive._api import commands as _commands_api
from pytractive._api import geo as _geo_api
from pytractive._api import geofences as _geofences_api
from pytractive._api import trackers as _trackers_api
from pytractive._api import zones as _zones_api
from pytractive._api.commands import TrackerCommand
from pytractive._api.login import fetch_token
from pytractive._transport import HttpTransport
from pytractive.config import TractiveConfig
from pytractive.exceptions import NoTokenError, TractiveError, TractiveSessionExpiredError
from pytractive.models.address import Address
from pytractive.models.token import AccessToken

_logger = logging.getLogger(__name__)

T = TypeVar("T")


class TractiveClient:
    """Async client for the Tractive API.

    Usage::

        async with TractiveClient(config) as client:
            await client.login()
            record = await client.get_tracker("ABCDEFGH")
    """

    def __init__(
        self,
        config: TractiveConfig,
        *,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._transport: HttpTransport | None = None
        self._token: AccessToken | None = None

    @property
    def config(self) -> TractiveConfig:
        return self._config

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> TractiveClient:
        if self._http_session is None:
            self._http_session = aiohttp.ClientSession()
        self._transport = HttpTransport(self._config, self._http_session)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        self._transport = None

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    async def login(self) -> AccessToken:
        """Exchange the configured credentials for an access token."""
        _logger.debug("Requesting access token")
        self._token = await fetch_token(self._config, self._require_transport())
        return self._token

    async def refresh_token(self) -> AccessToken:
        """Request a fresh access token (the credential grant is the refresh path)."""
        _logger.info("Refreshing access token")
        self._token = None
        return await self.login()

    async def ensure_token(self) -> AccessToken:
        """Return a usable token, logging in again if it expired."""
        if self._token is not None and not self._token.is_expired:
            return self._token
        return await self.login()

    @property
    def access_token(self) -> AccessToken | None:
        return self._token

    def require_token(self) -> str:
        """Return the bearer token without any I/O.

        Raises
        ------
        NoTokenError
            If no token has been obtained yet.
        """
        if self._token is None or not self._token.access_token:
            raise NoTokenError("No access token available")
        return self._token.access_token

    def invalidate_token(self) -> None:
        """Force token invalidation (next call will re-authenticate)."""
        self._token = None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_transport(self) -> HttpTransport:
        if self._transport is None:
            raise TractiveError("Client not initialized. Use 'async with TractiveClient(...) as client:'")
        return self._transport

    async def _call_with_reauth(self, fn: Callable[[str], Awaitable[T]]) -> T:
        """Run an API call, retrying once on session expiry."""
        token = await self.ensure_token()
        try:
            return await fn(token.access_token)
        except TractiveSessionExpiredError:
            self.invalidate_token()
            token = await self.ensure_token()
            return await fn(token.access_token)

    # ------------------------------------------------------------------
    # Trackers
    # ------------------------------------------------------------------

    async def get_trackers(self) -> list[dict[str, Any]]:
        """Return the account's tracker references."""
        transport = self._require_transport()
        return await self._call_with_reauth(lambda token: _trackers_api.fetch_trackers(transport, token))

    async def get_tracker(self, tracker_id: str) -> dict[str, Any]:
        """Fetch the full tracker record, including geofences and power-saving zones.

        Returns ``{}`` when the tracker is not part of the bulk response.
        """
        transport = self._require_transport()

        async def _call(token: str) -> dict[str, Any]:
            zone_refs = await _zones_api.fetch_power_saving_zone_refs(transport, token, tracker_id)
            fence_refs = await _geofences_api.fetch_geofence_refs(transport, token, tracker_id)
            return await _trackers_api.fetch_tracker(
                transport,
                token,
                tracker_id,
                extra_entries=[*zone_refs, *fence_refs],
            )

        return await self._call_with_reauth(_call)

    async def discover_trackers(self) -> list[dict[str, Any]]:
        """Fetch enriched records for every tracker on the account."""
        transport = self._require_transport()
        return await self._call_with_reauth(lambda token: _trackers_api.fetch_all_trackers(transport, token))

    # ------------------------------------------------------------------
    # Zones and geocoding
    # ------------------------------------------------------------------

    async def get_geofences(self, tracker_id: str) -> list[dict[str, Any]]:
        """Return the tracker's expanded geofence entities."""
        transport = self._require_transport()

        async def _call(token: str) -> list[dict[str, Any]]:
            refs = await _geofences_api.fetch_geofence_refs(transport, token, tracker_id)
            if not refs:
                return []
            return await _trackers_api.fetch_bulk(transport, token, refs)

        return await self._call_with_reauth(_call)

    async def get_power_saving_zones(self, tracker_id: str) -> list[dict[str, Any]]:
        """Return the tracker's expanded power-saving zone entities."""
        transport = self._require_transport()

        async def _call(token: str) -> list[dict[str, Any]]:
            refs = await _zones_api.fetch_power_saving_zone_refs(transport, token, tracker_id)
            if not refs:
                return []
            return await _trackers_api.fetch_bulk(transport, token, refs)

        return await self._call_with_reauth(_call)

    async def get_power_saving_zone(self, zone_id: str) -> dict[str, Any]:
        transport = self._require_transport()
        return await self._call_with_reauth(lambda token: _zones_api.fetch_power_saving_zone(transport, token, zone_id))

    async def get_address(self, latitude: float, longitude: float) -> Address:
        transport = self._require_transport()
        return await self._call_with_reauth(
            lambda token: _geo_api.fetch_address(transport, token, latitude, longitude)
        )

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def send_command(self, tracker_id: str, command: TrackerCommand | str, enable: bool) -> dict[str, Any]:
        """Send a tracker command.

        Raises
        ------
        CommandRejectedError
            If the server does not acknowledge the command as pending.
        """
        transport = self._require_transport()
        _logger.debug("Sending %s=%s to tracker %s", command, enable, tracker_id)
        return await self._call_with_reauth(
            lambda token: _commands_api.send_command(transport, token, tracker_id, command, enable)
        )

    async def set_buzzer(self, tracker_id: str, enable: bool) -> dict[str, Any]:
        return await self.send_command(tracker_id, TrackerCommand.BUZZER, enable)

    async def set_light(self, tracker_id: str, enable: bool) -> dict[str, Any]:
        return await self.send_command(tracker_id, TrackerCommand.LED, enable)

    async def set_live(self, tracker_id: str, enable: bool) -> dict[str, Any]:
        return await self.send_command(tracker_id, TrackerCommand.LIVE_TRACKING, enable)

    # ------------------------------------------------------------------
    # Push channel
    # ------------------------------------------------------------------

    async def open_channel(self) -> aiohttp.ClientResponse:
        """Open the streaming push channel with the current token.

        No login is attempted here; the caller decides how to react to
        :class:`NoTokenError` and :class:`TractiveSessionExpiredError`.
        """
        transport = self._require_transport()
        return await transport.open_stream(self._config.channel_url, token=self.require_token())
