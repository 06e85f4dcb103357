"""Per-tracker composition root."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import Any, Protocol

from pytractive.channel import StreamSupervisor, Subscription
from pytractive.exceptions import CommandRejectedError, NoTokenError, TractiveError, unavailable_reason
from pytractive.host import DeviceHost, KeyValueStore, TriggerSink
from pytractive.ingestion.normalize import normalize_payload
from pytractive.ingestion.stream import TRACKER_STATUS, ChannelMessage
from pytractive.models.address import Address
from pytractive.models.snapshot import SnapshotSource, TrackerState
from pytractive.scheduler import PollScheduler
from pytractive.state.capabilities import Capability
from pytractive.state.reconciler import StateReconciler
from pytractive.state.zones import ZoneResolver

_logger = logging.getLogger(__name__)


class TrackerClient(Protocol):
    async def get_tracker(self, tracker_id: str) -> dict[str, Any]: ...

    async def get_address(self, latitude: float, longitude: float) -> Address: ...

    async def get_power_saving_zone(self, zone_id: str) -> dict[str, Any]: ...

    async def set_buzzer(self, tracker_id: str, enable: bool) -> dict[str, Any]: ...

    async def set_light(self, tracker_id: str, enable: bool) -> dict[str, Any]: ...

    async def set_live(self, tracker_id: str, enable: bool) -> dict[str, Any]: ...


class TrackerDevice:
    """One tracker wired to the shared channel, its poll schedule and its host.

    Poll results and channel messages for the same tracker are processed
    one at a time.
    """

    def __init__(
        self,
        tracker_id: str,
        *,
        client: TrackerClient,
        supervisor: StreamSupervisor,
        host: DeviceHost,
        store: KeyValueStore,
        triggers: TriggerSink,
        poll_interval: float,
    ) -> None:
        self.tracker_id = tracker_id
        self.host = host
        self._client = client
        self._supervisor = supervisor
        self._lock = asyncio.Lock()
        self._subscription: Subscription | None = None

        self.zones = ZoneResolver(store, client)
        self.reconciler = StateReconciler(tracker_id, host, triggers)
        self.scheduler = PollScheduler(tracker_id, self.sync, poll_interval)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Subscribe to the channel, start polling and make sure the channel is up."""
        self._subscription = self._supervisor.subscribe(self.tracker_id, self.on_message)
        self._supervisor.add_disconnect_listener(self.scheduler.request_refresh)
        self.scheduler.start()
        try:
            await self._supervisor.register()
        except NoTokenError:
            _logger.debug("No access token yet, %s waits for the next registration", self.tracker_id)
        _logger.debug("Tracker %s initialized", self.tracker_id)

    async def teardown(self) -> None:
        """Stop receiving channel messages, then release the timers."""
        subscription, self._subscription = self._subscription, None
        if subscription is not None:
            self._supervisor.unsubscribe(subscription)
        self._supervisor.remove_disconnect_listener(self.scheduler.request_refresh)
        await self.scheduler.stop()
        _logger.debug("Tracker %s torn down", self.tracker_id)

    # ------------------------------------------------------------------
    # Synchronization
    # ------------------------------------------------------------------

    async def sync(self) -> None:
        """Fetch and apply the full tracker record."""
        try:
            record = await self._client.get_tracker(self.tracker_id)
        except TractiveError as exc:
            _logger.warning("Fetching tracker %s failed: %s", self.tracker_id, exc)
            await self.host.set_unavailable(unavailable_reason(exc))
            return
        if not record:
            _logger.warning("Tracker %s not found in account", self.tracker_id)
            return
        await self.handle_sync_data(record, SnapshotSource.POLL)

    async def on_message(self, message: ChannelMessage) -> None:
        if message.message != TRACKER_STATUS:
            return
        if message.tracker_id != self.tracker_id:
            return
        await self.handle_sync_data(message.payload, SnapshotSource.STREAM)

    async def handle_sync_data(self, raw: Mapping[str, Any], source: SnapshotSource) -> bool:
        """Normalize, enrich and reconcile one payload."""
        if not raw:
            return False
        async with self._lock:
            try:
                snapshot = normalize_payload(raw, source)
                snapshot = await self.zones.enrich(
                    snapshot,
                    self.host.get_capability_value(Capability.LATITUDE),
                    self.host.get_capability_value(Capability.LONGITUDE),
                )
            except Exception as exc:
                _logger.error("Processing %s payload for %s failed", source.value, self.tracker_id, exc_info=True)
                await self.host.set_unavailable(unavailable_reason(exc))
                return False
            return await self.reconciler.reconcile(snapshot)

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def _in_power_saving(self) -> bool:
        return self.host.get_capability_value(Capability.TRACKER_STATE) == TrackerState.POWER_SAVING

    async def set_buzzer(self, enabled: bool) -> None:
        if enabled and self._in_power_saving():
            raise CommandRejectedError("The sound cannot be turned on while the tracker is power saving")
        await self._client.set_buzzer(self.tracker_id, enabled)

    async def set_light(self, enabled: bool) -> None:
        if enabled and self._in_power_saving():
            raise CommandRejectedError("The light cannot be turned on while the tracker is power saving")
        await self._client.set_light(self.tracker_id, enabled)

    async def set_live(self, enabled: bool) -> None:
        await self._client.set_live(self.tracker_id, enabled)
