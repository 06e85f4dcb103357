"""Process-wide owner of the client, push channel and availability monitor."""

from __future__ import annotations

import logging
from typing import Any

import aiohttp

from pytractive.availability import AvailabilityMonitor
from pytractive.channel import StreamSupervisor
from pytractive.client import TractiveClient
from pytractive.config import TractiveConfig
from pytractive.device import TrackerDevice
from pytractive.host import DeviceHost, KeyValueStore, TriggerSink
from pytractive.models.pairing import PairingCandidate
from pytractive.state.capabilities import pair_capabilities

_logger = logging.getLogger(__name__)


def _ref_id(record: dict[str, Any], key: str) -> str | None:
    ref = record.get(key)
    if isinstance(ref, dict) and ref.get("_id"):
        return str(ref["_id"])
    return None


def pairing_candidate(record: dict[str, Any]) -> PairingCandidate:
    """Build the host-side device description for an enriched tracker record."""
    tracker_id = str(record.get("_id") or "")
    codes = record.get("capabilities") or []
    return PairingCandidate(
        id=tracker_id,
        name=tracker_id,
        settings={
            "product_name": str(record.get("product_name") or ""),
            "model_name": str(record.get("model_name") or ""),
        },
        capabilities=pair_capabilities(codes if isinstance(codes, list) else []),
        store={
            "tracker_id": tracker_id or None,
            "pet_id": _ref_id(record, "pet"),
            "user_id": _ref_id(record, "user"),
            "subscription_id": _ref_id(record, "subscription"),
        },
    )


class TractiveApp:
    """Runs the sync engine for every tracker of one account.

    Usage::

        async with TractiveApp(config) as app:
            await app.add_device(tracker_id, host=host, store=store, triggers=triggers)
            ...
    """

    def __init__(
        self,
        config: TractiveConfig,
        *,
        client: TractiveClient | None = None,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._config = config
        self._owns_client = client is None
        self.client = client if client is not None else TractiveClient(config, session=session)
        self.supervisor = StreamSupervisor(self.client, register_delay=config.register_delay)
        self.monitor = AvailabilityMonitor(self.supervisor, interval=config.heartbeat_check_interval)
        self._devices: dict[str, TrackerDevice] = {}

    @property
    def devices(self) -> dict[str, TrackerDevice]:
        return dict(self._devices)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> TractiveApp:
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop()

    async def start(self) -> None:
        if self._owns_client:
            await self.client.__aenter__()
        await self.client.login()
        self.monitor.start()
        _logger.info("Tractive app started")

    async def stop(self) -> None:
        for tracker_id in list(self._devices):
            await self.remove_device(tracker_id)
        await self.monitor.stop()
        await self.supervisor.close()
        if self._owns_client:
            await self.client.__aexit__(None, None, None)
        _logger.info("Tractive app stopped")

    # ------------------------------------------------------------------
    # Devices
    # ------------------------------------------------------------------

    async def add_device(
        self,
        tracker_id: str,
        *,
        host: DeviceHost,
        store: KeyValueStore,
        triggers: TriggerSink,
    ) -> TrackerDevice:
        if tracker_id in self._devices:
            return self._devices[tracker_id]
        device = TrackerDevice(
            tracker_id,
            client=self.client,
            supervisor=self.supervisor,
            host=host,
            store=store,
            triggers=triggers,
            poll_interval=self._config.poll_interval,
        )
        self._devices[tracker_id] = device
        self.monitor.watch(tracker_id, host)
        await device.initialize()
        return device

    async def remove_device(self, tracker_id: str) -> None:
        device = self._devices.pop(tracker_id, None)
        if device is None:
            return
        self.monitor.unwatch(tracker_id)
        await device.teardown()

    # ------------------------------------------------------------------
    # Pairing
    # ------------------------------------------------------------------

    async def discover_trackers(self) -> list[PairingCandidate]:
        """Describe every tracker on the account for pairing."""
        records = await self.client.discover_trackers()
        candidates = [pairing_candidate(record) for record in records if record.get("_id")]
        _logger.info("Discovered %d tracker(s)", len(candidates))
        return candidates
