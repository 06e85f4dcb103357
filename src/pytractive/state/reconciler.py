"""Apply enriched snapshots to a device, writing and triggering only on change.

Each cycle runs in a fixed order::

    capability set -> triggers -> settings -> values -> warning

Triggers run before values are committed so edge detection compares the
snapshot against the values the device held before this cycle.
"""

from __future__ import annotations

import logging
from typing import Any

from pytractive._constants import WARNING_MESSAGES
from pytractive.exceptions import unavailable_reason
from pytractive.host import DeviceHost, TriggerSink
from pytractive.ingestion.normalize import is_meaningful
from pytractive.models.geofence import FenceType
from pytractive.models.snapshot import TrackerSnapshot
from pytractive.models.triggers import (
    BatteryStateTokens,
    GeofenceTokens,
    LocationTokens,
    PowerSavingZoneTokens,
    TrackerStateTokens,
    TriggerName,
)
from pytractive.state.capabilities import ALWAYS_PRESENT_CAPABILITIES, Capability, capability_changes

_logger = logging.getLogger(__name__)

SETTING_KEYS: tuple[str, ...] = ("model_name", "product_name")

_ZONE_SUB_TRIGGERS: dict[FenceType, TriggerName] = {
    FenceType.SAFE: TriggerName.ENTERED_SAFE_ZONE,
    FenceType.DANGER: TriggerName.ENTERED_DANGER_ZONE,
}


def capability_values(snapshot: TrackerSnapshot) -> dict[str, Any]:
    """Map a snapshot onto capability names; ``None`` means "not carried"."""
    return {
        Capability.MEASURE_BATTERY: snapshot.battery_level,
        Capability.BATTERY_STATE: snapshot.battery_state,
        Capability.CHARGING_STATE: snapshot.charging,
        Capability.TRACKER_STATE: snapshot.tracker_state,
        Capability.BUZZER_CONTROL: snapshot.buzzer_active,
        Capability.LED_CONTROL: snapshot.led_active,
        Capability.LIVE_TRACKING: snapshot.live_tracking_active,
        Capability.ALTITUDE: snapshot.altitude,
        Capability.SPEED: snapshot.speed,
        Capability.LATITUDE: snapshot.latitude,
        Capability.LONGITUDE: snapshot.longitude,
        Capability.LOCATION_SOURCE: snapshot.location_source,
        Capability.GEOFENCE: snapshot.geofence_name,
        Capability.IN_GEOFENCE: snapshot.in_geofence,
        Capability.POWER_SAVING_ZONE: snapshot.power_saving_zone_name,
        Capability.IN_POWER_SAVING_ZONE: snapshot.power_saving_zone_active,
    }


def setting_values(snapshot: TrackerSnapshot) -> dict[str, Any]:
    return {"model_name": snapshot.model_name, "product_name": snapshot.product_name}


class StateReconciler:
    """Diffs snapshots against one device's host state."""

    def __init__(self, device_id: str, host: DeviceHost, triggers: TriggerSink) -> None:
        self._device_id = device_id
        self._host = host
        self._triggers = triggers

    async def reconcile(self, snapshot: TrackerSnapshot) -> bool:
        """Apply *snapshot*; return False when the cycle failed.

        A failure marks the device unavailable and is not re-raised.
        """
        try:
            await self.sync_capability_set(snapshot)
            await self.fire_triggers(snapshot)
            await self.sync_settings(snapshot)
            await self.sync_values(snapshot)
            await self.sync_warning(snapshot)
        except Exception as exc:
            _logger.error("Sync of %s failed", self._device_id, exc_info=True)
            await self._host.set_unavailable(unavailable_reason(exc))
            return False
        await self._host.set_available()
        return True

    # ------------------------------------------------------------------
    # Capability set
    # ------------------------------------------------------------------

    async def sync_capability_set(self, snapshot: TrackerSnapshot) -> None:
        declared = self._host.capabilities()
        if snapshot.capability_codes is None:
            to_add = [cap.value for cap in ALWAYS_PRESENT_CAPABILITIES if cap.value not in declared]
            to_remove: list[str] = []
        else:
            to_add, to_remove = capability_changes(snapshot.capability_codes, declared)

        for name in to_add:
            await self._host.add_capability(name)
            _logger.info("Added capability %r to %s", name, self._device_id)
        for name in to_remove:
            await self._host.remove_capability(name)
            _logger.info("Removed capability %r from %s", name, self._device_id)

    # ------------------------------------------------------------------
    # Triggers
    # ------------------------------------------------------------------

    async def fire_triggers(self, snapshot: TrackerSnapshot) -> None:
        host = self._host

        if snapshot.has_coordinates:
            assert snapshot.latitude is not None and snapshot.longitude is not None  # noqa: S101
            previous = (
                host.get_capability_value(Capability.LATITUDE),
                host.get_capability_value(Capability.LONGITUDE),
            )
            if previous != (snapshot.latitude, snapshot.longitude):
                await self._fire(
                    TriggerName.LOCATION_CHANGED,
                    LocationTokens.build(snapshot.latitude, snapshot.longitude, snapshot.resolved_address),
                )

        if snapshot.in_geofence is not None:
            was_inside = host.get_capability_value(Capability.IN_GEOFENCE) is True
            if snapshot.in_geofence and not was_inside:
                tokens = GeofenceTokens(geofence=snapshot.geofence_name or "")
                await self._fire(TriggerName.ENTERED_GEOFENCE, tokens)
                sub_trigger = _ZONE_SUB_TRIGGERS.get(snapshot.geofence_type) if snapshot.geofence_type else None
                if sub_trigger is not None:
                    await self._fire(sub_trigger, tokens)
            elif not snapshot.in_geofence and was_inside:
                previous_name = host.get_capability_value(Capability.GEOFENCE) or ""
                await self._fire(TriggerName.LEFT_GEOFENCE, GeofenceTokens(geofence=str(previous_name)))

        if snapshot.power_saving_zone_active:
            was_inside = host.get_capability_value(Capability.IN_POWER_SAVING_ZONE) is True
            if not was_inside:
                await self._fire(
                    TriggerName.ENTERED_POWER_SAVING_ZONE,
                    PowerSavingZoneTokens(power_saving_zone=snapshot.power_saving_zone_name or ""),
                )

        if self._changed(Capability.TRACKER_STATE, snapshot.tracker_state):
            await self._fire(
                TriggerName.TRACKER_STATE_CHANGED,
                TrackerStateTokens(tracker_state=str(snapshot.tracker_state)),
            )
        if self._changed(Capability.BATTERY_STATE, snapshot.battery_state):
            await self._fire(
                TriggerName.BATTERY_STATE_CHANGED,
                BatteryStateTokens(battery_state=str(snapshot.battery_state)),
            )

    def _changed(self, name: Capability, value: Any) -> bool:
        if not is_meaningful(value) or not self._host.has_capability(name):
            return False
        return self._host.get_capability_value(name) != value

    async def _fire(self, name: TriggerName, tokens: Any) -> None:
        _logger.debug("Firing %s for %s", name.value, self._device_id)
        await self._triggers.trigger(self._device_id, name, tokens)

    # ------------------------------------------------------------------
    # Settings and values
    # ------------------------------------------------------------------

    async def sync_settings(self, snapshot: TrackerSnapshot) -> None:
        incoming = setting_values(snapshot)
        staged: dict[str, Any] = {}
        for key, current in self._host.settings().items():
            value = incoming.get(key)
            if is_meaningful(value) and value != current:
                _logger.info("Setting %r of %s is now %r", key, self._device_id, value)
                staged[key] = value
        if staged:
            await self._host.set_settings(staged)

    async def sync_values(self, snapshot: TrackerSnapshot) -> None:
        values = capability_values(snapshot)
        for name in self._host.capabilities():
            value = values.get(name)
            if not is_meaningful(value):
                continue
            if self._host.get_capability_value(name) == value:
                continue
            await self._host.set_capability_value(name, value)

    # ------------------------------------------------------------------
    # Warning
    # ------------------------------------------------------------------

    async def sync_warning(self, snapshot: TrackerSnapshot) -> None:
        reason = snapshot.tracker_state_reason
        if reason in WARNING_MESSAGES:
            if self._host.warning != reason:
                await self._host.set_warning(reason, WARNING_MESSAGES[reason])
            return
        if self._host.warning in WARNING_MESSAGES:
            await self._host.unset_warning()
