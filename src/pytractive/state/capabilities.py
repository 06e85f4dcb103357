"""Vendor capability codes and the local capabilities they unlock.

This table is the single source of truth for both pairing and the
runtime capability-set sync.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import StrEnum


class Capability(StrEnum):
    MEASURE_BATTERY = "measure_battery"
    BATTERY_STATE = "battery_state"
    CHARGING_STATE = "charging_state"
    TRACKER_STATE = "tracker_state"
    BUZZER_CONTROL = "buzzer_control"
    LED_CONTROL = "led_control"
    LIVE_TRACKING = "live_tracking"
    ALTITUDE = "altitude"
    SPEED = "speed"
    LATITUDE = "latitude"
    LONGITUDE = "longitude"
    LOCATION_SOURCE = "location_source"
    GEOFENCE = "geofence"
    IN_GEOFENCE = "in_geofence"
    POWER_SAVING_ZONE = "power_saving_zone"
    IN_POWER_SAVING_ZONE = "in_power_saving_zone"


class VendorCapability(StrEnum):
    BUZZER = "BUZZER"
    LED = "LED"
    LIVE_TRACKING = "LT"


VENDOR_CAPABILITIES: dict[VendorCapability, tuple[Capability, ...]] = {
    VendorCapability.BUZZER: (Capability.BUZZER_CONTROL,),
    VendorCapability.LED: (Capability.LED_CONTROL,),
    VendorCapability.LIVE_TRACKING: (Capability.LIVE_TRACKING,),
}

# Declared by every paired tracker regardless of vendor codes.
BASE_CAPABILITIES: tuple[Capability, ...] = (
    Capability.MEASURE_BATTERY,
    Capability.TRACKER_STATE,
    Capability.CHARGING_STATE,
    Capability.BATTERY_STATE,
)

POSITION_CAPABILITIES: tuple[Capability, ...] = (
    Capability.ALTITUDE,
    Capability.SPEED,
    Capability.LATITUDE,
    Capability.LONGITUDE,
)

# Added on every capability sync when missing (devices paired by older releases lack them).
ALWAYS_PRESENT_CAPABILITIES: tuple[Capability, ...] = (
    Capability.GEOFENCE,
    Capability.IN_GEOFENCE,
    Capability.LOCATION_SOURCE,
    Capability.POWER_SAVING_ZONE,
    Capability.IN_POWER_SAVING_ZONE,
)


def capabilities_for_codes(codes: Iterable[str]) -> list[Capability]:
    """Return the local capabilities unlocked by *codes*, in table order."""
    present = {str(code).upper() for code in codes}
    result: list[Capability] = []
    for vendor_code, capabilities in VENDOR_CAPABILITIES.items():
        if vendor_code.value in present:
            result.extend(capabilities)
    return result


def pair_capabilities(codes: Iterable[str]) -> list[str]:
    """Full capability list for a newly paired tracker."""
    caps: list[Capability] = [*BASE_CAPABILITIES, *capabilities_for_codes(codes), *POSITION_CAPABILITIES]
    caps.extend(ALWAYS_PRESENT_CAPABILITIES)
    return [cap.value for cap in caps]


def capability_changes(codes: Iterable[str], declared: Iterable[str]) -> tuple[list[str], list[str]]:
    """Compute ``(to_add, to_remove)`` for a device declaring *declared*.

    Only capabilities backed by a vendor code are ever removed.
    """
    present = set(declared)
    wanted = {cap.value for cap in capabilities_for_codes(codes)}

    to_add = [cap.value for cap in ALWAYS_PRESENT_CAPABILITIES if cap.value not in present]
    to_remove: list[str] = []
    for capabilities in VENDOR_CAPABILITIES.values():
        for cap in capabilities:
            if cap.value in wanted and cap.value not in present:
                to_add.append(cap.value)
            elif cap.value not in wanted and cap.value in present:
                to_remove.append(cap.value)
    return to_add, to_remove
