"""Canonical point-in-time view of a tracker."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict

from pytractive.models.address import Address
from pytractive.models.geofence import FenceType, Geofence, PowerSavingZone


class SnapshotSource(StrEnum):
    POLL = "poll"
    STREAM = "stream"


class TrackerState(StrEnum):
    """Known tracker states.

    Vendor values outside this set are kept as lower-cased strings.
    """

    OPERATIONAL = "operational"
    POWER_SAVING = "power_saving"
    NOT_REPORTING = "not_reporting"


class TrackerSnapshot(BaseModel):
    """Normalized tracker state derived from one poll or stream message.

    Every field is ``None`` when the source payload did not carry it;
    ``None`` means "no information", never false or zero.
    """

    model_config = ConfigDict(frozen=True)

    source: SnapshotSource = SnapshotSource.POLL

    altitude: float | None = None
    """Metres."""
    speed: float | None = None
    """Metres per second."""
    latitude: float | None = None
    longitude: float | None = None
    location_source: str | None = None

    battery_level: int | None = None
    battery_state: str | None = None
    charging: bool | None = None

    buzzer_active: bool | None = None
    led_active: bool | None = None
    live_tracking_active: bool | None = None

    tracker_state: str | None = None
    tracker_state_reason: str | None = None

    capability_codes: frozenset[str] | None = None
    model_name: str | None = None
    product_name: str | None = None

    resolved_address: Address | None = None
    geofence_match: Geofence | None = None
    in_geofence: bool | None = None
    """``None`` when containment was not evaluated for this snapshot."""

    power_saving_zone_id: str | None = None
    """``""`` when the payload reported "no zone"."""
    power_saving_zone_name: str | None = None
    power_saving_zone_active: bool | None = None

    geofences: list[Geofence] | None = None
    power_saving_zones: list[PowerSavingZone] | None = None

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @property
    def geofence_name(self) -> str | None:
        if self.in_geofence is None:
            return None
        return self.geofence_match.name if self.geofence_match is not None else ""

    @property
    def geofence_type(self) -> FenceType | None:
        if self.geofence_match is None:
            return None
        return self.geofence_match.fence_type
