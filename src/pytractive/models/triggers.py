"""Device trigger names and their typed payloads."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict

from pytractive.models.address import Address


class TriggerName(StrEnum):
    LOCATION_CHANGED = "location_changed"
    ENTERED_GEOFENCE = "in_geofence_true"
    LEFT_GEOFENCE = "in_geofence_false"
    ENTERED_SAFE_ZONE = "in_safe_zone_true"
    ENTERED_DANGER_ZONE = "in_danger_zone_true"
    ENTERED_POWER_SAVING_ZONE = "in_power_saving_zone_true"
    TRACKER_STATE_CHANGED = "tracker_state_changed"
    BATTERY_STATE_CHANGED = "battery_state_changed"


class TriggerTokens(BaseModel):
    model_config = ConfigDict(frozen=True)


class LocationTokens(TriggerTokens):
    latitude: float
    longitude: float
    address: str = ""
    street: str = ""
    house_number: str = ""
    zip_code: str = ""
    city: str = ""
    country: str = ""

    @classmethod
    def build(cls, latitude: float, longitude: float, address: Address | None) -> LocationTokens:
        if address is None:
            return cls(latitude=latitude, longitude=longitude)
        return cls(
            latitude=latitude,
            longitude=longitude,
            address=address.label,
            street=address.street,
            house_number=address.house_number,
            zip_code=address.zip_code,
            city=address.city,
            country=address.country,
        )


class GeofenceTokens(TriggerTokens):
    geofence: str


class PowerSavingZoneTokens(TriggerTokens):
    power_saving_zone: str


class TrackerStateTokens(TriggerTokens):
    tracker_state: str


class BatteryStateTokens(TriggerTokens):
    battery_state: str
