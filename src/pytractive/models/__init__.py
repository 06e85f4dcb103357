"""Data models for Tractive API payloads and normalized tracker state."""

from pytractive.models._base import LowerStrEnum, TractiveBaseModel
from pytractive.models.address import Address
from pytractive.models.geofence import FenceShape, FenceType, Geofence, PowerSavingZone
from pytractive.models.pairing import PairingCandidate
from pytractive.models.snapshot import SnapshotSource, TrackerSnapshot, TrackerState
from pytractive.models.token import AccessToken
from pytractive.models.triggers import (
    BatteryStateTokens,
    GeofenceTokens,
    LocationTokens,
    PowerSavingZoneTokens,
    TrackerStateTokens,
    TriggerName,
    TriggerTokens,
)

__all__ = [
    "AccessToken",
    "Address",
    "BatteryStateTokens",
    "FenceShape",
    "FenceType",
    "Geofence",
    "GeofenceTokens",
    "LocationTokens",
    "LowerStrEnum",
    "PairingCandidate",
    "PowerSavingZone",
    "PowerSavingZoneTokens",
    "SnapshotSource",
    "TrackerStateTokens",
    "TractiveBaseModel",
    "TrackerSnapshot",
    "TrackerState",
    "TriggerName",
    "TriggerTokens",
]
