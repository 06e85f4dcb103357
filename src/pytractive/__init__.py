"""pytractive - Async state-sync engine for Tractive GPS pet trackers."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pytractive")
except PackageNotFoundError:
    __version__ = "0+local"
from pytractive.app import TractiveApp
from pytractive.availability import AvailabilityMonitor, HeartbeatVerdict
from pytractive.channel import StreamStatus, StreamSupervisor, Subscription
from pytractive.client import TractiveClient
from pytractive.config import TractiveConfig
from pytractive.device import TrackerDevice
from pytractive.exceptions import (
    CommandRejectedError,
    MalformedPayloadError,
    NoTokenError,
    TractiveAuthError,
    TractiveConfigError,
    TractiveError,
    TractiveSessionExpiredError,
    TractiveTransportError,
    ZoneLookupError,
)
from pytractive.models import (
    AccessToken,
    Address,
    FenceShape,
    FenceType,
    Geofence,
    PairingCandidate,
    PowerSavingZone,
    SnapshotSource,
    TrackerSnapshot,
    TrackerState,
    TriggerName,
)
from pytractive.scheduler import PollScheduler
from pytractive.state.device_state import DeviceState, MemoryStore, RecordingTriggers

__all__ = [
    "__version__",
    "AccessToken",
    "Address",
    "AvailabilityMonitor",
    "CommandRejectedError",
    "DeviceState",
    "FenceShape",
    "FenceType",
    "Geofence",
    "HeartbeatVerdict",
    "MalformedPayloadError",
    "MemoryStore",
    "NoTokenError",
    "PairingCandidate",
    "PollScheduler",
    "PowerSavingZone",
    "RecordingTriggers",
    "SnapshotSource",
    "StreamStatus",
    "StreamSupervisor",
    "Subscription",
    "TractiveApp",
    "TractiveAuthError",
    "TractiveClient",
    "TractiveConfig",
    "TractiveConfigError",
    "TractiveError",
    "TractiveSessionExpiredError",
    "TractiveTransportError",
    "TrackerDevice",
    "TrackerSnapshot",
    "TrackerState",
    "TriggerName",
    "ZoneLookupError",
]
