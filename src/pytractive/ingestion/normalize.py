"""Normalization helpers and the poll/stream payload normalizer.

Centralizes tolerant parsing so the reconciler only ever sees canonical
:class:`~pytractive.models.snapshot.TrackerSnapshot` records.  Nothing in
this module performs I/O.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from pytractive._constants import PRODUCT_NAMES_BY_MODEL, PRODUCT_NAMES_BY_SKU, UNKNOWN_PRODUCT_NAME

if TYPE_CHECKING:
    from pytractive.models.snapshot import SnapshotSource, TrackerSnapshot

_logger = logging.getLogger(__name__)


def safe_float(value: Any) -> float | None:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result):
        return None
    return result


def safe_int(value: Any) -> int | None:
    parsed = safe_float(value)
    if parsed is None:
        return None
    return int(round(parsed))


def safe_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text if text else None


def safe_lower(value: Any) -> str | None:
    text = safe_str(value)
    return text.lower() if text is not None else None


def is_meaningful(value: Any) -> bool:
    """Return True if the value is a real update rather than a placeholder."""
    if value is None:
        return False
    if value == "":
        return False
    if value == {}:
        return False
    return bool(value != [])


def _first_present(raw: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = raw.get(key)
        if is_meaningful(value):
            return value
    return None


def _command_active(value: Any) -> bool | None:
    """Command states arrive as ``{"active": bool, ...}`` objects."""
    if isinstance(value, Mapping):
        active = value.get("active")
        return bool(active) if active is not None else None
    if isinstance(value, bool):
        return value
    return None


def model_name_for(model_number: Any, hw_edition: Any = None) -> str | None:
    """``model_number`` with ``_<hw_edition>`` appended when present."""
    model = safe_str(model_number)
    if model is None:
        return None
    edition = safe_str(hw_edition)
    return f"{model}_{edition}" if edition else model


def product_name_for(model_name: str | None, sku: Any = None) -> str:
    """Resolve a marketing product name; never raises."""
    sku_text = safe_str(sku)
    if sku_text is not None:
        name = PRODUCT_NAMES_BY_SKU.get(sku_text.upper())
    else:
        name = PRODUCT_NAMES_BY_MODEL.get(model_name or "")
    return name or UNKNOWN_PRODUCT_NAME


def _parse_position(position: Mapping[str, Any], data: dict[str, Any]) -> None:
    if "altitude" in position:
        data["altitude"] = safe_float(position.get("altitude"))
    if "speed" in position:
        data["speed"] = safe_float(position.get("speed"))
    if "sensor_used" in position:
        data["location_source"] = safe_lower(position.get("sensor_used"))
    latlong = position.get("latlong")
    if isinstance(latlong, (list, tuple)) and len(latlong) >= 2:
        latitude = safe_float(latlong[0])
        longitude = safe_float(latlong[1])
        if latitude is not None and longitude is not None:
            data["latitude"] = latitude
            data["longitude"] = longitude


def _parse_section(raw: Any, model_cls: type, label: str) -> list[Any]:
    if not isinstance(raw, list):
        return []
    parsed = []
    for entry in raw:
        if not isinstance(entry, Mapping):
            continue
        try:
            parsed.append(model_cls.model_validate(dict(entry)))
        except ValidationError:
            _logger.debug("Dropping unparsable %s entry: %s", label, entry.get("_id"))
    return parsed


def normalize_payload(raw: Mapping[str, Any], source: SnapshotSource | None = None) -> TrackerSnapshot:
    """Map a poll record or stream message onto a :class:`TrackerSnapshot`.

    Poll records use ``state``/``state_reason`` while stream messages use
    ``tracker_state``/``tracker_state_reason``; both are accepted.  A
    ``power_saving`` reason always forces the ``power_saving`` state.
    """
    from pytractive.models.geofence import Geofence, PowerSavingZone
    from pytractive.models.snapshot import SnapshotSource, TrackerSnapshot, TrackerState

    data: dict[str, Any] = {"source": source or SnapshotSource.POLL}

    position = raw.get("position")
    if isinstance(position, Mapping):
        _parse_position(position, data)

    hardware = raw.get("hardware")
    if isinstance(hardware, Mapping) and "battery_level" in hardware:
        data["battery_level"] = safe_int(hardware.get("battery_level"))
    elif "battery_level" in raw:
        data["battery_level"] = safe_int(raw.get("battery_level"))

    if "battery_state" in raw:
        data["battery_state"] = safe_lower(raw.get("battery_state"))

    if "charging_state" in raw:
        charging = safe_str(raw.get("charging_state"))
        data["charging"] = None if charging is None else charging.upper() == "CHARGING"

    for key, field_name in (
        ("buzzer_control", "buzzer_active"),
        ("led_control", "led_active"),
        ("live_tracking", "live_tracking_active"),
    ):
        if key in raw:
            data[field_name] = _command_active(raw.get(key))

    state = safe_lower(_first_present(raw, "tracker_state", "state"))
    if state is not None:
        data["tracker_state"] = state

    reason = safe_lower(_first_present(raw, "tracker_state_reason", "state_reason"))
    if reason is not None:
        data["tracker_state_reason"] = reason
        if reason == TrackerState.POWER_SAVING:
            data["tracker_state"] = TrackerState.POWER_SAVING.value

    if isinstance(raw.get("capabilities"), list):
        data["capability_codes"] = frozenset(str(code).upper() for code in raw["capabilities"] if code)

    if "model_number" in raw:
        model_name = model_name_for(raw.get("model_number"), raw.get("hw_edition"))
        data["model_name"] = model_name
        data["product_name"] = product_name_for(model_name, raw.get("sku"))

    if "power_saving_zone_id" in raw:
        data["power_saving_zone_id"] = safe_str(raw.get("power_saving_zone_id")) or ""

    if "geofences" in raw:
        data["geofences"] = _parse_section(raw.get("geofences"), Geofence, "geofence")

    if "power_saving_zones" in raw:
        data["power_saving_zones"] = _parse_section(raw.get("power_saving_zones"), PowerSavingZone, "power saving zone")

    return TrackerSnapshot(**{key: value for key, value in data.items() if value is not None})
