from __future__ import annotations

import pytest

from pytractive.ingestion.normalize import (
    is_meaningful,
    normalize_payload,
    product_name_for,
    safe_float,
    safe_int,
)
from pytractive.models.geofence import FenceShape, FenceType
from pytractive.models.snapshot import SnapshotSource


@pytest.mark.parametrize("literal_state", ["OPERATIONAL", "not_reporting", "Whatever", None])
def test_power_saving_reason_forces_power_saving_state_poll_shape(literal_state: str | None) -> None:
    snapshot = normalize_payload({"state": literal_state, "state_reason": "POWER_SAVING"})

    assert snapshot.tracker_state == "power_saving"
    assert snapshot.tracker_state_reason == "power_saving"


def test_power_saving_reason_forces_power_saving_state_stream_shape() -> None:
    snapshot = normalize_payload(
        {
            "message": "tracker_status",
            "tracker_id": "ABCDEFGH",
            "tracker_state": "OPERATIONAL",
            "tracker_state_reason": "POWER_SAVING",
        },
        SnapshotSource.STREAM,
    )

    assert snapshot.source is SnapshotSource.STREAM
    assert snapshot.tracker_state == "power_saving"


def test_state_is_lower_cased_and_unknown_values_are_kept() -> None:
    snapshot = normalize_payload({"tracker_state": "SOMETHING_NEW", "tracker_state_reason": "OUT_OF_BATTERY"})

    assert snapshot.tracker_state == "something_new"
    assert snapshot.tracker_state_reason == "out_of_battery"


def test_absent_fields_stay_unset() -> None:
    snapshot = normalize_payload({"message": "tracker_status", "hardware": {"battery_level": "80"}})

    assert snapshot.battery_level == 80
    assert snapshot.charging is None
    assert snapshot.buzzer_active is None
    assert snapshot.latitude is None
    assert snapshot.tracker_state is None
    assert snapshot.capability_codes is None
    assert snapshot.power_saving_zone_id is None
    assert snapshot.geofences is None


def test_position_fields_are_coerced() -> None:
    snapshot = normalize_payload(
        {
            "position": {
                "latlong": ["52.1", 4.25],
                "altitude": "12",
                "speed": None,
                "sensor_used": "KNOWN_WIFI",
            }
        }
    )

    assert snapshot.latitude == pytest.approx(52.1)
    assert snapshot.longitude == pytest.approx(4.25)
    assert snapshot.altitude == 12.0
    assert snapshot.speed is None
    assert snapshot.location_source == "known_wifi"
    assert snapshot.has_coordinates


def test_command_and_charging_states() -> None:
    snapshot = normalize_payload(
        {
            "charging_state": "CHARGING",
            "battery_state": "FULL",
            "buzzer_control": {"active": True, "pending": False},
            "led_control": {"active": False},
            "live_tracking": None,
        }
    )

    assert snapshot.charging is True
    assert snapshot.battery_state == "full"
    assert snapshot.buzzer_active is True
    assert snapshot.led_active is False
    assert snapshot.live_tracking_active is None

    assert normalize_payload({"charging_state": "NOT_CHARGING"}).charging is False


def test_model_and_product_name() -> None:
    snapshot = normalize_payload({"model_number": "TG4422", "hw_edition": "DOG4"})
    assert snapshot.model_name == "TG4422_DOG4"
    assert snapshot.product_name == "Tractive GPS DOG 4"

    by_sku = normalize_payload({"model_number": "TG5", "sku": "TRCAT6"})
    assert by_sku.product_name == "Tractive GPS CAT 6"


def test_unknown_product_yields_placeholder() -> None:
    assert product_name_for("NOPE_1") == "-"
    assert product_name_for(None, sku="UNKNOWN") == "-"
    assert normalize_payload({"model_number": "XYZ"}).product_name == "-"


def test_capability_codes_and_zone_id() -> None:
    snapshot = normalize_payload({"capabilities": ["BUZZER", "led"], "power_saving_zone_id": None})

    assert snapshot.capability_codes == frozenset({"BUZZER", "LED"})
    assert snapshot.power_saving_zone_id == ""

    in_zone = normalize_payload({"power_saving_zone_id": "psz1"})
    assert in_zone.power_saving_zone_id == "psz1"


def test_sections_are_parsed() -> None:
    snapshot = normalize_payload(
        {
            "geofences": [
                {
                    "_id": "g1",
                    "_type": "geofence",
                    "name": "  Yard ",
                    "shape": "CIRCLE",
                    "coords": [[52.0, 4.0]],
                    "radius": 100,
                    "fence_type": "SAFE",
                    "active": True,
                },
                "not-a-fence",
            ],
            "power_saving_zones": [{"_id": "psz1", "name": " Home "}],
        }
    )

    assert snapshot.geofences is not None
    assert len(snapshot.geofences) == 1
    fence = snapshot.geofences[0]
    assert fence.id == "g1"
    assert fence.name == "Yard"
    assert fence.shape is FenceShape.CIRCLE
    assert fence.fence_type is FenceType.SAFE
    assert fence.coordinates == [(52.0, 4.0)]
    assert fence.radius == 100.0

    assert snapshot.power_saving_zones is not None
    assert snapshot.power_saving_zones[0].name == "Home"


def test_empty_sections_are_present_but_empty() -> None:
    snapshot = normalize_payload({"geofences": [], "power_saving_zones": None})

    assert snapshot.geofences == []
    assert snapshot.power_saving_zones == []


def test_safe_helpers() -> None:
    assert safe_float("1.5") == 1.5
    assert safe_float("nan") is None
    assert safe_float(True) is None
    assert safe_float("") is None
    assert safe_int("79.6") == 80
    assert safe_int("abc") is None


def test_is_meaningful() -> None:
    assert is_meaningful(False)
    assert is_meaningful(0)
    assert not is_meaningful(None)
    assert not is_meaningful("")
    assert not is_meaningful({})
    assert not is_meaningful([])
