from __future__ import annotations

import pytest

from pytractive.models.address import Address
from pytractive.models.geofence import Geofence
from pytractive.models.snapshot import TrackerSnapshot
from pytractive.models.triggers import (
    BatteryStateTokens,
    GeofenceTokens,
    LocationTokens,
    PowerSavingZoneTokens,
    TrackerStateTokens,
    TriggerName,
)
from pytractive.state.capabilities import Capability, capability_changes, pair_capabilities
from pytractive.state.device_state import DeviceState, RecordingTriggers
from pytractive.state.reconciler import StateReconciler


def _device(codes: list[str] | None = None) -> tuple[DeviceState, RecordingTriggers, StateReconciler]:
    host = DeviceState(
        "ABCDEFGH",
        capabilities=pair_capabilities(codes or ["BUZZER", "LED", "LT"]),
        settings={"model_name": "", "product_name": ""},
    )
    triggers = RecordingTriggers()
    return host, triggers, StateReconciler("ABCDEFGH", host, triggers)


def _fence(name: str, fence_type: str) -> Geofence:
    return Geofence.model_validate(
        {"_id": name, "name": name, "shape": "CIRCLE", "coords": [[52.0, 4.0]], "radius": 100, "fence_type": fence_type}
    )


@pytest.mark.asyncio
async def test_applying_the_same_snapshot_twice_writes_nothing_the_second_time() -> None:
    host, triggers, reconciler = _device()
    snapshot = TrackerSnapshot(
        battery_level=80,
        charging=False,
        tracker_state="operational",
        buzzer_active=False,
        latitude=52.0,
        longitude=4.0,
        altitude=3.5,
        speed=0.0,
        model_name="TG4422_DOG4",
        product_name="Tractive GPS DOG 4",
        in_geofence=False,
    )

    assert await reconciler.reconcile(snapshot)
    first_writes = len(host.writes)
    first_triggers = len(triggers.fired)
    assert first_writes > 0

    assert await reconciler.reconcile(snapshot)
    assert len(host.writes) == first_writes
    assert len(triggers.fired) == first_triggers


@pytest.mark.asyncio
async def test_values_only_written_for_declared_capabilities() -> None:
    host, _, reconciler = _device(codes=[])
    await reconciler.reconcile(TrackerSnapshot(buzzer_active=True, led_active=True, battery_level=55))

    assert host.get_capability_value(Capability.MEASURE_BATTERY) == 55
    assert not host.has_capability(Capability.BUZZER_CONTROL)
    assert host.get_capability_value(Capability.BUZZER_CONTROL) is None


@pytest.mark.asyncio
async def test_false_and_zero_are_values_but_none_is_not() -> None:
    host, _, reconciler = _device()
    await reconciler.reconcile(TrackerSnapshot(charging=True, speed=4.0))
    await reconciler.reconcile(TrackerSnapshot(charging=False, speed=0.0))
    await reconciler.reconcile(TrackerSnapshot())

    assert host.get_capability_value(Capability.CHARGING_STATE) is False
    assert host.get_capability_value(Capability.SPEED) == 0.0


@pytest.mark.asyncio
async def test_settings_are_applied_in_one_batch() -> None:
    host, _, reconciler = _device()
    await reconciler.reconcile(TrackerSnapshot(model_name="TG5", product_name="Tractive GPS DOG 6"))

    batches = host.writes_of("settings")
    assert len(batches) == 1
    assert batches[0].value == {"model_name": "TG5", "product_name": "Tractive GPS DOG 6"}
    assert host.settings()["model_name"] == "TG5"


@pytest.mark.asyncio
async def test_entering_a_safe_geofence_fires_entered_and_safe_zone_once() -> None:
    host, triggers, reconciler = _device()
    await reconciler.reconcile(TrackerSnapshot(in_geofence=False))
    assert triggers.fired == []

    yard = _fence("Yard", "safe")
    await reconciler.reconcile(TrackerSnapshot(in_geofence=True, geofence_match=yard))

    names = triggers.names()
    assert names.count(TriggerName.ENTERED_GEOFENCE) == 1
    assert names.count(TriggerName.ENTERED_SAFE_ZONE) == 1
    assert names.count(TriggerName.LEFT_GEOFENCE) == 0
    assert names.count(TriggerName.ENTERED_DANGER_ZONE) == 0
    assert triggers.fired[0].tokens == GeofenceTokens(geofence="Yard")
    assert host.get_capability_value(Capability.GEOFENCE) == "Yard"
    assert host.get_capability_value(Capability.IN_GEOFENCE) is True

    await reconciler.reconcile(TrackerSnapshot(in_geofence=True, geofence_match=yard))
    assert len(triggers.fired) == 2


@pytest.mark.asyncio
async def test_entering_a_danger_geofence_fires_danger_sub_trigger() -> None:
    _, triggers, reconciler = _device()
    await reconciler.reconcile(TrackerSnapshot(in_geofence=True, geofence_match=_fence("Road", "danger")))

    assert triggers.names() == [TriggerName.ENTERED_GEOFENCE, TriggerName.ENTERED_DANGER_ZONE]


@pytest.mark.asyncio
async def test_leaving_a_geofence_carries_the_previous_name() -> None:
    host, triggers, reconciler = _device()
    await reconciler.reconcile(TrackerSnapshot(in_geofence=True, geofence_match=_fence("Yard", "other")))
    assert triggers.names() == [TriggerName.ENTERED_GEOFENCE]

    await reconciler.reconcile(TrackerSnapshot(in_geofence=False))

    assert triggers.names()[-1] is TriggerName.LEFT_GEOFENCE
    assert triggers.fired[-1].tokens == GeofenceTokens(geofence="Yard")
    assert host.get_capability_value(Capability.IN_GEOFENCE) is False

    await reconciler.reconcile(TrackerSnapshot(in_geofence=False))
    assert triggers.names().count(TriggerName.LEFT_GEOFENCE) == 1


@pytest.mark.asyncio
async def test_location_trigger_only_on_coordinate_change() -> None:
    _, triggers, reconciler = _device()
    address = Address.model_validate({"street": "Main Street", "house_number": "1", "zip_code": "2611ab", "city": "Delft"})

    await reconciler.reconcile(TrackerSnapshot(latitude=52.0, longitude=4.0, resolved_address=address))
    await reconciler.reconcile(TrackerSnapshot(latitude=52.0, longitude=4.0))

    assert triggers.names() == [TriggerName.LOCATION_CHANGED]
    tokens = triggers.fired[0].tokens
    assert isinstance(tokens, LocationTokens)
    assert tokens.street == "main street"
    assert tokens.zip_code == "2611AB"
    assert tokens.address == "main street 1, 2611AB delft"


@pytest.mark.asyncio
async def test_power_saving_zone_entry_fires_once() -> None:
    _, triggers, reconciler = _device()
    await reconciler.reconcile(TrackerSnapshot(power_saving_zone_active=False, power_saving_zone_name=""))
    await reconciler.reconcile(TrackerSnapshot(power_saving_zone_active=True, power_saving_zone_name="Home"))
    await reconciler.reconcile(TrackerSnapshot(power_saving_zone_active=True, power_saving_zone_name="Home"))

    assert triggers.names() == [TriggerName.ENTERED_POWER_SAVING_ZONE]
    assert triggers.fired[0].tokens == PowerSavingZoneTokens(power_saving_zone="Home")


@pytest.mark.asyncio
async def test_tracker_state_change_fires_with_new_state() -> None:
    _, triggers, reconciler = _device()
    await reconciler.reconcile(TrackerSnapshot(tracker_state="operational"))
    await reconciler.reconcile(TrackerSnapshot(tracker_state="operational"))
    await reconciler.reconcile(TrackerSnapshot(battery_level=40))
    assert triggers.names() == [TriggerName.TRACKER_STATE_CHANGED]

    await reconciler.reconcile(TrackerSnapshot(tracker_state="power_saving", tracker_state_reason="power_saving"))

    assert triggers.names() == [TriggerName.TRACKER_STATE_CHANGED, TriggerName.TRACKER_STATE_CHANGED]
    assert triggers.fired[-1].tokens == TrackerStateTokens(tracker_state="power_saving")


@pytest.mark.asyncio
async def test_battery_state_change_fires_only_on_edges() -> None:
    host, triggers, reconciler = _device()
    await host.set_capability_value(Capability.BATTERY_STATE, "regular")

    await reconciler.reconcile(TrackerSnapshot(battery_state="regular"))
    await reconciler.reconcile(TrackerSnapshot(battery_state=""))
    assert triggers.fired == []

    await reconciler.reconcile(TrackerSnapshot(battery_state="low"))
    await reconciler.reconcile(TrackerSnapshot(battery_state="low"))

    assert triggers.names() == [TriggerName.BATTERY_STATE_CHANGED]
    assert triggers.fired[0].tokens == BatteryStateTokens(battery_state="low")
    assert host.get_capability_value(Capability.BATTERY_STATE) == "low"

@pytest.mark.asyncio
async def test_capability_codes_growing_adds_exactly_led_control() -> None:
    host, _, reconciler = _device(codes=["BUZZER"])
    await reconciler.reconcile(TrackerSnapshot(capability_codes=frozenset({"BUZZER"})))
    before = len(host.writes)

    await reconciler.reconcile(TrackerSnapshot(capability_codes=frozenset({"BUZZER", "LED"})))

    added = host.writes_of("add_capability")
    removed = host.writes_of("remove_capability")
    assert [write.name for write in added] == ["led_control"]
    assert removed == []
    assert len(host.writes) == before + 1


@pytest.mark.asyncio
async def test_capability_codes_shrinking_removes_backed_capability() -> None:
    host, _, reconciler = _device(codes=["BUZZER", "LED", "LT"])
    await reconciler.reconcile(TrackerSnapshot(capability_codes=frozenset({"BUZZER"})))

    assert sorted(write.name for write in host.writes_of("remove_capability")) == ["led_control", "live_tracking"]
    assert host.has_capability(Capability.BUZZER_CONTROL)


@pytest.mark.asyncio
async def test_missing_always_present_capabilities_are_added() -> None:
    host = DeviceState("ABCDEFGH", capabilities=["measure_battery", "buzzer_control"])
    reconciler = StateReconciler("ABCDEFGH", host, RecordingTriggers())

    await reconciler.reconcile(TrackerSnapshot())

    for name in ("geofence", "in_geofence", "location_source", "power_saving_zone", "in_power_saving_zone"):
        assert host.has_capability(name)
    assert host.has_capability("buzzer_control")


def test_capability_changes_table() -> None:
    declared = pair_capabilities(["BUZZER"])
    assert capability_changes(["BUZZER", "LED"], declared) == (["led_control"], [])
    assert capability_changes([], declared) == ([], ["buzzer_control"])


@pytest.mark.asyncio
async def test_warning_set_and_cleared() -> None:
    host, _, reconciler = _device()
    await reconciler.reconcile(TrackerSnapshot(tracker_state_reason="out_of_battery"))
    assert host.warning == "out_of_battery"

    await reconciler.reconcile(TrackerSnapshot(tracker_state_reason="out_of_battery"))
    assert len(host.writes_of("warning")) == 1

    await reconciler.reconcile(TrackerSnapshot(tracker_state="operational"))
    assert host.warning is None
    assert len(host.writes_of("unset_warning")) == 1


class _BrokenHost(DeviceState):
    broken = True

    async def set_capability_value(self, name: str, value: object) -> None:
        if self.broken:
            raise RuntimeError("capability store offline")
        await super().set_capability_value(name, value)


@pytest.mark.asyncio
async def test_failure_marks_unavailable_without_raising() -> None:
    host = _BrokenHost("ABCDEFGH", capabilities=pair_capabilities([]))
    reconciler = StateReconciler("ABCDEFGH", host, RecordingTriggers())

    assert await reconciler.reconcile(TrackerSnapshot(battery_level=10)) is False
    assert host.available is False
    assert host.unavailable_reason == "capability store offline"

    host.broken = False
    assert await reconciler.reconcile(TrackerSnapshot(battery_level=10)) is True
    assert host.available is True
