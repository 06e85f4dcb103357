from __future__ import annotations

import math
from typing import Any

import pytest

from pytractive.exceptions import TractiveTransportError
from pytractive.models.address import Address
from pytractive.models.geofence import Geofence, PowerSavingZone
from pytractive.models.snapshot import TrackerSnapshot
from pytractive.state.device_state import MemoryStore
from pytractive.state.geo import distance_m, is_point_in_polygon
from pytractive.state.zones import GEOFENCES_KEY, POWER_SAVING_ZONES_KEY, ZoneResolver, fence_contains

# One metre of latitude in degrees.
_LAT_PER_M = 1 / (6_371_000.0 * math.pi / 180)


def _circle(fence_id: str, name: str, lat: float, lon: float, radius: float, fence_type: str = "safe") -> Geofence:
    return Geofence.model_validate(
        {
            "_id": fence_id,
            "name": name,
            "shape": "CIRCLE",
            "coords": [[lat, lon]],
            "radius": radius,
            "fence_type": fence_type,
        }
    )


def _square(fence_id: str, name: str, south: float, west: float, north: float, east: float) -> Geofence:
    return Geofence.model_validate(
        {
            "_id": fence_id,
            "name": name,
            "shape": "POLYGON",
            "coords": [[south, west], [south, east], [north, east], [north, west]],
            "fence_type": "DANGER",
        }
    )


class _FakeLookupClient:
    def __init__(self, *, zones: dict[str, dict[str, Any]] | None = None, address_error: bool = False) -> None:
        self.zones = zones or {}
        self.address_error = address_error
        self.address_calls: list[tuple[float, float]] = []
        self.zone_calls: list[str] = []

    async def get_address(self, latitude: float, longitude: float) -> Address:
        self.address_calls.append((latitude, longitude))
        if self.address_error:
            raise TractiveTransportError("HTTP 500 from /platform/geo/address/location", status_code=500)
        return Address.model_validate({"street": "Main Street", "house_number": "1", "city": "Delft", "country": "nl"})

    async def get_power_saving_zone(self, zone_id: str) -> dict[str, Any]:
        self.zone_calls.append(zone_id)
        if zone_id not in self.zones:
            raise TractiveTransportError(f"HTTP 404 from /power_saving_zone/{zone_id}", status_code=404)
        return self.zones[zone_id]


def test_distance_m_matches_known_offset() -> None:
    assert distance_m(52.0, 4.0, 52.0 + 100 * _LAT_PER_M, 4.0) == pytest.approx(100.0, rel=1e-6)


def test_point_in_polygon() -> None:
    ring = [(0.0, 0.0), (0.0, 1.0), (1.0, 1.0), (1.0, 0.0)]
    assert is_point_in_polygon(0.5, 0.5, ring)
    assert not is_point_in_polygon(1.5, 0.5, ring)
    assert not is_point_in_polygon(0.5, 0.5, ring[:2])


def test_rectangle_with_two_corners() -> None:
    fence = Geofence.model_validate(
        {"_id": "r", "name": "Field", "shape": "RECTANGLE", "coords": [[52.0, 4.0], [52.01, 4.01]]}
    )
    assert fence_contains(fence, 52.005, 4.005)
    assert not fence_contains(fence, 52.02, 4.005)


@pytest.mark.asyncio
async def test_circle_containment_50m_inside_500m_outside() -> None:
    store = MemoryStore()
    resolver = ZoneResolver(store, _FakeLookupClient())
    await resolver.save_geofences([_circle("a", "Yard", 52.0, 4.0, 100)])

    inside = resolver.resolve_geofence(52.0 + 50 * _LAT_PER_M, 4.0)
    outside = resolver.resolve_geofence(52.0 + 500 * _LAT_PER_M, 4.0)

    assert inside is not None
    assert inside.name == "Yard"
    assert outside is None


@pytest.mark.asyncio
async def test_first_fence_in_cache_order_wins() -> None:
    store = MemoryStore()
    resolver = ZoneResolver(store, _FakeLookupClient())
    await resolver.save_geofences(
        [
            _circle("a", "A", 52.0, 4.0, 1000),
            _square("b", "B", 51.99, 3.99, 52.01, 4.01),
        ]
    )

    match = resolver.resolve_geofence(52.0, 4.0)
    assert match is not None
    assert match.name == "A"

    await resolver.save_geofences(
        [
            _square("b", "B", 51.99, 3.99, 52.01, 4.01),
            _circle("a", "A", 52.0, 4.0, 1000),
        ]
    )
    match = resolver.resolve_geofence(52.0, 4.0)
    assert match is not None
    assert match.name == "B"


@pytest.mark.asyncio
async def test_geofence_cache_is_replaced_and_filtered() -> None:
    store = MemoryStore()
    resolver = ZoneResolver(store, _FakeLookupClient())
    inactive = Geofence.model_validate(
        {"_id": "x", "name": "Old", "shape": "CIRCLE", "coords": [[52.0, 4.0]], "radius": 50, "active": False}
    )
    unnamed = _circle("y", "   ", 52.0, 4.0, 50)

    await resolver.save_geofences([_circle("a", "A", 52.0, 4.0, 100), inactive, unnamed])
    assert [fence.name for fence in resolver.cached_geofences()] == ["A"]

    await resolver.save_geofences([_circle("b", "B", 10.0, 10.0, 100)])
    assert [fence.name for fence in resolver.cached_geofences()] == ["B"]
    assert store.get(GEOFENCES_KEY)[0]["id"] == "b"


@pytest.mark.asyncio
async def test_zone_cache_is_replaced() -> None:
    store = MemoryStore()
    resolver = ZoneResolver(store, _FakeLookupClient())

    await resolver.save_power_saving_zones([PowerSavingZone(id="p1", name="Home"), PowerSavingZone(id="p2", name="")])
    assert store.get(POWER_SAVING_ZONES_KEY) == {"p1": "Home"}

    await resolver.save_power_saving_zones([PowerSavingZone(id="p3", name="Office")])
    assert store.get(POWER_SAVING_ZONES_KEY) == {"p3": "Office"}


@pytest.mark.asyncio
async def test_zone_name_cache_then_fetch_then_blank() -> None:
    client = _FakeLookupClient(zones={"p9": {"_id": "p9", "name": "  Cabin  "}})
    store = MemoryStore({POWER_SAVING_ZONES_KEY: {"p1": "Home"}})
    resolver = ZoneResolver(store, client)

    assert await resolver.resolve_zone_name("p1") == "Home"
    assert client.zone_calls == []

    assert await resolver.resolve_zone_name("p9") == "Cabin"
    assert client.zone_calls == ["p9"]

    assert await resolver.resolve_zone_name("") == ""
    assert await resolver.resolve_zone_name(None) == ""
    assert client.zone_calls == ["p9"]


@pytest.mark.asyncio
async def test_enrich_resolves_fence_and_address_when_coordinates_change() -> None:
    client = _FakeLookupClient()
    resolver = ZoneResolver(MemoryStore(), client)
    snapshot = TrackerSnapshot(
        latitude=52.0,
        longitude=4.0,
        geofences=[_circle("a", "Yard", 52.0, 4.0, 100)],
    )

    enriched = await resolver.enrich(snapshot, 51.0, 3.0)

    assert enriched.in_geofence is True
    assert enriched.geofence_name == "Yard"
    assert enriched.resolved_address is not None
    assert enriched.resolved_address.street == "main street"
    assert enriched.resolved_address.country == "NL"
    assert client.address_calls == [(52.0, 4.0)]


@pytest.mark.asyncio
async def test_enrich_skips_lookups_when_coordinates_unchanged() -> None:
    client = _FakeLookupClient()
    resolver = ZoneResolver(MemoryStore(), client)
    snapshot = TrackerSnapshot(latitude=52.0, longitude=4.0)

    enriched = await resolver.enrich(snapshot, 52.0, 4.0)

    assert client.address_calls == []
    assert enriched.in_geofence is None
    assert enriched.resolved_address is None


@pytest.mark.asyncio
async def test_address_failure_only_drops_the_address() -> None:
    client = _FakeLookupClient(address_error=True)
    store = MemoryStore()
    resolver = ZoneResolver(store, client)
    await resolver.save_geofences([_circle("a", "Yard", 52.0, 4.0, 100)])

    enriched = await resolver.enrich(TrackerSnapshot(latitude=52.0, longitude=4.0), None, None)

    assert enriched.resolved_address is None
    assert enriched.in_geofence is True
    assert enriched.geofence_name == "Yard"


@pytest.mark.asyncio
async def test_zone_lookup_failure_omits_zone_name() -> None:
    resolver = ZoneResolver(MemoryStore(), _FakeLookupClient())

    enriched = await resolver.enrich(TrackerSnapshot(power_saving_zone_id="missing"))

    assert enriched.power_saving_zone_active is True
    assert enriched.power_saving_zone_name is None


@pytest.mark.asyncio
async def test_no_zone_yields_empty_name_and_inactive() -> None:
    resolver = ZoneResolver(MemoryStore(), _FakeLookupClient())

    enriched = await resolver.enrich(TrackerSnapshot(power_saving_zone_id=""))

    assert enriched.power_saving_zone_active is False
    assert enriched.power_saving_zone_name == ""
