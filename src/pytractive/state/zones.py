"""Geofence and power-saving zone resolution with a per-device cache."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any, Protocol

from pydantic import ValidationError

from pytractive.exceptions import TractiveError, ZoneLookupError
from pytractive.host import KeyValueStore
from pytractive.models.address import Address
from pytractive.models.geofence import FenceShape, Geofence, PowerSavingZone
from pytractive.models.snapshot import TrackerSnapshot
from pytractive.state.geo import is_point_in_polygon, is_within_radius

_logger = logging.getLogger(__name__)

GEOFENCES_KEY = "geofences"
POWER_SAVING_ZONES_KEY = "power_saving_zones"


class ZoneLookupClient(Protocol):
    async def get_address(self, latitude: float, longitude: float) -> Address: ...

    async def get_power_saving_zone(self, zone_id: str) -> dict[str, Any]: ...


def fence_contains(fence: Geofence, latitude: float, longitude: float) -> bool:
    """Whether the point lies inside *fence*."""
    if not fence.coordinates:
        return False
    if fence.shape is FenceShape.CIRCLE:
        if fence.radius is None:
            return False
        center_lat, center_lon = fence.coordinates[0]
        return is_within_radius(latitude, longitude, center_lat, center_lon, fence.radius)
    ring = list(fence.coordinates)
    if fence.shape is FenceShape.RECTANGLE and len(ring) == 2:
        # Two opposite corners.
        (lat_a, lon_a), (lat_b, lon_b) = ring
        ring = [(lat_a, lon_a), (lat_a, lon_b), (lat_b, lon_b), (lat_b, lon_a)]
    return is_point_in_polygon(latitude, longitude, ring)


class ZoneResolver:
    """Resolves geofence membership, zone names and addresses for one tracker.

    The geofence cache is an ordered list; its order is the evaluation
    priority.  Both caches are replaced wholesale whenever a payload
    carries the corresponding section.
    """

    def __init__(self, store: KeyValueStore, client: ZoneLookupClient) -> None:
        self._store = store
        self._client = client

    # ------------------------------------------------------------------
    # Cache maintenance
    # ------------------------------------------------------------------

    async def save_geofences(self, fences: Iterable[Geofence]) -> list[Geofence]:
        kept = [fence for fence in fences if fence.active and fence.name]
        _logger.debug("Caching %d geofence(s)", len(kept))
        await self._store.set(GEOFENCES_KEY, [fence.cache_entry for fence in kept])
        return kept

    async def save_power_saving_zones(self, zones: Iterable[PowerSavingZone]) -> dict[str, str]:
        table = {zone.id: zone.name for zone in zones if zone.id and zone.name}
        _logger.debug("Caching %d power saving zone(s)", len(table))
        await self._store.set(POWER_SAVING_ZONES_KEY, table)
        return table

    def cached_geofences(self) -> list[Geofence]:
        fences: list[Geofence] = []
        for entry in self._store.get(GEOFENCES_KEY) or []:
            try:
                fences.append(Geofence.model_validate(entry))
            except ValidationError:
                _logger.debug("Ignoring unreadable cached geofence %s", entry)
        return fences

    def cached_zone_names(self) -> dict[str, str]:
        return dict(self._store.get(POWER_SAVING_ZONES_KEY) or {})

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def resolve_geofence(self, latitude: float, longitude: float) -> Geofence | None:
        """Return the first cached fence containing the point, or ``None``."""
        for fence in self.cached_geofences():
            if fence_contains(fence, latitude, longitude):
                return fence
        return None

    async def resolve_zone_name(self, zone_id: str | None) -> str:
        """Return the zone's name, ``""`` when *zone_id* is blank.

        Raises
        ------
        ZoneLookupError
            If the zone is not cached and the direct fetch fails.
        """
        if not zone_id or not zone_id.strip():
            return ""
        cached = self.cached_zone_names().get(zone_id)
        if cached:
            return cached
        try:
            zone = await self._client.get_power_saving_zone(zone_id)
        except TractiveError as exc:
            raise ZoneLookupError(f"Power saving zone {zone_id} lookup failed: {exc}") from exc
        return str(zone.get("name") or "").strip()

    async def lookup_address(self, latitude: float, longitude: float) -> Address:
        try:
            return await self._client.get_address(latitude, longitude)
        except TractiveError as exc:
            raise ZoneLookupError(f"Address lookup failed: {exc}") from exc

    # ------------------------------------------------------------------
    # Enrichment
    # ------------------------------------------------------------------

    async def enrich(
        self,
        snapshot: TrackerSnapshot,
        previous_latitude: Any = None,
        previous_longitude: Any = None,
    ) -> TrackerSnapshot:
        """Return *snapshot* with cache updates applied and membership resolved.

        Address and geofence resolution only run when the coordinates differ
        from the previously stored ones.  Lookup failures drop the affected
        field and nothing else.
        """
        if snapshot.geofences is not None:
            await self.save_geofences(snapshot.geofences)
        if snapshot.power_saving_zones is not None:
            await self.save_power_saving_zones(snapshot.power_saving_zones)

        update: dict[str, Any] = {}

        if snapshot.power_saving_zone_id is not None:
            update["power_saving_zone_active"] = bool(snapshot.power_saving_zone_id)
            try:
                update["power_saving_zone_name"] = await self.resolve_zone_name(snapshot.power_saving_zone_id)
            except ZoneLookupError as exc:
                _logger.warning("%s", exc)

        if snapshot.has_coordinates:
            latitude = snapshot.latitude
            longitude = snapshot.longitude
            assert latitude is not None and longitude is not None  # noqa: S101
            if (latitude, longitude) != (previous_latitude, previous_longitude):
                try:
                    update["resolved_address"] = await self.lookup_address(latitude, longitude)
                except ZoneLookupError as exc:
                    _logger.warning("%s", exc)
                fence = self.resolve_geofence(latitude, longitude)
                update["geofence_match"] = fence
                update["in_geofence"] = fence is not None

        if not update:
            return snapshot
        return snapshot.model_copy(update=update)
