"""Tracker endpoints.

Endpoints:
  - GET  /user/me/trackers
  - POST /bulk

A tracker's full record is assembled from several bulk entities: the
tracker itself, its hardware and position reports, the three command
states, and (for single-tracker fetches) its geofences and power-saving
zones.
"""

from __future__ import annotations

from typing import Any

from pytractive._transport import Transport
from pytractive.ingestion.normalize import model_name_for, product_name_for

COMMAND_NAMES: tuple[str, ...] = ("led_control", "buzzer_control", "live_tracking")


def bulk_entries(tracker_id: str) -> list[dict[str, str]]:
    """Bulk request entries describing one tracker's state."""
    entries = [
        {"_type": "tracker", "_id": tracker_id},
        {"_type": "device_hw_report", "_id": tracker_id},
        {"_type": "device_pos_report", "_id": tracker_id},
    ]
    entries.extend({"_type": "tracker_command_state", "_id": f"{tracker_id}_{name}"} for name in COMMAND_NAMES)
    return entries


def _find(entities: list[dict[str, Any]], *, entity_id: str, entity_type: str | None = None) -> dict[str, Any] | None:
    for entity in entities:
        if entity.get("_id") != entity_id:
            continue
        if entity_type is not None and entity.get("_type") != entity_type:
            continue
        return entity
    return None


def _geofence_owner(entity: dict[str, Any]) -> Any:
    device = entity.get("device")
    return device.get("_id") if isinstance(device, dict) else None


def enrich_tracker(tracker: dict[str, Any], entities: list[dict[str, Any]]) -> dict[str, Any]:
    """Attach the related bulk entities to a tracker record."""
    tracker_id = tracker.get("_id")
    model_name = model_name_for(tracker.get("model_number"), tracker.get("hw_edition"))
    record = dict(tracker)
    record["model_name"] = model_name
    record["product_name"] = product_name_for(model_name, tracker.get("sku"))
    record["hardware"] = _find(entities, entity_id=str(tracker_id), entity_type="device_hw_report")
    record["position"] = _find(entities, entity_id=str(tracker_id), entity_type="device_pos_report")
    for name in COMMAND_NAMES:
        record[name] = _find(entities, entity_id=f"{tracker_id}_{name}")
    record["geofences"] = [
        entity for entity in entities if entity.get("_type") == "geofence" and _geofence_owner(entity) == tracker_id
    ]
    record["power_saving_zones"] = [
        entity
        for entity in entities
        if entity.get("_type") == "power_saving_zone" and entity.get("device_id") == tracker_id
    ]
    return record


def _as_entities(response: Any) -> list[dict[str, Any]]:
    if not isinstance(response, list):
        return []
    return [entity for entity in response if isinstance(entity, dict)]


async def fetch_trackers(transport: Transport, token: str) -> list[dict[str, Any]]:
    """Return the account's tracker references (``{_id, _type}``)."""
    return _as_entities(await transport.request_json("GET", "/user/me/trackers", token=token))


async def fetch_bulk(transport: Transport, token: str, entries: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return _as_entities(await transport.request_json("POST", "/bulk", token=token, json_body=entries))


async def fetch_tracker(
    transport: Transport,
    token: str,
    tracker_id: str,
    *,
    extra_entries: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    """Fetch one enriched tracker record, ``{}`` when the tracker is unknown."""
    entities = await fetch_bulk(transport, token, [*bulk_entries(tracker_id), *(extra_entries or [])])
    tracker = _find(entities, entity_id=tracker_id, entity_type="tracker")
    if not tracker:
        return {}
    return enrich_tracker(tracker, entities)


async def fetch_all_trackers(transport: Transport, token: str) -> list[dict[str, Any]]:
    """Fetch enriched records for every tracker on the account."""
    refs = await fetch_trackers(transport, token)
    ids = [str(ref["_id"]) for ref in refs if ref.get("_id")]
    if not ids:
        return []
    entries: list[dict[str, Any]] = []
    for tracker_id in ids:
        entries.extend(bulk_entries(tracker_id))
    entities = await fetch_bulk(transport, token, entries)
    return [enrich_tracker(entity, entities) for entity in entities if entity.get("_type") == "tracker"]
