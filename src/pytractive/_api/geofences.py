"""Geofence endpoint: GET /tracker/{id}/geofences.

Returns entity references (``{_id, _type}``) that are expanded via ``/bulk``.
"""

from __future__ import annotations

from typing import Any

from pytractive._transport import Transport


async def fetch_geofence_refs(transport: Transport, token: str, tracker_id: str) -> list[dict[str, Any]]:
    response = await transport.request_json("GET", f"/tracker/{tracker_id}/geofences", token=token)
    if not isinstance(response, list):
        return []
    return [ref for ref in response if isinstance(ref, dict)]
