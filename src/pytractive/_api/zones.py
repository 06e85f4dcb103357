"""Power-saving zone endpoints.

Endpoints:
  - GET /tracker/{id}/power_saving_zones
  - GET /power_saving_zone/{id}
"""

from __future__ import annotations

from typing import Any

from pytractive._transport import Transport


async def fetch_power_saving_zone_refs(transport: Transport, token: str, tracker_id: str) -> list[dict[str, Any]]:
    response = await transport.request_json("GET", f"/tracker/{tracker_id}/power_saving_zones", token=token)
    if not isinstance(response, list):
        return []
    return [ref for ref in response if isinstance(ref, dict)]


async def fetch_power_saving_zone(transport: Transport, token: str, zone_id: str) -> dict[str, Any]:
    response = await transport.request_json("GET", f"/power_saving_zone/{zone_id}", token=token)
    return response if isinstance(response, dict) else {}
