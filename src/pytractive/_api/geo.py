"""Reverse geocoding endpoint: GET /platform/geo/address/location."""

from __future__ import annotations

from pytractive._transport import Transport
from pytractive.models.address import Address


async def fetch_address(transport: Transport, token: str, latitude: float, longitude: float) -> Address:
    response = await transport.request_json(
        "GET",
        "/platform/geo/address/location",
        token=token,
        params={"latitude": latitude, "longitude": longitude},
    )
    return Address.model_validate(response if isinstance(response, dict) else {})
