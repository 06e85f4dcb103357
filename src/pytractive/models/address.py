"""Reverse-geocoded address model."""

from __future__ import annotations

from typing import Any

from pydantic import field_validator

from pytractive.models._base import TractiveBaseModel


def _text(value: Any) -> str:
    return "" if value is None else str(value)


class Address(TractiveBaseModel):
    """Structured address returned by the geocoding endpoint."""

    house_number: str = ""
    street: str = ""
    zip_code: str = ""
    city: str = ""
    country: str = ""

    @field_validator("house_number", "street", "city", mode="before")
    @classmethod
    def _lower(cls, value: Any) -> str:
        return _text(value).lower()

    @field_validator("zip_code", "country", mode="before")
    @classmethod
    def _upper(cls, value: Any) -> str:
        return _text(value).upper()

    @property
    def label(self) -> str:
        """Single-line rendering, e.g. ``"main street 12, 1000 AB amsterdam, NL"``."""
        street = " ".join(part for part in (self.street, self.house_number) if part)
        place = " ".join(part for part in (self.zip_code, self.city) if part)
        return ", ".join(part for part in (street, place, self.country) if part)
