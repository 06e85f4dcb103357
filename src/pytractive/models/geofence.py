"""Geofence and power-saving zone models."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, Field, field_validator

from pytractive.ingestion.normalize import safe_float
from pytractive.models._base import LowerStrEnum, TractiveBaseModel, lower_text


class FenceShape(LowerStrEnum):
    CIRCLE = "circle"
    RECTANGLE = "rectangle"
    POLYGON = "polygon"


class FenceType(LowerStrEnum):
    SAFE = "safe"
    DANGER = "danger"
    OTHER = "other"

    @classmethod
    def _missing_(cls, value: object) -> FenceType:
        return super()._missing_(value) or cls.OTHER


class Geofence(TractiveBaseModel):
    """A named, shaped region attached to a tracker.

    ``coordinates`` is an ordered list of ``[latitude, longitude]`` pairs.
    Circles use the first pair as center together with ``radius`` (metres).
    """

    id: str = Field(default="", validation_alias=AliasChoices("_id", "id"))
    name: str = ""
    shape: FenceShape = FenceShape.POLYGON
    coordinates: list[tuple[float, float]] = Field(
        default_factory=list,
        validation_alias=AliasChoices("coords", "coordinates"),
    )
    radius: float | None = None
    fence_type: FenceType = FenceType.OTHER
    active: bool = True

    @field_validator("name", mode="before")
    @classmethod
    def _trim_name(cls, value: Any) -> str:
        return "" if value is None else str(value).strip()

    @field_validator("radius", mode="before")
    @classmethod
    def _coerce_radius(cls, value: Any) -> float | None:
        return safe_float(value)

    @field_validator("shape", mode="before")
    @classmethod
    def _lower_shape(cls, value: Any) -> Any:
        return lower_text(value)

    @field_validator("fence_type", mode="before")
    @classmethod
    def _lower_fence_type(cls, value: Any) -> FenceType:
        return FenceType(lower_text(value) or "other")

    @property
    def cache_entry(self) -> dict[str, Any]:
        """Representation stored in the per-device key/value store."""
        return self.model_dump(mode="json")


class PowerSavingZone(TractiveBaseModel):
    """A region in which the tracker reduces its reporting frequency."""

    id: str = Field(default="", validation_alias=AliasChoices("_id", "id"))
    name: str = ""

    @field_validator("name", mode="before")
    @classmethod
    def _trim_name(cls, value: Any) -> str:
        return "" if value is None else str(value).strip()
