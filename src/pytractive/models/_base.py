"""Base model for Tractive API payloads.

Every vendor payload model inherits from :class:`TractiveBaseModel`
which provides:

* frozen instances with unknown keys ignored
* population by field name as well as by the vendor alias
  (``_id`` → ``id``, ``coords`` → ``coordinates`` …)
* a ``raw`` dict that captures the original payload
"""

from __future__ import annotations

import enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class LowerStrEnum(enum.StrEnum):
    """String enum matched case-insensitively (vendor sends ``"CIRCLE"``)."""

    @classmethod
    def _missing_(cls, value: object) -> LowerStrEnum | None:
        if isinstance(value, str):
            lowered = value.strip().lower()
            for member in cls:
                if member.value == lowered:
                    return member
        return None


def lower_text(value: Any) -> Any:
    """Lower-case strings, pass anything else through unchanged."""
    if isinstance(value, str):
        return value.strip().lower()
    return value


class TractiveBaseModel(BaseModel):
    """Base for Tractive API response models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

    raw: dict[str, Any] = Field(default_factory=dict, exclude=True)
    """Original API response dict."""

    @model_validator(mode="before")
    @classmethod
    def _stash_raw(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        if "raw" in values:
            return values
        merged = dict(values)
        merged["raw"] = values
        return merged
