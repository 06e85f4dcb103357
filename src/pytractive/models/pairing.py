"""Pairing candidate model."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class PairingCandidate(BaseModel):
    """Data needed by the host platform to create a tracker device."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    settings: dict[str, str] = Field(default_factory=dict)
    capabilities: list[str] = Field(default_factory=list)
    store: dict[str, Any] = Field(default_factory=dict)
