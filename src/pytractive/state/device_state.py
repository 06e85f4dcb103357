"""In-memory device host.

Implements :class:`~pytractive.host.DeviceHost`,
:class:`~pytractive.host.KeyValueStore` and
:class:`~pytractive.host.TriggerSink` with plain dictionaries and keeps a
log of every write so callers can observe exactly what changed.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from pytractive.models.triggers import TriggerName, TriggerTokens

_logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Write:
    """One recorded host mutation."""

    kind: str
    name: str
    value: Any = None


class DeviceState:
    """Per-tracker device state held in memory."""

    def __init__(
        self,
        device_id: str,
        *,
        capabilities: list[str] | None = None,
        settings: Mapping[str, Any] | None = None,
        values: Mapping[str, Any] | None = None,
    ) -> None:
        self.device_id = device_id
        self._capabilities: list[str] = list(capabilities or [])
        self._values: dict[str, Any] = dict(values or {})
        self._settings: dict[str, Any] = dict(settings or {})
        self._available = True
        self._unavailable_reason: str | None = None
        self._warning: str | None = None
        self._warning_message: str | None = None
        self.writes: list[Write] = []

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def available(self) -> bool:
        return self._available

    @property
    def unavailable_reason(self) -> str | None:
        return self._unavailable_reason

    @property
    def warning(self) -> str | None:
        return self._warning

    @property
    def warning_message(self) -> str | None:
        return self._warning_message

    def capabilities(self) -> list[str]:
        return list(self._capabilities)

    def has_capability(self, name: str) -> bool:
        return name in self._capabilities

    def get_capability_value(self, name: str) -> Any:
        return self._values.get(name)

    def values(self) -> dict[str, Any]:
        return dict(self._values)

    def settings(self) -> dict[str, Any]:
        return dict(self._settings)

    def writes_of(self, kind: str) -> list[Write]:
        return [write for write in self.writes if write.kind == kind]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def add_capability(self, name: str) -> None:
        if name in self._capabilities:
            return
        self._capabilities.append(name)
        self.writes.append(Write("add_capability", name))

    async def remove_capability(self, name: str) -> None:
        if name not in self._capabilities:
            return
        self._capabilities.remove(name)
        self._values.pop(name, None)
        self.writes.append(Write("remove_capability", name))

    async def set_capability_value(self, name: str, value: Any) -> None:
        if name not in self._capabilities:
            raise KeyError(f"Device {self.device_id} has no capability {name!r}")
        self._values[name] = value
        self.writes.append(Write("capability_value", name, value))

    async def set_settings(self, changes: Mapping[str, Any]) -> None:
        self._settings.update(changes)
        self.writes.append(Write("settings", "", dict(changes)))

    async def set_available(self) -> None:
        if self._available:
            return
        self._available = True
        self._unavailable_reason = None
        self.writes.append(Write("available", ""))

    async def set_unavailable(self, reason: str) -> None:
        if not self._available and self._unavailable_reason == reason:
            return
        self._available = False
        self._unavailable_reason = reason
        self.writes.append(Write("unavailable", "", reason))

    async def set_warning(self, code: str, message: str) -> None:
        self._warning = code
        self._warning_message = message
        self.writes.append(Write("warning", code, message))

    async def unset_warning(self) -> None:
        self._warning = None
        self._warning_message = None
        self.writes.append(Write("unset_warning", ""))


class MemoryStore:
    """Dictionary-backed per-device key/value store."""

    def __init__(self, initial: Mapping[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = copy.deepcopy(dict(initial or {}))

    def get(self, key: str, default: Any = None) -> Any:
        return copy.deepcopy(self._data.get(key, default))

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    def as_dict(self) -> dict[str, Any]:
        return copy.deepcopy(self._data)


@dataclass(frozen=True, slots=True)
class FiredTrigger:
    device_id: str
    name: TriggerName
    tokens: TriggerTokens


class RecordingTriggers:
    """Trigger sink that records fired triggers and logs them."""

    def __init__(self) -> None:
        self.fired: list[FiredTrigger] = []

    async def trigger(self, device_id: str, name: TriggerName, tokens: TriggerTokens) -> None:
        _logger.info("Trigger %s for %s: %s", name.value, device_id, tokens.model_dump())
        self.fired.append(FiredTrigger(device_id, name, tokens))

    def names(self) -> list[TriggerName]:
        return [fired.name for fired in self.fired]
