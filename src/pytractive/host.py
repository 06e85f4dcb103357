"""Interfaces the engine expects from the host smart-home platform.

These are structural protocols: any object with matching methods can be
passed in.  :class:`pytractive.state.device_state.DeviceState` is the
in-memory implementation used by the bundled script and the tests.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol

from pytractive.models.triggers import TriggerName, TriggerTokens


class DeviceHost(Protocol):
    """Capability, setting, availability and warning access for one device."""

    @property
    def available(self) -> bool: ...

    @property
    def warning(self) -> str | None: ...

    def capabilities(self) -> list[str]: ...

    def has_capability(self, name: str) -> bool: ...

    def get_capability_value(self, name: str) -> Any: ...

    def settings(self) -> dict[str, Any]: ...

    async def add_capability(self, name: str) -> None: ...

    async def remove_capability(self, name: str) -> None: ...

    async def set_capability_value(self, name: str, value: Any) -> None: ...

    async def set_settings(self, changes: Mapping[str, Any]) -> None: ...

    async def set_available(self) -> None: ...

    async def set_unavailable(self, reason: str) -> None: ...

    async def set_warning(self, code: str, message: str) -> None: ...

    async def unset_warning(self) -> None: ...


class KeyValueStore(Protocol):
    """Opaque key/value storage scoped to one device."""

    def get(self, key: str, default: Any = None) -> Any: ...

    async def set(self, key: str, value: Any) -> None: ...


class TriggerSink(Protocol):
    """Fires device triggers on the host platform."""

    async def trigger(self, device_id: str, name: TriggerName, tokens: TriggerTokens) -> None: ...
