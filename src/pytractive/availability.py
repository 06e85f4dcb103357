"""Heartbeat-driven availability state machine.

Every check looks at the seconds elapsed since the push channel's last
keep-alive (``delta``)::

    delta <= 10        healthy      devices available, reconnect warning cleared
    10 < delta < 60    tolerated    nothing changes
    60 <= delta <= 75  suspect      channel force-unregistered, devices stay available
    delta > 75         unavailable  channel force-unregistered, devices unavailable ("Restart required")

A channel that was idle when a check started is re-registered at its end.
"""

from __future__ import annotations

import asyncio
import logging
from enum import StrEnum
from typing import Protocol

from pytractive._constants import (
    HEARTBEAT_HEALTHY_MAX,
    HEARTBEAT_SUSPECT_MAX,
    HEARTBEAT_SUSPECT_MIN,
    RESTART_REQUIRED_REASON,
    STREAM_WARNING_CODE,
    STREAM_WARNING_MESSAGE,
)
from pytractive.channel import StreamStatus
from pytractive.exceptions import NoTokenError
from pytractive.host import DeviceHost

_logger = logging.getLogger(__name__)


class HeartbeatVerdict(StrEnum):
    HEALTHY = "healthy"
    TOLERATED = "tolerated"
    SUSPECT = "suspect"
    UNAVAILABLE = "unavailable"


def evaluate(delta: float) -> HeartbeatVerdict:
    """Classify the seconds elapsed since the last heartbeat."""
    if delta <= HEARTBEAT_HEALTHY_MAX:
        return HeartbeatVerdict.HEALTHY
    if delta < HEARTBEAT_SUSPECT_MIN:
        return HeartbeatVerdict.TOLERATED
    if delta <= HEARTBEAT_SUSPECT_MAX:
        return HeartbeatVerdict.SUSPECT
    return HeartbeatVerdict.UNAVAILABLE


class Supervisor(Protocol):
    @property
    def status(self) -> StreamStatus: ...

    def heartbeat_age(self) -> float | None: ...

    async def register(self) -> None: ...

    async def unregister(self) -> None: ...


class AvailabilityMonitor:
    """Watches channel liveness on behalf of every registered device.

    The reconnect warning is only set on hosts without a warning, so a
    tracker-reason warning takes precedence and is never cleared here.
    """

    def __init__(self, supervisor: Supervisor, *, interval: float) -> None:
        self._supervisor = supervisor
        self._interval = interval
        self._hosts: dict[str, DeviceHost] = {}
        self._task: asyncio.Task[None] | None = None
        self.last_verdict: HeartbeatVerdict | None = None

    def watch(self, device_id: str, host: DeviceHost) -> None:
        self._hosts[device_id] = host

    def unwatch(self, device_id: str) -> None:
        self._hosts.pop(device_id, None)

    async def check(self) -> HeartbeatVerdict | None:
        """Run one evaluation; returns ``None`` before the first connect."""
        was_idle = self._supervisor.status is StreamStatus.IDLE
        age = self._supervisor.heartbeat_age()
        verdict = evaluate(age) if age is not None else None
        if verdict is not None:
            await self._apply(verdict, age)
        self.last_verdict = verdict

        if was_idle:
            try:
                await self._supervisor.register()
            except NoTokenError:
                _logger.debug("No access token yet, push channel not registered")
        return verdict

    async def _apply(self, verdict: HeartbeatVerdict, age: float | None) -> None:
        hosts = list(self._hosts.values())
        if verdict is HeartbeatVerdict.HEALTHY:
            for host in hosts:
                if not host.available:
                    await host.set_available()
                if host.warning == STREAM_WARNING_CODE:
                    await host.unset_warning()
        elif verdict is HeartbeatVerdict.SUSPECT:
            if self._supervisor.status is not StreamStatus.IDLE:
                _logger.warning("No heartbeat for %.0fs, unregistering push channel", age)
                await self._supervisor.unregister()
            for host in hosts:
                if host.warning is None:
                    await host.set_warning(STREAM_WARNING_CODE, STREAM_WARNING_MESSAGE)
        elif verdict is HeartbeatVerdict.UNAVAILABLE:
            if self._supervisor.status is not StreamStatus.IDLE:
                _logger.warning("No heartbeat for %.0fs, unregistering push channel", age)
                await self._supervisor.unregister()
            stale = [host for host in hosts if host.available]
            if stale:
                _logger.warning("No heartbeat for %.0fs, marking %d device(s) unavailable", age, len(stale))
            for host in stale:
                await host.set_unavailable(RESTART_REQUIRED_REASON)

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="availability-monitor")

    async def _run(self) -> None:
        while True:
            try:
                await self.check()
            except Exception:
                _logger.error("Availability check failed", exc_info=True)
            await asyncio.sleep(self._interval)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
