"""Periodic full-state refresh."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

_logger = logging.getLogger(__name__)


class PollScheduler:
    """Runs *tick* once at start and then every *interval* seconds.

    :meth:`request_refresh` wakes the loop early (used when the push
    channel drops).  A failing tick is logged and the schedule continues.
    """

    def __init__(self, name: str, tick: Callable[[], Awaitable[None]], interval: float) -> None:
        self._name = name
        self._tick = tick
        self._interval = interval
        self._wakeup = asyncio.Event()
        self._task: asyncio.Task[None] | None = None
        self.ticks = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._wakeup.clear()
        self._task = asyncio.create_task(self._run(), name=f"poll-{self._name}")
        _logger.debug("Poll scheduler for %s started (every %ss)", self._name, self._interval)

    def request_refresh(self) -> None:
        self._wakeup.set()

    async def _run(self) -> None:
        while True:
            await self._run_tick()
            try:
                await asyncio.wait_for(self._wakeup.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                pass
            self._wakeup.clear()

    async def _run_tick(self) -> None:
        self.ticks += 1
        try:
            await self._tick()
        except Exception as exc:  # noqa: BLE001
            _logger.warning("Poll of %s failed: %s", self._name, exc)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        _logger.debug("Poll scheduler for %s stopped", self._name)
