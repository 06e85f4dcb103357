#!/usr/bin/env python3
"""Run the sync engine against a live account and print every change.

Each tracker is backed by the in-memory device host, so nothing is
persisted.  Capability writes, settings batches, warnings and triggers
are printed as they happen.

Usage
-----
Set environment variables and run::

    export TRACTIVE_USERNAME="you@example.com"
    export TRACTIVE_PASSWORD="your-password"
    export TRACTIVE_CLIENT_ID="your-client-id"
    python scripts/watch_trackers.py

Options::

    --tracker ID      Only watch this tracker (default: all trackers)
    --duration SECS   Stop after SECS seconds (default: run until Ctrl+C)
    --discover        Print pairing candidates and exit
    --verbose, -v     Enable debug logging
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pytractive import DeviceState, MemoryStore, TractiveApp, TractiveConfig, TriggerName  # noqa: E402
from pytractive.models.triggers import TriggerTokens  # noqa: E402
from pytractive.state.device_state import RecordingTriggers, Write  # noqa: E402


class PrintingDeviceState(DeviceState):
    """In-memory host that echoes each write."""

    async def set_capability_value(self, name: str, value: Any) -> None:
        await super().set_capability_value(name, value)
        self._echo(self.writes[-1])

    async def add_capability(self, name: str) -> None:
        await super().add_capability(name)
        self._echo(self.writes[-1])

    async def set_settings(self, changes: Any) -> None:
        await super().set_settings(changes)
        self._echo(self.writes[-1])

    async def set_warning(self, code: str, message: str) -> None:
        await super().set_warning(code, message)
        self._echo(self.writes[-1])

    async def set_unavailable(self, reason: str) -> None:
        await super().set_unavailable(reason)
        print(f"[{self.device_id}] unavailable: {reason}")

    def _echo(self, write: Write) -> None:
        detail = f"{write.name}={write.value!r}" if write.name else repr(write.value)
        print(f"[{self.device_id}] {write.kind}: {detail}")


class PrintingTriggers(RecordingTriggers):
    async def trigger(self, device_id: str, name: TriggerName, tokens: TriggerTokens) -> None:
        await super().trigger(device_id, name, tokens)
        print(f"[{device_id}] trigger {name.value}: {json.dumps(tokens.model_dump(), ensure_ascii=False)}")


async def main() -> None:
    parser = argparse.ArgumentParser(
        description="Watch Tractive trackers through the pytractive sync engine.",
    )
    parser.add_argument("--tracker", help="Only watch this tracker (default: all trackers)")
    parser.add_argument("--duration", type=float, default=None, help="Stop after this many seconds")
    parser.add_argument("--discover", action="store_true", help="Print pairing candidates and exit")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    config = TractiveConfig.from_env()

    async with TractiveApp(config) as app:
        candidates = await app.discover_trackers()
        if args.discover:
            print(json.dumps([c.model_dump() for c in candidates], indent=2, ensure_ascii=False))
            return

        if args.tracker:
            candidates = [c for c in candidates if c.id == args.tracker]
        if not candidates:
            print("No trackers found", file=sys.stderr)
            return

        triggers = PrintingTriggers()
        for candidate in candidates:
            host = PrintingDeviceState(
                candidate.id,
                capabilities=candidate.capabilities,
                settings=candidate.settings,
            )
            await app.add_device(candidate.id, host=host, store=MemoryStore(), triggers=triggers)
            print(f"Watching {candidate.id} ({candidate.settings.get('product_name')})")

        if args.duration is None:
            await asyncio.Event().wait()
        else:
            await asyncio.sleep(args.duration)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
