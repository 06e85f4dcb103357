"""Shared push channel supervisor.

One :class:`StreamSupervisor` owns the single streaming connection for an
account.  Devices subscribe to it; the availability monitor reads its
heartbeat and may force it to unregister.  Only the supervisor mutates
the connection status.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterable, Awaitable, Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Protocol

import aiohttp

from pytractive.exceptions import MalformedPayloadError, NoTokenError, TractiveError, TractiveSessionExpiredError
from pytractive.ingestion.stream import ChannelMessage, parse_line

_logger = logging.getLogger(__name__)

MessageHandler = Callable[[ChannelMessage], Awaitable[None]]
DisconnectListener = Callable[[], None]


class StreamStatus(StrEnum):
    IDLE = "idle"
    REGISTERING = "registering"
    CONNECTED = "connected"


class StreamResponse(Protocol):
    """The part of :class:`aiohttp.ClientResponse` the supervisor uses."""

    @property
    def content(self) -> AsyncIterable[bytes]: ...

    def close(self) -> None: ...


class ChannelClient(Protocol):
    async def open_channel(self) -> StreamResponse: ...

    async def refresh_token(self) -> Any: ...


@dataclass(frozen=True, eq=False)
class Subscription:
    """Handle returned by :meth:`StreamSupervisor.subscribe`.

    Unsubscribing requires this exact handle.
    """

    tracker_id: str
    handler: MessageHandler


class StreamSupervisor:
    """Maintains at most one live push connection.

    Registration is single-flight: the ``registering`` status is the
    guard, so concurrent :meth:`register` calls return immediately while
    one attempt is in progress.  Failed attempts are not retried here;
    the next monitor tick calls :meth:`register` again.
    """

    def __init__(
        self,
        client: ChannelClient,
        *,
        register_delay: float = 0.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._client = client
        self._register_delay = register_delay
        self._clock = clock

        self._status = StreamStatus.IDLE
        self._refresh_requested = False
        self._response: StreamResponse | None = None
        self._connect_task: asyncio.Task[None] | None = None
        self._reader_task: asyncio.Task[None] | None = None
        self._handler_tasks: set[asyncio.Task[None]] = set()

        self._subscriptions: list[Subscription] = []
        self._disconnect_listeners: list[DisconnectListener] = []

        self.last_heartbeat: float | None = None
        """Local clock reading of the last keep-alive (or of the connect)."""
        self.last_keep_alive: float | None = None
        """Server epoch carried by the last keep-alive."""

    @property
    def status(self) -> StreamStatus:
        return self._status

    @property
    def refresh_requested(self) -> bool:
        return self._refresh_requested

    def request_token_refresh(self) -> None:
        self._refresh_requested = True

    def heartbeat_age(self) -> float | None:
        """Seconds since the last heartbeat, ``None`` before the first connect."""
        if self.last_heartbeat is None:
            return None
        return max(0.0, self._clock() - self.last_heartbeat)

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, tracker_id: str, handler: MessageHandler) -> Subscription:
        subscription = Subscription(tracker_id, handler)
        self._subscriptions.append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        try:
            self._subscriptions.remove(subscription)
        except ValueError:
            _logger.debug("Subscription for %s was not registered", subscription.tracker_id)

    def subscribers(self, tracker_id: str | None = None) -> list[Subscription]:
        if tracker_id is None:
            return list(self._subscriptions)
        return [sub for sub in self._subscriptions if sub.tracker_id == tracker_id]

    def add_disconnect_listener(self, listener: DisconnectListener) -> None:
        self._disconnect_listeners.append(listener)

    def remove_disconnect_listener(self, listener: DisconnectListener) -> None:
        if listener in self._disconnect_listeners:
            self._disconnect_listeners.remove(listener)

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    async def register(self) -> None:
        """Open the push channel unless a connection exists or is being opened.

        Raises
        ------
        NoTokenError
            If no access token is available.
        """
        if self._status is not StreamStatus.IDLE:
            return
        self._status = StreamStatus.REGISTERING
        _logger.info("Registering push channel")

        task = asyncio.create_task(self._connect())
        self._connect_task = task
        try:
            await asyncio.wait({task})
        except asyncio.CancelledError:
            task.cancel()
            if self._status is StreamStatus.REGISTERING:
                self._status = StreamStatus.IDLE
            raise
        finally:
            if self._connect_task is task:
                self._connect_task = None

        if task.cancelled():
            _logger.info("Push channel registration cancelled")
            return

        exc = task.exception()
        if exc is None:
            _logger.info("Push channel registered")
            return

        self._status = StreamStatus.IDLE
        if isinstance(exc, NoTokenError):
            raise exc
        if isinstance(exc, TractiveSessionExpiredError):
            _logger.info("Push channel unauthorized, token refresh requested")
            self._refresh_requested = True
        elif isinstance(exc, TractiveError):
            _logger.warning("Push channel registration failed: %s", exc)
        else:
            _logger.error("Unexpected error while registering push channel", exc_info=exc)

    async def _connect(self) -> None:
        if self._register_delay > 0:
            await asyncio.sleep(self._register_delay)
        if self._refresh_requested:
            await self._client.refresh_token()
            self._refresh_requested = False

        response = await self._client.open_channel()
        self._response = response
        self._status = StreamStatus.CONNECTED
        self.last_heartbeat = self._clock()
        self._reader_task = asyncio.create_task(self._read(response))

    async def _read(self, response: StreamResponse) -> None:
        try:
            async for line in response.content:
                self._handle_line(line)
        except (aiohttp.ClientError, asyncio.TimeoutError, ConnectionError) as exc:
            _logger.warning("Push channel connection lost: %s", exc)
        except Exception:
            _logger.error("Push channel reader failed", exc_info=True)
        else:
            _logger.info("Push channel closed by server")
        finally:
            self._closed(response)

    def _closed(self, response: StreamResponse) -> None:
        if self._response is not response:
            return
        self._response = None
        self._reader_task = None
        self._status = StreamStatus.IDLE
        response.close()
        for listener in list(self._disconnect_listeners):
            listener()

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def _handle_line(self, line: bytes | str) -> None:
        try:
            message = parse_line(line)
        except MalformedPayloadError as exc:
            _logger.debug("Dropping malformed channel payload: %s", exc)
            return
        if message is None:
            return
        if message.is_keep_alive:
            self.last_heartbeat = self._clock()
            self.last_keep_alive = message.keep_alive_at
            return
        _logger.debug("Channel message %s for %s", message.message, message.tracker_id)
        self._dispatch(message)

    def _dispatch(self, message: ChannelMessage) -> None:
        for subscription in list(self._subscriptions):
            task = asyncio.create_task(subscription.handler(message))
            self._handler_tasks.add(task)
            task.add_done_callback(self._handler_done)

    def _handler_done(self, task: asyncio.Task[None]) -> None:
        self._handler_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            _logger.error("Channel message handler failed", exc_info=exc)

    async def wait_for_handlers(self) -> None:
        """Wait until every dispatched message has been handled."""
        while self._handler_tasks:
            await asyncio.gather(*list(self._handler_tasks), return_exceptions=True)

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    async def unregister(self) -> None:
        """Cancel any registration in flight and release the connection."""
        connect_task, self._connect_task = self._connect_task, None
        reader_task, self._reader_task = self._reader_task, None
        response, self._response = self._response, None
        previous = self._status
        self._status = StreamStatus.IDLE

        pending = [task for task in (connect_task, reader_task) if task is not None and not task.done()]
        if previous is StreamStatus.IDLE and not pending and response is None:
            return

        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        if response is not None:
            response.close()
        _logger.info("Push channel unregistered")

    async def close(self) -> None:
        """Unregister and cancel message handlers still running."""
        await self.unregister()
        for task in list(self._handler_tasks):
            task.cancel()
        if self._handler_tasks:
            await asyncio.gather(*self._handler_tasks, return_exceptions=True)
        self._handler_tasks.clear()
        self._subscriptions.clear()
        self._disconnect_listeners.clear()
