"""
Client side of the relay channel.

A RelayEndpoint keeps one WebSocket to the hub open for a page session:

- ``send(message)`` writes a frame when connected. While disconnected the
  message is dropped (delivery is at-most-once, nothing is queued).
- ``on_receive(handler)`` registers a callback invoked once per received
  message, in arrival order. Frames that fail to decode are logged and skipped.
- When the connection closes unexpectedly a reconnect attempt is scheduled
  after the policy's fixed interval, and again after every failed attempt,
  forever. A reconnect does not replay anything missed in between.

Usage:
------
    endpoint = RelayEndpoint("ws://localhost:3000/ws")
    endpoint.on_receive(lambda msg: print(msg.type, msg.data))
    await endpoint.start()
    await endpoint.send(RelayMessage.add_item("Kopi", 2.5, 2))
"""

import asyncio
import logging
from typing import Any, AsyncIterator, Awaitable, Callable, List, Optional, Protocol

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from ..errors import ChannelDisconnected, MalformedPayload
from ..schemas.relay import RelayMessage, parse_message
from .reconnect import AsyncioScheduler, ReconnectPolicy, ScheduledCall, Scheduler

logger = logging.getLogger(__name__)

MessageHandler = Callable[[RelayMessage], None]
StatusHandler = Callable[[bool], None]


class Connection(Protocol):
    async def send(self, message: str) -> None:
        ...

    async def close(self) -> None:
        ...

    def __aiter__(self) -> AsyncIterator[Any]:
        ...


Connector = Callable[[str], Awaitable[Connection]]

# Errors that mean "the link is down", as opposed to programming errors
CONNECTION_ERRORS = (OSError, asyncio.TimeoutError, WebSocketException, ChannelDisconnected)


async def websockets_connector(url: str) -> Connection:
    return await websockets.connect(url)


class RelayEndpoint:
    """One page's connection to the relay hub."""

    def __init__(
        self,
        url: str,
        connector: Optional[Connector] = None,
        policy: Optional[ReconnectPolicy] = None,
        scheduler: Optional[Scheduler] = None,
        name: str = "relay",
    ):
        self.url = url
        self.name = name
        self.policy = policy or ReconnectPolicy()
        self._connector = connector or websockets_connector
        self._scheduler = scheduler or AsyncioScheduler()
        self._handlers: List[MessageHandler] = []
        self._status_handlers: List[StatusHandler] = []
        self._conn: Optional[Connection] = None
        self._reader: Optional[asyncio.Task] = None
        self._retry: Optional[ScheduledCall] = None
        self._in_flight: Optional[ScheduledCall] = None
        self._closing = False
        self.attempts = 0

    @property
    def connected(self) -> bool:
        return self._conn is not None

    def on_receive(self, handler: MessageHandler) -> None:
        self._handlers.append(handler)

    def on_status(self, handler: StatusHandler) -> None:
        self._status_handlers.append(handler)

    async def start(self) -> None:
        """Open the connection; on failure keep retrying in the background."""
        self._closing = False
        await self._connect()

    async def close(self) -> None:
        """
        Close for good: no further reconnect attempts.

        A connect attempt already waiting on the connector is cancelled when
        the scheduler can reach it; otherwise it closes its own connection
        once the connector returns.
        """
        self._closing = True
        for call in (self._retry, self._in_flight):
            if call is not None:
                call.cancel()
        self._retry = None
        self._in_flight = None
        conn = self._conn
        if conn is not None:
            await conn.close()
        if self._reader is not None:
            await self._reader
            self._reader = None

    async def send(self, message: RelayMessage) -> bool:
        """
        Write one message to the hub.

        Returns:
            True when the frame was written; False when the endpoint is
            disconnected and the message was dropped.
        """
        try:
            await self._require_connection().send(message.encode())
        except CONNECTION_ERRORS as e:
            logger.warning("[%s] Dropped %s message: %s", self.name, message.type, e)
            return False
        logger.debug("[%s] Sent %s", self.name, message.encode())
        return True

    # -------------------------------------------------------------------------
    # Connection lifecycle
    # -------------------------------------------------------------------------

    def _require_connection(self) -> Connection:
        conn = self._conn
        if conn is None:
            raise ChannelDisconnected(f"{self.name} is not connected to the relay")
        return conn

    async def _connect(self) -> None:
        self._in_flight, self._retry = self._retry, None
        if self._closing:
            return
        self.attempts += 1
        try:
            conn = await self._connector(self.url)
        except CONNECTION_ERRORS as e:
            logger.warning("[%s] Failed to connect to %s: %s", self.name, self.url, e)
            self._schedule_retry()
            return
        except Exception:
            logger.exception("[%s] Unexpected error connecting to %s", self.name, self.url)
            self._schedule_retry()
            return
        finally:
            self._in_flight = None

        if self._closing:
            logger.info("[%s] Closed while connecting; dropping new connection", self.name)
            await conn.close()
            return

        self._conn = conn
        logger.info("[%s] Connected to relay", self.name)
        self._notify_status(True)
        self._reader = asyncio.create_task(self._read_loop(conn))

    async def _read_loop(self, conn: Connection) -> None:
        try:
            async for raw in conn:
                self._dispatch(raw)
        except ConnectionClosed as e:
            logger.info("[%s] Connection closed: %s", self.name, e)
        except CONNECTION_ERRORS as e:
            logger.warning("[%s] Connection error: %s", self.name, e)
        finally:
            if self._conn is conn:
                self._conn = None
                self._notify_status(False)
            if not self._closing:
                logger.info("[%s] Relay disconnected, attempting to reconnect in %.1fs",
                            self.name, self.policy.interval)
                self._schedule_retry()

    def _schedule_retry(self) -> None:
        if self._closing or self._retry is not None:
            return
        self._retry = self._scheduler.call_later(self.policy.next_delay(), self._connect)

    # -------------------------------------------------------------------------
    # Delivery
    # -------------------------------------------------------------------------

    def _dispatch(self, raw: Any) -> None:
        try:
            message = parse_message(raw)
        except MalformedPayload as e:
            logger.error("[%s] Error parsing relay message: %s", self.name, e)
            return
        for handler in self._handlers:
            try:
                handler(message)
            except Exception:
                logger.exception("[%s] Relay handler failed for %s", self.name, message.type)

    def _notify_status(self, connected: bool) -> None:
        for handler in self._status_handlers:
            handler(connected)
