"""
Real-time subscription manager.

Owns the single hub connection of a client, decodes change notifications
and fans them out to registered listeners. Each listener runs in isolation:
one raising does not stop the others or affect the channel.
"""

import asyncio
import inspect
import logging
from collections import defaultdict
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Tuple, Union
from urllib.parse import urlencode

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from marcsync.errors import ChannelHandshakeFailed
from marcsync.models.config import ClientSettings
from marcsync.models.entry import BaseEntry, Entry
from marcsync.models.events import (
    BaseEvent, ClientEvent, EntryCreatedEvent, EntryDeletedEvent, EntryUpdatedEvent, parse_event
)
from marcsync.transport import HttpTransport
from .protocol import (
    HubMessageType, HubProtocolError, decode_frames, handshake_request,
    parse_handshake_response, ping_message
)

logger = logging.getLogger(__name__)

Listener = Callable[..., Any]
FailureCallback = Callable[[ChannelHandshakeFailed], Any]

_CONNECT_ERRORS = (OSError, asyncio.TimeoutError, WebSocketException, HubProtocolError)


class ChannelState(Enum):
    """Lifecycle of the hub connection"""
    CONSTRUCTING = "constructing"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    FAILED = "failed"        # Terminal: initial handshake rejected
    CLOSED = "closed"        # Closed locally or by the server


class SubscriptionManager:
    """
    Single hub connection with per-event listener lists.

    The channel runs as a background task from ``start()`` on. There is no
    automatic reconnect; a failed initial handshake moves the manager to
    the terminal FAILED state and notifies the ``on_failure`` callbacks so
    the host can decide what to do.
    """

    def __init__(self, transport: HttpTransport, settings: ClientSettings):
        """
        Initialize the manager.

        Args:
            transport: Credential-bound transport handed to owned entries
            settings: Client settings (hub URL, timeouts, keepalive)
        """
        self._transport = transport
        self._settings = settings

        self._subscriptions: Dict[ClientEvent, List[Listener]] = defaultdict(list)
        self._failure_callbacks: List[FailureCallback] = []

        # Channel state
        self._state = ChannelState.CONSTRUCTING
        self._failure: Optional[ChannelHandshakeFailed] = None
        self._handshake_done = False
        self._connection = None
        self._ready: Optional[asyncio.Event] = None
        self._channel_task: Optional[asyncio.Task] = None
        self._keepalive_task: Optional[asyncio.Task] = None
        self._listener_tasks: Set[asyncio.Task] = set()

    @property
    def state(self) -> ChannelState:
        return self._state

    @property
    def failure(self) -> Optional[ChannelHandshakeFailed]:
        """Terminal failure, if the handshake was rejected"""
        return self._failure

    @property
    def url(self) -> str:
        """Hub URL with the bearer credential as query parameter"""
        query = urlencode({"access_token": f"Bearer {self._transport.access_token}"})
        return f"{self._settings.websocket_url}?{query}"

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def subscribe(self, kind: Union[ClientEvent, str], listener: Listener) -> None:
        """
        Register ``listener`` for an event kind.

        Listeners run in registration order. Created listeners receive
        ``(entry, database_id, timestamp)``, deleted listeners
        ``(observed_entry, database_id, timestamp)`` and updated listeners
        ``(old_entry, new_entry, database_id, timestamp)``.

        Raises:
            ValueError: Unknown event kind
        """
        self._subscriptions[ClientEvent(kind)].append(listener)

    def on_failure(self, callback: FailureCallback) -> None:
        """Register a callback for the terminal handshake failure"""
        self._failure_callbacks.append(callback)
        if self._failure is not None:
            self._notify_failure(callback)

    def listeners(self, kind: Union[ClientEvent, str]) -> List[Listener]:
        return list(self._subscriptions[ClientEvent(kind)])

    # ------------------------------------------------------------------
    # Channel lifecycle
    # ------------------------------------------------------------------

    def start(self) -> bool:
        """
        Start the channel on the running event loop.

        Returns:
            True if the channel task is running (or already ran), False if
            no event loop is running yet
        """
        if self._channel_task is not None:
            return True

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; hub channel will start on connect()")
            return False

        self._ready = asyncio.Event()
        self._state = ChannelState.CONNECTING
        self._channel_task = loop.create_task(self._run())
        return True

    async def wait_until_connected(self) -> None:
        """
        Wait for the handshake to complete.

        Raises:
            ChannelHandshakeFailed: The channel is in the terminal state, or
                was closed before the handshake completed
        """
        self.start()
        await self._ready.wait()
        if self._failure is not None:
            raise self._failure
        if not self._handshake_done:
            raise ChannelHandshakeFailed(f"Hub channel was {self._state.value} before the handshake completed")

    async def close(self) -> None:
        """Close the channel; listeners stay registered but receive nothing"""
        if self._state is not ChannelState.FAILED:
            self._state = ChannelState.CLOSED

        if self._keepalive_task:
            self._keepalive_task.cancel()

        if self._connection is not None:
            try:
                await self._connection.close()
            except WebSocketException as e:
                logger.debug(f"Error while closing hub connection: {e}")

        if self._channel_task and not self._channel_task.done():
            self._channel_task.cancel()
            try:
                await self._channel_task
            except asyncio.CancelledError:
                pass

        if self._ready is not None:
            self._ready.set()

        logger.info("Closed hub channel")

    async def _connect(self) -> Tuple[Any, List[Dict[str, Any]]]:
        """Open the socket and complete the hub handshake"""
        timeout = self._settings.handshake_timeout
        connection = await asyncio.wait_for(websockets.connect(self.url), timeout=timeout)

        try:
            await connection.send(handshake_request())
            response = await asyncio.wait_for(connection.recv(), timeout=timeout)
            error, pending = parse_handshake_response(response)
        except BaseException:
            await connection.close()
            raise

        if error:
            await connection.close()
            raise ChannelHandshakeFailed(f"Hub rejected handshake: {error}")

        return connection, pending

    async def _run(self) -> None:
        """Channel task: connect, then pump frames until the socket ends"""
        try:
            self._connection, pending = await self._connect()
        except ChannelHandshakeFailed as e:
            self._fail(e)
            return
        except _CONNECT_ERRORS as e:
            self._fail(ChannelHandshakeFailed(f"Could not connect to hub: {e}", cause=e))
            return
        except Exception as e:
            logger.exception("Unexpected error during hub handshake")
            self._fail(ChannelHandshakeFailed(f"Hub handshake failed: {e!r}", cause=e))
            return

        self._handshake_done = True
        self._state = ChannelState.CONNECTED
        self._ready.set()
        self._keepalive_task = asyncio.create_task(self._keepalive())
        logger.info(f"Connected to hub at {self._settings.websocket_url}")

        try:
            if self._handle_messages(pending):
                async for frame in self._connection:
                    if not self._handle_frame(frame):
                        break
        except ConnectionClosed as e:
            logger.warning(f"Hub connection closed: {e}")
        finally:
            if self._keepalive_task:
                self._keepalive_task.cancel()
            self._state = ChannelState.CLOSED
            await self._connection.close()

    async def _keepalive(self) -> None:
        """Send hub pings so the server does not time the connection out"""
        interval = self._settings.keepalive_interval
        try:
            while True:
                await asyncio.sleep(interval)
                await self._connection.send(ping_message())
        except ConnectionClosed:
            logger.debug("Keepalive stopped: connection closed")

    def _fail(self, failure: ChannelHandshakeFailed) -> None:
        self._state = ChannelState.FAILED
        self._failure = failure
        logger.error(f"Real-time channel failed: {failure}")
        self._ready.set()

        for callback in list(self._failure_callbacks):
            self._notify_failure(callback)

    def _notify_failure(self, callback: FailureCallback) -> None:
        try:
            result = callback(self._failure)
            if inspect.isawaitable(result):
                self._schedule(result, callback)
        except Exception:
            logger.exception(f"Failure callback {callback!r} raised")

    # ------------------------------------------------------------------
    # Inbound messages
    # ------------------------------------------------------------------

    def _handle_frame(self, frame: Union[str, bytes]) -> bool:
        """Handle one WebSocket frame; False once the server closed the hub"""
        try:
            messages = decode_frames(frame)
        except HubProtocolError as e:
            logger.warning(f"Dropping malformed hub frame: {e}")
            return True
        return self._handle_messages(messages)

    def _handle_messages(self, messages: List[Dict[str, Any]]) -> bool:
        for message in messages:
            message_type = message.get("type")

            if message_type == HubMessageType.INVOCATION:
                arguments = message.get("arguments") or []
                if not arguments:
                    logger.warning(f"Invocation of '{message.get('target')}' without arguments")
                    continue
                self.dispatch(message.get("target"), arguments[0])
            elif message_type == HubMessageType.PING:
                continue
            elif message_type == HubMessageType.CLOSE:
                logger.warning(f"Hub closed the connection: {message.get('error') or 'no reason given'}")
                return False
            else:
                logger.debug(f"Ignoring hub message of type {message_type}")

        return True

    def dispatch(self, kind: Union[ClientEvent, str], payload: Any) -> int:
        """
        Decode one notification and invoke its listeners.

        Args:
            kind: Event kind (hub target name)
            payload: JSON string or mapping with the event envelope

        Returns:
            Number of listeners that ran without raising
        """
        try:
            kind = ClientEvent(kind)
        except ValueError:
            logger.debug(f"Ignoring unknown hub target '{kind}'")
            return 0

        try:
            event = parse_event(kind, payload)
        except ValueError as e:
            logger.warning(f"Dropping malformed {kind.value} event: {e}")
            return 0

        return self._fan_out(kind, self._listener_args(event))

    def _listener_args(self, event: BaseEvent) -> Tuple[Any, ...]:
        data = event.data

        if isinstance(event, EntryCreatedEvent):
            entries = (Entry(self._transport, data.collection_name, dict(data.values)),)
        elif isinstance(event, EntryDeletedEvent):
            # The record is gone; only a read-only view makes sense
            entries = (BaseEntry(dict(data.values), data.collection_name),)
        elif isinstance(event, EntryUpdatedEvent):
            entries = (
                BaseEntry(dict(data.old_values), data.collection_name),
                Entry(self._transport, data.collection_name, dict(data.new_values)),
            )
        else:
            raise TypeError(f"Unsupported event model {type(event).__name__}")

        return entries + (event.database_id, event.timestamp)

    def _fan_out(self, kind: ClientEvent, args: Tuple[Any, ...]) -> int:
        succeeded = 0
        for listener in list(self._subscriptions[kind]):
            try:
                result = listener(*args)
                if inspect.isawaitable(result):
                    self._schedule(result, listener)
                succeeded += 1
            except Exception:
                logger.exception(f"Listener {listener!r} for {kind.value} raised")
        return succeeded

    def _schedule(self, awaitable: Awaitable[Any], listener: Callable[..., Any]) -> None:
        """Run a coroutine listener as a fire-and-forget task"""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            logger.error(f"Cannot run coroutine listener {listener!r} without an event loop")
            return

        task = asyncio.ensure_future(awaitable, loop=loop)

        self._listener_tasks.add(task)
        task.add_done_callback(lambda t: self._on_listener_done(t, listener))

    def _on_listener_done(self, task: asyncio.Task, listener: Callable[..., Any]) -> None:
        self._listener_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Listener {listener!r} raised: {exc!r}", exc_info=exc)
