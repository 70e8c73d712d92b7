"""
One connection attempt to the STOMP broker.

A TransportSession owns exactly one websocket plus the STOMP framing bound to
it. It never retries: every failure during open, every socket error and every
broker ERROR frame is reported once through the lifecycle callbacks, and retry
policy is left to ReconnectingClient. Sessions are single-use.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional

from websockets import WebSocketException
from websockets.exceptions import ConnectionClosedError, ConnectionClosedOK

from .async_helpers import dispatch_callback, invoke_callback, safely_schedule_coroutine
from .client_config import DEFAULT_CONNECTION_TIMEOUT_SECONDS
from .endpoint import Endpoint
from .errors import FrameDecodeError, ProtocolError, StompClientError, TransportError
from .stomp_protocol import (
    CONNECTED,
    ERROR,
    MESSAGE,
    RECEIPT,
    StompFrame,
    connect_frame,
    decode_envelope,
    decode_frames,
    disconnect_frame,
    encode_envelope,
    encode_frame,
    send_frame,
    subscribe_frame,
    unsubscribe_frame,
)
from .transport_session_helpers import WebSocketConnectionLifecycle, parse_payload, serialize_payload
from .transport_session_helpers.connection_lifecycle import ConnectionFactory

FrameHandler = Callable[[Any], Any]


@dataclass(frozen=True)
class RawSubscription:
    """Subscription registered on one particular session."""

    id: str
    destination: str


@dataclass
class _Registration:
    subscription: RawSubscription
    on_frame: FrameHandler


class TransportSession:
    """Single websocket + STOMP client with raw lifecycle callbacks."""

    def __init__(
        self,
        endpoint: Endpoint,
        on_connected: Callable[["TransportSession"], Any],
        on_error: Callable[["TransportSession", StompClientError], Any],
        on_closed: Callable[["TransportSession"], Any],
        *,
        connect_headers: Optional[Mapping[str, str]] = None,
        connection_timeout: float = DEFAULT_CONNECTION_TIMEOUT_SECONDS,
        connection_factory: Optional[ConnectionFactory] = None,
        name: str = "stomp",
    ):
        self.endpoint = endpoint
        self.name = name
        self.connection_timeout = connection_timeout
        self._on_connected = on_connected
        self._on_error = on_error
        self._on_closed = on_closed
        self._connect_headers = dict(connect_headers or {})
        self._lifecycle = WebSocketConnectionLifecycle(name, connection_timeout, connection_factory)
        self._subscriptions: Dict[str, _Registration] = {}
        self._subscription_ids = itertools.count(1)
        self._reader_task: Optional[asyncio.Task] = None
        self._handshake_timer: Optional[asyncio.TimerHandle] = None
        self._handshake_timeout_task: Optional[asyncio.Task] = None
        self._open_started = False
        self._stomp_connected = False
        self._terminated = False
        self._closed = False
        self.logger = logging.getLogger(f"{__name__}.{name}")

    @property
    def is_connected(self) -> bool:
        """True once the broker sent CONNECTED and until failure or close."""
        return self._stomp_connected and not self._closed and not self._terminated and self._lifecycle.is_connected()

    @property
    def is_closed(self) -> bool:
        return self._closed

    async def open(self) -> None:
        """
        Open the socket, perform the SockJS and STOMP handshakes and start reading.

        Only an unusable endpoint raises (ConstructionError); every other
        failure is reported through on_error.
        """
        if self._open_started or self._closed:
            self.logger.warning("Ignoring open() on a session that was already used")
            return
        self._open_started = True
        websocket_url = self.endpoint.websocket_url()

        try:
            connection = await self._lifecycle.establish_connection(websocket_url)
            if self._closed:
                await self._lifecycle.cleanup_connection()
                return
            if self.endpoint.use_framing_transport:
                await self._await_sockjs_open(connection)
            await self._write(connect_frame(self.endpoint.host, self._connect_headers))
        except asyncio.CancelledError:
            await self._lifecycle.cleanup_connection()
            raise
        except StompClientError as exc:
            await self._fail(exc)
            return
        except (asyncio.TimeoutError, WebSocketException, OSError) as exc:
            await self._fail(TransportError.from_exception(exc, "during handshake"))
            return

        if self._closed:
            await self._lifecycle.cleanup_connection()
            return
        loop = asyncio.get_running_loop()
        self._reader_task = loop.create_task(self._read_loop(connection))
        self._handshake_timer = loop.call_later(self.connection_timeout, self._handshake_timed_out)

    async def publish(self, destination: str, payload: Any) -> bool:
        """Send payload as JSON to destination; False instead of raising on any failure."""
        if not self.is_connected:
            self.logger.error("Cannot publish to %s - session not connected", destination)
            return False

        try:
            body = serialize_payload(payload)
        except TypeError:
            self.logger.exception("Failed to serialize payload for %s", destination)
            return False

        try:
            await self._write(send_frame(destination, body))
        except TransportError:
            self.logger.exception("Failed to publish to %s", destination)
            return False
        else:
            self.logger.debug("Published to %s: %s", destination, body[:100])
            return True

    async def subscribe_raw(self, destination: str, on_frame: FrameHandler) -> RawSubscription:
        """Subscribe on this session; on_frame receives parsed JSON or the raw body."""
        if not self.is_connected:
            raise TransportError(f"Cannot subscribe to {destination} - session not connected")

        subscription = RawSubscription(id=f"sub-{next(self._subscription_ids)}", destination=destination)
        self._subscriptions[subscription.id] = _Registration(subscription, on_frame)
        try:
            await self._write(subscribe_frame(subscription.id, destination))
        except TransportError:
            self._subscriptions.pop(subscription.id, None)
            raise
        self.logger.info("Subscribed to %s (%s)", destination, subscription.id)
        return subscription

    async def unsubscribe_raw(self, subscription: RawSubscription) -> None:
        if self._subscriptions.pop(subscription.id, None) is None:
            return
        if not self.is_connected:
            return
        try:
            await self._write(unsubscribe_frame(subscription.id))
        except TransportError as exc:
            self.logger.warning("Failed to unsubscribe %s: %s", subscription.id, exc)
        else:
            self.logger.info("Unsubscribed from %s (%s)", subscription.destination, subscription.id)

    async def close(self) -> None:
        """Release everything; idempotent and safe before open() completes."""
        if self._closed:
            return
        was_connected = self.is_connected
        self._closed = True

        self._cancel_handshake_timer()
        timeout_task, self._handshake_timeout_task = self._handshake_timeout_task, None
        if timeout_task is not None and timeout_task is not asyncio.current_task() and not timeout_task.done():
            timeout_task.cancel()
        if was_connected:
            await self._send_goodbye()
        self._subscriptions.clear()
        self._stomp_connected = False

        task, self._reader_task = self._reader_task, None
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                self.logger.debug("Reader task cancelled")

        await self._lifecycle.cleanup_connection()
        self.logger.info("Transport session closed")

    def _cancel_handshake_timer(self) -> None:
        if self._handshake_timer is not None:
            self._handshake_timer.cancel()
            self._handshake_timer = None

    def _handshake_timed_out(self) -> None:
        self._handshake_timer = None
        if self._stomp_connected or self._terminated or self._closed:
            return
        message = f"no CONNECTED frame within {self.connection_timeout:.1f}s"
        self._handshake_timeout_task = safely_schedule_coroutine(
            self._fail(TransportError(f"STOMP handshake timeout: {message}"))
        )

    async def _send_goodbye(self) -> None:
        try:
            for subscription_id in list(self._subscriptions):
                await self._write(unsubscribe_frame(subscription_id))
            await self._write(disconnect_frame())
        except TransportError as exc:
            self.logger.debug("Skipping graceful STOMP disconnect: %s", exc)

    async def _await_sockjs_open(self, connection: Any) -> None:
        raw = await asyncio.wait_for(connection.recv(), timeout=self.connection_timeout)
        envelope = decode_envelope(raw)
        if envelope.is_close:
            raise TransportError(f"SockJS session refused ({envelope.close_code} {envelope.close_reason})")
        if not envelope.is_open:
            raise FrameDecodeError(f"Expected SockJS open frame, got {envelope.kind!r}")

    async def _write(self, frame: StompFrame) -> None:
        connection = self._lifecycle.get_connection()
        if connection is None:
            raise TransportError(f"Cannot send {frame.command} - socket is not open")

        text = encode_frame(frame)
        if self.endpoint.use_framing_transport:
            text = encode_envelope([text])
        try:
            await connection.send(text)
        except (WebSocketException, OSError) as exc:
            raise TransportError.from_exception(exc, f"sending {frame.command}") from exc

    async def _read_loop(self, connection: Any) -> None:
        try:
            async for message in connection:
                await self._handle_message(message)
                if self._terminated or self._closed:
                    return
        except asyncio.CancelledError:
            raise
        except ConnectionClosedOK:
            self.logger.debug("WebSocket closed normally")
        except ConnectionClosedError as exc:
            await self._fail(TransportError.from_exception(exc, "connection lost"))
            return
        except StompClientError as exc:
            await self._fail(exc)
            return
        except (WebSocketException, OSError) as exc:
            await self._fail(TransportError.from_exception(exc))
            return
        await self._finish_closed()

    async def _handle_message(self, message: Any) -> None:
        text = message.decode("utf-8", errors="replace") if isinstance(message, bytes) else str(message)
        if not self.endpoint.use_framing_transport:
            await self._handle_stomp_payload(text)
            return

        envelope = decode_envelope(text)
        if envelope.is_close:
            self.logger.info("SockJS session closed by server (%s %s)", envelope.close_code, envelope.close_reason)
            await self._finish_closed()
            return
        for payload in envelope.messages:
            await self._handle_stomp_payload(payload)
            if self._terminated or self._closed:
                return

    async def _handle_stomp_payload(self, payload: str) -> None:
        for frame in decode_frames(payload):
            await self._dispatch_frame(frame)
            if self._terminated or self._closed:
                return

    async def _dispatch_frame(self, frame: StompFrame) -> None:
        if frame.command == CONNECTED:
            self._cancel_handshake_timer()
            self._stomp_connected = True
            self.logger.info("STOMP session established (version %s)", frame.header("version", "unknown"))
            await self._notify(self._on_connected, self)
        elif frame.command == MESSAGE:
            self._deliver(frame)
        elif frame.command == ERROR:
            await self._fail(ProtocolError.from_error_frame(frame.headers, frame.body))
        elif frame.command == RECEIPT:
            self.logger.debug("Receipt %s", frame.header("receipt-id"))
        else:
            self.logger.warning("Ignoring unexpected %s frame", frame.command)

    def _deliver(self, frame: StompFrame) -> None:
        subscription_id = frame.header("subscription")
        registration = self._subscriptions.get(subscription_id or "")
        if registration is None:
            self.logger.debug("Dropping MESSAGE for unknown subscription %s", subscription_id)
            return
        dispatch_callback(registration.on_frame, parse_payload(frame.body), logger=self.logger)

    async def _fail(self, error: StompClientError) -> None:
        if self._terminated or self._closed:
            return
        self._terminated = True
        self._stomp_connected = False
        self._cancel_handshake_timer()
        self.logger.warning("Transport session failed: %s", error)
        await self._lifecycle.cleanup_connection()
        await self._notify(self._on_error, self, error)

    async def _finish_closed(self) -> None:
        if self._terminated or self._closed:
            return
        self._terminated = True
        self._stomp_connected = False
        self._cancel_handshake_timer()
        self.logger.info("Transport session closed by peer")
        await self._lifecycle.cleanup_connection()
        await self._notify(self._on_closed, self)

    async def _notify(self, callback: Callable[..., Any], *args: Any) -> None:
        try:
            await invoke_callback(callback, *args)
        except asyncio.CancelledError:
            raise
        except Exception:
            self.logger.exception("Lifecycle callback %s failed", getattr(callback, "__qualname__", callback))


__all__ = ["RawSubscription", "TransportSession"]
