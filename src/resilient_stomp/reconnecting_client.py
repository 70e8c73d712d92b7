"""
Reconnecting STOMP client.

This module provides the public surface callers use: a state machine over
DISCONNECTED / CONNECTING / CONNECTED / RECONNECTING that owns one transport
session at a time, a subscription registry replayed after every successful
connect, and bounded exponential backoff between attempts.

All transitions run on one asyncio event loop, so no locking is needed. The
only timer is the pending reconnect, and at most one is ever armed.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from typing import Any, Callable, Dict, Optional, Tuple

from .async_helpers import dispatch_callback, safely_schedule_coroutine
from .client_config import ClientConfig
from .connection_state import ConnectionState
from .endpoint import Endpoint
from .errors import AttemptsExhaustedError, ConstructionError, StompClientError, TransportError
from .reconnecting_client_helpers import ReconnectScheduler
from .subscription_registry import MessageHandler, SubscriptionEntry, SubscriptionHandle, SubscriptionRegistry
from .transport_session import TransportSession
from .transport_session_helpers.connection_lifecycle import ConnectionFactory

SessionFactory = Callable[..., TransportSession]

CLOSED_BEFORE_HANDSHAKE_MESSAGE = "closed before the STOMP handshake completed"


class ReconnectingClient:
    """Keeps a STOMP session alive and exposes connect/subscribe/publish to callers."""

    def __init__(
        self,
        config: ClientConfig,
        *,
        name: str = "stomp",
        session_factory: Optional[SessionFactory] = None,
        connection_factory: Optional[ConnectionFactory] = None,
    ):
        self.config = config
        self.name = name
        # Raises ConstructionError for a malformed address
        self.endpoint = Endpoint(config.endpoint_address, config.use_framing_transport)
        self.policy = config.backoff_policy()
        self._scheduler = ReconnectScheduler(name, self.policy)
        self._registry = SubscriptionRegistry()
        self._session_factory = session_factory or functools.partial(TransportSession, connection_factory=connection_factory)
        self._session: Optional[TransportSession] = None
        self._attempt_task: Optional[asyncio.Task] = None
        self._state = ConnectionState.DISCONNECTED
        self._error: Optional[str] = None
        self._torn_down = False
        self.logger = logging.getLogger(f"{__name__}.{name}")

        if config.destination_topic:
            self._registry.add(config.destination_topic, config.on_message)

        self.logger.info("Initialized reconnecting client for %s", self.endpoint.address)

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    @property
    def is_connecting(self) -> bool:
        return self._state.is_connecting

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def reconnect_attempts(self) -> int:
        return self._scheduler.attempts

    @property
    def has_pending_reconnect(self) -> bool:
        return self._scheduler.has_pending

    @property
    def subscriptions(self) -> Tuple[SubscriptionHandle, ...]:
        return self._registry.handles()

    def status(self) -> Dict[str, Any]:
        """Read-only snapshot for a display layer."""
        return {
            "state": self._state.value,
            "is_connected": self.is_connected,
            "is_connecting": self.is_connecting,
            "error": self._error,
            "reconnect_attempts": self.reconnect_attempts,
            "max_reconnect_attempts": self.policy.max_attempts,
            "next_reconnect_delay": self._scheduler.last_delay if self._scheduler.has_pending else None,
            "subscriptions": len(self._registry),
            "endpoint": self.endpoint.address,
        }

    async def connect(self) -> None:
        """Start a fresh connection cycle; no-op while connected or while an attempt is in flight."""
        if self._torn_down:
            self.logger.warning("connect() ignored - client has been torn down")
            return
        if self._state is ConnectionState.CONNECTED:
            self.logger.debug("connect() ignored - already connected")
            return
        if self._session is not None and self._state.is_connecting:
            self.logger.debug("connect() ignored - connection attempt already in flight")
            return

        self._scheduler.cancel()
        self._scheduler.reset()
        self._error = None
        await self._begin_attempt(ConnectionState.CONNECTING)

    async def disconnect(self) -> None:
        """Drop the connection and any pending retry; subscriptions are kept for the next connect."""
        self._scheduler.cancel()
        self._cancel_attempt_task()
        was_connected = self._state is ConnectionState.CONNECTED
        await self._discard_session()
        self._error = None
        self._transition(ConnectionState.DISCONNECTED)
        if was_connected:
            dispatch_callback(self.config.on_disconnect, logger=self.logger)

    def reconnect(self) -> None:
        """Schedule a reconnect attempt now, subject to auto_reconnect and the attempt ceiling."""
        if self._torn_down:
            return
        if self._state is ConnectionState.CONNECTED:
            self.logger.debug("reconnect() ignored - already connected")
            return
        self._evaluate_backoff()

    async def send_message(self, destination: str, payload: Any) -> bool:
        """Publish payload; False means "not delivered", never an exception."""
        session = self._session
        if self._state is not ConnectionState.CONNECTED or session is None:
            self.logger.warning("Cannot send message to %s - client not connected", destination)
            return False
        return await session.publish(destination, payload)

    async def subscribe(self, destination: str, handler: MessageHandler) -> SubscriptionHandle:
        """Register handler for destination; active now if connected, otherwise after the next connect."""
        entry = self._registry.add(destination, handler)
        session = self._session
        if self._state is ConnectionState.CONNECTED and session is not None:
            await self._bind(session, entry)
        return entry.handle

    async def unsubscribe(self, handle: SubscriptionHandle) -> bool:
        entry = self._registry.remove(handle)
        if entry is None:
            return False
        raw_subscription, entry.raw_subscription = entry.raw_subscription, None
        if raw_subscription is not None and self._session is not None:
            await self._session.unsubscribe_raw(raw_subscription)
        return True

    async def teardown(self) -> None:
        """Release every resource; safe to call repeatedly or before any connect."""
        if self._torn_down:
            return
        self._torn_down = True
        self.logger.info("Tearing down reconnecting client")
        await self.disconnect()

    async def __aenter__(self) -> "ReconnectingClient":
        await self.connect()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.teardown()

    def _create_session(self) -> TransportSession:
        return self._session_factory(
            self.endpoint,
            self._handle_connected,
            self._handle_error,
            self._handle_closed,
            connect_headers=self.config.connect_headers,
            connection_timeout=self.config.connection_timeout,
            name=self.name,
        )

    async def _begin_attempt(self, state: ConnectionState) -> None:
        if self._torn_down:
            return
        if self._session is not None:
            await self._discard_session()

        session = self._create_session()
        self._session = session
        self._transition(state)
        try:
            await session.open()
        except ConstructionError as exc:
            if session is self._session:
                self._session = None
            self._error = str(exc)
            self._transition(ConnectionState.DISCONNECTED)
            raise

    def _on_reconnect_timer(self) -> None:
        self._attempt_task = safely_schedule_coroutine(lambda: self._begin_attempt(ConnectionState.RECONNECTING))

    def _cancel_attempt_task(self) -> None:
        task, self._attempt_task = self._attempt_task, None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    async def _discard_session(self) -> None:
        session, self._session = self._session, None
        self._registry.clear_bindings()
        if session is not None:
            await session.close()

    async def _handle_connected(self, session: TransportSession) -> None:
        if session is not self._session:
            self.logger.debug("Ignoring CONNECTED from a discarded session")
            return
        self._scheduler.cancel()
        self._scheduler.reset()
        self._error = None
        self._transition(ConnectionState.CONNECTED)
        await self._replay_subscriptions(session)
        if session is self._session:
            dispatch_callback(self.config.on_connect, logger=self.logger)

    async def _handle_error(self, session: TransportSession, error: StompClientError) -> None:
        if session is not self._session:
            self.logger.debug("Ignoring error from a discarded session: %s", error)
            return
        was_connected = self._state is ConnectionState.CONNECTED
        await self._discard_session()
        self._error = str(error)
        self._transition(ConnectionState.DISCONNECTED)
        dispatch_callback(self.config.on_error, error, logger=self.logger)
        if was_connected:
            dispatch_callback(self.config.on_disconnect, logger=self.logger)
        self._evaluate_backoff()

    async def _handle_closed(self, session: TransportSession) -> None:
        if session is not self._session:
            self.logger.debug("Ignoring close from a discarded session")
            return
        was_connected = self._state is ConnectionState.CONNECTED
        await self._discard_session()
        self._transition(ConnectionState.DISCONNECTED)
        if was_connected:
            dispatch_callback(self.config.on_disconnect, logger=self.logger)
        else:
            error = TransportError(f"WebSocket connection {CLOSED_BEFORE_HANDSHAKE_MESSAGE}")
            self._error = str(error)
            dispatch_callback(self.config.on_error, error, logger=self.logger)
        self._evaluate_backoff()

    def _evaluate_backoff(self) -> None:
        if self._torn_down:
            return
        if not self.config.auto_reconnect:
            self.logger.debug("Auto-reconnect disabled, staying %s", self._state.value)
            return

        delay = self._scheduler.schedule(self._on_reconnect_timer)
        if delay is None:
            exhausted = AttemptsExhaustedError(self.policy.max_attempts)
            self._error = str(exhausted)
            self._transition(ConnectionState.DISCONNECTED)
            dispatch_callback(self.config.on_error, exhausted, logger=self.logger)
            return
        self._transition(ConnectionState.RECONNECTING)

    async def _replay_subscriptions(self, session: TransportSession) -> None:
        entries = self._registry.entries()
        if entries:
            self.logger.info("Replaying %s subscription(s)", len(entries))
        for entry in entries:
            if session is not self._session:
                return
            if entry.handle in self._registry and not entry.is_bound:
                await self._bind(session, entry)

    async def _bind(self, session: TransportSession, entry: SubscriptionEntry) -> None:
        try:
            raw_subscription = await session.subscribe_raw(entry.destination, entry.handler)
        except TransportError as exc:
            self.logger.warning("Subscription to %s deferred to next connect: %s", entry.destination, exc)
            return
        if entry.handle not in self._registry or session is not self._session:
            # Unsubscribed or superseded while the SUBSCRIBE frame was in flight
            await session.unsubscribe_raw(raw_subscription)
            return
        entry.raw_subscription = raw_subscription

    def _transition(self, new_state: ConnectionState) -> None:
        if self._state is not new_state:
            previous_state = self._state
            self._state = new_state
            self.logger.info("State transition: %s -> %s", previous_state.value, new_state.value)


__all__ = ["ReconnectingClient"]
