"""Resilient STOMP messaging-session client with automatic reconnection."""

from .backoff_policy import BackoffPolicy
from .client_config import ClientConfig
from .config import ConfigurationError
from .connection_state import ConnectionState
from .endpoint import Endpoint
from .errors import (
    AttemptsExhaustedError,
    ConstructionError,
    FrameDecodeError,
    ProtocolError,
    StompClientError,
    TransportError,
)
from .reconnecting_client import ReconnectingClient
from .subscription_registry import SubscriptionHandle
from .transport_session import RawSubscription, TransportSession

__all__ = [
    "AttemptsExhaustedError",
    "BackoffPolicy",
    "ClientConfig",
    "ConfigurationError",
    "ConnectionState",
    "ConstructionError",
    "Endpoint",
    "FrameDecodeError",
    "ProtocolError",
    "RawSubscription",
    "ReconnectingClient",
    "StompClientError",
    "SubscriptionHandle",
    "TransportError",
    "TransportSession",
]
