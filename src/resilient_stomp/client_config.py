"""
Configuration for ReconnectingClient.

Values are given in code or loaded from environment variables through
``ClientConfig.from_env``. All durations are in seconds.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from .backoff_policy import (
    DEFAULT_BASE_DELAY_SECONDS,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_MAX_DELAY_SECONDS,
    DEFAULT_MULTIPLIER,
    BackoffPolicy,
)
from .config import ConfigurationError, env_bool, env_float, env_int, env_str

DEFAULT_CONNECTION_TIMEOUT_SECONDS = 10.0

ENV_ENDPOINT_ADDRESS = "STOMP_ENDPOINT_ADDRESS"
ENV_DESTINATION_TOPIC = "STOMP_DESTINATION_TOPIC"
ENV_AUTO_RECONNECT = "STOMP_AUTO_RECONNECT"
ENV_MAX_RECONNECT_ATTEMPTS = "STOMP_MAX_RECONNECT_ATTEMPTS"
ENV_BASE_RECONNECT_DELAY = "STOMP_BASE_RECONNECT_DELAY_SECONDS"
ENV_MAX_RECONNECT_DELAY = "STOMP_MAX_RECONNECT_DELAY_SECONDS"
ENV_RECONNECT_MULTIPLIER = "STOMP_RECONNECT_MULTIPLIER"
ENV_CONNECTION_TIMEOUT = "STOMP_CONNECTION_TIMEOUT_SECONDS"
ENV_USE_FRAMING_TRANSPORT = "STOMP_USE_FRAMING_TRANSPORT"


@dataclass
class ClientConfig:
    """
    Options recognised by ReconnectingClient.

    Attributes:
        endpoint_address: Broker URL (ws, wss, http or https)
        destination_topic: Destination subscribed with on_message, empty for none
        on_message: Handler for messages on destination_topic
        on_connect: Called after every successful (re)connect
        on_disconnect: Called when an established connection goes away
        on_error: Called with the exception for every reported error
        auto_reconnect: Whether failures schedule reconnect attempts
        max_reconnect_attempts: Attempt ceiling before giving up
        base_reconnect_delay: Delay before the first reconnect attempt
        use_framing_transport: Wrap the socket in SockJS framing
        reconnect_multiplier: Exponential growth factor of the delay
        max_reconnect_delay: Cap on any reconnect delay
        connection_timeout: Time allowed for the socket to open
        connect_headers: Extra STOMP CONNECT headers, e.g. credentials from an auth collaborator
    """

    endpoint_address: str
    destination_topic: str
    on_message: Callable[[Any], Any]
    on_connect: Optional[Callable[[], Any]] = None
    on_disconnect: Optional[Callable[[], Any]] = None
    on_error: Optional[Callable[[BaseException], Any]] = None
    auto_reconnect: bool = True
    max_reconnect_attempts: int = DEFAULT_MAX_ATTEMPTS
    base_reconnect_delay: float = DEFAULT_BASE_DELAY_SECONDS
    use_framing_transport: bool = True
    reconnect_multiplier: float = DEFAULT_MULTIPLIER
    max_reconnect_delay: float = DEFAULT_MAX_DELAY_SECONDS
    connection_timeout: float = DEFAULT_CONNECTION_TIMEOUT_SECONDS
    connect_headers: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not callable(self.on_message):
            raise ConfigurationError.invalid_value("on_message", self.on_message, "Must be callable")
        if self.connection_timeout <= 0:
            raise ConfigurationError.invalid_value("connection_timeout", self.connection_timeout, "Must be positive")
        # Fail fast on bad backoff parameters
        self.backoff_policy()

    def backoff_policy(self) -> BackoffPolicy:
        return BackoffPolicy(
            base_delay=self.base_reconnect_delay,
            multiplier=self.reconnect_multiplier,
            max_delay=self.max_reconnect_delay,
            max_attempts=self.max_reconnect_attempts,
        )

    @classmethod
    def from_env(cls, on_message: Callable[[Any], Any], **overrides: Any) -> "ClientConfig":
        """
        Build a configuration from ``STOMP_*`` environment variables.

        Keyword overrides win over the environment; unset variables fall back
        to the dataclass defaults.
        """
        values: Dict[str, Any] = {
            "endpoint_address": env_str(ENV_ENDPOINT_ADDRESS, required="endpoint_address" not in overrides),
            "destination_topic": env_str(ENV_DESTINATION_TOPIC, or_value=""),
            "auto_reconnect": env_bool(ENV_AUTO_RECONNECT, or_value=True),
            "max_reconnect_attempts": env_int(ENV_MAX_RECONNECT_ATTEMPTS, or_value=DEFAULT_MAX_ATTEMPTS),
            "base_reconnect_delay": env_float(ENV_BASE_RECONNECT_DELAY, or_value=DEFAULT_BASE_DELAY_SECONDS),
            "max_reconnect_delay": env_float(ENV_MAX_RECONNECT_DELAY, or_value=DEFAULT_MAX_DELAY_SECONDS),
            "reconnect_multiplier": env_float(ENV_RECONNECT_MULTIPLIER, or_value=DEFAULT_MULTIPLIER),
            "connection_timeout": env_float(ENV_CONNECTION_TIMEOUT, or_value=DEFAULT_CONNECTION_TIMEOUT_SECONDS),
            "use_framing_transport": env_bool(ENV_USE_FRAMING_TRANSPORT, or_value=True),
        }
        values.update(overrides)
        return cls(on_message=on_message, **values)


__all__ = ["ClientConfig", "DEFAULT_CONNECTION_TIMEOUT_SECONDS"]
