"""Error types raised or reported by the STOMP session client."""

from __future__ import annotations

from typing import Mapping, Optional

DEFAULT_PROTOCOL_ERROR_MESSAGE = "STOMP connection error"
DEFAULT_TRANSPORT_ERROR_MESSAGE = "WebSocket connection error"


class StompClientError(RuntimeError):
    """Base class for every error produced by this package."""


class ConstructionError(StompClientError, ValueError):
    """Raised synchronously when a session cannot even be built (never retried)."""

    @classmethod
    def malformed_endpoint(cls, address: object, reason: str) -> "ConstructionError":
        """Create error for an endpoint address that cannot be used."""
        return cls(f"Malformed endpoint {address!r}: {reason}")


class TransportError(StompClientError):
    """Socket-level failure: refused connection, timeout, abnormal close."""

    @classmethod
    def from_exception(cls, exc: BaseException, context: str = "") -> "TransportError":
        """Wrap a lower-level exception, keeping its text for the error field."""
        detail = str(exc) or type(exc).__name__
        msg = DEFAULT_TRANSPORT_ERROR_MESSAGE
        if context:
            msg += f" ({context})"
        error = cls(f"{msg}: {detail}")
        error.__cause__ = exc
        return error


class ProtocolError(StompClientError):
    """Framing or broker-level rejection (STOMP ERROR frame, undecodable frame)."""

    def __init__(
        self,
        message: str = DEFAULT_PROTOCOL_ERROR_MESSAGE,
        *,
        headers: Optional[Mapping[str, str]] = None,
        body: str = "",
    ) -> None:
        super().__init__(message)
        self.headers = dict(headers or {})
        self.body = body

    @classmethod
    def from_error_frame(cls, headers: Mapping[str, str], body: str) -> "ProtocolError":
        """Create error from the headers and body of a STOMP ERROR frame."""
        message = headers.get("message") or DEFAULT_PROTOCOL_ERROR_MESSAGE
        return cls(message, headers=headers, body=body)


class FrameDecodeError(ProtocolError):
    """Raised when inbound bytes do not form a valid STOMP or SockJS frame."""


class AttemptsExhaustedError(StompClientError):
    """Terminal: the reconnect attempt ceiling was reached."""

    def __init__(self, max_attempts: int) -> None:
        super().__init__(f"Max reconnection attempts ({max_attempts}) reached")
        self.max_attempts = max_attempts


__all__ = [
    "AttemptsExhaustedError",
    "ConstructionError",
    "DEFAULT_PROTOCOL_ERROR_MESSAGE",
    "DEFAULT_TRANSPORT_ERROR_MESSAGE",
    "FrameDecodeError",
    "ProtocolError",
    "StompClientError",
    "TransportError",
]
