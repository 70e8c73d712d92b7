"""Helper modules for TransportSession."""

from .connection_lifecycle import WebSocketConnectionLifecycle
from .payload_codec import parse_payload, serialize_payload

__all__ = ["WebSocketConnectionLifecycle", "parse_payload", "serialize_payload"]
