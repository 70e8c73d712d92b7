"""Wire codecs: STOMP frames and the optional SockJS envelope."""

from .frames import (
    CONNECTED,
    ERROR,
    MESSAGE,
    RECEIPT,
    StompFrame,
    connect_frame,
    decode_frames,
    disconnect_frame,
    encode_frame,
    send_frame,
    subscribe_frame,
    unsubscribe_frame,
)
from .sockjs import SockJSEnvelope, decode_envelope, encode_envelope

__all__ = [
    "CONNECTED",
    "ERROR",
    "MESSAGE",
    "RECEIPT",
    "SockJSEnvelope",
    "StompFrame",
    "connect_frame",
    "decode_envelope",
    "decode_frames",
    "disconnect_frame",
    "encode_envelope",
    "encode_frame",
    "send_frame",
    "subscribe_frame",
    "unsubscribe_frame",
]
