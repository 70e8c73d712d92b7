"""
SockJS websocket envelope handling.

When the framing transport is enabled every websocket message is a SockJS
frame: ``o`` (open), ``h`` (heartbeat), ``a[...]`` (array of messages),
``m"..."`` (single message) or ``c[code,"reason"]`` (close). Outbound
messages are sent as a JSON array of strings.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Tuple, Union

import orjson

from ..errors import FrameDecodeError

OPEN = "o"
HEARTBEAT = "h"
ARRAY = "a"
MESSAGE = "m"
CLOSE = "c"


@dataclass(frozen=True)
class SockJSEnvelope:
    kind: str
    messages: Tuple[str, ...] = ()
    close_code: int = 0
    close_reason: str = ""

    @property
    def is_open(self) -> bool:
        return self.kind == OPEN

    @property
    def is_close(self) -> bool:
        return self.kind == CLOSE


def encode_envelope(messages: Sequence[str]) -> str:
    return orjson.dumps(list(messages)).decode("utf-8")


def _load(kind: str, payload: str):
    try:
        return orjson.loads(payload)
    except orjson.JSONDecodeError as exc:
        raise FrameDecodeError(f"Invalid SockJS {kind!r} frame payload") from exc


def decode_envelope(data: Union[str, bytes]) -> SockJSEnvelope:
    text = data.decode("utf-8", errors="replace") if isinstance(data, bytes) else data
    if not text:
        raise FrameDecodeError("Empty SockJS frame")

    kind, payload = text[0], text[1:]
    if kind in (OPEN, HEARTBEAT):
        return SockJSEnvelope(kind)

    if kind == ARRAY:
        messages = _load(kind, payload)
        if not isinstance(messages, list) or not all(isinstance(item, str) for item in messages):
            raise FrameDecodeError("SockJS array frame must contain strings")
        return SockJSEnvelope(kind, tuple(messages))

    if kind == MESSAGE:
        message = _load(kind, payload)
        if not isinstance(message, str):
            raise FrameDecodeError("SockJS message frame must contain a string")
        return SockJSEnvelope(kind, (message,))

    if kind == CLOSE:
        details = _load(kind, payload)
        if not isinstance(details, list) or len(details) != 2:
            raise FrameDecodeError("SockJS close frame must be [code, reason]")
        code, reason = details
        return SockJSEnvelope(kind, close_code=int(code), close_reason=str(reason))

    raise FrameDecodeError(f"Unknown SockJS frame type {kind!r}")
