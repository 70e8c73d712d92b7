"""
STOMP 1.2 frame encoding and decoding.

Frames travel as websocket text messages. A single message may carry several
frames and bare end-of-line heart-beats; both are handled by decode_frames.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Union

from ..errors import FrameDecodeError

NULL = "\x00"
EOL = "\n"

CONNECT = "CONNECT"
CONNECTED = "CONNECTED"
SEND = "SEND"
SUBSCRIBE = "SUBSCRIBE"
UNSUBSCRIBE = "UNSUBSCRIBE"
DISCONNECT = "DISCONNECT"
MESSAGE = "MESSAGE"
RECEIPT = "RECEIPT"
ERROR = "ERROR"

ACCEPT_VERSION = "1.2"
HEART_BEAT_DISABLED = "0,0"
JSON_CONTENT_TYPE = "application/json"

# CONNECT and CONNECTED headers are never escaped, for 1.0 compatibility
_UNESCAPED_COMMANDS = frozenset({CONNECT, CONNECTED})

_ESCAPES = {"\\": "\\\\", "\r": "\\r", "\n": "\\n", ":": "\\c"}
_UNESCAPES = {"\\": "\\", "r": "\r", "n": "\n", "c": ":"}
_ESCAPE_SEQUENCE = re.compile(r"\\(.?)", re.DOTALL)


@dataclass
class StompFrame:
    """One STOMP frame: command, ordered headers and a text body."""

    command: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: str = ""

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.headers.get(name, default)


def escape_header(value: str) -> str:
    return "".join(_ESCAPES.get(char, char) for char in value)


def unescape_header(value: str) -> str:
    def _replace(match: "re.Match[str]") -> str:
        sequence = match.group(1)
        if sequence not in _UNESCAPES:
            raise FrameDecodeError(f"Undefined header escape sequence: \\{sequence}")
        return _UNESCAPES[sequence]

    return _ESCAPE_SEQUENCE.sub(_replace, value)


def encode_frame(frame: StompFrame) -> str:
    """Serialize a frame, adding content-length whenever there is a body."""
    escape = frame.command not in _UNESCAPED_COMMANDS
    lines = [frame.command]
    for key, value in frame.headers.items():
        if escape:
            lines.append(f"{escape_header(key)}:{escape_header(str(value))}")
        else:
            lines.append(f"{key}:{value}")
    if frame.body and "content-length" not in frame.headers:
        lines.append(f"content-length:{len(frame.body.encode('utf-8'))}")
    return EOL.join(lines) + EOL + EOL + frame.body + NULL


def _read_line(raw: bytes, pos: int) -> tuple[str, int]:
    eol = raw.find(b"\n", pos)
    if eol == -1:
        raise FrameDecodeError("Truncated frame: missing end of line")
    line = raw[pos:eol]
    if line.endswith(b"\r"):
        line = line[:-1]
    return line.decode("utf-8", errors="replace"), eol + 1


def _parse_headers(command: str, header_lines: List[str]) -> Dict[str, str]:
    headers: Dict[str, str] = {}
    unescape = command not in _UNESCAPED_COMMANDS
    for line in header_lines:
        key, separator, value = line.partition(":")
        if not separator:
            raise FrameDecodeError(f"Malformed header line: {line!r}")
        if unescape:
            key, value = unescape_header(key), unescape_header(value)
        # Repeated headers: only the first occurrence counts
        headers.setdefault(key, value)
    return headers


def _read_body(raw: bytes, pos: int, headers: Mapping[str, str]) -> tuple[bytes, int]:
    content_length = headers.get("content-length")
    if content_length is None:
        end = raw.find(b"\x00", pos)
        if end == -1:
            raise FrameDecodeError("Truncated frame: missing NULL terminator")
        return raw[pos:end], end + 1

    try:
        length = int(content_length)
    except ValueError as exc:
        raise FrameDecodeError(f"Invalid content-length header: {content_length!r}") from exc
    end = pos + length
    if length < 0 or raw[end : end + 1] != b"\x00":
        raise FrameDecodeError("Frame body does not match content-length")
    return raw[pos:end], end + 1


def decode_frames(data: Union[str, bytes]) -> List[StompFrame]:
    """
    Decode every frame contained in one websocket message.

    Heart-beats (bare EOLs) produce no frame, so an empty list is a valid result.
    """
    raw = data.encode("utf-8") if isinstance(data, str) else bytes(data)
    frames: List[StompFrame] = []
    pos = 0
    while pos < len(raw):
        if raw[pos : pos + 1] in (b"\n", b"\r"):
            pos += 1
            continue

        command, pos = _read_line(raw, pos)
        header_lines: List[str] = []
        while True:
            line, pos = _read_line(raw, pos)
            if not line:
                break
            header_lines.append(line)

        headers = _parse_headers(command, header_lines)
        body, pos = _read_body(raw, pos, headers)
        frames.append(StompFrame(command, headers, body.decode("utf-8", errors="replace")))
    return frames


def connect_frame(host: str, extra_headers: Optional[Mapping[str, str]] = None) -> StompFrame:
    headers = {"accept-version": ACCEPT_VERSION, "host": host, "heart-beat": HEART_BEAT_DISABLED}
    if extra_headers:
        headers.update(extra_headers)
    return StompFrame(CONNECT, headers)


def send_frame(destination: str, body: str) -> StompFrame:
    return StompFrame(SEND, {"destination": destination, "content-type": JSON_CONTENT_TYPE}, body)


def subscribe_frame(subscription_id: str, destination: str) -> StompFrame:
    return StompFrame(SUBSCRIBE, {"id": subscription_id, "destination": destination, "ack": "auto"})


def unsubscribe_frame(subscription_id: str) -> StompFrame:
    return StompFrame(UNSUBSCRIBE, {"id": subscription_id})


def disconnect_frame() -> StompFrame:
    return StompFrame(DISCONNECT)
