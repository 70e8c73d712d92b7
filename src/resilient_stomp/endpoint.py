"""Immutable description of the broker endpoint a session connects to."""

from __future__ import annotations

import random as _random
import string
from dataclasses import dataclass
from typing import Final
from urllib.parse import SplitResult, urlsplit, urlunsplit

from .errors import ConstructionError

_SCHEME_MAP = {"ws": "ws", "wss": "wss", "http": "ws", "https": "wss"}
_SESSION_ID_ALPHABET = string.ascii_lowercase + string.digits
_SESSION_ID_LENGTH = 8

_SECURE_RANDOM: Final = _random.SystemRandom()


def _split_address(address: object) -> SplitResult:
    if not isinstance(address, str) or not address.strip():
        raise ConstructionError.malformed_endpoint(address, "address must be a non-empty string")
    try:
        parts = urlsplit(address.strip())
        hostname = parts.hostname
        # .port raises ValueError for out-of-range or non-numeric ports
        _ = parts.port
    except ValueError as exc:
        raise ConstructionError.malformed_endpoint(address, str(exc)) from exc
    if parts.scheme.lower() not in _SCHEME_MAP:
        raise ConstructionError.malformed_endpoint(address, f"unsupported scheme {parts.scheme!r}")
    if not hostname:
        raise ConstructionError.malformed_endpoint(address, "missing host")
    return parts


def _sockjs_server_id() -> str:
    return f"{_SECURE_RANDOM.randint(0, 999):03d}"


def _sockjs_session_id() -> str:
    return "".join(_SECURE_RANDOM.choice(_SESSION_ID_ALPHABET) for _ in range(_SESSION_ID_LENGTH))


@dataclass(frozen=True)
class Endpoint:
    """
    Broker address plus whether the SockJS framing transport wraps the socket.

    Validation happens at construction, so a malformed address surfaces
    synchronously as ConstructionError and is never retried.
    """

    address: str
    use_framing_transport: bool = True

    def __post_init__(self) -> None:
        _split_address(self.address)

    @property
    def host(self) -> str:
        """Host name sent in the STOMP CONNECT frame."""
        return _split_address(self.address).hostname or ""

    def websocket_url(self) -> str:
        """
        URL to open for one connection attempt.

        With framing enabled a fresh SockJS server/session path is generated
        on every call, since SockJS sessions cannot be reused.
        """
        parts = _split_address(self.address)
        scheme = _SCHEME_MAP[parts.scheme.lower()]
        path = parts.path
        if self.use_framing_transport:
            path = f"{path.rstrip('/')}/{_sockjs_server_id()}/{_sockjs_session_id()}/websocket"
        return urlunsplit((scheme, parts.netloc, path, parts.query, ""))


__all__ = ["Endpoint"]
