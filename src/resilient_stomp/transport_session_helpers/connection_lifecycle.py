"""WebSocket connection lifecycle management for a transport session."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Optional, Union

import websockets
from websockets import WebSocketException

from ..errors import TransportError

DEFAULT_CLOSE_TIMEOUT_SECONDS = 5.0
MAX_MESSAGE_SIZE_BYTES = 1024 * 1024

ConnectionFactory = Callable[[str], Any]


class WebSocketConnectionLifecycle:
    """Opens and releases the single websocket owned by one transport session."""

    def __init__(
        self,
        name: str,
        connection_timeout: float,
        connection_factory: Optional[ConnectionFactory] = None,
    ):
        self.name = name
        self.connection_timeout = connection_timeout
        self.connection_factory = connection_factory
        self.websocket_connection: Optional[Any] = None
        self.logger = logging.getLogger(f"{__name__}.{name}")

    async def establish_connection(self, websocket_url: str) -> Any:
        """Open the websocket or raise TransportError; never leaves a half-open socket."""
        connected = False
        try:
            self.logger.info("Establishing WebSocket connection to %s", websocket_url)

            self.websocket_connection = await _open_websocket(self.connection_factory, websocket_url, self.connection_timeout)

            _validate_connection(self.websocket_connection, websocket_url)

            self.logger.info("WebSocket connection established")
            connected = True
        except asyncio.TimeoutError as exc:
            self.logger.warning("WebSocket connection timeout after %.1fs", self.connection_timeout)
            raise TransportError.from_exception(exc, "connection timeout") from exc
        except WebSocketException as exc:
            self.logger.warning("WebSocket handshake failed: %s", exc)
            raise TransportError.from_exception(exc) from exc
        except (OSError, ValueError) as exc:
            self.logger.warning("Transport error while connecting: %s", exc)
            raise TransportError.from_exception(exc) from exc
        else:
            return self.websocket_connection
        finally:
            if not connected:
                await self.cleanup_connection()

    async def cleanup_connection(self) -> None:
        connection, self.websocket_connection = self.websocket_connection, None
        if connection is None:
            return
        try:
            if _close_code(connection) is None:
                self.logger.info("Closing WebSocket connection")
                await asyncio.wait_for(connection.close(), timeout=DEFAULT_CLOSE_TIMEOUT_SECONDS)
            else:
                self.logger.debug("WebSocket already closed (code: %s)", _close_code(connection))
        except (asyncio.TimeoutError, WebSocketException, OSError, RuntimeError):
            self.logger.warning("Error closing WebSocket", exc_info=True)
        finally:
            self.logger.debug("WebSocket connection cleanup completed")

    def is_connected(self) -> bool:
        return self.websocket_connection is not None and _close_code(self.websocket_connection) is None

    def get_connection(self) -> Optional[Any]:
        return self.websocket_connection


def _close_code(connection: Any) -> Optional[int]:
    return getattr(connection, "close_code", None)


async def _open_websocket(connection_factory: Optional[ConnectionFactory], websocket_url: str, timeout: float) -> Any:
    """Open a websocket via factory or default connector."""
    if connection_factory is not None:
        opener: Union[Any, Callable[[], Any]] = connection_factory(websocket_url)
    else:
        opener = websockets.connect(
            websocket_url,
            close_timeout=10,
            max_size=MAX_MESSAGE_SIZE_BYTES,
        )
    return await asyncio.wait_for(_as_awaitable(opener), timeout=timeout)


async def _as_awaitable(opener: Any) -> Any:
    return await opener


def _validate_connection(connection: Any, websocket_url: str) -> None:
    """Ensure the established connection is usable."""
    if not connection:
        raise ConnectionError(f"WebSocket connection factory returned nothing for {websocket_url}")

    if _close_code(connection) is not None:
        raise ConnectionError(f"WebSocket connection closed during initialization (code: {_close_code(connection)})")
