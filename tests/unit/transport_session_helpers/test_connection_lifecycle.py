"""Tests for the websocket connection lifecycle helper."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from websockets import WebSocketException

from resilient_stomp.errors import TransportError
from resilient_stomp.transport_session_helpers import connection_lifecycle


class DummyConnection:
    def __init__(self, close_code=None):
        self.close_code = close_code
        self.close = AsyncMock()


def make_lifecycle(connection_factory=None):
    return connection_lifecycle.WebSocketConnectionLifecycle(
        "svc",
        connection_timeout=1.0,
        connection_factory=connection_factory,
    )


@pytest.mark.asyncio
async def test_establish_connection_success(monkeypatch):
    lifecycle = make_lifecycle()
    conn = DummyConnection()
    monkeypatch.setattr(connection_lifecycle, "_open_websocket", AsyncMock(return_value=conn))

    result = await lifecycle.establish_connection("ws://url")

    assert result is conn
    assert lifecycle.get_connection() is conn
    assert lifecycle.is_connected()
    conn.close.assert_not_awaited()


@pytest.mark.asyncio
async def test_establish_connection_timeout(monkeypatch):
    lifecycle = make_lifecycle()
    monkeypatch.setattr(connection_lifecycle, "_open_websocket", AsyncMock(side_effect=asyncio.TimeoutError()))

    with pytest.raises(TransportError, match="connection timeout"):
        await lifecycle.establish_connection("ws://url")

    assert lifecycle.get_connection() is None


@pytest.mark.asyncio
async def test_establish_connection_websocket_error(monkeypatch):
    lifecycle = make_lifecycle()
    monkeypatch.setattr(connection_lifecycle, "_open_websocket", AsyncMock(side_effect=WebSocketException("boom")))

    with pytest.raises(TransportError, match="boom"):
        await lifecycle.establish_connection("ws://url")


@pytest.mark.asyncio
async def test_establish_connection_refused(monkeypatch):
    lifecycle = make_lifecycle()
    monkeypatch.setattr(
        connection_lifecycle,
        "_open_websocket",
        AsyncMock(side_effect=ConnectionRefusedError("Connection refused")),
    )

    with pytest.raises(TransportError, match="Connection refused"):
        await lifecycle.establish_connection("ws://url")


@pytest.mark.asyncio
async def test_connection_closed_during_init_is_cleaned_up(monkeypatch):
    lifecycle = make_lifecycle()
    conn = DummyConnection(close_code=1006)
    monkeypatch.setattr(connection_lifecycle, "_open_websocket", AsyncMock(return_value=conn))

    with pytest.raises(TransportError, match="closed during initialization"):
        await lifecycle.establish_connection("ws://url")

    assert lifecycle.get_connection() is None
    conn.close.assert_not_awaited()


@pytest.mark.asyncio
async def test_connection_factory_receives_url():
    conn = DummyConnection()
    factory = AsyncMock(return_value=conn)
    lifecycle = make_lifecycle(connection_factory=factory)

    assert await lifecycle.establish_connection("ws://broker/ws") is conn

    factory.assert_called_once_with("ws://broker/ws")


@pytest.mark.asyncio
async def test_cleanup_closes_open_connection_once():
    lifecycle = make_lifecycle()
    conn = DummyConnection()
    lifecycle.websocket_connection = conn

    await lifecycle.cleanup_connection()
    await lifecycle.cleanup_connection()

    conn.close.assert_awaited_once()
    assert lifecycle.get_connection() is None
    assert not lifecycle.is_connected()


@pytest.mark.asyncio
async def test_cleanup_logs_close_failures():
    lifecycle = make_lifecycle()
    conn = DummyConnection()
    conn.close = AsyncMock(side_effect=OSError("reset"))
    lifecycle.websocket_connection = conn

    await lifecycle.cleanup_connection()

    assert lifecycle.get_connection() is None


def test_validate_connection_rejects_empty():
    with pytest.raises(ConnectionError):
        connection_lifecycle._validate_connection(None, "ws://url")

    connection_lifecycle._validate_connection(MagicMock(close_code=None), "ws://url")
