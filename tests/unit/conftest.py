"""Shared fakes for transport and client tests."""

from __future__ import annotations

import asyncio
import itertools
from typing import Any, Callable, List

import orjson
import pytest
from websockets.exceptions import ConnectionClosedError

from resilient_stomp.errors import TransportError
from resilient_stomp.stomp_protocol import StompFrame, decode_frames, encode_frame
from resilient_stomp.transport_session import RawSubscription

_PEER_CLOSED = object()


class FakeWebSocket:
    """In-memory stand-in for a websockets client connection."""

    def __init__(self, *incoming: Any):
        self.sent: List[str] = []
        self.close_code = None
        self.close_calls = 0
        self.fail_sends = False
        self._queue: asyncio.Queue = asyncio.Queue()
        for message in incoming:
            self.feed(message)

    def feed(self, message: Any) -> None:
        self._queue.put_nowait(message)

    def feed_frame(self, command: str, headers=None, body: str = "", sockjs: bool = False) -> None:
        text = encode_frame(StompFrame(command, dict(headers or {}), body))
        if sockjs:
            text = "a" + orjson.dumps([text]).decode()
        self.feed(text)

    def peer_close(self) -> None:
        self.feed(_PEER_CLOSED)

    def peer_abort(self) -> None:
        self.feed(ConnectionClosedError(None, None))

    async def send(self, message: str) -> None:
        if self.fail_sends or self.close_code is not None:
            raise OSError("socket is closed")
        self.sent.append(message)

    async def recv(self) -> Any:
        return await self.__anext__()

    async def close(self) -> None:
        self.close_calls += 1
        self.close_code = 1000
        self.feed(_PEER_CLOSED)

    def __aiter__(self):
        return self

    async def __anext__(self) -> Any:
        item = await self._queue.get()
        if item is _PEER_CLOSED:
            self.close_code = 1000
            raise StopAsyncIteration
        if isinstance(item, BaseException):
            raise item
        return item

    def sent_frames(self, sockjs: bool = False) -> List[StompFrame]:
        frames: List[StompFrame] = []
        for message in self.sent:
            payloads = orjson.loads(message) if sockjs else [message]
            for payload in payloads:
                frames.extend(decode_frames(payload))
        return frames

    def sent_commands(self, sockjs: bool = False) -> List[str]:
        return [frame.command for frame in self.sent_frames(sockjs)]


class FakeSession:
    """Scriptable TransportSession replacement recording what the client asks of it."""

    def __init__(self, endpoint, on_connected, on_error, on_closed, **kwargs):
        self.endpoint = endpoint
        self.kwargs = kwargs
        self._on_connected = on_connected
        self._on_error = on_error
        self._on_closed = on_closed
        self._ids = itertools.count(1)
        self.opened = False
        self.closed = False
        self.connected = False
        self.published: List[tuple] = []
        self.subscribed: List[tuple] = []
        self.unsubscribed: List[RawSubscription] = []
        self.publish_result = True

    @property
    def is_connected(self) -> bool:
        return self.connected and not self.closed

    async def open(self) -> None:
        self.opened = True

    async def report_connected(self) -> None:
        self.connected = True
        await self._on_connected(self)

    async def report_error(self, error=None) -> None:
        self.connected = False
        await self._on_error(self, error or TransportError("WebSocket connection error: boom"))

    async def report_closed(self) -> None:
        self.connected = False
        await self._on_closed(self)

    async def publish(self, destination, payload) -> bool:
        self.published.append((destination, payload))
        return self.publish_result

    async def subscribe_raw(self, destination, on_frame) -> RawSubscription:
        self.subscribed.append((destination, on_frame))
        return RawSubscription(id=f"sub-{next(self._ids)}", destination=destination)

    async def unsubscribe_raw(self, subscription) -> None:
        self.unsubscribed.append(subscription)

    async def close(self) -> None:
        self.closed = True
        self.connected = False


class SessionRecorder:
    """Session factory that keeps every FakeSession it creates."""

    def __init__(self):
        self.sessions: List[FakeSession] = []

    def __call__(self, *args, **kwargs) -> FakeSession:
        session = FakeSession(*args, **kwargs)
        self.sessions.append(session)
        return session

    @property
    def latest(self) -> FakeSession:
        return self.sessions[-1]


async def _wait_until(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.001)


@pytest.fixture
def fake_websocket_cls():
    return FakeWebSocket


@pytest.fixture
def session_recorder():
    return SessionRecorder()


@pytest.fixture
def wait_until():
    return _wait_until
