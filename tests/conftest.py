"""Pytest configuration and fixtures for slack_rtm tests."""

from __future__ import annotations

import asyncio
import threading
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from slack_rtm.counter import FrameCounter
from slack_rtm.session import RtmConnection


@pytest.fixture
def mock_session() -> MagicMock:
    """Create a mock aiohttp ClientSession."""
    import aiohttp

    return MagicMock(spec=aiohttp.ClientSession)


def create_mock_response(
    status: int = 200,
    json_data: Any = None,
    text_data: str | None = None,
) -> AsyncMock:
    """Create a configured mock response.

    Args:
        status: HTTP status code
        json_data: Data to return from json() call
        text_data: Data to return from text() call

    Returns:
        Configured AsyncMock response
    """
    response = AsyncMock()
    response.status = status

    if json_data is not None:
        response.json.return_value = json_data
    if text_data is not None:
        response.text.return_value = text_data

    response.__aenter__.return_value = response
    response.__aexit__.return_value = None

    return response


class FakeTransport:
    """In-memory transport that signals its delegate on demand.

    ``on_open`` controls what happens when the connection opens it:
    "connect" signals open immediately, "fail" signals close with
    ``error``, "silent" never signals.
    """

    backend = "fake"

    def __init__(self, on_open: str = "connect", error: BaseException | None = None):
        self.on_open = on_open
        self.error = error
        self.delegate: Any = None
        self.opened_urls: list[str] = []
        self.written: list[bytes] = []
        self.close_calls = 0
        self.write_error: BaseException | None = None

    def open(self, url: str, delegate: Any) -> None:
        self.opened_urls.append(url)
        self.delegate = delegate
        if self.on_open == "connect":
            delegate.handle_open()
        elif self.on_open == "fail":
            delegate.handle_close(self.error)

    def close(self) -> None:
        self.close_calls += 1

    def write(self, data: bytes) -> None:
        if self.write_error is not None:
            raise self.write_error
        self.written.append(data)

    def wait_closed(self, timeout: float | None = None) -> bool:
        return True


class FakeSocket:
    """Socket double serving queued frames, then blocking until closed."""

    def __init__(self, frames: list[Any] | None = None) -> None:
        self._frames = list(frames or [])
        self._closed_event: asyncio.Event | None = None
        self.sent: list[str] = []
        self.close_calls = 0
        self.closed = False

    def _event(self) -> asyncio.Event:
        if self._closed_event is None:
            self._closed_event = asyncio.Event()
        return self._closed_event

    def __aiter__(self) -> FakeSocket:
        return self

    async def __anext__(self) -> Any:
        if self._frames:
            return self._frames.pop(0)
        await self._event().wait()
        raise StopAsyncIteration

    async def send(self, text: str) -> None:
        self.sent.append(text)

    async def send_str(self, text: str) -> None:
        self.sent.append(text)

    async def close(self) -> None:
        self.close_calls += 1
        self.closed = True
        self._event().set()

    def exception(self) -> BaseException | None:
        return None


class RecordingDelegate:
    """TransportDelegate that records every callback."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, Any]] = []
        self.opened = threading.Event()
        self.closed = threading.Event()
        self.close_error: BaseException | None = None

    def handle_open(self) -> None:
        self.calls.append(("open", None))
        self.opened.set()

    def handle_close(self, error: BaseException | None) -> None:
        self.calls.append(("close", error))
        self.close_error = error
        self.closed.set()

    def handle_text(self, text: str) -> None:
        self.calls.append(("text", text))

    def handle_binary(self, data: bytes) -> None:
        self.calls.append(("binary", data))


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def connection(fake_transport: FakeTransport) -> RtmConnection:
    """A connected RtmConnection over a FakeTransport."""
    conn = RtmConnection(fake_transport, FrameCounter(), connect_timeout=1.0)
    conn.connect("wss://example.test/websocket")
    return conn
