"""Threaded WebSocket transports for the RTM connection.

Every transport owns a daemon thread running a private asyncio loop. The
socket is opened, read and closed on that thread, and the outcome is reported
back through a TransportDelegate:

- ``handle_open()`` once the socket is writable
- ``handle_text()`` / ``handle_binary()`` for every inbound frame, in order
- ``handle_close(error)`` exactly once per ``open()``, whether the socket
  failed to connect, was closed by the peer, or was closed locally

Two backends implement the same contract: ``websockets`` and ``aiohttp``.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from abc import ABC, abstractmethod
from concurrent.futures import Future
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, ClassVar, Protocol

import aiohttp
from websockets.asyncio.client import ClientConnection
from websockets.exceptions import ConnectionClosed

from .errors import RtmClientError, RtmConnectionError
from .ws import connect_aiohttp_websocket, connect_websocket

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

_LOGGER = logging.getLogger(__name__)


class RtmWsMessageType(Enum):
    """Normalized WebSocket message types."""

    TEXT = "text"
    BINARY = "binary"
    CLOSED = "closed"
    ERROR = "error"


@dataclass(frozen=True)
class RtmWsMessage:
    """Normalized WebSocket message payload."""

    type: RtmWsMessageType
    data: str | bytes | None = None
    error: BaseException | None = None


class TransportDelegate(Protocol):
    """Receiver of transport events, called on the transport thread."""

    def handle_open(self) -> None: ...

    def handle_close(self, error: BaseException | None) -> None: ...

    def handle_text(self, text: str) -> None: ...

    def handle_binary(self, data: bytes) -> None: ...


class RtmTransport(ABC):
    """Duplex text transport running on its own event loop thread."""

    backend: ClassVar[str]

    def __init__(self, *, timeout: float | None = 15.0) -> None:
        self._timeout = timeout
        self._lock = threading.Lock()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._thread: threading.Thread | None = None
        self._task: asyncio.Task[None] | None = None
        self._delegate: TransportDelegate | None = None
        self._writable = False
        self._closing = False
        # Set once the socket of the current open() is released
        self._finished = threading.Event()

    @property
    def is_open(self) -> bool:
        """Whether the socket is connected and accepting writes."""
        return self._writable

    def open(self, url: str, delegate: TransportDelegate) -> None:
        """Start connecting to ``url`` in the background.

        Returns immediately; the result is reported to ``delegate``. A
        previous socket that has already been released is joined first.

        Raises:
            RtmConnectionError: If a previous socket is still running.
        """
        with self._lock:
            thread = self._thread
            if thread is not None and thread.is_alive():
                if (
                    not self._finished.is_set()
                    or thread is threading.current_thread()
                ):
                    raise RtmConnectionError("Transport is already running")
                # Only the close notification and loop teardown are left
                thread.join()
            loop = asyncio.new_event_loop()
            self._loop = loop
            self._delegate = delegate
            self._task = None
            self._closing = False
            self._finished = threading.Event()
            self._thread = threading.Thread(
                target=self._run_loop,
                args=(loop, url),
                name=f"rtm-{self.backend}",
                daemon=True,
            )
            self._thread.start()

    def close(self) -> None:
        """Request the socket to close without waiting for it."""
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        coro = self._shutdown()
        try:
            asyncio.run_coroutine_threadsafe(coro, loop)
        except RuntimeError:
            # Loop finished between the check and the call
            coro.close()

    def write(self, data: bytes) -> None:
        """Queue one UTF-8 text frame for sending.

        Raises:
            RtmConnectionError: If the socket is not open.
            RtmClientError: If ``data`` is not UTF-8 text.
        """
        loop = self._loop
        if loop is None or not self._writable:
            raise RtmConnectionError("WebSocket is not connected")
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as err:
            raise RtmClientError("Frame is not UTF-8 text") from err

        coro = self._send_text(text)
        try:
            future = asyncio.run_coroutine_threadsafe(coro, loop)
        except RuntimeError as err:
            coro.close()
            raise RtmConnectionError("WebSocket is not connected") from err
        future.add_done_callback(self._log_write_result)

    def wait_closed(self, timeout: float | None = None) -> bool:
        """Block until the transport thread exits.

        Returns:
            True if the thread has exited, False on timeout
        """
        thread = self._thread
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()

    # -------------------------------------------------------------------------
    # Internal: event loop thread
    # -------------------------------------------------------------------------

    def _run_loop(self, loop: asyncio.AbstractEventLoop, url: str) -> None:
        asyncio.set_event_loop(loop)
        try:
            loop.run_until_complete(self._run(url))
        finally:
            try:
                loop.run_until_complete(loop.shutdown_asyncgens())
            finally:
                loop.close()

    async def _run(self, url: str) -> None:
        self._task = asyncio.current_task()
        error: BaseException | None = None
        try:
            error = await self._serve(url)
        except asyncio.CancelledError:
            _LOGGER.debug("[%s] Connect cancelled", self.backend)
        except RtmClientError as err:
            _LOGGER.warning("[%s] Connection failed: %s", self.backend, err)
            error = err
        finally:
            self._writable = False
            try:
                await self._release()
            except Exception as err:  # Socket teardown can raise various exceptions
                _LOGGER.debug("[%s] Error releasing socket: %s", self.backend, err)
            # Set before notifying: the delegate may reopen as soon as it
            # hears about the close.
            self._finished.set()
            self._notify_close(error)

    async def _serve(self, url: str) -> BaseException | None:
        if self._closing:
            return None

        _LOGGER.info("[%s] Connecting to %s", self.backend, url)
        await self._connect(url)
        if self._closing:
            return None

        self._writable = True
        _LOGGER.info("[%s] WebSocket connected", self.backend)
        if self._delegate is not None:
            self._delegate.handle_open()

        async for msg in self._iter_messages():
            if self._delegate is None:
                continue
            if msg.type is RtmWsMessageType.TEXT:
                self._delegate.handle_text(str(msg.data))
            elif msg.type is RtmWsMessageType.BINARY:
                self._delegate.handle_binary(bytes(msg.data or b""))
            elif msg.type is RtmWsMessageType.CLOSED:
                return msg.error
            else:
                return msg.error or RtmConnectionError("WebSocket error")
        return None

    async def _shutdown(self) -> None:
        self._closing = True
        if self._writable:
            _LOGGER.debug("[%s] Closing WebSocket", self.backend)
            await self._close_socket()
        elif self._task is not None and not self._task.done():
            self._task.cancel()

    def _notify_close(self, error: BaseException | None) -> None:
        _LOGGER.info("[%s] WebSocket closed", self.backend)
        if self._delegate is not None:
            self._delegate.handle_close(error)

    def _log_write_result(self, future: Future[None]) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            _LOGGER.error("[%s] Failed to write frame: %s", self.backend, error)

    # -------------------------------------------------------------------------
    # Backend hooks
    # -------------------------------------------------------------------------

    @abstractmethod
    async def _connect(self, url: str) -> None:
        """Open the socket; raise RtmClientError on failure."""

    @abstractmethod
    def _iter_messages(self) -> AsyncIterator[RtmWsMessage]:
        """Yield normalized messages until the socket closes."""

    @abstractmethod
    async def _send_text(self, text: str) -> None:
        """Send one text frame."""

    @abstractmethod
    async def _close_socket(self) -> None:
        """Start the closing handshake."""

    @abstractmethod
    async def _release(self) -> None:
        """Free every resource held by the socket."""


class WebsocketsTransport(RtmTransport):
    """Transport backed by the websockets library."""

    backend = "websockets"

    def __init__(self, *, ping_interval: int | None = 20, timeout: float | None = 15.0) -> None:
        super().__init__(timeout=timeout)
        self._ping_interval = ping_interval
        self._ws: ClientConnection | None = None

    async def _connect(self, url: str) -> None:
        self._ws = await connect_websocket(
            url,
            ping_interval=self._ping_interval,
            timeout=self._timeout,
        )

    async def _iter_messages(self) -> AsyncIterator[RtmWsMessage]:
        if self._ws is None:
            raise RtmConnectionError("WebSocket is not connected")

        try:
            async for msg in self._ws:
                yield self._normalize_message(msg)
        except ConnectionClosed as err:
            yield RtmWsMessage(type=RtmWsMessageType.CLOSED, error=err)
        except Exception as err:
            yield RtmWsMessage(type=RtmWsMessageType.ERROR, error=err)
        else:
            # Normal iteration completion means the socket closed cleanly.
            yield RtmWsMessage(type=RtmWsMessageType.CLOSED)

    @staticmethod
    def _normalize_message(msg: str | bytes) -> RtmWsMessage:
        if isinstance(msg, str):
            return RtmWsMessage(RtmWsMessageType.TEXT, msg)
        return RtmWsMessage(RtmWsMessageType.BINARY, bytes(msg))

    async def _send_text(self, text: str) -> None:
        if self._ws is None:
            raise RtmConnectionError("WebSocket is not connected")
        await self._ws.send(text)

    async def _close_socket(self) -> None:
        if self._ws is not None:
            await self._ws.close()

    async def _release(self) -> None:
        ws, self._ws = self._ws, None
        if ws is not None:
            await ws.close()


class AiohttpTransport(RtmTransport):
    """Transport backed by an aiohttp client session."""

    backend = "aiohttp"

    def __init__(self, *, heartbeat: float | None = 30, timeout: float | None = 15.0) -> None:
        super().__init__(timeout=timeout)
        self._heartbeat = heartbeat
        self._session: aiohttp.ClientSession | None = None
        self._ws: aiohttp.ClientWebSocketResponse | None = None

    async def _connect(self, url: str) -> None:
        self._session = aiohttp.ClientSession()
        self._ws = await connect_aiohttp_websocket(
            self._session,
            url,
            heartbeat=self._heartbeat,
            timeout=self._timeout,
        )

    async def _iter_messages(self) -> AsyncIterator[RtmWsMessage]:
        if self._ws is None:
            raise RtmConnectionError("WebSocket is not connected")

        async for msg in self._ws:
            normalized = self._normalize_message(msg)
            if normalized is None:
                continue
            yield normalized
            if normalized.type in {RtmWsMessageType.CLOSED, RtmWsMessageType.ERROR}:
                return
        yield RtmWsMessage(type=RtmWsMessageType.CLOSED, error=self._ws.exception())

    @staticmethod
    def _normalize_message(msg: Any) -> RtmWsMessage | None:
        """Normalize aiohttp frames into RtmWsMessage."""
        msg_type = AiohttpTransport._map_aiohttp_type(msg.type)
        if msg_type is None:
            return None
        if msg_type is RtmWsMessageType.ERROR:
            error = msg.data if isinstance(msg.data, BaseException) else None
            return RtmWsMessage(msg_type, error=error)
        if msg_type is RtmWsMessageType.CLOSED:
            return RtmWsMessage(msg_type)
        return RtmWsMessage(msg_type, msg.data)

    @staticmethod
    def _map_aiohttp_type(msg_type: Any) -> RtmWsMessageType | None:
        """Map aiohttp WSMsgType enums to internal message types."""
        if msg_type is aiohttp.WSMsgType.TEXT:
            return RtmWsMessageType.TEXT

        if msg_type is aiohttp.WSMsgType.BINARY:
            return RtmWsMessageType.BINARY

        if msg_type in {
            aiohttp.WSMsgType.CLOSE,
            aiohttp.WSMsgType.CLOSING,
            aiohttp.WSMsgType.CLOSED,
        }:
            return RtmWsMessageType.CLOSED

        if msg_type is aiohttp.WSMsgType.ERROR:
            return RtmWsMessageType.ERROR

        return None

    async def _send_text(self, text: str) -> None:
        if self._ws is None:
            raise RtmConnectionError("WebSocket is not connected")
        await self._ws.send_str(text)

    async def _close_socket(self) -> None:
        if self._ws is not None:
            await self._ws.close()

    async def _release(self) -> None:
        ws, self._ws = self._ws, None
        session, self._session = self._session, None
        try:
            if ws is not None and not ws.closed:
                await ws.close()
        finally:
            if session is not None:
                await session.close()


TRANSPORTS: dict[str, type[RtmTransport]] = {
    WebsocketsTransport.backend: WebsocketsTransport,
    AiohttpTransport.backend: AiohttpTransport,
}


def create_transport(backend: str = WebsocketsTransport.backend, **options: Any) -> RtmTransport:
    """Build the transport registered under ``backend``.

    Raises:
        ValueError: If no transport is registered under that name.
    """
    try:
        transport_cls = TRANSPORTS[backend.lower()]
    except KeyError:
        raise ValueError(f"Unknown transport backend: {backend}") from None
    return transport_cls(**options)
