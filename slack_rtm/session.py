"""RTM connection state machine.

RtmConnection exposes an asynchronous transport to synchronous callers:

- ``connect()`` blocks until the transport reports the socket open or closed
- ``send()`` and ``disconnect()`` return immediately
- inbound frames are counted, decoded and fanned out to event listeners on
  the transport thread, in delivery order

Usage:
    connection = RtmConnection(create_transport("websockets"))
    connection.on_event(my_event_handler)
    connection.connect("wss://example.slack.com/websocket/abc")
    connection.send_text("C024BE91L", "hello")
    connection.disconnect()
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from enum import Enum

from .counter import FrameCounter
from .errors import (
    RtmClientError,
    RtmConnectionError,
    RtmDecodingError,
    RtmEncodingError,
    RtmSendError,
    RtmTimeout,
)
from .protocol import InboundEvent, OutboundMessage, decode_event, encode_message
from .ws_client import RtmTransport

_LOGGER = logging.getLogger(__name__)

DEFAULT_CONNECT_TIMEOUT = 15.0
CLOSE_TIMEOUT = 5.0


class ConnectionState(Enum):
    """Lifecycle states of an RtmConnection."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTING = "disconnecting"


EventCallback = Callable[[InboundEvent], None]
StateCallback = Callable[[ConnectionState], None]


class RtmConnection:
    """Synchronous facade over a threaded RTM transport."""

    def __init__(
        self,
        transport: RtmTransport,
        counter: FrameCounter | None = None,
        *,
        connect_timeout: float | None = DEFAULT_CONNECT_TIMEOUT,
    ) -> None:
        """Initialize connection.

        Args:
            transport: Socket transport, owned by this connection
            counter: Inbound frame counter used to stamp outbound ids
            connect_timeout: Seconds connect() waits for the socket to open,
                or None to wait indefinitely
        """
        self._transport = transport
        self._counter = counter if counter is not None else FrameCounter()
        self._connect_timeout = connect_timeout

        self._lock = threading.Lock()
        self._state = ConnectionState.DISCONNECTED
        self._ready: Future[None] | None = None

        self._event_callbacks: list[EventCallback] = []
        self._state_callback: StateCallback | None = None

    # -------------------------------------------------------------------------
    # Public API: Connection Management
    # -------------------------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        """Get current connection state."""
        with self._lock:
            return self._state

    @property
    def is_connected(self) -> bool:
        """Check if the socket is open."""
        return self.state is ConnectionState.CONNECTED

    @property
    def counter(self) -> FrameCounter:
        """Counter of inbound text frames."""
        return self._counter

    @property
    def transport(self) -> RtmTransport:
        return self._transport

    def connect(self, url: str) -> None:
        """Open the socket and block until it is connected.

        Raises:
            RtmConnectionError: If the connection is not disconnected, or the
                transport closed before the socket opened. The transport
                error, if any, is chained as ``__cause__``.
            RtmTimeout: If the socket did not open within connect_timeout.
        """
        ready: Future[None] = Future()
        with self._lock:
            if self._state is not ConnectionState.DISCONNECTED:
                raise RtmConnectionError(
                    f"Cannot connect while {self._state.value}"
                )
            self._ready = ready
            previous = self._transition(ConnectionState.CONNECTING)
        self._notify_state(previous, ConnectionState.CONNECTING)

        _LOGGER.info("Connecting to %s", url)
        try:
            self._transport.open(url, self)
        except RtmClientError as err:
            self._fail_pending(ready, err)
            raise RtmConnectionError(f"Cannot open transport: {err}") from err

        try:
            ready.result(timeout=self._connect_timeout)
        except FutureTimeoutError as err:
            if not self._fail_pending(ready, err):
                # Resolved between the timeout and the state check
                ready.result()
            else:
                _LOGGER.error(
                    "Socket did not open within %.1fs, giving up",
                    self._connect_timeout,
                )
                self._transport.close()
                if not self._transport.wait_closed(CLOSE_TIMEOUT):
                    _LOGGER.warning(
                        "Transport did not stop within %.1fs", CLOSE_TIMEOUT
                    )
                raise RtmTimeout(
                    f"WebSocket did not open within {self._connect_timeout}s"
                ) from err

        _LOGGER.info("Connection established")

    def disconnect(self) -> None:
        """Ask the transport to close; does not wait for it."""
        with self._lock:
            if self._state not in {
                ConnectionState.CONNECTED,
                ConnectionState.CONNECTING,
            }:
                _LOGGER.debug("Disconnect ignored while %s", self._state.value)
                return
            previous = self._transition(ConnectionState.DISCONNECTING)
        self._notify_state(previous, ConnectionState.DISCONNECTING)

        _LOGGER.info("Disconnecting")
        self._transport.close()

    def send(self, message: OutboundMessage) -> None:
        """Encode and write a message.

        Raises:
            RtmSendError: If not connected, or the message cannot be encoded
                or written. Connection state is left unchanged.
        """
        if not self.is_connected:
            raise RtmSendError(
                f"Cannot send message {message.id}: not connected"
            )
        try:
            data = encode_message(message)
        except RtmEncodingError as err:
            raise RtmSendError(f"Cannot encode message {message.id}: {err}") from err
        try:
            self._transport.write(data)
        except RtmClientError as err:
            raise RtmSendError(f"Cannot write message {message.id}: {err}") from err
        _LOGGER.debug("Sent message %d to channel %r", message.id, message.channel)

    def send_text(self, channel: str, text: str) -> OutboundMessage:
        """Send a chat message stamped with the latest inbound frame count."""
        message = OutboundMessage(
            id=self._counter.current(), channel=channel, text=text
        )
        self.send(message)
        return message

    # -------------------------------------------------------------------------
    # Public API: Callbacks
    # -------------------------------------------------------------------------

    def on_event(self, callback: EventCallback) -> None:
        """Register a listener for decoded inbound events.

        Listeners run on the transport thread in registration order.
        """
        self._event_callbacks.append(callback)

    def on_connection_state_changed(self, callback: StateCallback) -> None:
        """Register callback for connection state changes."""
        self._state_callback = callback

    # -------------------------------------------------------------------------
    # Transport delegate
    # -------------------------------------------------------------------------

    def handle_open(self) -> None:
        with self._lock:
            if self._state is not ConnectionState.CONNECTING:
                _LOGGER.debug("Ignoring open signal while %s", self._state.value)
                return
            previous = self._transition(ConnectionState.CONNECTED)
            ready, self._ready = self._ready, None
        if ready is not None and not ready.done():
            ready.set_result(None)
        self._notify_state(previous, ConnectionState.CONNECTED)

    def handle_close(self, error: BaseException | None) -> None:
        if error is not None:
            _LOGGER.warning("Socket closed with error: %s", error)
        with self._lock:
            previous = self._transition(ConnectionState.DISCONNECTED)
            ready, self._ready = self._ready, None
        if ready is not None and not ready.done():
            failure = RtmConnectionError("WebSocket closed before it was established")
            failure.__cause__ = error
            ready.set_exception(failure)
        self._notify_state(previous, ConnectionState.DISCONNECTED)

    def handle_text(self, text: str) -> None:
        count = self._counter.increment()
        _LOGGER.debug("Received frame #%d: %s", count, text)
        try:
            event = decode_event(text)
        except RtmDecodingError as err:
            _LOGGER.warning("Dropping frame #%d: %s", count, err)
            return

        for callback in self._event_callbacks:
            try:
                callback(event)
            except Exception:
                _LOGGER.exception("Event listener failed on frame #%d", count)

    def handle_binary(self, data: bytes) -> None:
        _LOGGER.debug("Ignoring binary frame (%d bytes)", len(data))

    # -------------------------------------------------------------------------
    # Internal: State Machine
    # -------------------------------------------------------------------------

    def _transition(self, state: ConnectionState) -> ConnectionState:
        """Set the state; caller must hold the lock."""
        previous, self._state = self._state, state
        return previous

    def _notify_state(
        self, previous: ConnectionState, state: ConnectionState
    ) -> None:
        if previous is state:
            return
        _LOGGER.debug("State: %s → %s", previous.value, state.value)
        if self._state_callback:
            try:
                self._state_callback(state)
            except Exception:
                _LOGGER.exception("State listener failed on %s", state.value)

    def _fail_pending(self, ready: Future[None], error: BaseException) -> bool:
        """Abandon a connect attempt that the transport has not resolved.

        Returns:
            False if the transport already resolved the attempt
        """
        with self._lock:
            if self._ready is not ready:
                return False
            self._ready = None
            previous = self._transition(ConnectionState.DISCONNECTED)
        if not ready.done():
            ready.set_exception(RtmConnectionError(str(error)))
        self._notify_state(previous, ConnectionState.DISCONNECTED)
        return True
