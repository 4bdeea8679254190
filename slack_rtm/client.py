"""Startup orchestration for the RTM client."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, Protocol

from .config import RtmConfig
from .errors import RtmConnectionError, RtmResolutionError
from .http import EndpointResolver
from .protocol import HandshakeResult, OutboundMessage
from .responder import AutoResponder
from .session import ConnectionState, RtmConnection
from .ws import build_ws_url
from .ws_client import RtmTransport, create_transport

_LOGGER = logging.getLogger(__name__)

TransportFactory = Callable[..., RtmTransport]


class Resolver(Protocol):
    def resolve(self, token: str) -> HandshakeResult: ...


class RtmClient:
    """Resolve, connect and auto-respond, driven from a synchronous caller.

    Usage:
        client = RtmClient(RtmConfig(token="xoxb-..."))
        client.start()
        client.send_canned()
        client.stop()
    """

    def __init__(
        self,
        config: RtmConfig,
        *,
        resolver: Resolver | None = None,
        transport_factory: TransportFactory = create_transport,
    ) -> None:
        self.config = config
        self._resolver = resolver or EndpointResolver(base_url=config.api_url)
        self._transport_factory = transport_factory
        self.connection: RtmConnection | None = None
        self.responder: AutoResponder | None = None

    def resolve_endpoint(self) -> str:
        """Return the WebSocket URL to connect to, port override applied.

        Raises:
            RtmResolutionError: If the handshake fails.
            RtmConnectionError: If the URL is not a WebSocket URL.
        """
        url = self.config.endpoint_url
        if url:
            _LOGGER.info("Using preconfigured WebSocket URL, skipping rtm.connect")
        else:
            if not self.config.token:
                raise RtmResolutionError("No token configured for rtm.connect")
            result = self._resolver.resolve(self.config.token)
            if not result.ok:
                error = result.error or "NO_ERROR"
                raise RtmResolutionError(
                    f"rtm.connect was not successful: {error}", error=error
                )
            if not result.url:
                raise RtmResolutionError("rtm.connect response has no WebSocket URL")
            url = result.url
        return build_ws_url(url, port=self.config.port)

    def start(self) -> RtmConnection:
        """Resolve the endpoint and block until the socket is connected.

        Nothing is opened if the handshake fails.
        """
        if (
            self.connection is not None
            and self.connection.state is not ConnectionState.DISCONNECTED
        ):
            raise RtmConnectionError("Client is already started")

        url = self.resolve_endpoint()
        _LOGGER.info("WebSocket URL: %s", url)

        options: dict[str, Any] = {"timeout": self.config.connect_timeout}
        transport = self._transport_factory(self.config.backend, **options)
        _LOGGER.info("Using %s transport", self.config.backend)

        connection = RtmConnection(
            transport, connect_timeout=self.config.connect_timeout
        )
        self.responder = AutoResponder(
            connection, reply_text=self.config.reply_text
        ).attach()
        self.connection = connection
        connection.connect(url)
        return connection

    def send_canned(self) -> OutboundMessage:
        """Send the configured canned message to the configured channel."""
        if self.connection is None:
            raise RtmConnectionError("Client is not started")
        return self.connection.send_text(self.config.channel, self.config.canned_text)

    def stop(self, *, wait: float | None = 5.0) -> None:
        """Disconnect and wait up to ``wait`` seconds for the socket to close."""
        if self.connection is None:
            return
        self.connection.disconnect()
        if wait is not None and not self.connection.transport.wait_closed(wait):
            _LOGGER.warning("WebSocket did not close within %.1fs", wait)
