"""Client error types for Slack RTM interactions."""

from __future__ import annotations


class RtmClientError(Exception):
    """Base error for RTM client failures."""


class RtmResolutionError(RtmClientError):
    """The rtm.connect handshake did not yield a usable endpoint."""

    def __init__(self, message: str, *, error: str | None = None) -> None:
        super().__init__(message)
        self.error = error


class RtmResponseError(RtmResolutionError):
    """HTTP response error from the handshake endpoint."""

    def __init__(self, status: int, message: str) -> None:
        super().__init__(message)
        self.status = status


class RtmConnectionError(RtmClientError):
    """WebSocket connection could not be established or is not open."""


class RtmTimeout(RtmConnectionError):
    """Timeout while waiting for the WebSocket to open."""


class RtmHandshakeError(RtmConnectionError):
    """WebSocket handshake failed."""


class RtmDecodingError(RtmClientError):
    """Inbound frame is not a well-formed event."""


class RtmEncodingError(RtmClientError):
    """Outbound message cannot be represented on the wire."""


class RtmSendError(RtmClientError):
    """Outbound message could not be built or written."""
