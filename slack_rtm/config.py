"""Runtime configuration for the RTM client.

Parsing happens in the CLI layer; this dataclass defines the shape the
client expects.
"""

from __future__ import annotations

from dataclasses import dataclass

from .http import DEFAULT_API_URL
from .responder import DEFAULT_REPLY
from .session import DEFAULT_CONNECT_TIMEOUT

DEFAULT_BACKEND = "websockets"
DEFAULT_CANNED_TEXT = "Hello from slack-rtm!"


@dataclass(frozen=True)
class RtmConfig:
    """Settings for one RtmClient run.

    Either ``token`` or ``endpoint_url`` must be set; a known endpoint URL
    skips the rtm.connect handshake.
    """

    token: str | None = None
    endpoint_url: str | None = None
    port: int | None = None
    backend: str = DEFAULT_BACKEND
    api_url: str = DEFAULT_API_URL
    connect_timeout: float | None = DEFAULT_CONNECT_TIMEOUT
    channel: str = ""
    reply_text: str = DEFAULT_REPLY
    canned_text: str = DEFAULT_CANNED_TEXT

    def __post_init__(self) -> None:
        if not self.token and not self.endpoint_url:
            raise ValueError("Either a token or an endpoint URL is required")
        if self.port is not None and not 0 < self.port < 65536:
            raise ValueError(f"Invalid WebSocket port: {self.port}")
        if self.connect_timeout is not None and self.connect_timeout <= 0:
            raise ValueError("connect_timeout must be positive")
