"""Slack real-time messaging client."""

__version__ = "0.1.0"

from .client import RtmClient
from .config import RtmConfig
from .counter import FrameCounter
from .errors import (
    RtmClientError,
    RtmConnectionError,
    RtmDecodingError,
    RtmEncodingError,
    RtmHandshakeError,
    RtmResolutionError,
    RtmResponseError,
    RtmSendError,
    RtmTimeout,
)
from .http import EndpointResolver, RtmHttpClient
from .protocol import (
    HandshakeResult,
    InboundEvent,
    OutboundMessage,
    decode_event,
    encode_message,
    parse_connect_response,
)
from .responder import AutoResponder
from .session import ConnectionState, RtmConnection
from .ws import build_ws_url, connect_aiohttp_websocket, connect_websocket
from .ws_client import (
    AiohttpTransport,
    RtmTransport,
    RtmWsMessage,
    RtmWsMessageType,
    WebsocketsTransport,
    create_transport,
)

__all__ = [
    "AiohttpTransport",
    "AutoResponder",
    "ConnectionState",
    "EndpointResolver",
    "FrameCounter",
    "HandshakeResult",
    "InboundEvent",
    "OutboundMessage",
    "RtmClient",
    "RtmClientError",
    "RtmConfig",
    "RtmConnection",
    "RtmConnectionError",
    "RtmDecodingError",
    "RtmEncodingError",
    "RtmHandshakeError",
    "RtmHttpClient",
    "RtmResolutionError",
    "RtmResponseError",
    "RtmSendError",
    "RtmTimeout",
    "RtmTransport",
    "RtmWsMessage",
    "RtmWsMessageType",
    "WebsocketsTransport",
    "__version__",
    "build_ws_url",
    "connect_aiohttp_websocket",
    "connect_websocket",
    "create_transport",
    "decode_event",
    "encode_message",
    "parse_connect_response",
]
