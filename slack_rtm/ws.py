"""WebSocket helpers for the Slack RTM socket."""

from __future__ import annotations

import asyncio
from urllib.parse import urlsplit, urlunsplit

import aiohttp
import websockets
from websockets.asyncio.client import ClientConnection
from websockets.exceptions import (
    InvalidHandshake,
    InvalidURI,
    WebSocketException,
)

from .errors import (
    RtmConnectionError,
    RtmHandshakeError,
    RtmTimeout,
)

WS_SCHEMES: frozenset[str] = frozenset({"ws", "wss"})


def build_ws_url(url: str, *, port: int | None = None) -> str:
    """Validate a WebSocket URL and optionally override its port.

    Raises:
        RtmConnectionError: If the URL is not a ws:// or wss:// URL, or the
            port is out of range.
    """
    parts = urlsplit(url)
    if parts.scheme not in WS_SCHEMES or not parts.hostname:
        raise RtmConnectionError(f"Invalid WebSocket URL: {url}")
    if port is None:
        return url
    if not 0 < port < 65536:
        raise RtmConnectionError(f"Invalid WebSocket port: {port}")

    host = parts.hostname
    if ":" in host:
        host = f"[{host}]"
    netloc = f"{host}:{port}"
    if parts.username:
        userinfo = parts.username
        if parts.password:
            userinfo = f"{userinfo}:{parts.password}"
        netloc = f"{userinfo}@{netloc}"
    return urlunsplit(parts._replace(netloc=netloc))


async def connect_websocket(
    url: str,
    *,
    ping_interval: int | None = 20,
    timeout: float | None = 15.0,
) -> ClientConnection:
    """Connect to a WebSocket endpoint with the websockets library.

    Args:
        url: ws:// or wss:// endpoint
        ping_interval: Interval for ping frames
        timeout: Connection timeout
    """
    try:
        return await asyncio.wait_for(
            websockets.connect(
                url,
                ping_interval=ping_interval,
                close_timeout=5,
                max_size=None,
            ),
            timeout=timeout,
        )
    except TimeoutError as err:
        raise RtmTimeout("WebSocket connection timed out") from err
    except (InvalidHandshake, InvalidURI) as err:
        raise RtmHandshakeError("WebSocket handshake failed") from err
    except (OSError, WebSocketException) as err:
        raise RtmConnectionError("WebSocket connection failed") from err


async def connect_aiohttp_websocket(
    session: aiohttp.ClientSession,
    url: str,
    *,
    heartbeat: float | None = 30,
    timeout: float | None = 15.0,
) -> aiohttp.ClientWebSocketResponse:
    """Connect to a WebSocket endpoint through an aiohttp session.

    Args:
        session: Session that owns the underlying connection pool
        url: ws:// or wss:// endpoint
        heartbeat: Interval for ping frames
        timeout: Connection timeout
    """
    try:
        return await asyncio.wait_for(
            session.ws_connect(url, heartbeat=heartbeat, max_msg_size=0),
            timeout=timeout,
        )
    except TimeoutError as err:
        raise RtmTimeout("WebSocket connection timed out") from err
    except aiohttp.WSServerHandshakeError as err:
        raise RtmHandshakeError("WebSocket handshake failed") from err
    except (OSError, aiohttp.ClientError) as err:
        raise RtmConnectionError("WebSocket connection failed") from err
