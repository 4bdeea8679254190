"""HTTP client for the Slack rtm.connect handshake."""

from __future__ import annotations

import asyncio
import logging

import aiohttp

from .errors import RtmResolutionError, RtmResponseError
from .protocol import HandshakeResult, parse_connect_response

_LOGGER = logging.getLogger(__name__)

DEFAULT_API_URL = "https://slack.com/api"


class RtmHttpClient:
    """HTTP client wrapper for the Slack Web API handshake."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        *,
        base_url: str = DEFAULT_API_URL,
        timeout: float = 10.0,
    ) -> None:
        self._session = session
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    def _url(self, method: str) -> str:
        return f"{self._base_url}/{method}"

    async def rtm_connect(self, token: str) -> HandshakeResult:
        """Exchange a token for a single-use WebSocket URL via rtm.connect.

        The request is made exactly once; callers decide whether to retry.

        Returns:
            A successful HandshakeResult whose ``url`` is set.

        Raises:
            RtmResponseError: On a non-200 response.
            RtmResolutionError: On network errors, timeouts, malformed
                bodies, ``ok=false`` or a missing ``url``.
        """
        url = self._url("rtm.connect")
        try:
            async with self._session.get(
                url,
                params={"token": token},
                timeout=aiohttp.ClientTimeout(total=self._timeout),
            ) as resp:
                if resp.status != 200:
                    raise RtmResponseError(
                        resp.status,
                        f"rtm.connect failed with HTTP status {resp.status}",
                    )
                try:
                    data = await resp.json(content_type=None)
                except ValueError as err:
                    raise RtmResolutionError(
                        "Cannot decode rtm.connect response"
                    ) from err
        except TimeoutError as err:
            raise RtmResolutionError("rtm.connect request timed out") from err
        except aiohttp.ClientError as err:
            raise RtmResolutionError(f"rtm.connect request failed: {err}") from err

        result = parse_connect_response(data)
        if not result.ok:
            error = result.error or "NO_ERROR"
            raise RtmResolutionError(
                f"rtm.connect was not successful: {error}", error=error
            )
        if not result.url:
            raise RtmResolutionError("rtm.connect response has no WebSocket URL")

        _LOGGER.debug("rtm.connect resolved WebSocket URL %s", result.url)
        return result


class EndpointResolver:
    """Blocking front-end for RtmHttpClient.rtm_connect.

    Each call runs on a private event loop with its own ClientSession, so it
    must not be called from a running event loop.
    """

    def __init__(self, *, base_url: str = DEFAULT_API_URL, timeout: float = 10.0):
        self.base_url = base_url
        self.timeout = timeout

    def resolve(self, token: str) -> HandshakeResult:
        """Resolve a token to a WebSocket endpoint, blocking the caller."""
        return asyncio.run(self._resolve(token))

    async def _resolve(self, token: str) -> HandshakeResult:
        async with aiohttp.ClientSession() as session:
            client = RtmHttpClient(session, base_url=self.base_url, timeout=self.timeout)
            return await client.rtm_connect(token)
