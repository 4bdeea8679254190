"""Tests for the rtm.connect handshake client."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from slack_rtm.errors import RtmResolutionError, RtmResponseError
from slack_rtm.http import EndpointResolver, RtmHttpClient
from slack_rtm.protocol import HandshakeResult

from .conftest import create_mock_response

WS_URL = "wss://wss-primary.slack.com/websocket/abc"


class TestRtmConnect:
    """Tests for RtmHttpClient.rtm_connect()."""

    async def test_rtm_connect_success(self, mock_session: MagicMock) -> None:
        """Test rtm connect success."""
        client = RtmHttpClient(mock_session)
        mock_session.get.return_value = create_mock_response(
            json_data={"ok": True, "url": WS_URL, "team": {"id": "T1"}}
        )

        result = await client.rtm_connect("xoxb-token")

        assert result == HandshakeResult(ok=True, url=WS_URL)
        call_args = mock_session.get.call_args
        assert call_args.args[0] == "https://slack.com/api/rtm.connect"
        assert call_args.kwargs["params"] == {"token": "xoxb-token"}

    async def test_rtm_connect_uses_10_second_timeout(
        self, mock_session: MagicMock
    ) -> None:
        """Test rtm connect uses 10 second timeout."""
        client = RtmHttpClient(mock_session)
        mock_session.get.return_value = create_mock_response(
            json_data={"ok": True, "url": WS_URL}
        )

        await client.rtm_connect("xoxb-token")

        timeout = mock_session.get.call_args.kwargs.get("timeout")
        assert timeout is not None
        assert timeout.total == 10

    async def test_custom_base_url(self, mock_session: MagicMock) -> None:
        """Test custom base url."""
        client = RtmHttpClient(mock_session, base_url="http://localhost:8080/api/")
        mock_session.get.return_value = create_mock_response(
            json_data={"ok": True, "url": WS_URL}
        )

        await client.rtm_connect("xoxb-token")

        assert mock_session.get.call_args.args[0] == "http://localhost:8080/api/rtm.connect"

    async def test_not_ok_raises_with_error_code(self, mock_session: MagicMock) -> None:
        """Test ok=false surfaces the server error code."""
        client = RtmHttpClient(mock_session)
        mock_session.get.return_value = create_mock_response(
            json_data={"ok": False, "error": "invalid_auth"}
        )

        with pytest.raises(RtmResolutionError, match="invalid_auth") as exc_info:
            await client.rtm_connect("bad-token")

        assert exc_info.value.error == "invalid_auth"

    async def test_not_ok_without_error(self, mock_session: MagicMock) -> None:
        """Test not ok without error."""
        client = RtmHttpClient(mock_session)
        mock_session.get.return_value = create_mock_response(json_data={"ok": False})

        with pytest.raises(RtmResolutionError, match="NO_ERROR"):
            await client.rtm_connect("bad-token")

    async def test_missing_url_raises(self, mock_session: MagicMock) -> None:
        """Test ok=true without a URL is treated as a failure."""
        client = RtmHttpClient(mock_session)
        mock_session.get.return_value = create_mock_response(json_data={"ok": True})

        with pytest.raises(RtmResolutionError, match="no WebSocket URL"):
            await client.rtm_connect("xoxb-token")

    async def test_non_200_raises_response_error(self, mock_session: MagicMock) -> None:
        """Test non 200 raises response error."""
        client = RtmHttpClient(mock_session)
        mock_session.get.return_value = create_mock_response(status=503)

        with pytest.raises(RtmResponseError, match="503") as exc_info:
            await client.rtm_connect("xoxb-token")

        assert exc_info.value.status == 503

    async def test_malformed_body_raises(self, mock_session: MagicMock) -> None:
        """Test malformed body raises."""
        client = RtmHttpClient(mock_session)
        response = create_mock_response()
        response.json.side_effect = ValueError("Expecting value")
        mock_session.get.return_value = response

        with pytest.raises(RtmResolutionError, match="Cannot decode"):
            await client.rtm_connect("xoxb-token")

    async def test_non_object_body_raises(self, mock_session: MagicMock) -> None:
        """Test non object body raises."""
        client = RtmHttpClient(mock_session)
        mock_session.get.return_value = create_mock_response(json_data=["ok"])

        with pytest.raises(RtmResolutionError, match="JSON object"):
            await client.rtm_connect("xoxb-token")

    async def test_timeout_raises(self, mock_session: MagicMock) -> None:
        """Test timeout raises."""
        client = RtmHttpClient(mock_session)
        mock_session.get.side_effect = TimeoutError("Request timed out")

        with pytest.raises(RtmResolutionError, match="timed out"):
            await client.rtm_connect("xoxb-token")

    async def test_client_error_raises(self, mock_session: MagicMock) -> None:
        """Test client error raises."""
        client = RtmHttpClient(mock_session)
        mock_session.get.side_effect = aiohttp.ClientError("Connection refused")

        with pytest.raises(RtmResolutionError, match="Connection refused"):
            await client.rtm_connect("xoxb-token")


class TestEndpointResolver:
    """Tests for the blocking EndpointResolver."""

    def test_resolve_runs_handshake(self) -> None:
        """Test resolve runs handshake."""
        expected = HandshakeResult(ok=True, url=WS_URL)
        with patch.object(
            RtmHttpClient, "rtm_connect", AsyncMock(return_value=expected)
        ) as mock_connect:
            result = EndpointResolver().resolve("xoxb-token")

        assert result == expected
        mock_connect.assert_awaited_once_with("xoxb-token")

    def test_resolve_propagates_failure(self) -> None:
        """Test resolve propagates failure."""
        with patch.object(
            RtmHttpClient,
            "rtm_connect",
            AsyncMock(side_effect=RtmResolutionError("invalid_auth", error="invalid_auth")),
        ):
            with pytest.raises(RtmResolutionError, match="invalid_auth"):
                EndpointResolver().resolve("bad-token")
