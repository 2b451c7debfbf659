"""Tests for WebSocket URL derivation and connection setup."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from websockets.exceptions import InvalidHandshake, InvalidURI

from blockbook_client.errors import (
    BlockbookConnectionError,
    BlockbookHandshakeError,
    BlockbookTimeout,
)
from blockbook_client.transport.ws import connect_websocket, websocket_url

WS_CONNECT = "blockbook_client.transport.ws.websockets.connect"


class TestWebsocketUrl:
    """Tests for websocket_url()."""

    @pytest.mark.parametrize(
        ("node", "expected"),
        [
            ("https://btc1.trezor.io", "wss://btc1.trezor.io/websocket"),
            ("http://localhost:9130", "ws://localhost:9130/websocket"),
            ("btc1.trezor.io", "wss://btc1.trezor.io/websocket"),
            ("wss://node.example/websocket", "wss://node.example/websocket"),
            ("ws://node.example", "ws://node.example/websocket"),
        ],
    )
    def test_derivation(self, node, expected):
        assert websocket_url(node) == expected


class TestConnectWebsocket:
    """Tests for connect_websocket()."""

    async def test_connect_success(self):
        conn = MagicMock()

        with patch(WS_CONNECT, new=AsyncMock(return_value=conn)) as mock_connect:
            result = await connect_websocket(
                "wss://node.example/websocket", user_agent="test-agent"
            )

        assert result is conn
        kwargs = mock_connect.call_args.kwargs
        assert kwargs["user_agent_header"] == "test-agent"
        assert kwargs["ping_interval"] is None

    async def test_timeout(self):
        with patch(WS_CONNECT, new=AsyncMock(side_effect=TimeoutError())):
            with pytest.raises(BlockbookTimeout, match="timed out"):
                await connect_websocket("wss://node.example/websocket")

    async def test_handshake_rejected(self):
        with patch(WS_CONNECT, new=AsyncMock(side_effect=InvalidHandshake("nope"))):
            with pytest.raises(BlockbookHandshakeError):
                await connect_websocket("wss://node.example/websocket")

    async def test_invalid_uri(self):
        error = InvalidURI("wss://", "bad")
        with patch(WS_CONNECT, new=AsyncMock(side_effect=error)):
            with pytest.raises(BlockbookHandshakeError):
                await connect_websocket("wss://")

    async def test_network_failure(self):
        error = OSError("Connection refused")
        with patch(WS_CONNECT, new=AsyncMock(side_effect=error)):
            with pytest.raises(BlockbookConnectionError, match="connection failed"):
                await connect_websocket("wss://node.example/websocket")
