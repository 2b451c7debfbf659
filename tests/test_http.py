"""Tests for BlockbookHttpClient."""

from __future__ import annotations

import aiohttp
import pytest

from blockbook_client.errors import (
    BlockbookConnectionError,
    BlockbookResponseError,
    BlockbookTimeout,
)
from blockbook_client.transport.http import BlockbookHttpClient

from .conftest import create_mock_response


@pytest.fixture
def client(mock_session) -> BlockbookHttpClient:
    return BlockbookHttpClient(mock_session, user_agent="test-agent")


class TestRequest:
    """Tests for BlockbookHttpClient.request()."""

    async def test_get_json(self, client, mock_session):
        mock_session.get.return_value = create_mock_response(json_data={"a": 1})

        result = await client.request(
            "https://node.example", "GET", "/api/v2/tx/t1", timeout=5
        )

        assert result == {"a": 1}
        call = mock_session.get.call_args
        assert call.args[0] == "https://node.example/api/v2/tx/t1"
        assert call.kwargs["headers"]["User-Agent"] == "test-agent"
        assert call.kwargs["timeout"].total == 5

    async def test_bare_host_uses_https(self, client, mock_session):
        mock_session.get.return_value = create_mock_response(json_data={})

        await client.request("node.example", "GET", "/api/v2", timeout=5)

        assert mock_session.get.call_args.args[0] == "https://node.example/api/v2"

    async def test_plain_http_node_kept(self, client, mock_session):
        mock_session.get.return_value = create_mock_response(json_data={})

        await client.request("http://localhost:9130", "GET", "/api/v2", timeout=5)

        assert mock_session.get.call_args.args[0] == "http://localhost:9130/api/v2"

    async def test_query_params_rendering(self, client, mock_session):
        mock_session.get.return_value = create_mock_response(json_data=[])

        await client.request(
            "https://node.example",
            "GET",
            "/api/v2/utxo/abc",
            {"confirmed": True, "page": 2, "to": None},
            timeout=5,
        )

        assert mock_session.get.call_args.kwargs["params"] == {
            "confirmed": "true",
            "page": "2",
        }

    async def test_error_status_with_message(self, client, mock_session):
        mock_session.get.return_value = create_mock_response(
            status=400, json_data={"error": "Transaction not found"}
        )

        with pytest.raises(
            BlockbookResponseError, match="Transaction not found"
        ) as exc:
            await client.request(
                "https://node.example", "GET", "/api/v2/tx/t1", timeout=5
            )
        assert exc.value.status == 400
        assert "status 400" in str(exc.value)

    async def test_error_status_with_plain_text(self, client, mock_session):
        mock_session.get.return_value = create_mock_response(
            status=502, text_data="Bad Gateway\n"
        )

        with pytest.raises(BlockbookResponseError, match="Bad Gateway"):
            await client.request("https://node.example", "GET", "/api/v2", timeout=5)

    async def test_invalid_json(self, client, mock_session):
        mock_session.get.return_value = create_mock_response(text_data="<html>")

        with pytest.raises(BlockbookResponseError, match="invalid JSON"):
            await client.request("https://node.example", "GET", "/api/v2", timeout=5)

    async def test_timeout(self, client, mock_session):
        mock_session.get.side_effect = TimeoutError()

        with pytest.raises(BlockbookTimeout):
            await client.request("https://node.example", "GET", "/api/v2", timeout=5)

    async def test_connection_error(self, client, mock_session):
        mock_session.get.side_effect = aiohttp.ClientConnectionError("refused")

        with pytest.raises(BlockbookConnectionError, match="refused"):
            await client.request("https://node.example", "GET", "/api/v2", timeout=5)

    async def test_post_raw_body(self, client, mock_session):
        mock_session.post.return_value = create_mock_response(
            json_data={"result": "t1"}
        )

        result = await client.request(
            "https://node.example",
            "POST",
            "/api/v2/sendtx/",
            raw_body="0100beef",
            timeout=5,
        )

        assert result == {"result": "t1"}
        call = mock_session.post.call_args
        assert call.kwargs["data"] == "0100beef"
        assert call.kwargs["headers"]["Content-Type"] == "text/plain"

    async def test_post_json_body(self, client, mock_session):
        mock_session.post.return_value = create_mock_response(json_data={})

        await client.request(
            "https://node.example", "POST", "/api/v2/x", body={"k": 1}, timeout=5
        )

        assert mock_session.post.call_args.kwargs["json"] == {"k": 1}

    async def test_unsupported_method(self, client):
        with pytest.raises(ValueError, match="Unsupported"):
            await client.request("https://node.example", "PUT", "/api/v2", timeout=5)
