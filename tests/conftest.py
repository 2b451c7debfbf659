"""Pytest configuration and fixtures for blockbook_client tests."""

from __future__ import annotations

import asyncio
import json
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from blockbook_client.transport.ws_client import (
    BlockbookWsClient,
    BlockbookWsMessage,
    BlockbookWsMessageType,
)


@pytest.fixture
def mock_session() -> MagicMock:
    """Create a mock aiohttp ClientSession."""
    import aiohttp

    return MagicMock(spec=aiohttp.ClientSession)


def create_mock_response(
    status: int = 200,
    json_data: Any = None,
    text_data: str | None = None,
) -> AsyncMock:
    """Create a configured mock response.

    Args:
        status: HTTP status code
        json_data: Data served as the JSON-encoded body
        text_data: Raw body, used when json_data is None

    Returns:
        Configured AsyncMock response
    """
    response = AsyncMock()
    response.status = status

    if json_data is not None:
        response.text.return_value = json.dumps(json_data)
    else:
        response.text.return_value = text_data or ""

    response.__aenter__.return_value = response
    response.__aexit__.return_value = None

    return response


class FakeWsClient(BlockbookWsClient):
    """In-memory socket whose inbound events are pushed by the test."""

    instances: list[FakeWsClient] = []
    connect_error: Exception | None = None

    def __init__(self) -> None:
        super().__init__()
        self.events: asyncio.Queue[BlockbookWsMessage] = asyncio.Queue()
        self.sent: list[dict[str, Any]] = []
        self.url: str | None = None
        self.user_agent: str | None = None
        self.closed = False
        self.terminated = False
        self.close_event = BlockbookWsMessageType.CLOSED
        self.send_error: Exception | None = None
        FakeWsClient.instances.append(self)

    async def connect(self, url: str, **kwargs: Any) -> None:
        self.url = url
        self.user_agent = kwargs.get("user_agent")
        if FakeWsClient.connect_error is not None:
            raise FakeWsClient.connect_error

    async def close(self) -> None:
        self.closed = True
        self.events.put_nowait(BlockbookWsMessage(self.close_event))

    def terminate(self) -> None:
        self.terminated = True
        self.events.put_nowait(BlockbookWsMessage(BlockbookWsMessageType.CLOSED))

    async def send_json(self, payload: dict[str, Any]) -> None:
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(payload)

    def push(self, frame: Any) -> None:
        """Queue an inbound TEXT frame; dicts are JSON-encoded."""
        data = json.dumps(frame) if isinstance(frame, dict) else frame
        self.events.put_nowait(BlockbookWsMessage(BlockbookWsMessageType.TEXT, data))

    def push_event(self, event_type: BlockbookWsMessageType) -> None:
        self.events.put_nowait(BlockbookWsMessage(event_type))

    def __aiter__(self):
        return self._iter_events()

    async def _iter_events(self):
        while True:
            message = await self.events.get()
            yield message
            if message.type is not BlockbookWsMessageType.TEXT:
                return


@pytest.fixture
def fake_ws():
    """Replace the session's socket wrapper with FakeWsClient.

    Yields the list of created fake sockets, newest last.
    """
    FakeWsClient.instances = []
    FakeWsClient.connect_error = None
    with patch("blockbook_client.session.BlockbookWsClient", FakeWsClient):
        yield FakeWsClient.instances
    FakeWsClient.instances = []
    FakeWsClient.connect_error = None


async def settle(rounds: int = 10) -> None:
    """Let scheduled tasks (listener, callbacks) run."""
    for _ in range(rounds):
        await asyncio.sleep(0)
