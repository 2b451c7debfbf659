"""WebSocket client wrapper for Blockbook nodes."""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from websockets.asyncio.client import ClientConnection
from websockets.exceptions import ConnectionClosed

from ..config import USER_AGENT
from ..errors import BlockbookConnectionError, BlockbookProtocolError
from .ws import connect_websocket

if TYPE_CHECKING:
    from collections.abc import AsyncIterator


class BlockbookWsMessageType(Enum):
    """Normalized WebSocket event types."""

    TEXT = "text"
    CLOSED = "closed"
    ERROR = "error"


@dataclass(frozen=True)
class BlockbookWsMessage:
    """Normalized WebSocket event.

    TEXT events carry the frame payload. A binary frame is passed through as
    bytes so the session can report it before dropping it.
    """

    type: BlockbookWsMessageType
    data: str | bytes | None = None


class BlockbookWsClient:
    """Wrapper around the websockets library for one Blockbook socket."""

    def __init__(self) -> None:
        self._ws: ClientConnection | None = None

    async def connect(
        self,
        url: str,
        *,
        user_agent: str = USER_AGENT,
        timeout: float = 15.0,
    ) -> None:
        """Open the socket, returning once the handshake completed."""
        self._ws = await connect_websocket(
            url,
            user_agent=user_agent,
            timeout=timeout,
        )

    async def close(self) -> None:
        """Close the websocket connection."""
        if self._ws is not None:
            await self._ws.close()

    def terminate(self) -> None:
        """Drop the connection without a closing handshake."""
        if self._ws is not None:
            self._ws.transport.abort()

    async def send_json(self, payload: dict[str, Any]) -> None:
        """Send a JSON payload to the websocket."""
        if self._ws is None:
            raise BlockbookConnectionError("WebSocket is not connected")
        try:
            await self._ws.send(json.dumps(payload))
        except ConnectionClosed as err:
            raise BlockbookConnectionError("WebSocket is closed") from err

    def __aiter__(self) -> AsyncIterator[BlockbookWsMessage]:
        if self._ws is None:
            raise BlockbookConnectionError("WebSocket is not connected")
        return self._iter_messages()

    async def _iter_messages(self) -> AsyncIterator[BlockbookWsMessage]:
        if self._ws is None:
            raise BlockbookConnectionError("WebSocket is not connected")

        try:
            async for msg in self._ws:
                yield self._normalize_message(msg)
        except ConnectionClosed:
            yield BlockbookWsMessage(type=BlockbookWsMessageType.CLOSED)
        except Exception:
            yield BlockbookWsMessage(type=BlockbookWsMessageType.ERROR)
        else:
            # Normal iteration completion means the peer closed gracefully.
            yield BlockbookWsMessage(type=BlockbookWsMessageType.CLOSED)

    @staticmethod
    def _normalize_message(msg: Any) -> BlockbookWsMessage:
        """Wrap a websockets frame into a TEXT event."""
        if isinstance(msg, (str, bytes)):
            return BlockbookWsMessage(BlockbookWsMessageType.TEXT, msg)
        return BlockbookWsMessage(BlockbookWsMessageType.TEXT, str(msg))

    @staticmethod
    def decode_json(message: BlockbookWsMessage) -> dict[str, Any]:
        """Decode a TEXT event into a JSON object.

        Raises:
            BlockbookProtocolError: If the payload is not a JSON object in text
        """
        if message.type is not BlockbookWsMessageType.TEXT:
            raise BlockbookProtocolError("Only TEXT messages can be decoded")
        if not isinstance(message.data, str):
            raise BlockbookProtocolError(
                f"Unrecognized websocket data type {type(message.data).__name__}"
            )
        try:
            result = json.loads(message.data)
        except ValueError as err:
            raise BlockbookProtocolError(
                f"Failed to parse websocket data: {err}"
            ) from err
        if not isinstance(result, dict):
            raise BlockbookProtocolError("Websocket data is not a JSON object")
        return result
