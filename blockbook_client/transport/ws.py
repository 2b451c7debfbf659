"""WebSocket helpers for Blockbook node transport."""

from __future__ import annotations

import asyncio

import websockets
from websockets.asyncio.client import ClientConnection
from websockets.exceptions import (
    InvalidHandshake,
    InvalidURI,
    WebSocketException,
)

from ..config import USER_AGENT
from ..errors import (
    BlockbookConnectionError,
    BlockbookHandshakeError,
    BlockbookTimeout,
)

WEBSOCKET_PATH = "/websocket"


def websocket_url(node: str) -> str:
    """Derive the WebSocket endpoint for a normalized node.

    http(s):// becomes ws(s)://, bare hosts default to wss://, and the
    /websocket path is appended when missing.
    """
    url = node
    if url.startswith("http"):
        url = "ws" + url[len("http"):]
    if not url.startswith("ws"):
        url = f"wss://{url}"
    if not url.endswith(WEBSOCKET_PATH):
        url += WEBSOCKET_PATH
    return url


async def connect_websocket(
    url: str,
    *,
    user_agent: str = USER_AGENT,
    ping_interval: float | None = None,
    timeout: float = 15.0,
) -> ClientConnection:
    """Connect to a Blockbook WebSocket endpoint.

    Protocol-level pings are disabled by default; the session sends
    application-level `ping` requests instead.

    Args:
        url: Full ws:// or wss:// URL
        user_agent: User-Agent header for the handshake
        ping_interval: Interval for protocol ping frames, None to disable
        timeout: Connection timeout
    """
    try:
        return await asyncio.wait_for(
            websockets.connect(
                url,
                user_agent_header=user_agent,
                ping_interval=ping_interval,
                close_timeout=5,
                max_size=None,
            ),
            timeout=timeout,
        )
    except TimeoutError as err:
        raise BlockbookTimeout("WebSocket connection timed out") from err
    except (InvalidHandshake, InvalidURI) as err:
        raise BlockbookHandshakeError("WebSocket handshake failed") from err
    except (OSError, WebSocketException) as err:
        raise BlockbookConnectionError("WebSocket connection failed") from err
