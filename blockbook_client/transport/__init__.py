"""Transport layer for the Blockbook client.

This package contains all IO and wire handling.

Components:
- http: HTTP client for REST API calls
- ws: WebSocket connection and URL helpers
- ws_client: WebSocket frame iteration
"""

from .http import BlockbookHttpClient
from .ws import connect_websocket, websocket_url
from .ws_client import BlockbookWsClient, BlockbookWsMessage, BlockbookWsMessageType

__all__ = [
    "BlockbookHttpClient",
    "BlockbookWsClient",
    "BlockbookWsMessage",
    "BlockbookWsMessageType",
    "connect_websocket",
    "websocket_url",
]
