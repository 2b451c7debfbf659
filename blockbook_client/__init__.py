"""Asyncio client for Blockbook blockchain indexers over HTTP and WebSocket."""

__version__ = "0.1.0"

from .client import BlockbookClient
from .config import BlockbookConfig, load_config
from .errors import (
    BlockbookArgumentError,
    BlockbookClientError,
    BlockbookConfigError,
    BlockbookConnectionError,
    BlockbookHandshakeError,
    BlockbookPreconditionError,
    BlockbookProtocolError,
    BlockbookRemoteError,
    BlockbookResponseError,
    BlockbookTimeout,
    BlockbookTransportError,
    BlockbookValidationError,
)
from .nodes import NodePool
from .schemas import DetailLevel
from .session import BlockbookWsSession
from .validation import ResponseValidator

__all__ = [
    "BlockbookArgumentError",
    "BlockbookClient",
    "BlockbookClientError",
    "BlockbookConfig",
    "BlockbookConfigError",
    "BlockbookConnectionError",
    "BlockbookHandshakeError",
    "BlockbookPreconditionError",
    "BlockbookProtocolError",
    "BlockbookRemoteError",
    "BlockbookResponseError",
    "BlockbookTimeout",
    "BlockbookTransportError",
    "BlockbookValidationError",
    "BlockbookWsSession",
    "DetailLevel",
    "NodePool",
    "ResponseValidator",
    "__version__",
    "load_config",
]
