"""Client error types for Blockbook interactions."""

from __future__ import annotations

from typing import Any


class BlockbookClientError(Exception):
    """Base error for Blockbook client failures."""


class BlockbookConfigError(BlockbookClientError):
    """Client configuration is invalid."""


class BlockbookArgumentError(BlockbookClientError, ValueError):
    """Query argument is not one Blockbook accepts."""


class BlockbookTransportError(BlockbookClientError):
    """Communicating with a Blockbook node failed."""


class BlockbookConnectionError(BlockbookTransportError):
    """Network connection to the node failed."""


class BlockbookHandshakeError(BlockbookTransportError):
    """WebSocket handshake failed."""


class BlockbookResponseError(BlockbookTransportError):
    """HTTP response error from the node."""

    def __init__(self, status: int, message: str) -> None:
        super().__init__(message)
        self.status = status


class BlockbookTimeout(BlockbookClientError, TimeoutError):
    """Timeout while communicating with the node."""


class BlockbookProtocolError(BlockbookClientError):
    """Inbound WebSocket frame could not be interpreted."""


class BlockbookRemoteError(BlockbookClientError):
    """Error reported by the node for a specific request."""

    def __init__(self, message: str, *, method: str | None = None) -> None:
        super().__init__(message)
        self.method = method


class BlockbookValidationError(BlockbookClientError):
    """Response did not match the expected schema."""

    def __init__(self, schema_name: str, value: Any, detail: str = "") -> None:
        message = f"Response does not match {schema_name}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.schema_name = schema_name
        self.value = value


class BlockbookPreconditionError(BlockbookClientError):
    """Operation requires a connected WebSocket."""
