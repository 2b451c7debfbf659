"""Round-robin pool of Blockbook node endpoints."""

from __future__ import annotations

import itertools
from collections.abc import Iterable
from urllib.parse import urlsplit

from .errors import BlockbookConfigError

_ALLOWED_SCHEMES = frozenset({"http", "https", "ws", "wss"})


def normalize_node(node: object) -> str:
    """Trim a node URL and drop its trailing slash.

    Raises:
        BlockbookConfigError: If the node is not a usable endpoint
    """
    if not isinstance(node, str):
        raise BlockbookConfigError(
            f"Blockbook node must be a string, got {type(node).__name__}"
        )

    normalized = node.strip()
    if normalized.endswith("/"):
        normalized = normalized[:-1]

    if not normalized:
        raise BlockbookConfigError("Blockbook node must not be blank")
    if any(ch.isspace() for ch in normalized):
        raise BlockbookConfigError(f"Malformed Blockbook node: {node!r}")

    if "://" in normalized:
        parts = urlsplit(normalized)
        if parts.scheme not in _ALLOWED_SCHEMES or not parts.netloc:
            raise BlockbookConfigError(f"Malformed Blockbook node: {node!r}")

    return normalized


class NodePool:
    """Ordered Blockbook nodes selected by round robin.

    The same counter mints request identifiers, so node choice and id
    generation interleave on one sequence.
    """

    def __init__(self, nodes: Iterable[str], *, start: int = 0) -> None:
        normalized = tuple(normalize_node(node) for node in nodes)
        if not normalized:
            raise BlockbookConfigError("Blockbook node list must not be empty")
        self._nodes = normalized
        self._counter = itertools.count(start)

    @property
    def nodes(self) -> tuple[str, ...]:
        """Normalized node endpoints in configured order."""
        return self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def next_node(self) -> str:
        """Return the next node in round-robin order."""
        return self._nodes[next(self._counter) % len(self._nodes)]

    def next_request_id(self) -> str:
        """Mint a request identifier from the shared counter."""
        return str(next(self._counter))
