"""Construction-time configuration for the Blockbook client.

Configuration is plain data: it can be built directly, from a mapping, or
from a YAML document such as::

    nodes:
      - https://btc1.trezor.io
      - https://btc2.trezor.io
    request_timeout_ms: 10000
    disable_type_validation: false
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from .errors import BlockbookConfigError

DEFAULT_REQUEST_TIMEOUT_MS = 5000
DEFAULT_PING_INTERVAL = 25.0
USER_AGENT = "blockbook-client-py/0.1.0"


@dataclass
class BlockbookConfig:
    """Settings fixed for the lifetime of one client.

    Attributes:
        nodes: Blockbook node endpoints, used in round-robin order.
        disable_type_validation: Return responses without schema checks.
        request_timeout_ms: Per-request timeout for HTTP and WebSocket calls.
        ping_interval: Seconds between WebSocket liveness pings.
        user_agent: User-Agent header sent on every request.
        logger: Logger replacing the module loggers.
    """

    nodes: list[str]
    disable_type_validation: bool = False
    request_timeout_ms: int = DEFAULT_REQUEST_TIMEOUT_MS
    ping_interval: float = DEFAULT_PING_INTERVAL
    user_agent: str = USER_AGENT
    logger: logging.Logger | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if isinstance(self.nodes, str) or not isinstance(self.nodes, (list, tuple)):
            raise BlockbookConfigError("nodes must be a list of node URLs")
        if not self.nodes:
            raise BlockbookConfigError("Blockbook node list must not be empty")
        self.nodes = list(self.nodes)

        if not isinstance(self.disable_type_validation, bool):
            raise BlockbookConfigError("disable_type_validation must be a boolean")

        if isinstance(self.request_timeout_ms, bool) or not isinstance(
            self.request_timeout_ms, (int, float)
        ):
            raise BlockbookConfigError("request_timeout_ms must be a number")
        if self.request_timeout_ms <= 0:
            raise BlockbookConfigError("request_timeout_ms must be positive")
        if isinstance(self.ping_interval, bool) or not isinstance(
            self.ping_interval, (int, float)
        ):
            raise BlockbookConfigError("ping_interval must be a number")
        if self.ping_interval <= 0:
            raise BlockbookConfigError("ping_interval must be positive")

    @property
    def request_timeout(self) -> float:
        """Request timeout in seconds."""
        return self.request_timeout_ms / 1000

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> BlockbookConfig:
        """Build a config from a mapping, rejecting unknown keys."""
        if not isinstance(data, Mapping):
            raise BlockbookConfigError("Blockbook config must be a mapping")

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise BlockbookConfigError(
                f"Unknown Blockbook config keys: {', '.join(unknown)}"
            )
        if "nodes" not in data:
            raise BlockbookConfigError("Blockbook config requires 'nodes'")

        return cls(**dict(data))


def load_config(path: str | Path) -> BlockbookConfig:
    """Load a BlockbookConfig from a YAML file.

    Raises:
        BlockbookConfigError: If the file is missing, unparseable or invalid
    """
    config_path = Path(path)
    try:
        text = config_path.read_text(encoding="utf-8")
    except OSError as err:
        raise BlockbookConfigError(f"Cannot read config file {config_path}") from err

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as err:
        raise BlockbookConfigError(f"Invalid YAML in {config_path}") from err

    if data is None:
        raise BlockbookConfigError(f"Config file {config_path} is empty")

    return BlockbookConfig.from_mapping(data)
