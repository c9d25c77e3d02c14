"""Pydantic configuration models with validation."""

from __future__ import annotations

from typing import Optional, Tuple

from pydantic import BaseModel, Field, field_validator

from uzi_pool.pool.constants import DEFAULT_DIFFICULTY_SCALE, DEFAULT_POLL_INTERVAL

# Default address miners connect to
DEFAULT_LISTEN = "0.0.0.0:8766"


def split_address(value: str) -> Tuple[str, int]:
    """
    Split a ``host:port`` address into its parts.

    IPv6 hosts may be given in brackets (``[::1]:8766``).

    Args:
        value: Address string.

    Returns:
        Tuple of (host, port).

    Raises:
        ValueError: If the address is malformed or the port is out of range.
    """
    value = value.strip()
    host, sep, port_str = value.rpartition(":")
    if not sep or not host:
        raise ValueError(f"Address must be in host:port form, got '{value}'")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    try:
        port = int(port_str)
    except ValueError:
        raise ValueError(f"Invalid port in address '{value}'") from None
    if not 1 <= port <= 65535:
        raise ValueError(f"Port must be between 1 and 65535, got {port}")
    return host, port


class NodeConfig(BaseModel):
    """Configuration for the upstream Zeeka node."""

    address: str = Field(..., description="Node HTTP address (host:port)")
    miner_token: str = Field(default="", description="Value of the X-ZEEKA-MINER-TOKEN header")
    request_timeout: float = Field(
        default=30.0, gt=0, description="Timeout for requests to the node in seconds"
    )

    @field_validator("address")
    @classmethod
    def validate_address(cls, v: str) -> str:
        """Validate the node address is host:port."""
        split_address(v)
        return v.strip()

    @field_validator("miner_token")
    @classmethod
    def validate_token(cls, v: str) -> str:
        """Reject tokens that cannot be sent as a header value."""
        if any(c in v for c in "\r\n\x00"):
            raise ValueError("Miner token cannot contain newlines or null bytes")
        return v

    @property
    def base_url(self) -> str:
        """Base URL for node requests."""
        return f"http://{self.address}"


class ServerConfig(BaseModel):
    """Configuration for the local miner-facing HTTP server."""

    listen: str = Field(default=DEFAULT_LISTEN, description="Address to bind to (host:port)")

    @field_validator("listen")
    @classmethod
    def validate_listen(cls, v: str) -> str:
        """Validate the listen address and warn on privileged ports."""
        _, port = split_address(v)
        if port < 1024:
            import warnings
            warnings.warn(
                f"Port {port} is a privileged port (< 1024) and requires "
                f"root/administrator privileges to bind",
                UserWarning,
                stacklevel=2,
            )
        return v.strip()

    @property
    def bind_host(self) -> str:
        return split_address(self.listen)[0]

    @property
    def bind_port(self) -> int:
        return split_address(self.listen)[1]


class MiningConfig(BaseModel):
    """Configuration for puzzle polling and difficulty scaling."""

    poll_interval: float = Field(
        default=DEFAULT_POLL_INTERVAL, gt=0, description="Seconds between puzzle fetches from the node"
    )
    # 0.1 advertises a target requiring ten times less work than the node's
    difficulty_scale: float = Field(
        default=DEFAULT_DIFFICULTY_SCALE, gt=0, le=1.0, description="Factor applied to the puzzle's work estimate"
    )
    stats_interval: int = Field(
        default=900, ge=0, description="Seconds between statistics log lines (0 disables)"
    )


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    level: str = Field(default="INFO", description="Log level")
    file: Optional[str] = Field(default=None, description="Log file path")
    rotation: str = Field(default="50 MB", description="Log rotation size")
    retention: int = Field(default=10, ge=1, description="Number of rotated files to keep")
    format: str = Field(
        default="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {message}",
        description="Log message format",
    )

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v_upper


class Config(BaseModel):
    """Main configuration model."""

    node: NodeConfig
    server: ServerConfig = Field(default_factory=ServerConfig)
    mining: MiningConfig = Field(default_factory=MiningConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
