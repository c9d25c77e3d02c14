"""Configuration loading and validation utilities."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from pydantic import ValidationError

from uzi_pool.config.models import Config


class ConfigError(Exception):
    """Configuration error."""

    pass


def _validate(raw_config: Dict[str, Any]) -> Config:
    """Validate a raw mapping, flattening pydantic errors into one message."""
    try:
        return Config.model_validate(raw_config)
    except ValidationError as e:
        errors = []
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            msg = error["msg"]
            errors.append(f"  - {loc}: {msg}")
        raise ConfigError("Configuration validation failed:\n" + "\n".join(errors)) from e


def read_config_file(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Read the raw mapping from a YAML configuration file.

    Args:
        path: Path to the configuration file.

    Returns:
        Parsed YAML mapping.

    Raises:
        ConfigError: If the file cannot be read or is not a YAML mapping.
    """
    path = Path(path)

    if not path.exists():
        raise ConfigError(f"Configuration file not found: {path}")

    if not path.is_file():
        raise ConfigError(f"Configuration path is not a file: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw_config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in configuration file: {e}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read configuration file: {e}") from e

    if raw_config is None:
        raise ConfigError("Configuration file is empty")

    if not isinstance(raw_config, dict):
        raise ConfigError(
            f"Configuration file must contain a YAML mapping (dict), "
            f"got {type(raw_config).__name__}"
        )

    return raw_config


def load_config(path: Union[str, Path]) -> Config:
    """
    Load and validate configuration from a YAML file.

    Args:
        path: Path to the configuration file.

    Returns:
        Validated Config object.

    Raises:
        ConfigError: If the file cannot be read or the configuration is invalid.
    """
    return _validate(read_config_file(path))


def build_config(
    path: Optional[Union[str, Path]] = None,
    node: Optional[str] = None,
    listen: Optional[str] = None,
    miner_token: Optional[str] = None,
) -> Config:
    """
    Build configuration from an optional file and command-line overrides.

    Values given on the command line take precedence over the file.

    Raises:
        ConfigError: If the merged configuration is invalid.
    """
    raw_config: Dict[str, Any] = read_config_file(path) if path is not None else {}

    for section in ("node", "server"):
        if not isinstance(raw_config.get(section) or {}, dict):
            raise ConfigError(f"Configuration section '{section}' must be a mapping")

    node_section = dict(raw_config.get("node") or {})
    if node is not None:
        node_section["address"] = node
    if miner_token is not None:
        node_section["miner_token"] = miner_token
    raw_config["node"] = node_section

    if listen is not None:
        server_section = dict(raw_config.get("server") or {})
        server_section["listen"] = listen
        raw_config["server"] = server_section

    return _validate(raw_config)


def validate_config(path: Union[str, Path]) -> tuple[bool, str]:
    """
    Validate a configuration file.

    Args:
        path: Path to the configuration file.

    Returns:
        Tuple of (is_valid, message).
    """
    try:
        config = load_config(path)
        return (
            True,
            f"Configuration valid: node {config.node.address}, listening on {config.server.listen}",
        )
    except ConfigError as e:
        return False, str(e)
