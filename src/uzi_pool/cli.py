"""Command-line interface for the pool relay."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

import click
from loguru import logger

from uzi_pool import __version__


def find_config_file() -> Optional[Path]:
    """
    Find the configuration file in common locations.

    Returns:
        Path to config file or None.
    """
    search_paths = [
        Path("config.yaml"),
        Path("config.yml"),
        Path.home() / ".config" / "uzi-pool" / "config.yaml",
        Path("/etc/uzi-pool/config.yaml"),
    ]

    if sys.platform == "win32":
        search_paths.append(
            Path.home() / "AppData" / "Local" / "uzi-pool" / "config.yaml"
        )

    for path in search_paths:
        if path.exists():
            return path

    return None


@click.group()
@click.version_option(version=__version__, prog_name="uzi-pool")
def main():
    """Uzi Pool: RandomX mining pool relay for the Zeeka cryptocurrency."""
    pass


@main.command()
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(exists=True, path_type=Path),
    help="Path to configuration file",
)
@click.option("-n", "--node", default=None, help="Node address (host:port)")
@click.option("--listen", default=None, help="Address miners connect to (default 0.0.0.0:8766)")
@click.option("--miner-token", default=None, help="Token sent to the node with every request")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    default=None,
    help="Override log level from config",
)
def start(
    config_path: Optional[Path],
    node: Optional[str],
    listen: Optional[str],
    miner_token: Optional[str],
    log_level: Optional[str],
):
    """Start the pool in the foreground."""
    from uzi_pool.config.loader import ConfigError, build_config
    from uzi_pool.daemon import PoolRunner
    from uzi_pool.logging.setup import setup_logging

    # A config file is only required when the node is not given on the command line
    if config_path is None:
        config_path = find_config_file()
        if config_path is None and node is None:
            click.echo("Error: No node address and no configuration file found", err=True)
            click.echo("Please specify -n/--node or a config file with -c/--config", err=True)
            sys.exit(1)

    click.echo(
        click.style("Uzi-Pool!", fg="bright_green")
        + f" v{__version__} - RandomX Mining Pool for Zeeka Cryptocurrency"
    )
    if config_path is not None:
        click.echo(f"Using configuration: {config_path}")

    try:
        config = build_config(config_path, node=node, listen=listen, miner_token=miner_token)
    except ConfigError as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(1)

    if log_level:
        config.logging.level = log_level.upper()

    setup_logging(config.logging)

    click.echo(click.style("Listening to:", fg="bright_yellow") + f" {config.server.listen}")

    try:
        PoolRunner(config).run()
    except KeyboardInterrupt:
        click.echo("\nShutdown requested...")
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        sys.exit(1)


@main.command()
@click.argument("config_path", type=click.Path(exists=True, path_type=Path))
def validate(config_path: Path):
    """Validate a configuration file."""
    from uzi_pool.config.loader import load_config, validate_config

    is_valid, message = validate_config(config_path)

    if is_valid:
        click.echo(f"✓ {message}")

        config = load_config(config_path)
        click.echo(f"\nNode: {config.node.address}")
        click.echo(f"Token: {'set' if config.node.miner_token else 'not set'}")
        click.echo(f"Listen: {config.server.listen}")
        click.echo(
            f"Polling every {config.mining.poll_interval:g}s, "
            f"difficulty scale {config.mining.difficulty_scale:g}"
        )
    else:
        click.echo(f"✗ {message}", err=True)
        sys.exit(1)


SAMPLE_CONFIG = """# Uzi Pool Configuration

node:
  address: "127.0.0.1:8765"       # Zeeka node HTTP address (host:port)
  miner_token: ""                 # Sent as X-ZEEKA-MINER-TOKEN on every node request
  request_timeout: 30             # Node request timeout (seconds)

server:
  listen: "0.0.0.0:8766"          # Address miners connect to

mining:
  poll_interval: 5                # Seconds between puzzle fetches
  difficulty_scale: 0.1           # Advertise puzzles needing 10x less work
  stats_interval: 900             # Seconds between stats log lines (0 disables)

logging:
  level: "INFO"                   # DEBUG, INFO, WARNING, ERROR
  file: null                      # Log file path (null for console only)
  rotation: "50 MB"               # Log rotation size
  retention: 10                   # Keep N rotated files
  format: "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {message}"
"""


@main.command()
def init():
    """Create a sample configuration file."""
    dest_path = Path("config.yaml")
    if dest_path.exists():
        if not click.confirm(f"{dest_path} already exists. Overwrite?"):
            click.echo("Skipping config file creation.")
            return

    dest_path.write_text(SAMPLE_CONFIG, encoding="utf-8")
    click.echo(f"Created {dest_path}")
    click.echo("Edit this file to point the pool at your node.")


if __name__ == "__main__":
    main()
