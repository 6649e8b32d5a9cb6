"""Tyro CLI application entrypoint."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Annotated

import tyro

from clickploy.config.schema import DEFAULT_SERVER_URL, ClientConfig, default_config_dir
from clickploy.tui.app import run_client


@dataclass(slots=True)
class ClientCommand:
    """Interactive terminal client for a Clickploy server."""

    config_dir: Annotated[Path | None, tyro.conf.arg(prefix_name=False)] = None
    """Directory holding config.json; defaults to $XDG_CONFIG_HOME/clickploy."""
    log_file: Annotated[Path | None, tyro.conf.arg(prefix_name=False)] = None
    """JSON log destination; defaults to <config-dir>/clickploy.log."""
    log_level: Annotated[str, tyro.conf.arg(prefix_name=False)] = "INFO"
    tick_interval: Annotated[float, tyro.conf.arg(prefix_name=False)] = 0.1
    """Seconds between UI refreshes."""
    request_timeout: Annotated[float, tyro.conf.arg(prefix_name=False)] = 10.0
    """Seconds before a REST request is abandoned."""


def build_config(command: ClientCommand) -> ClientConfig:
    return ClientConfig(
        config_dir=command.config_dir or default_config_dir(),
        log_file=command.log_file,
        log_level=command.log_level,
        tick_interval=command.tick_interval,
        request_timeout=command.request_timeout,
        default_server_url=DEFAULT_SERVER_URL,
    )


def execute(command: ClientCommand) -> int:
    """Run the client for a parsed command and return its exit code."""

    return run_client(build_config(command))


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and run the client."""

    command = tyro.cli(ClientCommand, args=argv)
    exit_code = execute(command)
    if exit_code:
        raise SystemExit(exit_code)
