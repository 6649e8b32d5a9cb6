"""Clickploy terminal client package entrypoint."""

from clickploy.cli.app import main as _cli_main


def main() -> None:
    """Run the Clickploy CLI."""
    _cli_main()
