"""CLI utilities."""

from storyloom.cli.utils.cli_handler import CLIHandler, to_json

__all__ = ["CLIHandler", "to_json"]
