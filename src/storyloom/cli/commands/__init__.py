"""CLI command implementations."""

from storyloom.cli.commands.import_cmd import import_command, import_entities_command
from storyloom.cli.commands.init import init_command
from storyloom.cli.commands.journey import journey_command
from storyloom.cli.commands.mcp import mcp_command

__all__ = [
    "import_command",
    "import_entities_command",
    "init_command",
    "journey_command",
    "mcp_command",
]
