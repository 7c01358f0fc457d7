"""MCP tools for Storyloom."""

from storyloom.mcp.tools.importing import register_import_tools
from storyloom.mcp.tools.narrative import register_narrative_tools

__all__ = ["register_import_tools", "register_narrative_tools"]
