"""MCP server exposing Storyloom import and narrative tools."""

from storyloom.mcp.server import create_server

__all__ = ["create_server"]
