"""MCP Server for Storyloom."""

from __future__ import annotations

from mcp.server import FastMCP

from storyloom.config import StoryloomSettings, get_logger, get_settings
from storyloom.mcp.tools import register_import_tools, register_narrative_tools

logger = get_logger(__name__)


def create_server(settings: StoryloomSettings | None = None) -> FastMCP:
    """Create and configure the MCP server.

    Args:
        settings: Settings providing the server name; the global settings
            are used when omitted

    Returns:
        Configured FastMCP server instance
    """
    settings = settings or get_settings()
    mcp = FastMCP(settings.mcp_server_name)

    register_import_tools(mcp)
    register_narrative_tools(mcp)

    logger.info(
        "Created MCP server",
        name=settings.mcp_server_name,
        database=str(settings.database_path),
    )
    return mcp


def main() -> None:
    """Main entry point for MCP server."""
    server = create_server()
    server.run()


if __name__ == "__main__":
    main()
