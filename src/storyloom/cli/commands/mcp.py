"""MCP server command for Storyloom."""

import typer

from storyloom.config import get_logger

logger = get_logger(__name__)


def mcp_command() -> None:
    """Run the Storyloom MCP (Model Context Protocol) server over stdio.

    This exposes the import and narrative query tools to MCP-compatible
    clients.

    Example:
        storyloom mcp
    """
    try:
        from storyloom.mcp.server import main as mcp_main

        logger.info("Starting MCP server")
        mcp_main()

    except KeyboardInterrupt:
        logger.info("MCP server stopped by user")
        raise typer.Exit(0) from None
    except Exception as e:
        logger.error("MCP server failed", error=str(e))
        raise typer.Exit(1) from e
