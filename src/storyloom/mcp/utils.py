"""Utility functions for the MCP server."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any, TypeVar

from storyloom.config import StoryloomSettings, get_settings
from storyloom.exceptions import StoryloomError
from storyloom.store import SQLiteRecordStore, open_store

T = TypeVar("T")


def get_api_settings() -> StoryloomSettings:
    """Get settings for tool calls.

    Returns:
        Configuration settings
    """
    return get_settings()


def format_error(error: Exception) -> dict[str, Any]:
    """Format an exception as an MCP error response.

    Args:
        error: The exception to format

    Returns:
        Dictionary with error information
    """
    response: dict[str, Any] = {
        "success": False,
        "error": error.message if isinstance(error, StoryloomError) else str(error),
        "error_type": type(error).__name__,
    }
    if isinstance(error, StoryloomError) and error.hint:
        response["hint"] = error.hint
    return response


def format_success(**payload: Any) -> dict[str, Any]:
    """Format a successful response.

    Args:
        **payload: Response fields

    Returns:
        Dictionary with success response
    """
    return {"success": True, **payload}


async def with_store(operation: Callable[[SQLiteRecordStore], T]) -> T:
    """Run a blocking store operation in a worker thread.

    The store is opened on the configured database for the duration of the
    call and closed afterwards.
    """
    settings = get_api_settings()

    def run() -> T:
        with open_store(settings) as store:
            return operation(store)

    return await asyncio.to_thread(run)
