"""Narrative query tools for the MCP server."""

from __future__ import annotations

from typing import Any

from mcp.server import FastMCP

from storyloom.config import get_logger
from storyloom.exceptions import StoryloomError
from storyloom.mcp.utils import format_error, format_success, with_store
from storyloom.narrative import NarrativeQueries

logger = get_logger(__name__)


def register_narrative_tools(mcp: FastMCP) -> None:
    """Register read-only narrative tools with the MCP server.

    Args:
        mcp: FastMCP server instance
    """

    @mcp.tool()
    async def storyloom_character_journey(
        story_id: str, character_name: str
    ) -> dict[str, Any]:
        """List the events a character takes part in, in the character's order.

        Args:
            story_id: Story to look in
            character_name: Character name (case-insensitive)

        Returns:
            Dictionary containing:
            - success: Whether the query ran
            - journey: Events with importance, experience type and ordering
        """
        try:
            journey = await with_store(
                lambda store: NarrativeQueries(store).character_journey(
                    story_id, character_name
                )
            )
            return format_success(journey=journey)
        except StoryloomError as e:
            logger.error("Character journey failed", error=e.message)
            return format_error(e)

    @mcp.tool()
    async def storyloom_shared_events(
        story_id: str, character_names: list[str]
    ) -> dict[str, Any]:
        """List the events all of the named characters take part in.

        Args:
            story_id: Story to look in
            character_names: Two or more character names

        Returns:
            Dictionary containing:
            - success: Whether the query ran
            - events: Shared events ordered by sequence number
        """
        try:
            events = await with_store(
                lambda store: NarrativeQueries(store).shared_events(
                    story_id, character_names
                )
            )
            return format_success(events=events)
        except StoryloomError as e:
            logger.error("Shared events query failed", error=e.message)
            return format_error(e)

    @mcp.tool()
    async def storyloom_dependency_cycles(story_id: str) -> dict[str, Any]:
        """Report cycles among a story's event dependencies.

        Args:
            story_id: Story to check

        Returns:
            Dictionary containing:
            - success: Whether the query ran
            - cycles: Each cycle as a list of event titles
        """
        try:
            cycles = await with_store(
                lambda store: NarrativeQueries(store).dependency_cycles(story_id)
            )
            return format_success(cycles=cycles)
        except StoryloomError as e:
            logger.error("Dependency cycle report failed", error=e.message)
            return format_error(e)

    @mcp.tool()
    async def storyloom_story_summary(story_id: str) -> dict[str, Any]:
        """Summarize a story: its row and the number of entities per type.

        Args:
            story_id: Story to summarize

        Returns:
            Dictionary containing:
            - success: Whether the query ran
            - story: Story row, or null when the id is unknown
            - counts: Entities per type
        """
        try:
            summary = await with_store(
                lambda store: NarrativeQueries(store).story_summary(story_id)
            )
            return format_success(**summary)
        except StoryloomError as e:
            logger.error("Story summary failed", error=e.message)
            return format_error(e)
