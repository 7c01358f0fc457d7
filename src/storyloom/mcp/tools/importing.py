"""Import tools for the MCP server."""

from __future__ import annotations

from typing import Any

from mcp.server import FastMCP

from storyloom.config import get_logger
from storyloom.exceptions import StoryloomError
from storyloom.importer import import_analyzed_story, import_entities
from storyloom.mcp.utils import format_error, format_success, with_store

logger = get_logger(__name__)


def register_import_tools(mcp: FastMCP) -> None:
    """Register import tools with the MCP server.

    Args:
        mcp: FastMCP server instance
    """

    @mcp.tool()
    async def storyloom_import_analyzed_story(data: dict[str, Any]) -> dict[str, Any]:
        """Import a pre-analyzed story bundle.

        Entities reference each other by name. Existing rows of the same story
        are matched by name or title and updated instead of duplicated.
        References to entities missing from the bundle are dropped.

        Args:
            data: Bundle with a required ``story`` object and optional
                ``storyWorld``, ``characters``, ``locations``, ``factions``,
                ``objects``, ``events``, ``relationships``, ``plotlines``,
                ``scenes``, ``characterEvents``, ``plotlineEvents``,
                ``eventDependencies`` and ``sceneCharacters`` collections

        Returns:
            Dictionary containing:
            - success: Whether every stage ran
            - counts: Rows stored per entity type
            - error: Message of the stage that stopped the import, if any

        Examples:
            {"data": {"story": {"title": "Ashfall"},
                      "characters": [{"name": "Vex"}, {"name": "Mira"}],
                      "relationships": [{"character1": "Vex",
                                         "character2": "Mira",
                                         "relationship_type": "ally"}]}}
        """
        try:
            result = await with_store(lambda store: import_analyzed_story(store, data))
            return result.to_dict()
        except StoryloomError as e:
            logger.error("Story import failed", error=e.message)
            return {**format_error(e), "counts": {}}

    @mcp.tool()
    async def storyloom_import_entities(
        records: list[Any],
        story_id: str | None = None,
        story_world_id: str | None = None,
    ) -> dict[str, Any]:
        """Import a flat list of untyped entity records.

        Each record's table is inferred from its fields. Records that match no
        known entity shape are counted as ``unknown`` and skipped.

        Args:
            records: Entity records, in any mix of types
            story_id: Story to attach records to unless they name one
            story_world_id: Story world to attach records to likewise

        Returns:
            Dictionary containing:
            - success: Whether the import ran
            - counts: Records stored per entity type, plus ``unknown``
            - error: Error message if the import could not run
        """
        try:
            counts = await with_store(
                lambda store: import_entities(store, records, story_id, story_world_id)
            )
            return format_success(counts=counts)
        except StoryloomError as e:
            logger.error("Entity import failed", error=e.message)
            return format_error(e)
