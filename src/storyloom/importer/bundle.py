"""Input model for a pre-analyzed story bundle."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from storyloom.config import get_logger

logger = get_logger(__name__)

Record = dict[str, Any]


class AnalyzedStoryBundle(BaseModel):
    """Entities of one story grouped by type, referencing each other by name.

    Accepts the camelCase keys producers send (``storyWorld``,
    ``characterEvents``) as well as snake_case field names. Collection items
    that are not objects are dropped with a warning.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    story_world: Record | None = Field(default=None, alias="storyWorld")
    story: Record | None = None
    characters: list[Record] = Field(default_factory=list)
    locations: list[Record] = Field(default_factory=list)
    factions: list[Record] = Field(default_factory=list)
    objects: list[Record] = Field(default_factory=list)
    events: list[Record] = Field(default_factory=list)
    relationships: list[Record] = Field(default_factory=list)
    plotlines: list[Record] = Field(default_factory=list)
    scenes: list[Record] = Field(default_factory=list)
    character_events: list[Record] = Field(
        default_factory=list, alias="characterEvents"
    )
    plotline_events: list[Record] = Field(default_factory=list, alias="plotlineEvents")
    event_dependencies: list[Record] = Field(
        default_factory=list, alias="eventDependencies"
    )
    scene_characters: list[Record] = Field(
        default_factory=list, alias="sceneCharacters"
    )

    @field_validator("story_world", "story", mode="before")
    @classmethod
    def drop_non_mapping(cls, v: Any) -> Any:
        """Treat anything but an object as absent."""
        if v is None or isinstance(v, dict):
            return v
        logger.warning("Ignoring non-object bundle entry", value_type=type(v).__name__)
        return None

    @field_validator(
        "characters",
        "locations",
        "factions",
        "objects",
        "events",
        "relationships",
        "plotlines",
        "scenes",
        "character_events",
        "plotline_events",
        "event_dependencies",
        "scene_characters",
        mode="before",
    )
    @classmethod
    def keep_mappings(cls, v: Any) -> list[Any]:
        """Normalize a collection to a list of objects."""
        if v is None:
            return []
        if not isinstance(v, list):
            logger.warning(
                "Ignoring bundle collection that is not a list",
                value_type=type(v).__name__,
            )
            return []
        kept = [item for item in v if isinstance(item, dict)]
        if len(kept) != len(v):
            logger.warning(
                "Dropped non-object items from bundle collection",
                dropped=len(v) - len(kept),
            )
        return kept
