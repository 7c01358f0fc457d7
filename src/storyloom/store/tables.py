"""Catalogue of persisted tables and how their rows are matched."""

from __future__ import annotations

from dataclasses import dataclass

from storyloom.exceptions import ValidationError

# Columns every table carries; never part of a field-level diff
SYSTEM_COLUMNS = frozenset({"id", "created_at", "updated_at"})


@dataclass(frozen=True)
class TableSpec:
    """How rows of one table are identified and which fields they accept.

    Attributes:
        name: Table name in the database
        columns: Writable columns, excluding the system columns
        natural_key: Fields identifying a row when no id is given
        scope: Columns a natural-key lookup is restricted to
        symmetric: Natural key is an unordered pair
    """

    name: str
    columns: frozenset[str]
    natural_key: tuple[str, ...]
    scope: tuple[str, ...] = ()
    symmetric: bool = False

    @property
    def keyed_by_name(self) -> bool:
        """Whether the natural key is a human-readable display name or title."""
        return len(self.natural_key) == 1 and not self.natural_key[0].endswith("_id")


def _spec(
    name: str,
    natural_key: tuple[str, ...],
    columns: str,
    scope: tuple[str, ...] = (),
    symmetric: bool = False,
) -> TableSpec:
    return TableSpec(
        name=name,
        columns=frozenset(columns.split()),
        natural_key=natural_key,
        scope=scope,
        symmetric=symmetric,
    )


TABLES: dict[str, TableSpec] = {
    spec.name: spec
    for spec in (
        _spec(
            "story_worlds",
            ("name",),
            "name description genre setting rules",
        ),
        _spec(
            "stories",
            ("title",),
            "title story_world_id description synopsis story_type genre status",
            scope=("story_world_id",),
        ),
        _spec(
            "characters",
            ("name",),
            "name story_id story_world_id role description background "
            "personality motivation appearance goals arc traits",
            scope=("story_id",),
        ),
        _spec(
            "locations",
            ("name",),
            "name story_id story_world_id parent_location_id location_type "
            "description climate significance map_coordinates",
            scope=("story_id",),
        ),
        _spec(
            "factions",
            ("name",),
            "name story_id story_world_id faction_type description ideology "
            "goals resources leader_character_id headquarters_location_id",
            scope=("story_id",),
        ),
        _spec(
            "objects",
            ("name",),
            "name story_id story_world_id object_type description significance "
            "history properties current_owner current_location",
            scope=("story_id",),
        ),
        _spec(
            "events",
            ("title",),
            "title story_id description sequence_number chronological_time "
            "event_type significance location_id",
            scope=("story_id",),
        ),
        _spec(
            "character_relationships",
            ("character1_id", "character2_id"),
            "story_id character1_id character2_id relationship_type intensity "
            "description",
            symmetric=True,
        ),
        _spec(
            "character_events",
            ("character_id", "event_id"),
            "character_id event_id importance experience_type "
            "character_sequence_number notes",
        ),
        _spec(
            "plotlines",
            ("title",),
            "title story_id description plotline_type status starting_event_id "
            "climax_event_id resolution_event_id",
            scope=("story_id",),
        ),
        _spec("plotline_events", ("plotline_id", "event_id"), "plotline_id event_id"),
        _spec(
            "plotline_characters",
            ("plotline_id", "character_id"),
            "plotline_id character_id",
        ),
        _spec(
            "event_dependencies",
            ("predecessor_event_id", "successor_event_id"),
            "predecessor_event_id successor_event_id dependency_type strength notes",
        ),
        _spec(
            "scenes",
            ("title",),
            "title story_id content description sequence_number scene_type "
            "status location_id",
            scope=("story_id",),
        ),
        _spec(
            "scene_characters",
            ("scene_id", "character_id"),
            "scene_id character_id importance",
        ),
        _spec(
            "story_questions",
            ("question",),
            "question story_id description status origin_scene_id "
            "resolution_scene_id",
            scope=("story_id",),
        ),
    )
}


def table_spec(name: str) -> TableSpec:
    """Look up a table by name.

    Raises:
        ValidationError: If the table is not part of the catalogue.
    """
    try:
        return TABLES[name]
    except KeyError:
        raise ValidationError(
            message=f"Unknown table '{name}'",
            details={"known_tables": sorted(TABLES)},
        ) from None
