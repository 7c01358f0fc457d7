"""Resolve name references between entities into foreign keys.

Every linker follows the same shape: build a name index per endpoint role,
turn each raw record into a candidate row with both endpoint ids resolved,
drop candidates with a missing or unresolved endpoint (with a warning), then
write the survivors. Pair-identity junctions are inserted at most once;
junctions that carry a payload are updated in place when the pair exists.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from storyloom.config import get_logger
from storyloom.exceptions import StoryloomError
from storyloom.importer.names import NameIndex, build_name_index, resolve
from storyloom.importer.results import StageResult
from storyloom.importer.upsert import MatchStrategy, UpsertEngine, is_empty
from storyloom.store.base import Row

logger = get_logger(__name__)

Record = dict[str, Any]

RELATIONSHIP_TYPES = frozenset(
    {"family", "friend", "ally", "enemy", "romantic", "professional", "other"}
)


def with_default(value: Any, default: Any) -> Any:
    """Return ``value`` unless it is empty, else ``default``."""
    return default if is_empty(value) else value


def normalize_relationship_type(value: Any) -> str:
    """Map a free-text relationship type onto the stored enumeration."""
    if not isinstance(value, str) or not value.strip():
        return "other"
    normalized = value.strip().lower()
    if normalized not in RELATIONSHIP_TYPES:
        logger.warning(
            "Unknown relationship type, storing as 'other'", relationship_type=value
        )
        return "other"
    return normalized


@dataclass(frozen=True)
class Endpoint:
    """One side of a junction: where its name comes from and where its id goes."""

    ref_field: str
    column: str
    index: NameIndex


def _reference_name(value: Any, *name_fields: str) -> Any:
    """A reference is either a bare name or an object carrying one."""
    if isinstance(value, Mapping):
        for field in name_fields:
            if value.get(field):
                return value[field]
        return None
    return value


def _link_pairs(
    engine: UpsertEngine,
    stage: str,
    table: str,
    candidates: Iterable[Mapping[str, Any]],
    endpoints: tuple[Endpoint, Endpoint],
    payload: Callable[[Mapping[str, Any]], Record],
    insert_once: bool,
) -> StageResult:
    result = StageResult(stage=stage)

    for candidate in candidates:
        refs = [candidate.get(endpoint.ref_field) for endpoint in endpoints]
        if any(not isinstance(ref, str) or not ref.strip() for ref in refs):
            logger.warning(
                "Skipping link with a missing reference",
                stage=stage,
                references=refs,
            )
            result.skipped += 1
            continue

        ids = [resolve(endpoint.index, ref) for endpoint, ref in zip(endpoints, refs)]
        if None in ids:
            unresolved = [ref for ref, found in zip(refs, ids) if found is None]
            logger.warning(
                "Skipping link to entities not in this import",
                stage=stage,
                unresolved=unresolved,
            )
            result.skipped += 1
            continue

        row = payload(candidate)
        for endpoint, entity_id in zip(endpoints, ids):
            row[endpoint.column] = entity_id

        try:
            if insert_once:
                stored = engine.insert_once(table, row)
            else:
                stored = engine.upsert(table, row, MatchStrategy.BY_NATURAL_KEY)
        except StoryloomError as e:
            logger.warning(
                "Failed to store link", stage=stage, references=refs, error=e.message
            )
            result.failed += 1
            continue
        result.rows.append(stored.row)

    return result.finish()


def link_character_relationships(
    engine: UpsertEngine,
    records: Iterable[Mapping[str, Any]],
    characters: Iterable[Row],
    story_id: str | None = None,
) -> StageResult:
    """Create or update relationships between characters named in ``records``.

    Each record names its endpoints in ``character1`` and ``character2``. A
    pair is one relationship regardless of which side is named first.
    """
    index = build_name_index(characters, "name")

    def payload(record: Mapping[str, Any]) -> Record:
        return {
            "relationship_type": normalize_relationship_type(
                record.get("relationship_type")
            ),
            "intensity": with_default(record.get("intensity"), 5),
            "description": record.get("description"),
            "story_id": story_id,
        }

    return _link_pairs(
        engine,
        "relationships",
        "character_relationships",
        records,
        (
            Endpoint("character1", "character1_id", index),
            Endpoint("character2", "character2_id", index),
        ),
        payload,
        insert_once=False,
    )


def resolve_faction_leader(faction: Mapping[str, Any], characters: NameIndex) -> Record:
    """Prepare a faction record, turning a leader name into a character id.

    A string ``leader`` is looked up by name and dropped when unknown. Any
    other non-null value is taken to be an id already.
    """
    prepared = dict(faction)
    leader = prepared.pop("leader", None)

    if isinstance(leader, str):
        leader_id = resolve(characters, leader)
        if leader_id is not None:
            prepared["leader_character_id"] = leader_id
        elif leader.strip():
            logger.warning(
                "Faction leader not found among imported characters",
                faction=faction.get("name"),
                leader=leader,
            )
    elif leader is not None:
        prepared.setdefault("leader_character_id", leader)

    if is_empty(prepared.get("faction_type")) and not is_empty(prepared.get("type")):
        prepared["faction_type"] = prepared["type"]
    return prepared


def resolve_object_refs(
    obj: Mapping[str, Any], characters: NameIndex, locations: NameIndex
) -> Record:
    """Prepare an object record, turning owner and location names into ids.

    String references are looked up by name and dropped when unknown; other
    non-null values pass through as ids.
    """
    prepared = dict(obj)

    references = (("current_owner", characters), ("current_location", locations))
    for field, index in references:
        value = prepared.get(field)
        if not isinstance(value, str):
            continue
        resolved = resolve(index, value)
        if resolved is not None:
            prepared[field] = resolved
            continue
        del prepared[field]
        if value.strip():
            logger.warning(
                "Object reference not found among imported entities",
                object=obj.get("name"),
                field=field,
                reference=value,
            )

    if is_empty(prepared.get("object_type")):
        fallback = prepared.get("type") or prepared.get("item_type")
        if not is_empty(fallback):
            prepared["object_type"] = fallback
    return prepared


def link_location_parents(
    engine: UpsertEngine,
    records: Iterable[Mapping[str, Any]],
    locations: Iterable[Row],
) -> StageResult:
    """Point locations at the parent named in ``parent_location``.

    ``parent_location_id`` is accepted as well, holding either a name or the
    id of a location stored by this import. Runs after all locations of the
    import are stored so a parent may appear later in the batch than its
    child. A location is never made its own parent.
    """
    locations = list(locations)
    index = build_name_index(locations, "name")
    stored_ids = {row["id"] for row in locations}
    result = StageResult(stage="location_parents")

    for record in records:
        parent_ref = _reference_name(
            record.get("parent_location"), "name"
        ) or record.get("parent_location_id")
        if not isinstance(parent_ref, str) or not parent_ref.strip():
            continue

        location_id = resolve(index, record.get("name"))
        parent_id = resolve(index, parent_ref)
        if parent_id is None and parent_ref in stored_ids:
            parent_id = parent_ref
        if location_id is None or parent_id is None:
            logger.warning(
                "Skipping parent link to a location not in this import",
                location=record.get("name"),
                parent=parent_ref,
            )
            result.skipped += 1
            continue
        if location_id == parent_id:
            logger.warning("Skipping self-parent location", location=record.get("name"))
            result.skipped += 1
            continue

        try:
            stored = engine.upsert(
                "locations",
                {"id": location_id, "parent_location_id": parent_id},
                MatchStrategy.BY_ID,
            )
        except StoryloomError as e:
            logger.warning(
                "Failed to link parent location",
                location=record.get("name"),
                error=e.message,
            )
            result.failed += 1
            continue
        result.rows.append(stored.row)

    return result.finish()


def without_parent_reference(location: Mapping[str, Any]) -> Record:
    """Copy of a location record with its parent reference held back.

    The parent is set by ``link_location_parents`` once every location of
    the batch has an id.
    """
    prepared = dict(location)
    prepared.pop("parent_location_id", None)
    return prepared


def involved_character_links(
    events: Iterable[Mapping[str, Any]],
) -> list[Record]:
    """Character-event records derived from each event's involved_characters."""
    links: list[Record] = []
    for event in events:
        for involved in event.get("involved_characters") or []:
            if isinstance(involved, Mapping):
                link = dict(involved)
                link["character"] = _reference_name(involved, "character", "name")
            else:
                link = {"character": involved}
            link["event"] = event.get("title")
            links.append(link)
    return links


def link_character_events(
    engine: UpsertEngine,
    records: Iterable[Mapping[str, Any]],
    characters: Iterable[Row],
    events: Iterable[Row],
) -> StageResult:
    """Create or update the participation of characters in events."""

    def payload(record: Mapping[str, Any]) -> Record:
        return {
            "importance": with_default(record.get("importance"), 5),
            "experience_type": with_default(record.get("experience_type"), "active"),
            "character_sequence_number": with_default(
                record.get("character_sequence_number"), 0
            ),
            "notes": record.get("notes"),
        }

    return _link_pairs(
        engine,
        "character_events",
        "character_events",
        records,
        (
            Endpoint("character", "character_id", build_name_index(characters)),
            Endpoint("event", "event_id", build_name_index(events, "title")),
        ),
        payload,
        insert_once=False,
    )


def plotline_member_links(
    plotlines: Iterable[Mapping[str, Any]], member_field: str, ref_field: str
) -> list[Record]:
    """Junction records derived from each plotline's events or characters list."""
    links: list[Record] = []
    for plotline in plotlines:
        for member in plotline.get(member_field) or []:
            links.append(
                {
                    "plotline": plotline.get("title"),
                    ref_field: _reference_name(member, ref_field, "title", "name"),
                }
            )
    return links


def link_plotline_events(
    engine: UpsertEngine,
    records: Iterable[Mapping[str, Any]],
    plotlines: Iterable[Row],
    events: Iterable[Row],
) -> StageResult:
    """Attach events to plotlines, once per pair."""
    return _link_pairs(
        engine,
        "plotline_events",
        "plotline_events",
        records,
        (
            Endpoint("plotline", "plotline_id", build_name_index(plotlines, "title")),
            Endpoint("event", "event_id", build_name_index(events, "title")),
        ),
        lambda record: {},
        insert_once=True,
    )


def link_plotline_characters(
    engine: UpsertEngine,
    records: Iterable[Mapping[str, Any]],
    plotlines: Iterable[Row],
    characters: Iterable[Row],
) -> StageResult:
    """Attach characters to plotlines, once per pair."""
    return _link_pairs(
        engine,
        "plotline_characters",
        "plotline_characters",
        records,
        (
            Endpoint("plotline", "plotline_id", build_name_index(plotlines, "title")),
            Endpoint("character", "character_id", build_name_index(characters)),
        ),
        lambda record: {},
        insert_once=True,
    )


def link_event_dependencies(
    engine: UpsertEngine,
    records: Iterable[Mapping[str, Any]],
    events: Iterable[Row],
) -> StageResult:
    """Create or update directed edges between events named by title.

    Cycles are stored as given; see ``NarrativeQueries.dependency_cycles``.
    """
    index = build_name_index(events, "title")

    def payload(record: Mapping[str, Any]) -> Record:
        return {
            "dependency_type": with_default(
                record.get("dependency_type"), "chronological"
            ),
            "strength": with_default(record.get("strength"), 5),
            "notes": record.get("notes"),
        }

    return _link_pairs(
        engine,
        "event_dependencies",
        "event_dependencies",
        records,
        (
            Endpoint("predecessor", "predecessor_event_id", index),
            Endpoint("successor", "successor_event_id", index),
        ),
        payload,
        insert_once=False,
    )


def link_scene_characters(
    engine: UpsertEngine,
    records: Iterable[Mapping[str, Any]],
    scenes: Iterable[Row],
    characters: Iterable[Row],
) -> StageResult:
    """Attach characters to scenes, once per pair."""
    return _link_pairs(
        engine,
        "scene_characters",
        "scene_characters",
        records,
        (
            Endpoint("scene", "scene_id", build_name_index(scenes, "title")),
            Endpoint("character", "character_id", build_name_index(characters)),
        ),
        lambda record: {
            "importance": with_default(record.get("importance"), "secondary")
        },
        insert_once=True,
    )
