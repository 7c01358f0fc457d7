"""Infer which table an untyped record belongs to from its field shape.

Field sets overlap between kinds (``type`` appears on several of them), so
the rules are evaluated in a fixed order and the first match wins. A field
"is present" when its key exists; an "any of" group matches when at least
one of its fields holds a truthy value.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from enum import Enum
from typing import Any


class EntityKind(str, Enum):
    """Kinds of record the classifier can recognize."""

    FACTION = "faction"
    LOCATION = "location"
    STORY_QUESTION = "story_question"
    SCENE = "scene"
    CHARACTER = "character"
    OBJECT = "object"
    EVENT = "event"
    PLOTLINE = "plotline"
    CHARACTER_RELATIONSHIP = "character_relationship"
    EVENT_DEPENDENCY = "event_dependency"
    STORY_WORLD = "story_world"
    STORY = "story"
    UNKNOWN = "unknown"


# Table each recognized kind is stored in
KIND_TABLES: dict[EntityKind, str] = {
    EntityKind.FACTION: "factions",
    EntityKind.LOCATION: "locations",
    EntityKind.STORY_QUESTION: "story_questions",
    EntityKind.SCENE: "scenes",
    EntityKind.CHARACTER: "characters",
    EntityKind.OBJECT: "objects",
    EntityKind.EVENT: "events",
    EntityKind.PLOTLINE: "plotlines",
    EntityKind.CHARACTER_RELATIONSHIP: "character_relationships",
    EntityKind.EVENT_DEPENDENCY: "event_dependencies",
    EntityKind.STORY_WORLD: "story_worlds",
    EntityKind.STORY: "stories",
}

Rule = Callable[[Mapping[str, Any]], bool]


def _has(record: Mapping[str, Any], *fields: str) -> bool:
    return all(field in record for field in fields)


def _has_any(record: Mapping[str, Any], *fields: str) -> bool:
    return any(field in record for field in fields)


def _any_truthy(record: Mapping[str, Any], *fields: str) -> bool:
    return any(record.get(field) for field in fields)


def _value_in(record: Mapping[str, Any], field: str, options: set[str]) -> bool:
    value = record.get(field)
    return isinstance(value, str) and value in options


def _is_faction(r: Mapping[str, Any]) -> bool:
    return _has(r, "faction_type") or (
        _has(r, "type")
        and _any_truthy(r, "headquarters_location_id", "ideology", "goals")
    )


def _is_location(r: Mapping[str, Any]) -> bool:
    return _has(r, "location_type") or _any_truthy(
        r, "parent_location_id", "map_coordinates", "climate"
    )


def _is_story_question(r: Mapping[str, Any]) -> bool:
    # A bare "question" key is too common to count on its own
    return _has(r, "story_question") or (
        _has(r, "question")
        and (
            _any_truthy(r, "resolution_scene_id", "origin_scene_id")
            or _value_in(r, "status", {"open", "resolved", "abandoned"})
        )
    )


def _is_scene(r: Mapping[str, Any]) -> bool:
    return _has(r, "type") and (
        _value_in(r, "type", {"scene", "chapter", "beat"})
        or _value_in(r, "status", {"draft", "revised"})
    )


def _is_character(r: Mapping[str, Any]) -> bool:
    return _has(r, "role") and (
        _value_in(r, "role", {"protagonist", "antagonist", "supporting"})
        or _any_truthy(r, "personality", "motivation")
    )


def _is_object(r: Mapping[str, Any]) -> bool:
    return _has_any(r, "object_type", "item_type") or (
        _has(r, "significance") and _any_truthy(r, "current_location", "current_owner")
    )


def _is_event(r: Mapping[str, Any]) -> bool:
    return _has(r, "sequence_number", "chronological_time")


def _is_plotline(r: Mapping[str, Any]) -> bool:
    return _has(r, "plotline_type") or _any_truthy(
        r, "starting_event_id", "climax_event_id", "resolution_event_id"
    )


def _is_relationship(r: Mapping[str, Any]) -> bool:
    return _has(r, "character1_id", "character2_id", "relationship_type")


def _is_event_dependency(r: Mapping[str, Any]) -> bool:
    return _has(r, "predecessor_event_id", "successor_event_id")


def _is_story_world(r: Mapping[str, Any]) -> bool:
    return _has_any(r, "storyWorld", "story_world")


def _is_story(r: Mapping[str, Any]) -> bool:
    return _has(r, "title", "story_type")


# Priority order matters: earlier rules shadow later ones
CLASSIFICATION_RULES: list[tuple[EntityKind, Rule]] = [
    (EntityKind.FACTION, _is_faction),
    (EntityKind.LOCATION, _is_location),
    (EntityKind.STORY_QUESTION, _is_story_question),
    (EntityKind.SCENE, _is_scene),
    (EntityKind.CHARACTER, _is_character),
    (EntityKind.OBJECT, _is_object),
    (EntityKind.EVENT, _is_event),
    (EntityKind.PLOTLINE, _is_plotline),
    (EntityKind.CHARACTER_RELATIONSHIP, _is_relationship),
    (EntityKind.EVENT_DEPENDENCY, _is_event_dependency),
    (EntityKind.STORY_WORLD, _is_story_world),
    (EntityKind.STORY, _is_story),
]


def classify_entity(record: Any) -> EntityKind:
    """Classify a loosely typed record.

    Lists are classified by their first element. Anything no rule recognizes,
    empty lists and non-mappings included, is ``EntityKind.UNKNOWN``.
    """
    if isinstance(record, list):
        return classify_entity(record[0]) if record else EntityKind.UNKNOWN
    if not isinstance(record, Mapping) or not record:
        return EntityKind.UNKNOWN

    for kind, rule in CLASSIFICATION_RULES:
        if rule(record):
            return kind
    return EntityKind.UNKNOWN
