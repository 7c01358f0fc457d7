"""Schema-less import of a flat list of untyped entity records.

Each record is classified by its field shape and upserted into the matching
table. Records the classifier does not recognize are counted and skipped.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from storyloom.config import get_logger
from storyloom.exceptions import StoryloomError
from storyloom.importer import linkers
from storyloom.importer.classifier import KIND_TABLES, EntityKind, classify_entity
from storyloom.importer.names import build_name_index
from storyloom.importer.upsert import MatchStrategy, UpsertEngine, is_empty
from storyloom.store.base import RecordStore, Row

logger = get_logger(__name__)

# Count key reported for each recognized kind
KIND_COUNTS: dict[EntityKind, str] = {
    EntityKind.CHARACTER: "characters",
    EntityKind.LOCATION: "locations",
    EntityKind.FACTION: "factions",
    EntityKind.OBJECT: "objects",
    EntityKind.EVENT: "events",
    EntityKind.PLOTLINE: "plotlines",
    EntityKind.SCENE: "scenes",
    EntityKind.STORY_QUESTION: "story_questions",
    EntityKind.CHARACTER_RELATIONSHIP: "relationships",
    EntityKind.EVENT_DEPENDENCY: "dependencies",
    EntityKind.STORY: "story",
    EntityKind.STORY_WORLD: "story_world",
}

BULK_COUNT_KEYS = (*KIND_COUNTS.values(), "unknown")

_DEFAULTS: dict[EntityKind, dict[str, Any]] = {
    EntityKind.FACTION: {"faction_type": "organization"},
    EntityKind.OBJECT: {"object_type": "other"},
}


class BulkImporter:
    """Routes untyped records to their tables and upserts them one by one.

    A record classified as a story or story world becomes the story or world
    that records after it are attached to.
    """

    def __init__(
        self,
        store: RecordStore,
        story_id: str | None = None,
        story_world_id: str | None = None,
    ) -> None:
        self.engine = UpsertEngine(store)
        self.story_id = story_id
        self.story_world_id = story_world_id
        self.counts: dict[str, int] = dict.fromkeys(BULK_COUNT_KEYS, 0)
        self._stored: dict[EntityKind, list[Row]] = {}

    def run(self, records: Iterable[Any]) -> dict[str, int]:
        records = list(records)
        if records and isinstance(records[0], Mapping):
            self.story_id = self.story_id or records[0].get("story_id")
            self.story_world_id = self.story_world_id or records[0].get(
                "story_world_id"
            )

        for record in records:
            kind = classify_entity(record)
            if kind is EntityKind.UNKNOWN:
                logger.warning(
                    "Skipping record of unknown type",
                    fields=sorted(record) if isinstance(record, Mapping) else None,
                )
                self.counts["unknown"] += 1
                continue

            # Arrays take the kind of their first element
            items = record if isinstance(record, list) else [record]
            for item in items:
                if isinstance(item, Mapping):
                    self._import_one(kind, item)

        logger.info(
            "Bulk import finished",
            story_id=self.story_id,
            counts={key: count for key, count in self.counts.items() if count},
        )
        return self.counts

    def _prepare(self, kind: EntityKind, record: Mapping[str, Any]) -> dict[str, Any]:
        if kind is EntityKind.STORY_WORLD:
            nested = record.get("storyWorld", record.get("story_world"))
            if isinstance(nested, Mapping):
                record = nested
        elif kind is EntityKind.FACTION:
            record = linkers.resolve_faction_leader(
                record, build_name_index(self._stored.get(EntityKind.CHARACTER, []))
            )
        elif kind is EntityKind.OBJECT:
            record = linkers.resolve_object_refs(
                record,
                build_name_index(self._stored.get(EntityKind.CHARACTER, [])),
                build_name_index(self._stored.get(EntityKind.LOCATION, [])),
            )

        entity = dict(record)
        if kind is EntityKind.CHARACTER_RELATIONSHIP:
            entity["relationship_type"] = linkers.normalize_relationship_type(
                entity.get("relationship_type")
            )
        elif kind is EntityKind.STORY_QUESTION and is_empty(entity.get("question")):
            entity["question"] = entity.get("story_question")
        entity["story_id"] = entity.get("story_id") or self.story_id
        entity["story_world_id"] = (
            entity.get("story_world_id")
            or entity.get("storyworld_id")
            or self.story_world_id
        )
        return entity

    def _import_one(self, kind: EntityKind, record: Mapping[str, Any]) -> None:
        table = KIND_TABLES[kind]
        entity = self._prepare(kind, record)
        try:
            stored = self.engine.upsert(
                table,
                entity,
                MatchStrategy.for_entity(entity),
                defaults=_DEFAULTS.get(kind),
            )
        except StoryloomError as e:
            logger.warning(
                "Failed to import record",
                table=table,
                record=entity.get("name") or entity.get("title"),
                error=e.message,
            )
            return

        if kind is EntityKind.STORY:
            self.story_id = stored.row["id"]
        elif kind is EntityKind.STORY_WORLD:
            self.story_world_id = stored.row["id"]
        self._stored.setdefault(kind, []).append(stored.row)
        self.counts[KIND_COUNTS[kind]] += 1


def import_entities(
    store: RecordStore,
    records: Iterable[Any],
    story_id: str | None = None,
    story_world_id: str | None = None,
) -> dict[str, int]:
    """Classify and import untyped records, returning counts per kind.

    Args:
        store: Record store to write to
        records: Flat list of records; nested lists are routed by their
            first element
        story_id: Story new records are attached to unless they name one
        story_world_id: Story world new records are attached to likewise

    Returns:
        Number of records stored per kind, plus ``unknown`` for records
        that were not recognized
    """
    return BulkImporter(store, story_id, story_world_id).run(records)
