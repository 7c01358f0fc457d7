"""Import of a pre-analyzed story bundle into the record store.

Stages run strictly in sequence: story world, story, characters, locations,
factions, objects, events, relationships, plotlines, scenes, then the
junction tables. Every stage after the story sees the ids produced by the
stages before it.

Failures come in two tiers. A record that cannot be stored is logged and
skipped while its stage carries on. A stage that cannot fetch the rows it
reconciles against stops the whole import; rows written by earlier stages
stay in place.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from storyloom.config import get_logger
from storyloom.exceptions import StoryloomError
from storyloom.importer import linkers
from storyloom.importer.bundle import AnalyzedStoryBundle
from storyloom.importer.names import build_name_index
from storyloom.importer.results import (
    COUNT_KEYS,
    ImportResult,
    StageResult,
    StageStatus,
)
from storyloom.importer.upsert import (
    MatchStrategy,
    UpsertEngine,
    is_empty,
    natural_key,
)
from storyloom.store.base import RecordStore, Row
from storyloom.store.tables import table_spec

logger = get_logger(__name__)

Record = dict[str, Any]
Prepare = Callable[[Mapping[str, Any]], Record]


class _ImportRun:
    """State threaded through the stages of a single import call."""

    def __init__(self, bundle: AnalyzedStoryBundle) -> None:
        self.bundle = bundle
        self.story_world_id: str | None = None
        self.story_id: str | None = None
        self.rows: dict[str, list[Row]] = {}

    def stored(self, stage: str) -> list[Row]:
        return self.rows.get(stage, [])


class StoryImporter:
    """Reconciles analyzed story bundles with the record store."""

    def __init__(self, store: RecordStore) -> None:
        """Initialize the importer.

        Args:
            store: Record store to read existing rows from and write to
        """
        self.store = store
        self.engine = UpsertEngine(store)

    def import_analyzed_story(
        self, data: AnalyzedStoryBundle | Mapping[str, Any]
    ) -> ImportResult:
        """Import one story bundle.

        Args:
            data: Bundle model or its raw mapping (camelCase or snake_case)

        Returns:
            Aggregate result; ``success`` is False when a stage was fatal
        """
        if isinstance(data, AnalyzedStoryBundle):
            bundle = data
        else:
            try:
                bundle = AnalyzedStoryBundle.model_validate(data)
            except PydanticValidationError as e:
                logger.error("Rejected malformed story bundle", error=str(e))
                return ImportResult(success=False, error=f"Invalid story bundle: {e}")

        run = _ImportRun(bundle)
        result = ImportResult(success=True)
        stages: list[tuple[str, Callable[[_ImportRun], StageResult]]] = [
            ("story_world", self._import_story_world),
            ("story", self._import_story),
            ("characters", self._import_characters),
            ("locations", self._import_locations),
            ("location_parents", self._link_location_parents),
            ("factions", self._import_factions),
            ("objects", self._import_objects),
            ("events", self._import_events),
            ("relationships", self._link_relationships),
            ("plotlines", self._import_plotlines),
            ("scenes", self._import_scenes),
            ("character_events", self._link_character_events),
            ("plotline_events", self._link_plotline_events),
            ("plotline_characters", self._link_plotline_characters),
            ("event_dependencies", self._link_event_dependencies),
            ("scene_characters", self._link_scene_characters),
        ]

        for name, stage in stages:
            outcome = stage(run)
            result.stages.append(outcome)
            if outcome.status is StageStatus.FATAL:
                logger.error("Import aborted", stage=name, error=outcome.error)
                result.success = False
                result.error = outcome.error
                break

            run.rows[name] = outcome.rows
            if name in COUNT_KEYS:
                result.counts[name] = outcome.count
            if outcome.status is StageStatus.PARTIAL:
                logger.warning(
                    "Stage finished with dropped records",
                    stage=name,
                    stored=outcome.count,
                    skipped=outcome.skipped,
                    failed=outcome.failed,
                )

        logger.info(
            "Story import finished",
            success=result.success,
            story_id=run.story_id,
            counts={key: count for key, count in result.counts.items() if count},
        )
        return result

    def _import_story_world(self, run: _ImportRun) -> StageResult:
        world = run.bundle.story_world
        if not world:
            return StageResult.skip("story_world")

        try:
            known = self.engine.existing_rows("story_worlds")
        except StoryloomError as e:
            return StageResult.fatal(
                "story_world", f"Failed to fetch story worlds: {e.message}"
            )

        result = StageResult(stage="story_world")
        try:
            stored = self.engine.upsert("story_worlds", world, known=known)
        except StoryloomError as e:
            logger.warning(
                "Failed to store story world", name=world.get("name"), error=e.message
            )
            result.failed += 1
            return result.finish()

        run.story_world_id = stored.row["id"]
        result.rows.append(stored.row)
        return result

    def _import_story(self, run: _ImportRun) -> StageResult:
        story = run.bundle.story
        if not story:
            return StageResult.fatal("story", "Story data is required")

        entity = dict(story)
        if is_empty(entity.get("story_world_id")):
            entity["story_world_id"] = run.story_world_id

        try:
            known = self.engine.existing_rows(
                "stories", {"story_world_id": entity["story_world_id"]}
            )
            stored = self.engine.upsert("stories", entity, known=known)
        except StoryloomError as e:
            return StageResult.fatal("story", f"Failed to store story: {e.message}")

        run.story_id = stored.row["id"]
        logger.info(
            "Importing story",
            story_id=run.story_id,
            title=stored.row.get("title"),
            action=stored.action.value,
        )
        return StageResult.ok("story", [stored.row])

    def _upsert_collection(
        self,
        run: _ImportRun,
        stage: str,
        table: str,
        records: list[Record],
        prepare: Prepare | None = None,
        defaults: Mapping[str, Any] | None = None,
    ) -> StageResult:
        """Upsert one entity collection scoped to the story being imported."""
        if not records:
            return StageResult.skip(stage)

        logger.info("Importing collection", stage=stage, records=len(records))
        try:
            known = self.engine.existing_rows(table, {"story_id": run.story_id})
        except StoryloomError as e:
            return StageResult.fatal(stage, f"Failed to fetch {table}: {e.message}")

        spec = table_spec(table)
        result = StageResult(stage=stage)
        for record in records:
            entity = prepare(record) if prepare else dict(record)
            entity["story_id"] = run.story_id
            if is_empty(entity.get("story_world_id")):
                entity["story_world_id"] = run.story_world_id

            strategy = MatchStrategy.for_entity(entity)
            if (
                strategy is MatchStrategy.BY_NATURAL_KEY
                and natural_key(spec, entity) is None
            ):
                logger.warning(
                    "Skipping record without a natural key",
                    table=table,
                    key="/".join(spec.natural_key),
                )
                result.skipped += 1
                continue

            try:
                stored = self.engine.upsert(
                    table, entity, strategy, known=known, defaults=defaults
                )
            except StoryloomError as e:
                logger.warning(
                    "Failed to store record",
                    table=table,
                    record=entity.get(spec.natural_key[0]),
                    error=e.message,
                )
                result.failed += 1
                continue
            result.rows.append(stored.row)

        return result.finish()

    def _import_characters(self, run: _ImportRun) -> StageResult:
        return self._upsert_collection(
            run, "characters", "characters", run.bundle.characters
        )

    def _import_locations(self, run: _ImportRun) -> StageResult:
        return self._upsert_collection(
            run,
            "locations",
            "locations",
            run.bundle.locations,
            prepare=linkers.without_parent_reference,
        )

    def _link_location_parents(self, run: _ImportRun) -> StageResult:
        if not run.stored("locations"):
            return StageResult.skip("location_parents")
        return linkers.link_location_parents(
            self.engine, run.bundle.locations, run.stored("locations")
        )

    def _import_factions(self, run: _ImportRun) -> StageResult:
        characters = build_name_index(run.stored("characters"))
        return self._upsert_collection(
            run,
            "factions",
            "factions",
            run.bundle.factions,
            prepare=lambda faction: linkers.resolve_faction_leader(
                faction, characters
            ),
            defaults={"faction_type": "organization"},
        )

    def _import_objects(self, run: _ImportRun) -> StageResult:
        characters = build_name_index(run.stored("characters"))
        locations = build_name_index(run.stored("locations"))
        return self._upsert_collection(
            run,
            "objects",
            "objects",
            run.bundle.objects,
            prepare=lambda obj: linkers.resolve_object_refs(obj, characters, locations),
            defaults={"object_type": "other"},
        )

    def _import_events(self, run: _ImportRun) -> StageResult:
        return self._upsert_collection(run, "events", "events", run.bundle.events)

    def _link_relationships(self, run: _ImportRun) -> StageResult:
        if not run.bundle.relationships:
            return StageResult.skip("relationships")
        return linkers.link_character_relationships(
            self.engine,
            run.bundle.relationships,
            run.stored("characters"),
            story_id=run.story_id,
        )

    def _import_plotlines(self, run: _ImportRun) -> StageResult:
        return self._upsert_collection(
            run, "plotlines", "plotlines", run.bundle.plotlines
        )

    def _import_scenes(self, run: _ImportRun) -> StageResult:
        return self._upsert_collection(run, "scenes", "scenes", run.bundle.scenes)

    def _link_character_events(self, run: _ImportRun) -> StageResult:
        records = run.bundle.character_events + linkers.involved_character_links(
            run.bundle.events
        )
        if not records:
            return StageResult.skip("character_events")
        return linkers.link_character_events(
            self.engine, records, run.stored("characters"), run.stored("events")
        )

    def _link_plotline_events(self, run: _ImportRun) -> StageResult:
        records = run.bundle.plotline_events + linkers.plotline_member_links(
            run.bundle.plotlines, "events", "event"
        )
        if not records:
            return StageResult.skip("plotline_events")
        return linkers.link_plotline_events(
            self.engine, records, run.stored("plotlines"), run.stored("events")
        )

    def _link_plotline_characters(self, run: _ImportRun) -> StageResult:
        records = linkers.plotline_member_links(
            run.bundle.plotlines, "characters", "character"
        )
        if not records:
            return StageResult.skip("plotline_characters")
        return linkers.link_plotline_characters(
            self.engine, records, run.stored("plotlines"), run.stored("characters")
        )

    def _link_event_dependencies(self, run: _ImportRun) -> StageResult:
        if not run.bundle.event_dependencies:
            return StageResult.skip("event_dependencies")
        return linkers.link_event_dependencies(
            self.engine, run.bundle.event_dependencies, run.stored("events")
        )

    def _link_scene_characters(self, run: _ImportRun) -> StageResult:
        if not run.bundle.scene_characters:
            return StageResult.skip("scene_characters")
        return linkers.link_scene_characters(
            self.engine,
            run.bundle.scene_characters,
            run.stored("scenes"),
            run.stored("characters"),
        )


def import_analyzed_story(
    store: RecordStore, data: AnalyzedStoryBundle | Mapping[str, Any]
) -> ImportResult:
    """Import one story bundle into ``store``."""
    return StoryImporter(store).import_analyzed_story(data)
