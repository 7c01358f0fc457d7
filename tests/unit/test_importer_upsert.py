"""Tests for the create-or-update engine."""

from unittest.mock import patch

import pytest

from storyloom.exceptions import DatabaseError, ValidationError
from storyloom.importer.upsert import (
    MatchStrategy,
    UpsertAction,
    UpsertEngine,
    field_diff,
    is_empty,
    natural_key,
)
from storyloom.store.tables import table_spec


@pytest.fixture
def engine(store):
    return UpsertEngine(store)


class TestHelpers:
    """Test the pure merge helpers."""

    @pytest.mark.parametrize(
        ("value", "empty"),
        [(None, True), ("", True), ("  ", True), ([], True), ({}, True)]
        + [(0, False), (False, False), ("x", False), ([1], False)],
    )
    def test_is_empty(self, value, empty):
        assert is_empty(value) is empty

    def test_field_diff_keeps_changed_non_empty_columns(self):
        spec = table_spec("characters")
        diff = field_diff(
            {
                "name": "Vex",
                "role": "antagonist",
                "description": "",
                "background": None,
                "involved_characters": ["x"],
                "id": "other",
            },
            {"name": "Vex", "role": "protagonist", "description": "Tall"},
            spec.columns,
        )
        assert diff == {"role": "antagonist"}

    def test_natural_key_normalizes_names(self):
        spec = table_spec("characters")
        assert natural_key(spec, {"name": "  Vex "}) == ("vex",)
        assert natural_key(spec, {"name": ""}) is None

    def test_symmetric_natural_key_ignores_order(self):
        spec = table_spec("character_relationships")
        forward = natural_key(spec, {"character1_id": "a", "character2_id": "b"})
        backward = natural_key(spec, {"character1_id": "b", "character2_id": "a"})
        assert forward == backward

    def test_match_strategy_for_entity(self):
        assert MatchStrategy.for_entity({"id": "x"}) is MatchStrategy.BY_ID
        assert MatchStrategy.for_entity({"name": "x"}) is MatchStrategy.BY_NATURAL_KEY


class TestUpsert:
    """Test upserts against a real SQLite store."""

    def test_creates_row_with_id_and_timestamps(self, engine, story):
        result = engine.upsert(
            "characters",
            {"name": "Vex", "story_id": story["id"], "leader": "ignored"},
            MatchStrategy.BY_NATURAL_KEY,
        )

        assert result.action is UpsertAction.CREATED
        assert result.row["id"]
        assert result.row["created_at"] == result.row["updated_at"]
        assert "leader" not in result.row

    def test_matches_by_name_within_story(self, engine, store, story):
        first = engine.upsert(
            "characters", {"name": "Vex", "story_id": story["id"]}
        ).row
        second = engine.upsert(
            "characters",
            {"name": "VEX", "story_id": story["id"], "role": "antagonist"},
        )

        assert second.action is UpsertAction.UPDATED
        assert second.row["id"] == first["id"]
        assert second.row["role"] == "antagonist"
        assert len(store.select("characters")) == 1

    def test_same_name_in_other_story_is_a_new_row(self, engine, store, story):
        other = store.insert(
            "stories",
            {"id": "story-2", "title": "Emberfall", "created_at": "2024-01-01"},
        )
        engine.upsert("characters", {"name": "Vex", "story_id": story["id"]})
        engine.upsert("characters", {"name": "Vex", "story_id": other["id"]})

        assert len(store.select("characters")) == 2

    def test_unchanged_record_keeps_updated_at(self, engine, store, story):
        created = engine.upsert(
            "characters", {"name": "Vex", "story_id": story["id"], "role": "lead"}
        ).row

        with patch.object(store, "update") as update:
            result = engine.upsert(
                "characters",
                {"name": "Vex", "story_id": story["id"], "role": "lead"},
            )

        update.assert_not_called()
        assert result.action is UpsertAction.UNCHANGED
        assert result.row["updated_at"] == created["updated_at"]

    def test_empty_fields_do_not_overwrite(self, engine, story):
        engine.upsert(
            "characters",
            {"name": "Vex", "story_id": story["id"], "description": "Scarred"},
        )
        result = engine.upsert(
            "characters", {"name": "Vex", "story_id": story["id"], "description": ""}
        )

        assert result.action is UpsertAction.UNCHANGED
        assert result.row["description"] == "Scarred"

    def test_case_only_name_change_keeps_stored_name(self, engine, story):
        engine.upsert("characters", {"name": "Mira Latch", "story_id": story["id"]})
        result = engine.upsert(
            "characters", {"name": " mira latch ", "story_id": story["id"]}
        )

        assert result.action is UpsertAction.UNCHANGED
        assert result.row["name"] == "Mira Latch"

    def test_match_by_id(self, engine, story):
        created = engine.upsert(
            "characters", {"name": "Vex", "story_id": story["id"]}
        ).row
        result = engine.upsert(
            "characters", {"id": created["id"], "name": "Vex Ashborn"}
        )

        assert result.action is UpsertAction.UPDATED
        assert result.row["name"] == "Vex Ashborn"

    def test_unknown_id_creates_row_with_that_id(self, engine, story):
        result = engine.upsert(
            "characters",
            {"id": "c-given", "name": "Vex", "story_id": story["id"]},
            MatchStrategy.BY_ID,
        )
        assert result.action is UpsertAction.CREATED
        assert result.row["id"] == "c-given"

    def test_missing_natural_key_raises(self, engine, story):
        with pytest.raises(ValidationError):
            engine.upsert(
                "characters",
                {"story_id": story["id"], "role": "lead"},
                MatchStrategy.BY_NATURAL_KEY,
            )

    def test_defaults_apply_on_create_only(self, engine, store, story):
        created = engine.upsert(
            "factions",
            {"name": "Ember Guild", "story_id": story["id"]},
            defaults={"faction_type": "organization"},
        ).row
        assert created["faction_type"] == "organization"

        store.update("factions", created["id"], {"faction_type": "cult"})
        result = engine.upsert(
            "factions",
            {"name": "Ember Guild", "story_id": story["id"]},
            defaults={"faction_type": "organization"},
        )
        assert result.row["faction_type"] == "cult"

    def test_known_index_dedupes_within_a_batch(self, engine, store, story):
        known = engine.existing_rows("characters", {"story_id": story["id"]})
        for name in ("Vex", "vex"):
            record = {"name": name, "story_id": story["id"]}
            engine.upsert("characters", record, None, known)

        assert len(store.select("characters")) == 1
        assert ("vex",) in known

    def test_existing_rows_propagates_store_errors(self, engine, store):
        with patch.object(store, "select", side_effect=DatabaseError("boom")):
            with pytest.raises(DatabaseError):
                engine.existing_rows("factions", {"story_id": "story-1"})


class TestInsertOnce:
    """Test duplicate-checked junction inserts."""

    @pytest.fixture
    def pair(self, engine, story):
        plotline = engine.upsert(
            "plotlines", {"title": "Ash Arc", "story_id": story["id"]}
        ).row
        event = engine.upsert("events", {"title": "Fall", "story_id": story["id"]}).row
        return plotline["id"], event["id"]

    def test_second_insert_returns_existing_row(self, engine, store, pair):
        plotline_id, event_id = pair
        row = {"plotline_id": plotline_id, "event_id": event_id}

        first = engine.insert_once("plotline_events", row)
        second = engine.insert_once("plotline_events", row)

        assert first.action is UpsertAction.CREATED
        assert second.action is UpsertAction.UNCHANGED
        assert second.row["id"] == first.row["id"]
        assert len(store.select("plotline_events")) == 1


class TestSymmetricMatch:
    """Test that relationships match regardless of endpoint order."""

    def test_reversed_pair_updates_existing(self, engine, store, story):
        vex = engine.upsert("characters", {"name": "Vex", "story_id": story["id"]}).row
        mira = engine.upsert(
            "characters", {"name": "Mira", "story_id": story["id"]}
        ).row

        engine.upsert(
            "character_relationships",
            {"character1_id": vex["id"], "character2_id": mira["id"]},
        )
        result = engine.upsert(
            "character_relationships",
            {
                "character1_id": mira["id"],
                "character2_id": vex["id"],
                "relationship_type": "enemy",
            },
        )

        assert result.action is UpsertAction.UPDATED
        rows = store.select("character_relationships")
        assert len(rows) == 1
        assert rows[0]["relationship_type"] == "enemy"
