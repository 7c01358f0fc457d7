"""Tests for narrative queries over imported stories."""

import pytest

from storyloom.importer import import_analyzed_story
from storyloom.narrative import NarrativeQueries


@pytest.fixture
def story_id(store):
    result = import_analyzed_story(
        store,
        {
            "story": {"title": "Ashfall"},
            "characters": [{"name": "Vex"}, {"name": "Mira"}],
            "events": [
                {"title": "Spark", "sequence_number": 1},
                {"title": "Blaze", "sequence_number": 2},
                {"title": "Embers", "sequence_number": 3},
            ],
            "characterEvents": [
                {"character": "Vex", "event": "Embers", "character_sequence_number": 1},
                {
                    "character": "Vex",
                    "event": "Spark",
                    "character_sequence_number": 2,
                    "importance": 9,
                },
                {"character": "Mira", "event": "Spark"},
                {"character": "Mira", "event": "Blaze"},
            ],
            "eventDependencies": [
                {"predecessor": "Spark", "successor": "Blaze"},
                {"predecessor": "Blaze", "successor": "Spark"},
                {"predecessor": "Blaze", "successor": "Embers"},
            ],
        },
    )
    assert result.success is True
    [story] = store.select("stories")
    return story["id"]


@pytest.fixture
def queries(store):
    return NarrativeQueries(store)


class TestCharacterJourney:
    """Test per-character event ordering."""

    def test_ordered_by_character_sequence(self, queries, story_id):
        journey = queries.character_journey(story_id, "Vex")

        assert [entry["title"] for entry in journey] == ["Embers", "Spark"]
        assert journey[1]["importance"] == 9
        assert journey[0]["experience_type"] == "active"

    def test_name_lookup_ignores_case(self, queries, story_id):
        assert len(queries.character_journey(story_id, "  vex ")) == 2

    def test_unknown_character(self, queries, story_id):
        assert queries.character_journey(story_id, "Stranger") == []


class TestSharedEvents:
    """Test events common to several characters."""

    def test_intersection(self, queries, story_id):
        events = queries.shared_events(story_id, ["Vex", "Mira"])
        assert [event["title"] for event in events] == ["Spark"]

    def test_single_character(self, queries, story_id):
        events = queries.shared_events(story_id, ["Mira"])
        assert [event["title"] for event in events] == ["Spark", "Blaze"]

    def test_no_names(self, queries, story_id):
        assert queries.shared_events(story_id, []) == []

    def test_unknown_name_empties_result(self, queries, story_id):
        assert queries.shared_events(story_id, ["Vex", "Stranger"]) == []


class TestDependencyCycles:
    """Test cycle reporting on the dependency graph."""

    def test_two_event_cycle_is_reported_once(self, queries, story_id):
        cycles = queries.dependency_cycles(story_id)

        assert len(cycles) == 1
        assert sorted(cycles[0]) == ["Blaze", "Spark"]

    def test_acyclic_story(self, store, queries):
        import_analyzed_story(
            store,
            {
                "story": {"title": "Quiet"},
                "events": [{"title": "One"}, {"title": "Two"}],
                "eventDependencies": [{"predecessor": "One", "successor": "Two"}],
            },
        )
        [quiet] = store.select("stories", {"title": "Quiet"})
        assert queries.dependency_cycles(quiet["id"]) == []


class TestStorySummary:
    """Test the per-story entity counts."""

    def test_counts(self, queries, story_id):
        summary = queries.story_summary(story_id)

        assert summary["story"]["title"] == "Ashfall"
        assert summary["counts"]["characters"] == 2
        assert summary["counts"]["events"] == 3
        assert summary["counts"]["scenes"] == 0

    def test_unknown_story(self, queries, store):
        summary = queries.story_summary("missing")
        assert summary["story"] is None
        assert set(summary["counts"].values()) == {0}
