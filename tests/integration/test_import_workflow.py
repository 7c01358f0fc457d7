"""Integration test covering import, re-import and narrative queries."""

import pytest

from storyloom.config import StoryloomSettings
from storyloom.database import DatabaseInitializer
from storyloom.importer import import_analyzed_story, import_entities
from storyloom.narrative import NarrativeQueries
from storyloom.store import open_store

pytestmark = pytest.mark.integration

BUNDLE = {
    "storyWorld": {"name": "Cinder Reach", "world_type": "fantasy"},
    "story": {"title": "Ashfall", "story_type": "novel"},
    "characters": [
        {"name": "Vex Marrow", "role": "protagonist", "motivation": "revenge"},
        {"name": "Mira Latch", "role": "deuteragonist"},
        {"name": "The Warden", "role": "antagonist"},
    ],
    "locations": [
        {"name": "Ember Vault", "parent_location": "Cinder Spire"},
        {"name": "Cinder Spire", "location_type": "tower"},
    ],
    "factions": [{"name": "Ash Wardens", "leader": "The Warden", "type": "order"}],
    "objects": [
        {
            "name": "Cinder Key",
            "item_type": "artifact",
            "current_owner": "Vex Marrow",
            "current_location": "Ember Vault",
        }
    ],
    "events": [
        {
            "title": "The Spark",
            "sequence_number": 1,
            "involved_characters": ["Vex Marrow", "Mira Latch"],
        },
        {
            "title": "Vault Breach",
            "sequence_number": 2,
            "involved_characters": ["Vex Marrow", "The Warden"],
        },
        {"title": "Long Night", "sequence_number": 3},
    ],
    "relationships": [
        {
            "character1": "Vex Marrow",
            "character2": "The Warden",
            "relationship_type": "enemy",
            "intensity": 9,
        },
        {"character1": "Vex Marrow", "character2": "Mira Latch"},
    ],
    "plotlines": [
        {
            "title": "Vengeance",
            "events": ["The Spark", "Vault Breach"],
            "characters": ["Vex Marrow"],
        }
    ],
    "scenes": [{"title": "Opening", "sequence_number": 1}],
    "characterEvents": [
        {
            "character": "Mira Latch",
            "event": "Long Night",
            "character_sequence_number": 1,
            "experience_type": "witness",
        }
    ],
    "eventDependencies": [
        {"predecessor": "The Spark", "successor": "Vault Breach"},
        {"predecessor": "Vault Breach", "successor": "Long Night"},
    ],
    "sceneCharacters": [{"scene": "Opening", "character": "Mira Latch"}],
}


@pytest.fixture
def workspace_settings(tmp_path):
    settings = StoryloomSettings(database_path=tmp_path / "workflow.db")
    DatabaseInitializer().initialize_database(settings=settings)
    return settings


def _table_sizes(store):
    return {
        table: len(store.select(table))
        for table in (
            "story_worlds",
            "stories",
            "characters",
            "locations",
            "factions",
            "objects",
            "events",
            "character_relationships",
            "character_events",
            "plotlines",
            "plotline_events",
            "plotline_characters",
            "event_dependencies",
            "scenes",
            "scene_characters",
        )
    }


def test_full_bundle_import_and_reimport(workspace_settings):
    with open_store(workspace_settings) as store:
        first = import_analyzed_story(store, BUNDLE)
        assert first.success is True, first.error
        assert first.counts["characters"] == 3
        assert first.counts["relationships"] == 2
        assert first.counts["character_events"] == 5
        assert first.counts["plotline_events"] == 2
        assert first.counts["plotline_characters"] == 1
        assert first.counts["event_dependencies"] == 2
        sizes = _table_sizes(store)

        second = import_analyzed_story(store, BUNDLE)
        assert second.success is True, second.error
        assert _table_sizes(store) == sizes

        [story] = store.select("stories")
        [world] = store.select("story_worlds")
        assert story["story_world_id"] == world["id"]

        [faction] = store.select("factions")
        [warden] = store.select("characters", {"name": "The Warden"})
        assert faction["leader_character_id"] == warden["id"]
        assert faction["faction_type"] == "order"

        [key] = store.select("objects")
        assert key["object_type"] == "artifact"

        queries = NarrativeQueries(store)
        journey = queries.character_journey(story["id"], "mira latch")
        assert [entry["title"] for entry in journey] == [
            "The Spark",
            "Long Night",
        ]
        shared = queries.shared_events(story["id"], ["Vex Marrow", "The Warden"])
        assert [event["title"] for event in shared] == ["Vault Breach"]
        assert queries.dependency_cycles(story["id"]) == []
        assert queries.story_summary(story["id"])["counts"]["relationships"] == 2


def test_bulk_records_join_an_imported_story(workspace_settings):
    with open_store(workspace_settings) as store:
        import_analyzed_story(store, {"story": {"title": "Ashfall"}})
        [story] = store.select("stories")

        counts = import_entities(
            store,
            [
                {"name": "Vex Marrow", "role": "protagonist"},
                {
                    "name": "Ash Wardens",
                    "faction_type": "order",
                    "leader": "Vex Marrow",
                },
                {"name": "Cinder Key", "object_type": "artifact"},
            ],
            story_id=story["id"],
        )

        assert counts["characters"] == 1
        assert counts["factions"] == 1
        assert counts["objects"] == 1
        [vex] = store.select("characters")
        [faction] = store.select("factions")
        assert faction["leader_character_id"] == vex["id"]
