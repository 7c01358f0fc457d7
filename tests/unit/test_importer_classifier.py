"""Tests for the field-shape entity classifier."""

import pytest

from storyloom.importer.classifier import (
    CLASSIFICATION_RULES,
    KIND_TABLES,
    EntityKind,
    classify_entity,
)


class TestClassifyEntity:
    """Test classification of untyped records."""

    @pytest.mark.parametrize(
        ("record", "kind"),
        [
            ({"name": "Guild", "faction_type": "guild"}, EntityKind.FACTION),
            ({"name": "Guild", "type": "cult", "ideology": "ash"}, EntityKind.FACTION),
            ({"name": "Spire", "location_type": "tower"}, EntityKind.LOCATION),
            ({"name": "Vale", "climate": "cold"}, EntityKind.LOCATION),
            (
                {"question": "Who lit the fire?", "status": "open"},
                EntityKind.STORY_QUESTION,
            ),
            (
                {"story_question": "Why?", "origin_scene_id": "s1"},
                EntityKind.STORY_QUESTION,
            ),
            ({"title": "Opening", "type": "chapter"}, EntityKind.SCENE),
            (
                {"title": "Opening", "type": "draft", "status": "draft"},
                EntityKind.SCENE,
            ),
            ({"name": "Vex", "role": "protagonist"}, EntityKind.CHARACTER),
            (
                {"name": "Vex", "role": "narrator", "motivation": "revenge"},
                EntityKind.CHARACTER,
            ),
            ({"story_question": "Who lit the fire?"}, EntityKind.STORY_QUESTION),
            ({"name": "Key", "object_type": "tool"}, EntityKind.OBJECT),
            (
                {"name": "Key", "significance": "high", "current_owner": "Vex"},
                EntityKind.OBJECT,
            ),
            (
                {"title": "Fall", "sequence_number": 1, "chronological_time": "t0"},
                EntityKind.EVENT,
            ),
            ({"title": "Arc", "plotline_type": "main"}, EntityKind.PLOTLINE),
            (
                {
                    "character1_id": "a",
                    "character2_id": "b",
                    "relationship_type": "ally",
                },
                EntityKind.CHARACTER_RELATIONSHIP,
            ),
            (
                {"predecessor_event_id": "e1", "successor_event_id": "e2"},
                EntityKind.EVENT_DEPENDENCY,
            ),
            ({"storyWorld": {"name": "Cinder"}}, EntityKind.STORY_WORLD),
            ({"title": "Ashfall", "story_type": "novel"}, EntityKind.STORY),
        ],
    )
    def test_recognized_shapes(self, record, kind):
        assert classify_entity(record) is kind

    def test_empty_inputs_are_unknown(self):
        assert classify_entity({}) is EntityKind.UNKNOWN
        assert classify_entity([]) is EntityKind.UNKNOWN
        assert classify_entity(None) is EntityKind.UNKNOWN
        assert classify_entity("Vex") is EntityKind.UNKNOWN

    def test_unrecognized_record_is_unknown(self):
        assert classify_entity({"name": "Vex"}) is EntityKind.UNKNOWN

    def test_list_uses_first_element(self):
        records = [{"name": "Vex", "role": "antagonist"}, {"name": "Spire"}]
        assert classify_entity(records) is EntityKind.CHARACTER

    def test_faction_rule_shadows_scene_rule(self):
        record = {"type": "scene", "goals": "power"}
        assert classify_entity(record) is EntityKind.FACTION

    def test_scene_rule_shadows_character_rule(self):
        record = {
            "name": "Vex",
            "type": "note",
            "status": "draft",
            "role": "protagonist",
        }
        assert classify_entity(record) is EntityKind.SCENE

    def test_falsy_any_of_fields_do_not_match(self):
        assert classify_entity({"name": "Vex", "personality": ""}) is (
            EntityKind.UNKNOWN
        )

    def test_unhashable_values_do_not_break_set_checks(self):
        record = {"type": ["scene"], "status": {"open": True}}
        assert classify_entity(record) is EntityKind.UNKNOWN

    def test_classification_is_stable(self):
        record = {"name": "Spire", "location_type": "tower", "role": "protagonist"}
        assert classify_entity(record) is classify_entity(record)

    def test_every_rule_kind_has_a_table(self):
        for kind, _rule in CLASSIFICATION_RULES:
            assert kind in KIND_TABLES

    def test_status_without_type_is_not_a_scene(self):
        assert classify_entity({"title": "Ch 1", "status": "draft"}) is (
            EntityKind.UNKNOWN
        )

    def test_character_traits_need_a_role_key(self):
        assert classify_entity({"name": "Vex", "motivation": "revenge"}) is (
            EntityKind.UNKNOWN
        )

    def test_bare_question_needs_scene_or_status(self):
        assert classify_entity({"question": "Why?"}) is EntityKind.UNKNOWN
