"""Tests for name-based id lookup."""

import pytest

from storyloom.importer.names import build_name_index, normalize_name, resolve


class TestNormalizeName:
    """Test display name normalization."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("Mira Latch", "mira latch"),
            ("  VEX  ", "vex"),
            ("", None),
            ("   ", None),
            (None, None),
            (42, None),
        ],
    )
    def test_normalize(self, raw, expected):
        assert normalize_name(raw) == expected


class TestNameIndex:
    """Test building and resolving against a name index."""

    def test_resolve_is_case_insensitive(self):
        index = build_name_index([{"name": "Mira Latch", "id": "c1"}], "name")
        assert resolve(index, "mira latch") == "c1"
        assert resolve(index, "  MIRA LATCH ") == "c1"

    def test_missing_name_resolves_to_none(self):
        index = build_name_index([{"name": "Mira Latch", "id": "c1"}], "name")
        assert resolve(index, "Vex") is None
        assert resolve(index, None) is None
        assert resolve(index, 7) is None

    def test_last_one_wins_on_collision(self):
        index = build_name_index(
            [{"name": "Vex", "id": "v1"}, {"name": "vex ", "id": "v2"}], "name"
        )
        assert index == {"vex": "v2"}

    def test_title_field(self):
        index = build_name_index([{"title": "The Fall", "id": "e1"}], "title")
        assert resolve(index, "the fall") == "e1"

    def test_entities_without_id_or_name_are_skipped(self):
        index = build_name_index(
            [{"name": "Vex"}, {"id": "x"}, {"name": "", "id": "y"}], "name"
        )
        assert index == {}

    def test_does_not_match_fuzzily(self):
        index = build_name_index([{"name": "Mira Latch", "id": "c1"}])
        assert resolve(index, "Mira") is None
