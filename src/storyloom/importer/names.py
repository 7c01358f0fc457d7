"""Case-insensitive lookup of entity ids by display name or title."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

NameIndex = dict[str, str]


def normalize_name(raw: Any) -> str | None:
    """Normalize a display name for matching: trimmed and lowercased.

    Returns None for anything that is not a non-blank string.
    """
    if not isinstance(raw, str):
        return None
    normalized = raw.strip().lower()
    return normalized or None


def build_name_index(
    entities: Iterable[Mapping[str, Any]], name_field: str = "name"
) -> NameIndex:
    """Map each entity's normalized ``name_field`` to its id.

    Entities without an id or a usable name are skipped. When two entities
    normalize to the same name the later one wins.
    """
    index: NameIndex = {}
    for entity in entities:
        key = normalize_name(entity.get(name_field))
        entity_id = entity.get("id")
        if key is not None and entity_id is not None:
            index[key] = entity_id
    return index


def resolve(index: Mapping[str, str], raw_name: Any) -> str | None:
    """Look up the id for ``raw_name``; None when it is absent or unusable."""
    key = normalize_name(raw_name)
    if key is None:
        return None
    return index.get(key)
