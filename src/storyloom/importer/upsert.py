"""Create-or-update of single records with a conservative field merge.

An incoming record is matched against stored rows either by id or by the
table's natural key. A match is patched only with fields whose incoming value
is non-empty and differs from what is stored. When nothing differs the row is
left alone, ``updated_at`` included. No match means a fresh row with a new
UUID and creation timestamps.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from storyloom.config import get_logger
from storyloom.exceptions import ValidationError
from storyloom.importer.names import normalize_name
from storyloom.store.base import RecordStore, Row
from storyloom.store.tables import SYSTEM_COLUMNS, TableSpec, table_spec

logger = get_logger(__name__)

NaturalKey = tuple[Any, ...]
KeyIndex = dict[NaturalKey, Row]


class MatchStrategy(str, Enum):
    """How an incoming record is matched to a stored row."""

    BY_ID = "by_id"
    BY_NATURAL_KEY = "by_natural_key"

    @classmethod
    def for_entity(cls, entity: Mapping[str, Any]) -> MatchStrategy:
        """Match by id when the record carries one, else by natural key."""
        return cls.BY_ID if entity.get("id") else cls.BY_NATURAL_KEY


class UpsertAction(str, Enum):
    """What an upsert did to the store."""

    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


@dataclass
class UpsertResult:
    """Stored row after an upsert and the action that produced it."""

    row: Row
    action: UpsertAction


def utc_now() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(UTC).isoformat()


def is_empty(value: Any) -> bool:
    """Whether a value counts as absent for merging (0 and False do not)."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, list | dict):
        return not value
    return False


def natural_key(spec: TableSpec, row: Mapping[str, Any]) -> NaturalKey | None:
    """Compute the natural key of ``row``; None when a key field is missing."""
    values = []
    for field in spec.natural_key:
        value = row.get(field)
        if spec.keyed_by_name:
            value = normalize_name(value)
        if is_empty(value):
            return None
        values.append(value)
    if spec.symmetric:
        values.sort(key=str)
    return tuple(values)


def field_diff(
    entity: Mapping[str, Any], existing: Mapping[str, Any], columns: frozenset[str]
) -> dict[str, Any]:
    """Fields of ``entity`` worth writing over ``existing``."""
    return {
        field: value
        for field, value in entity.items()
        if field in columns
        and field not in SYSTEM_COLUMNS
        and not is_empty(value)
        and existing.get(field) != value
    }


class UpsertEngine:
    """Decides create-versus-update for records against a record store."""

    def __init__(self, store: RecordStore) -> None:
        """Initialize the engine.

        Args:
            store: Record store all reads and writes go through
        """
        self.store = store

    def existing_rows(
        self, table: str, scope: Mapping[str, Any] | None = None
    ) -> KeyIndex:
        """Fetch stored rows of ``table`` within ``scope``, keyed by natural key.

        Store failures propagate unchanged.
        """
        spec = table_spec(table)
        index: KeyIndex = {}
        for row in self.store.select(table, scope):
            key = natural_key(spec, row)
            if key is not None:
                index[key] = row
        return index

    def find_existing(
        self,
        table: str,
        entity: Mapping[str, Any],
        strategy: MatchStrategy,
        known: KeyIndex | None = None,
    ) -> Row | None:
        """Find the stored row ``entity`` should be merged into.

        Args:
            table: Table name
            entity: Incoming record
            strategy: How to match
            known: Rows already fetched for this table, keyed by natural key;
                when given, natural-key matching does not query the store

        Raises:
            ValidationError: If the record lacks the fields the strategy needs.
        """
        spec = table_spec(table)

        if strategy is MatchStrategy.BY_ID:
            entity_id = entity.get("id")
            if not entity_id:
                raise ValidationError(
                    message=f"Cannot match {table} record by id: no id given",
                )
            rows = self.store.select(table, {"id": entity_id})
            return rows[0] if rows else None

        key = natural_key(spec, entity)
        if key is None:
            raise ValidationError(
                message=f"{table} record is missing {'/'.join(spec.natural_key)}",
                details={"fields": sorted(entity)},
            )
        if known is not None:
            return known.get(key)

        for row in self._candidates(spec, entity):
            if natural_key(spec, row) == key:
                return row
        return None

    def _candidates(self, spec: TableSpec, entity: Mapping[str, Any]) -> list[Row]:
        if spec.keyed_by_name:
            return self.store.select(
                spec.name, {column: entity.get(column) for column in spec.scope}
            )
        filters = {field: entity.get(field) for field in spec.natural_key}
        rows = self.store.select(spec.name, filters)
        if spec.symmetric and not rows:
            first, second = spec.natural_key
            rows = self.store.select(
                spec.name, {first: entity.get(second), second: entity.get(first)}
            )
        return rows

    def upsert(
        self,
        table: str,
        entity: Mapping[str, Any],
        strategy: MatchStrategy | None = None,
        known: KeyIndex | None = None,
        defaults: Mapping[str, Any] | None = None,
    ) -> UpsertResult:
        """Create or update one record.

        Args:
            table: Table name
            entity: Incoming record; keys that are not columns are ignored
            strategy: Match strategy, chosen from the record when omitted
            known: Natural-key index of rows already in the store; updated in
                place so later records of the same batch match this one
            defaults: Values filled into empty fields on creation only

        Returns:
            The stored row and what was done to it
        """
        spec = table_spec(table)
        strategy = strategy or MatchStrategy.for_entity(entity)
        existing = self.find_existing(table, entity, strategy, known)

        if existing is None:
            row = self._create(spec, entity, defaults)
            result = UpsertResult(row, UpsertAction.CREATED)
        else:
            result = self.apply(table, entity, existing)

        if known is not None:
            key = natural_key(spec, result.row)
            if key is not None:
                known[key] = result.row
        return result

    def apply(
        self, table: str, entity: Mapping[str, Any], existing: Row
    ) -> UpsertResult:
        """Merge ``entity`` into the already matched ``existing`` row."""
        spec = table_spec(table)
        columns = spec.columns
        if spec.symmetric:
            # Stored endpoint order is kept when matched the other way round
            columns = columns - set(spec.natural_key)
        elif spec.keyed_by_name:
            # A case or whitespace change keeps the stored display name
            columns = columns - {
                key
                for key in spec.natural_key
                if normalize_name(entity.get(key)) == normalize_name(existing.get(key))
            }
        patch = field_diff(entity, existing, columns)
        if not patch:
            return UpsertResult(existing, UpsertAction.UNCHANGED)

        patch["updated_at"] = utc_now()
        logger.debug(
            "Updating record",
            table=table,
            id=existing["id"],
            fields=sorted(patch),
        )
        return UpsertResult(
            self.store.update(table, existing["id"], patch), UpsertAction.UPDATED
        )

    def insert_once(self, table: str, row: Mapping[str, Any]) -> UpsertResult:
        """Insert a junction row unless one with the same identity exists."""
        spec = table_spec(table)
        existing = self.find_existing(table, row, MatchStrategy.BY_NATURAL_KEY)
        if existing is not None:
            return UpsertResult(existing, UpsertAction.UNCHANGED)
        return UpsertResult(self._create(spec, row, None), UpsertAction.CREATED)

    def _create(
        self,
        spec: TableSpec,
        entity: Mapping[str, Any],
        defaults: Mapping[str, Any] | None,
    ) -> Row:
        row = {
            field: value
            for field, value in entity.items()
            if field in spec.columns and value is not None
        }
        for field, value in (defaults or {}).items():
            if is_empty(row.get(field)):
                row[field] = value

        now = utc_now()
        row["id"] = entity.get("id") or str(uuid.uuid4())
        row["created_at"] = now
        row["updated_at"] = now

        logger.debug("Creating record", table=spec.name, id=row["id"])
        return self.store.insert(spec.name, row)
