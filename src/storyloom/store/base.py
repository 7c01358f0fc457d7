"""Record store contract used by the import pipeline and narrative queries."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

Row = dict[str, Any]


@runtime_checkable
class RecordStore(Protocol):
    """Minimal per-table CRUD verbs a storage backend must provide.

    Filters are equality matches on every given column; a ``None`` value
    matches a missing (NULL) column. Implementations raise
    ``storyloom.exceptions.DatabaseError`` when the backend fails.
    """

    def select(self, table: str, filters: Mapping[str, Any] | None = None) -> list[Row]:
        """Return all rows of ``table`` matching ``filters``."""
        ...

    def insert(self, table: str, row: Mapping[str, Any]) -> Row:
        """Insert ``row`` and return it as stored."""
        ...

    def update(self, table: str, row_id: str, patch: Mapping[str, Any]) -> Row:
        """Apply ``patch`` to the row with ``row_id`` and return it as stored."""
        ...

    def delete(self, table: str, row_id: str) -> None:
        """Delete the row with ``row_id``."""
        ...
