"""Record storage used by the import pipeline."""

from storyloom.store.base import RecordStore, Row
from storyloom.store.sqlite_store import SQLiteRecordStore, open_store
from storyloom.store.tables import TABLES, TableSpec, table_spec

__all__ = [
    "TABLES",
    "RecordStore",
    "Row",
    "SQLiteRecordStore",
    "TableSpec",
    "open_store",
    "table_spec",
]
