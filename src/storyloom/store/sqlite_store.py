"""SQLite implementation of the record store."""

from __future__ import annotations

import json
import sqlite3
import threading
from collections.abc import Generator, Mapping
from contextlib import contextmanager
from typing import Any

from storyloom.config import StoryloomSettings, get_logger
from storyloom.database.connection_manager import DatabaseConnectionManager
from storyloom.exceptions import DatabaseError, ValidationError, check_database_path
from storyloom.store.base import Row

logger = get_logger(__name__)


class SQLiteRecordStore:
    """Record store backed by a pooled SQLite database.

    Table and column names are checked against the live schema before they are
    interpolated into SQL. Keys of a row that are not columns of the target
    table are dropped, so transient bundle fields never reach the database.
    Every write runs in its own transaction.
    """

    def __init__(self, manager: DatabaseConnectionManager) -> None:
        """Initialize the store.

        Args:
            manager: Connection manager owned by the caller
        """
        self.manager = manager
        self._schema: dict[str, dict[str, str]] = {}
        self._schema_lock = threading.Lock()

    def columns(self, table: str) -> dict[str, str]:
        """Return the columns of ``table`` mapped to their declared types.

        Raises:
            ValidationError: If the table does not exist.
        """
        with self._schema_lock:
            if table in self._schema:
                return self._schema[table]

            with self._errors("inspect", table):
                with self.manager.readonly() as conn:
                    exists = conn.execute(
                        "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?",
                        (table,),
                    ).fetchone()
                    if exists is None:
                        raise ValidationError(
                            message=f"Unknown table '{table}'",
                            hint="Run 'storyloom init' to create the schema",
                        )
                    info = conn.execute(f'PRAGMA table_info("{table}")').fetchall()

            self._schema[table] = {
                row["name"]: (row["type"] or "").upper() for row in info
            }
            return self._schema[table]

    @contextmanager
    def _errors(self, operation: str, table: str) -> Generator[None, None, None]:
        try:
            yield
        except sqlite3.Error as e:
            raise DatabaseError(
                message=f"Failed to {operation} {table}: {e}",
                details={
                    "table": table,
                    "operation": operation,
                    "error_type": type(e).__name__,
                },
            ) from e

    def _encode(self, table: str, row: Mapping[str, Any]) -> dict[str, Any]:
        columns = self.columns(table)
        encoded: dict[str, Any] = {}
        dropped = []
        for key, value in row.items():
            if key not in columns:
                dropped.append(key)
                continue
            if columns[key] == "JSON" and isinstance(value, dict | list):
                value = json.dumps(value)
            encoded[key] = value
        if dropped:
            logger.debug("Dropped non-column fields", table=table, fields=dropped)
        return encoded

    def _decode(self, table: str, row: sqlite3.Row) -> Row:
        columns = self.columns(table)
        decoded = dict(row)
        for key, value in decoded.items():
            if columns.get(key) == "JSON" and isinstance(value, str):
                try:
                    decoded[key] = json.loads(value)
                except json.JSONDecodeError:
                    pass
        return decoded

    def _where(
        self, table: str, filters: Mapping[str, Any] | None
    ) -> tuple[str, list[Any]]:
        if not filters:
            return "", []
        columns = self.columns(table)
        clauses = []
        params: list[Any] = []
        for key, value in filters.items():
            if key not in columns:
                raise ValidationError(
                    message=f"Unknown column '{key}' for table '{table}'",
                    details={"columns": sorted(columns)},
                )
            if value is None:
                clauses.append(f'"{key}" IS NULL')
            else:
                clauses.append(f'"{key}" = ?')
                params.append(value)
        return " WHERE " + " AND ".join(clauses), params

    def _fetch_by_id(self, conn: sqlite3.Connection, table: str, row_id: str) -> Row:
        row = conn.execute(
            f'SELECT * FROM "{table}" WHERE id = ?', (row_id,)
        ).fetchone()
        if row is None:
            raise DatabaseError(
                message=f"No row with id {row_id} in {table}",
                details={"table": table, "id": row_id},
            )
        return self._decode(table, row)

    def select(self, table: str, filters: Mapping[str, Any] | None = None) -> list[Row]:
        """Return all rows of ``table`` matching ``filters`` in insertion order."""
        where, params = self._where(table, filters)
        with self._errors("select from", table):
            with self.manager.readonly() as conn:
                rows = conn.execute(
                    f'SELECT * FROM "{table}"{where} ORDER BY rowid', params
                ).fetchall()
        return [self._decode(table, row) for row in rows]

    def insert(self, table: str, row: Mapping[str, Any]) -> Row:
        """Insert ``row`` and return it as stored.

        Raises:
            ValidationError: If the row carries no id.
            DatabaseError: If SQLite rejects the row.
        """
        data = self._encode(table, row)
        if not data.get("id"):
            raise ValidationError(
                message=f"Cannot insert into {table} without an id",
                details={"fields": sorted(data)},
            )

        names = ", ".join(f'"{key}"' for key in data)
        placeholders = ", ".join("?" for _ in data)
        with self._errors("insert into", table):
            with self.manager.transaction() as conn:
                conn.execute(
                    f'INSERT INTO "{table}" ({names}) VALUES ({placeholders})',
                    list(data.values()),
                )
                return self._fetch_by_id(conn, table, data["id"])

    def update(self, table: str, row_id: str, patch: Mapping[str, Any]) -> Row:
        """Apply ``patch`` to the row with ``row_id`` and return it as stored."""
        data = self._encode(table, patch)
        data.pop("id", None)

        with self._errors("update", table):
            with self.manager.transaction() as conn:
                if data:
                    assignments = ", ".join(f'"{key}" = ?' for key in data)
                    cursor = conn.execute(
                        f'UPDATE "{table}" SET {assignments} WHERE id = ?',
                        [*data.values(), row_id],
                    )
                    if cursor.rowcount == 0:
                        raise DatabaseError(
                            message=f"No row with id {row_id} in {table}",
                            details={"table": table, "id": row_id},
                        )
                return self._fetch_by_id(conn, table, row_id)

    def delete(self, table: str, row_id: str) -> None:
        """Delete the row with ``row_id``; deleting a missing row is a no-op."""
        self.columns(table)
        with self._errors("delete from", table):
            with self.manager.transaction() as conn:
                conn.execute(f'DELETE FROM "{table}" WHERE id = ?', (row_id,))


@contextmanager
def open_store(
    settings: StoryloomSettings,
) -> Generator[SQLiteRecordStore, None, None]:
    """Open a record store on an initialized database and close it afterwards.

    Raises:
        DatabaseError: If the database file is missing or has no schema.
    """
    check_database_path(settings.database_path)
    manager = DatabaseConnectionManager(settings)
    try:
        if not manager.check_database_exists():
            raise DatabaseError(
                message=f"Database at {settings.database_path} is not initialized",
                hint="Run 'storyloom init' to create the schema",
            )
        yield SQLiteRecordStore(manager)
    finally:
        manager.close()
