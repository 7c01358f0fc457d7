"""Database schema initialization."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Protocol

from storyloom.config import StoryloomSettings, get_logger
from storyloom.database.connection_manager import DatabaseConnectionManager
from storyloom.exceptions import DatabaseError

logger = get_logger(__name__)

_SQLITE_SIDECARS = ("-wal", "-shm")


class DatabaseConnection(Protocol):
    """Protocol for database connection."""

    def execute(self, sql: str) -> object:
        """Execute SQL statement."""
        ...

    def executescript(self, sql: str) -> object:
        """Execute multiple SQL statements."""
        ...

    def commit(self) -> None:
        """Commit transaction."""
        ...


class DatabaseInitializer:
    """Creates the Storyloom schema in a SQLite database file."""

    def __init__(self, sql_dir: Path | None = None) -> None:
        """Initialize database initializer.

        Args:
            sql_dir: Directory containing SQL files. Defaults to package SQL directory.
        """
        if sql_dir is None:
            sql_dir = Path(__file__).parent / "sql"
        self.sql_dir = sql_dir

    def _read_sql_file(self, filename: str) -> str:
        """Read SQL file content.

        Raises:
            FileNotFoundError: If SQL file not found.
        """
        sql_path = self.sql_dir / filename
        if not sql_path.exists():
            raise FileNotFoundError(f"SQL file not found: {sql_path}")
        return sql_path.read_text(encoding="utf-8")

    def _has_schema(self, settings: StoryloomSettings) -> bool:
        try:
            with DatabaseConnectionManager(settings, pool_size=(0, 1)) as manager:
                return manager.check_database_exists()
        except DatabaseError as e:
            logger.warning(
                "Could not check database schema",
                error=str(e),
                path=str(settings.database_path),
            )
            return False

    def _remove_database(self, db_path: Path) -> None:
        logger.warning("Removing existing database", path=str(db_path))
        db_path.unlink()
        for suffix in _SQLITE_SIDECARS:
            sidecar = db_path.with_name(db_path.name + suffix)
            if sidecar.exists():
                sidecar.unlink()

    def initialize_database(
        self,
        db_path: Path | None = None,
        force: bool = False,
        settings: StoryloomSettings | None = None,
        connection: DatabaseConnection | None = None,
    ) -> Path:
        """Initialize SQLite database with schema.

        Args:
            db_path: Path to the SQLite database file. If None, uses settings.
            force: If True, overwrite existing database.
            settings: Configuration settings. If None, uses global settings.
            connection: Optional database connection to initialize instead of
                opening the file at db_path.

        Returns:
            Path to the initialized database.

        Raises:
            FileExistsError: If database exists and force is False.
            DatabaseError: If database initialization fails.
        """
        if settings is None:
            from storyloom.config import get_settings

            settings = get_settings()

        if db_path is None:
            db_path = settings.database_path
        elif db_path != settings.database_path:
            settings = settings.model_copy(update={"database_path": db_path})

        db_path = Path(db_path).resolve()

        if connection is not None:
            self._initialize_with_connection(connection, settings)
            return db_path

        if db_path.exists() and self._has_schema(settings):
            if not force:
                raise FileExistsError(
                    f"Database already exists at {db_path}. Use --force to overwrite."
                )
            self._remove_database(db_path)

        db_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            with DatabaseConnectionManager(settings, pool_size=(0, 1)) as manager:
                conn = manager.get_connection()
                try:
                    self._initialize_with_connection(conn, settings)
                finally:
                    manager.release_connection(conn)
        except (OSError, sqlite3.Error) as e:
            if db_path.exists():
                db_path.unlink()
            raise DatabaseError(
                message=f"Failed to initialize database: {e}",
                hint="Check disk space and file permissions",
                details={"path": str(db_path), "error_type": type(e).__name__},
            ) from e

        logger.info("Database initialized successfully", path=str(db_path))
        return db_path

    def _initialize_with_connection(
        self, conn: DatabaseConnection, settings: StoryloomSettings | None = None
    ) -> None:
        """Run the schema script on the given connection."""
        conn.executescript(self._read_sql_file("init_database.sql"))

        # The schema script turns foreign keys on; settings have the last word
        if settings is not None and not settings.database_foreign_keys:
            conn.execute("PRAGMA foreign_keys = OFF")

        conn.commit()
        logger.debug("Database schema created successfully")
