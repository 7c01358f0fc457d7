"""Tests for database initialization and connection management."""

import sqlite3
from unittest.mock import MagicMock

import pytest

from storyloom.database import DatabaseConnectionManager, DatabaseInitializer

EXPECTED_TABLES = {
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
    "story_questions",
}


class TestDatabaseInitializer:
    """Test schema creation."""

    def test_creates_all_tables(self, settings):
        db_path = DatabaseInitializer().initialize_database(settings=settings)

        conn = sqlite3.connect(db_path)
        try:
            tables = {
                row[0]
                for row in conn.execute(
                    "SELECT name FROM sqlite_master WHERE type = 'table'"
                )
            }
        finally:
            conn.close()
        assert EXPECTED_TABLES <= tables

    def test_refuses_to_overwrite_without_force(self, settings, initialized_db):
        with pytest.raises(FileExistsError):
            DatabaseInitializer().initialize_database(settings=settings)

    def test_force_recreates_database(self, settings, initialized_db):
        with DatabaseConnectionManager(settings) as manager:
            with manager.transaction() as conn:
                conn.execute(
                    "INSERT INTO stories (id, title, created_at) VALUES (?, ?, ?)",
                    ("s1", "Ashfall", "t0"),
                )

        DatabaseInitializer().initialize_database(settings=settings, force=True)

        with DatabaseConnectionManager(settings) as manager:
            with manager.readonly() as conn:
                [row] = conn.execute("SELECT COUNT(*) AS n FROM stories").fetchall()
        assert row["n"] == 0

    def test_explicit_db_path(self, settings, tmp_path):
        target = tmp_path / "nested" / "other.db"
        db_path = DatabaseInitializer().initialize_database(
            db_path=target, settings=settings
        )
        assert db_path == target.resolve()
        assert target.exists()

    def test_initializes_given_connection(self, settings):
        connection = MagicMock()
        DatabaseInitializer().initialize_database(
            settings=settings, connection=connection
        )
        connection.executescript.assert_called_once()
        connection.commit.assert_called_once()


class TestDatabaseConnectionManager:
    """Test pooled connections and transactions."""

    def test_check_database_exists(self, settings, initialized_db):
        with DatabaseConnectionManager(settings) as manager:
            assert manager.check_database_exists() is True

    def test_missing_database_does_not_exist(self, settings):
        manager = DatabaseConnectionManager(settings, pool_size=(0, 1))
        try:
            assert manager.check_database_exists() is False
        finally:
            manager.close()

    def test_transaction_rolls_back_on_error(self, settings, initialized_db):
        with DatabaseConnectionManager(settings) as manager:
            with pytest.raises(RuntimeError):
                with manager.transaction() as conn:
                    conn.execute(
                        "INSERT INTO stories (id, title, created_at) "
                        "VALUES ('s1', 'Lost', 't0')"
                    )
                    raise RuntimeError("abort")

            with manager.readonly() as conn:
                [row] = conn.execute("SELECT COUNT(*) AS n FROM stories").fetchall()
        assert row["n"] == 0

    def test_readonly_blocks_writes(self, settings, initialized_db):
        with DatabaseConnectionManager(settings) as manager:
            with pytest.raises(sqlite3.OperationalError):
                with manager.readonly() as conn:
                    conn.execute(
                        "INSERT INTO stories (id, title, created_at) "
                        "VALUES ('s1', 'Lost', 't0')"
                    )
