"""Pytest configuration and fixtures."""

import os

import pytest

from storyloom.config import StoryloomSettings, set_settings
from storyloom.database import DatabaseConnectionManager, DatabaseInitializer
from storyloom.store import SQLiteRecordStore


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers",
        "integration: mark test as integration test",
    )
    config.addinivalue_line(
        "markers",
        "slow: mark test as slow running",
    )
    config.addinivalue_line(
        "markers",
        "unit: mark test as unit test",
    )


@pytest.fixture(autouse=True)
def cleanup_singletons():
    """Reset cached settings between tests to prevent contamination."""
    yield

    import storyloom.config.settings as settings_module

    settings_module._settings = None
    settings_module._config_paths_cache = None


@pytest.fixture(autouse=True)
def isolated_test_environment(request, tmp_path, monkeypatch):
    """Point every unit test at its own database file and settings.

    Integration tests manage their own environment.
    """
    test_path = str(request.fspath)
    if f"{os.sep}integration{os.sep}" in test_path or "/integration/" in test_path:
        yield
        return

    db_path = tmp_path / "test_storyloom.db"
    monkeypatch.setenv("STORYLOOM_DATABASE_PATH", str(db_path))

    settings = StoryloomSettings(database_path=db_path)
    set_settings(settings)

    yield


@pytest.fixture
def settings(tmp_path):
    """Settings bound to a database file under tmp_path."""
    settings = StoryloomSettings(database_path=tmp_path / "test_storyloom.db")
    set_settings(settings)
    return settings


@pytest.fixture
def initialized_db(settings):
    """Create the schema and return the database path."""
    return DatabaseInitializer().initialize_database(settings=settings)


@pytest.fixture
def store(settings, initialized_db):
    """Record store on a freshly initialized database."""
    manager = DatabaseConnectionManager(settings)
    yield SQLiteRecordStore(manager)
    manager.close()


@pytest.fixture
def story(store):
    """A stored story that entities can be attached to."""
    return store.insert(
        "stories",
        {
            "id": "story-1",
            "title": "Ashfall",
            "created_at": "2024-01-01T00:00:00+00:00",
            "updated_at": "2024-01-01T00:00:00+00:00",
        },
    )
