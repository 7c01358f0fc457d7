"""SQLite connection management and schema setup."""

from storyloom.database.connection_manager import (
    ConnectionPool,
    DatabaseConnectionManager,
)
from storyloom.database.initializer import DatabaseInitializer

__all__ = [
    "ConnectionPool",
    "DatabaseConnectionManager",
    "DatabaseInitializer",
]
