"""Database connection pooling and lifecycle management.

The manager is an explicit collaborator: callers construct it, hand it to the
record store, and close it when done. Nothing here is held at process scope,
so independent import runs never share connection state.
"""

from __future__ import annotations

import sqlite3
import threading
import time
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from queue import Empty, Full, LifoQueue
from typing import Any

from storyloom.config import StoryloomSettings, get_logger
from storyloom.exceptions import DatabaseError

logger = get_logger(__name__)


class ConnectionPool:
    """Thread-safe connection pool for SQLite connections."""

    def __init__(
        self,
        settings: StoryloomSettings,
        db_path: Path | None = None,
        min_size: int = 1,
        max_size: int = 5,
        max_idle_time: float = 300,
        health_check_interval: float = 60,
    ):
        """Initialize the connection pool.

        Args:
            settings: Configuration settings
            db_path: Database path (defaults to settings.database_path)
            min_size: Minimum number of connections to maintain
            max_size: Maximum number of connections in the pool
            max_idle_time: Seconds an idle connection may live before it is closed
            health_check_interval: Seconds between background health checks
        """
        self.settings = settings
        self.db_path = Path(db_path or settings.database_path)
        self.min_size = min_size
        self.max_size = max_size
        self.max_idle_time = max_idle_time

        self._pool: LifoQueue[tuple[sqlite3.Connection, float]] = LifoQueue(
            maxsize=max_size
        )
        self._active_connections = 0
        self._total_connections = 0
        self._lock = threading.RLock()
        self._closed = False

        self._health_check_interval = health_check_interval
        self._health_check_thread: threading.Thread | None = None
        self._stop_health_check = threading.Event()

        self._initialize_pool()

    def _initialize_pool(self) -> None:
        """Open the minimum number of connections and start the health check."""
        with self._lock:
            for _ in range(self.min_size):
                try:
                    conn = self._create_connection()
                except sqlite3.Error as e:
                    logger.error("Failed to create initial connection", error=str(e))
                    break
                self._pool.put((conn, time.time()))
                self._total_connections += 1

            self._health_check_thread = threading.Thread(
                target=self._health_check_loop, daemon=True
            )
            self._health_check_thread.start()

    def _create_connection(self) -> sqlite3.Connection:
        """Create a new database connection configured from settings."""
        conn = sqlite3.connect(
            str(self.db_path),
            timeout=self.settings.database_timeout,
            check_same_thread=False,
        )

        pragma_settings = {
            "journal_mode": self.settings.database_journal_mode,
            "synchronous": self.settings.database_synchronous,
            "cache_size": self.settings.database_cache_size,
            "temp_store": self.settings.database_temp_store,
        }
        for pragma, value in pragma_settings.items():
            conn.execute(f"PRAGMA {pragma} = {value}")

        if self.settings.database_foreign_keys:
            conn.execute("PRAGMA foreign_keys = ON")
        else:
            conn.execute("PRAGMA foreign_keys = OFF")

        conn.row_factory = sqlite3.Row
        return conn

    def acquire(self, timeout: float | None = None) -> sqlite3.Connection:
        """Acquire a connection from the pool.

        Args:
            timeout: Maximum time to wait for a connection

        Returns:
            Database connection

        Raises:
            DatabaseError: If the pool is closed or no connection frees up in time
        """
        if self._closed:
            raise DatabaseError(
                message="Connection pool is closed",
                hint="The pool may have been shut down",
            )

        timeout = timeout or self.settings.database_timeout
        deadline = time.time() + timeout

        while True:
            with self._lock:
                try:
                    conn, _ = self._pool.get_nowait()
                    if self._is_connection_healthy(conn):
                        self._active_connections += 1
                        return conn
                    self._total_connections -= 1
                    conn.close()
                except Empty:
                    pass

                if self._total_connections < self.max_size:
                    try:
                        conn = self._create_connection()
                    except sqlite3.Error as e:
                        raise DatabaseError(
                            message=f"Failed to create database connection: {e}",
                            hint="Check database path and permissions",
                            details={"db_path": str(self.db_path)},
                        ) from e
                    self._total_connections += 1
                    self._active_connections += 1
                    return conn

            if time.time() > deadline:
                raise DatabaseError(
                    message="Timeout waiting for database connection",
                    hint=f"All {self.max_size} connections are in use",
                    details={
                        "active": self._active_connections,
                        "total": self._total_connections,
                    },
                )

            time.sleep(0.01)

    def release(self, conn: sqlite3.Connection) -> None:
        """Release a connection back to the pool.

        Args:
            conn: Connection to release
        """
        with self._lock:
            self._active_connections = max(0, self._active_connections - 1)

            if self._closed or not self._is_connection_healthy(conn):
                conn.close()
                self._total_connections -= 1
                return

            try:
                self._pool.put_nowait((conn, time.time()))
            except Full:
                conn.close()
                self._total_connections -= 1

    def _is_connection_healthy(self, conn: sqlite3.Connection) -> bool:
        try:
            conn.execute("SELECT 1")
            return True
        except sqlite3.Error:
            return False

    def _health_check_loop(self) -> None:
        """Close idle or broken connections and top the pool back up."""
        while not self._stop_health_check.wait(self._health_check_interval):
            if self._closed:
                break

            with self._lock:
                current_time = time.time()
                keep = []

                while True:
                    try:
                        conn, last_used = self._pool.get_nowait()
                    except Empty:
                        break
                    if current_time - last_used > self.max_idle_time:
                        conn.close()
                        self._total_connections -= 1
                        logger.debug("Closed idle connection")
                    elif self._is_connection_healthy(conn):
                        keep.append((conn, last_used))
                    else:
                        conn.close()
                        self._total_connections -= 1
                        logger.debug("Closed unhealthy connection")

                for conn_tuple in keep:
                    self._pool.put_nowait(conn_tuple)

                while self._total_connections < self.min_size:
                    try:
                        conn = self._create_connection()
                    except sqlite3.Error as e:
                        logger.error(
                            "Failed to create connection during health check",
                            error=str(e),
                        )
                        break
                    self._pool.put((conn, current_time))
                    self._total_connections += 1

    def close(self, force: bool = False) -> None:
        """Close all idle connections and stop the health check thread.

        Args:
            force: Reset the counters even if connections are still checked out
        """
        with self._lock:
            if self._closed:
                return

            self._closed = True
            self._stop_health_check.set()

            if self._health_check_thread and self._health_check_thread.is_alive():
                self._health_check_thread.join(timeout=0.5)

            while True:
                try:
                    conn, _ = self._pool.get_nowait()
                except Empty:
                    break
                conn.close()
                self._total_connections -= 1

            if force and self._active_connections > 0:
                logger.warning(
                    "Forcefully closing connection pool with active connections",
                    active=self._active_connections,
                )
                self._active_connections = 0
                self._total_connections = 0

            logger.debug("Connection pool closed", db_path=str(self.db_path))


class DatabaseConnectionManager:
    """Database connection manager with pooling and transactional helpers."""

    def __init__(
        self,
        settings: StoryloomSettings,
        db_path: Path | None = None,
        pool_size: tuple[int, int] | None = None,
    ):
        """Initialize the connection manager.

        Args:
            settings: Configuration settings
            db_path: Database path (defaults to settings.database_path)
            pool_size: Tuple of (min_connections, max_connections); defaults to
                the pool bounds in settings
        """
        self.settings = settings
        self.db_path = Path(db_path or settings.database_path)
        min_size, max_size = pool_size or (
            settings.database_pool_min,
            settings.database_pool_max,
        )
        self._pool = ConnectionPool(
            settings=settings,
            db_path=self.db_path,
            min_size=min_size,
            max_size=max_size,
        )

    def get_connection(self, timeout: float | None = None) -> sqlite3.Connection:
        """Get a database connection from the pool."""
        return self._pool.acquire(timeout)

    def release_connection(self, conn: sqlite3.Connection) -> None:
        """Release a connection back to the pool."""
        self._pool.release(conn)

    @contextmanager
    def transaction(self) -> Generator[sqlite3.Connection, None, None]:
        """Run the enclosed statements in one transaction.

        Commits on normal exit and rolls back if the block raises.

        Yields:
            Database connection within a transaction context
        """
        conn = self.get_connection()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            self.release_connection(conn)

    @contextmanager
    def readonly(self) -> Generator[sqlite3.Connection, None, None]:
        """Get a read-only database context.

        Yields:
            Database connection in read-only mode
        """
        conn = self.get_connection()
        try:
            conn.execute("PRAGMA query_only = ON")
            yield conn
        finally:
            conn.execute("PRAGMA query_only = OFF")
            self.release_connection(conn)

    def check_database_exists(self) -> bool:
        """Check if the database exists and carries the Storyloom schema."""
        if not self.db_path.exists():
            return False

        try:
            with self.readonly() as conn:
                cursor = conn.execute(
                    "SELECT name FROM sqlite_master "
                    "WHERE type='table' AND name='stories'"
                )
                return cursor.fetchone() is not None
        except sqlite3.Error:
            return False

    def close(self, force: bool = False) -> None:
        """Close the connection manager and all pooled connections."""
        self._pool.close(force=force)

    def __enter__(self) -> DatabaseConnectionManager:
        """Context manager entry."""
        return self

    def __exit__(self, *args: Any) -> None:
        """Context manager exit."""
        self.close()
