"""Database layer behind the key-value store.

Supports two backends:
- PostgreSQL (production, set PLANT_HEALTH_DATABASE_URL)
- SQLite (local development, default)

Uses raw SQL via psycopg2 (Postgres) or sqlite3 (SQLite) for simplicity.
No ORM: the store holds three JSON blobs in a single table.

Thread-safety: Postgres uses a ThreadedConnectionPool for connection reuse.
SQLite uses per-call connections with check_same_thread=False.
"""

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Optional

from plant_health import config
from plant_health.errors import StorageError

logger = logging.getLogger(__name__)


class Database:
    """Connection management and statement execution for one database."""

    def __init__(
        self,
        database_url: Optional[str] = None,
        sqlite_path: Optional[Path] = None,
    ):
        self.database_url = config.DATABASE_URL if database_url is None else database_url
        self.sqlite_path = Path(sqlite_path or config.SQLITE_PATH)
        self._pg_pool = None
        self._initialized = False

    def is_postgres(self) -> bool:
        """Check if we're using Postgres."""
        return self.database_url.startswith("postgres")

    def _get_pg_pool(self):
        """Get or create the Postgres connection pool (lazy)."""
        if self._pg_pool is None:
            import psycopg2.pool

            self._pg_pool = psycopg2.pool.ThreadedConnectionPool(
                minconn=1,
                maxconn=5,
                dsn=self.database_url,
            )
            logger.info("PostgreSQL connection pool initialized (1-5 connections)")
        return self._pg_pool

    def _driver_errors(self) -> tuple:
        """Exception types raised by the active driver (SQLite also touches the filesystem)."""
        if self.is_postgres():
            import psycopg2

            return (psycopg2.Error,)
        return (sqlite3.Error, OSError)

    @contextmanager
    def get_connection(self):
        """Get a database connection (Postgres or SQLite).

        Usage:
            with db.get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute(...)
                conn.commit()
        """
        if self.is_postgres():
            pool = self._get_pg_pool()
            conn = pool.getconn()
            try:
                yield conn
            finally:
                pool.putconn(conn)
        else:
            self.sqlite_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(self.sqlite_path), check_same_thread=False)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA journal_mode=WAL")
            try:
                yield conn
            finally:
                conn.close()

    def execute(self, sql: str, params: tuple = (), fetch: str = "none") -> Any:
        """Execute a SQL statement.

        Args:
            sql: SQL statement (use %s placeholders; adapted to ? for SQLite)
            params: Parameters tuple
            fetch: "none", "one", "all"

        Returns:
            None for "none", dict for "one", list[dict] for "all"

        Raises:
            StorageError: If the driver reports any failure
        """
        self.init_db()
        adapted_sql = sql if self.is_postgres() else sql.replace("%s", "?")

        try:
            with self.get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute(adapted_sql, params)

                if fetch == "one":
                    row = cursor.fetchone()
                    if row is None:
                        return None
                    columns = [desc[0] for desc in cursor.description]
                    return dict(zip(columns, row))
                elif fetch == "all":
                    columns = [desc[0] for desc in cursor.description]
                    return [dict(zip(columns, row)) for row in cursor.fetchall()]

                conn.commit()
                return None
        except self._driver_errors() as e:
            logger.error(f"Database statement failed: {e}")
            raise StorageError(f"Storage operation failed: {e}") from e

    def init_db(self) -> None:
        """Create the key-value table if it doesn't exist."""
        if self._initialized:
            return

        ddl = """
        CREATE TABLE IF NOT EXISTS kv_store (
            key VARCHAR(200) PRIMARY KEY,
            value TEXT NOT NULL,
            updated_at VARCHAR(40)
        )
        """
        try:
            with self.get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute(ddl)
                conn.commit()
        except self._driver_errors() as e:
            logger.error(f"Database initialization failed: {e}")
            raise StorageError(f"Storage initialization failed: {e}") from e

        self._initialized = True
        backend = "PostgreSQL" if self.is_postgres() else f"SQLite ({self.sqlite_path})"
        logger.info(f"Key-value database initialized: {backend}")

    def close(self) -> None:
        """Release pooled connections (Postgres only)."""
        if self._pg_pool is not None:
            self._pg_pool.closeall()
            self._pg_pool = None
            logger.info("PostgreSQL connection pool closed")
