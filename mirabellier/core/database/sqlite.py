"""Embedded SQLite storage client.

Provides:
- One explicitly constructed connection per process (no module-level handle)
- Serialized access through a re-entrant lock
- ``transaction()`` for multi-statement atomic writes (BEGIN IMMEDIATE)
- Table creation and additive column migrations on startup

The connection runs in autocommit mode, so every statement outside
``transaction()`` is atomic on its own.
"""

import sqlite3
import threading
from collections.abc import Iterable, Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import structlog

from mirabellier.anime.models import ANIME_TABLES_SQL
from mirabellier.auth.models import (
    AUTH_COLUMN_MIGRATIONS,
    AUTH_POST_MIGRATION_SQL,
    AUTH_TABLES_SQL,
)
from mirabellier.content.models import (
    CONTENT_COLUMN_MIGRATIONS,
    CONTENT_TABLES_SQL,
)


logger = structlog.get_logger(__name__)

ALL_TABLES_SQL: list[str] = [*AUTH_TABLES_SQL, *CONTENT_TABLES_SQL, *ANIME_TABLES_SQL]
ALL_COLUMN_MIGRATIONS: list[tuple[str, str, str]] = [
    *AUTH_COLUMN_MIGRATIONS,
    *CONTENT_COLUMN_MIGRATIONS,
]
# Statements that depend on migrated columns (indexes)
POST_MIGRATION_SQL: list[str] = [*AUTH_POST_MIGRATION_SQL]


class Database:
    """SQLite storage client shared by all services.

    Args:
        path: Database file path (``":memory:"`` is accepted for tests).
    """

    def __init__(self, path: str | Path) -> None:
        self.path = str(path)
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.RLock()
        self._tx_depth = 0

    # ==========================================================================
    # Lifecycle
    # ==========================================================================

    def connect(self) -> "Database":
        if self._conn is not None:
            return self

        if self.path != ":memory:":
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)

        try:
            conn = sqlite3.connect(
                self.path,
                timeout=30,
                check_same_thread=False,
                isolation_level=None,
            )
        except sqlite3.Error as e:
            logger.error("database_connection_failed", path=self.path, error=str(e))
            raise ConnectionError(f"Failed to open database {self.path}: {e}") from e

        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        if self.path != ":memory:":
            conn.execute("PRAGMA journal_mode = WAL")
        self._conn = conn
        logger.info("database_connected", path=self.path)
        return self

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
                logger.info("database_closed", path=self.path)

    @property
    def is_connected(self) -> bool:
        return self._conn is not None

    def ping(self) -> bool:
        try:
            self.fetch_one("SELECT 1")
        except (sqlite3.Error, ConnectionError):
            return False
        return True

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise ConnectionError("Database is not connected")
        return self._conn

    # ==========================================================================
    # Queries
    # ==========================================================================

    def execute(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Cursor:
        with self._lock:
            return self._connection().execute(sql, params)

    def executemany(
        self, sql: str, seq_of_params: Iterable[Sequence[Any]]
    ) -> sqlite3.Cursor:
        with self._lock:
            return self._connection().executemany(sql, seq_of_params)

    def fetch_one(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Row | None:
        with self._lock:
            return self._connection().execute(sql, params).fetchone()

    def fetch_all(self, sql: str, params: Sequence[Any] = ()) -> list[sqlite3.Row]:
        with self._lock:
            return self._connection().execute(sql, params).fetchall()

    @contextmanager
    def transaction(self) -> Iterator["Database"]:
        """Run the enclosed statements in one write transaction.

        Nested calls join the outer transaction.
        """
        with self._lock:
            conn = self._connection()
            if self._tx_depth > 0:
                self._tx_depth += 1
                try:
                    yield self
                finally:
                    self._tx_depth -= 1
                return

            conn.execute("BEGIN IMMEDIATE")
            self._tx_depth = 1
            try:
                yield self
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            else:
                conn.execute("COMMIT")
            finally:
                self._tx_depth = 0

    # ==========================================================================
    # Schema
    # ==========================================================================

    def table_columns(self, table: str) -> set[str]:
        rows = self.fetch_all(f"PRAGMA table_info({table})")
        return {row["name"] for row in rows}

    def initialize(self) -> None:
        """Create missing tables, then add columns missing from older databases."""
        with self.transaction():
            for sql in ALL_TABLES_SQL:
                self.execute(sql)
        logger.info("database_tables_ready", tables=len(ALL_TABLES_SQL))

        applied, skipped = migrate_columns(self, ALL_COLUMN_MIGRATIONS)
        for sql in POST_MIGRATION_SQL:
            self.execute(sql)
        logger.info("database_migrations_done", applied=applied, skipped=skipped)


def migrate_columns(
    db: Database, migrations: Iterable[tuple[str, str, str]]
) -> tuple[int, int]:
    """Apply additive ``ALTER TABLE ... ADD COLUMN`` migrations.

    Args:
        db: Connected database
        migrations: (table, column, declaration) triples

    Returns:
        Tuple of (applied_count, skipped_count)
    """
    applied = 0
    skipped = 0
    columns_by_table: dict[str, set[str]] = {}

    for table, column, declaration in migrations:
        if table not in columns_by_table:
            columns_by_table[table] = db.table_columns(table)
        if column in columns_by_table[table]:
            skipped += 1
            continue

        db.execute(f"ALTER TABLE {table} ADD COLUMN {column} {declaration}")
        columns_by_table[table].add(column)
        logger.info("migration_applied", table=table, column=column)
        applied += 1

    return applied, skipped


def init_database(path: str | Path, run_migrations: bool = True) -> Database:
    """Open the database and prepare the schema."""
    db = Database(path).connect()
    if run_migrations:
        db.initialize()
    return db
