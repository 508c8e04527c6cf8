"""
Database schema definition for punch.

This module contains the SQL schema, the migration runner and the connection
handle for the SQLite database.
"""

import logging
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from types import TracebackType
from typing import Any, Generator, Iterable, List, Optional, Sequence, Tuple, Type

from ..errors import StoreError
from ..utils.time_parsing import local_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Migration:
    """A named, ordered schema change. Statements run in one transaction."""

    id: str
    statements: Tuple[str, ...]


CREATE_MIGRATIONS_TABLE = """
CREATE TABLE IF NOT EXISTS _migrations (
    id TEXT PRIMARY KEY NOT NULL,
    applied_at INTEGER NOT NULL  -- epoch milliseconds
);
"""

CREATE_ENTRIES_TABLE = """
CREATE TABLE IF NOT EXISTS entries (
    id TEXT PRIMARY KEY NOT NULL,
    task_name TEXT NOT NULL,
    project TEXT,
    start_time INTEGER NOT NULL,  -- epoch milliseconds
    end_time INTEGER,  -- epoch milliseconds, NULL for the active entry
    last_activity INTEGER,
    created_at INTEGER NOT NULL,
    updated_at INTEGER NOT NULL
);
"""

MIGRATIONS: Tuple[Migration, ...] = (
    Migration(
        id="0000_initial",
        statements=(CREATE_ENTRIES_TABLE,),
    ),
    Migration(
        id="0001_entry_indexes",
        statements=(
            "CREATE INDEX IF NOT EXISTS idx_entries_start_time ON entries(start_time);",
            "CREATE INDEX IF NOT EXISTS idx_entries_end_time ON entries(end_time);",
            "CREATE INDEX IF NOT EXISTS idx_entries_project ON entries(project);",
        ),
    ),
)


_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def to_epoch_ms(dt: datetime) -> int:
    """Convert a datetime to whole epoch milliseconds, naive values being local."""
    return (dt.astimezone() - _EPOCH) // timedelta(milliseconds=1)


def from_epoch_ms(value: int) -> datetime:
    """Convert stored epoch milliseconds to a local timezone-aware datetime."""
    return (_EPOCH + timedelta(milliseconds=value)).astimezone()


class DatabaseManager:
    """
    Owns the single SQLite connection of one punch invocation.

    Use it as a context manager so the connection is closed on every exit
    path::

        with DatabaseManager(path) as db_manager:
            repository = EntryRepository(db_manager)
            ...
    """

    def __init__(self, db_path: Path):
        """Initialize database manager with the given database path."""
        self.db_path = Path(db_path)
        self._conn: Optional[sqlite3.Connection] = None

    def __enter__(self) -> "DatabaseManager":
        self.open()
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.close()

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def open(self) -> None:
        """Open the connection and bring the schema up to date."""
        if self._conn is not None:
            return
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            # Autocommit mode: transactions are opened explicitly in transaction().
            conn = sqlite3.connect(str(self.db_path), isolation_level=None)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA journal_mode = WAL")
            conn.execute("PRAGMA busy_timeout = 5000")
        except (sqlite3.Error, OSError) as e:
            raise StoreError(e, path=str(self.db_path)) from e

        self._conn = conn
        logger.debug("Opened database %s", self.db_path)
        try:
            self.initialize_database()
        except StoreError:
            self.close()
            raise

    def close(self) -> None:
        """Close the connection if it is open."""
        if self._conn is None:
            return
        self._conn.close()
        self._conn = None
        logger.debug("Closed database %s", self.db_path)

    @property
    def connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StoreError(RuntimeError("database is not open"), path=str(self.db_path))
        return self._conn

    def execute(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Cursor:
        """Execute one statement, wrapping driver failures in StoreError."""
        try:
            return self.connection.execute(sql, params)
        except sqlite3.Error as e:
            raise StoreError(e, path=str(self.db_path)) from e

    @contextmanager
    def transaction(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Run the enclosed block in one write transaction.

        BEGIN IMMEDIATE takes the write lock up front, so a read-then-write
        sequence cannot interleave with another process. Nested blocks join
        the outer transaction.
        """
        conn = self.connection
        if conn.in_transaction:
            yield conn
            return

        self.execute("BEGIN IMMEDIATE")
        try:
            yield conn
        except BaseException:
            conn.rollback()
            raise
        try:
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise StoreError(e, path=str(self.db_path)) from e

    def initialize_database(self, migrations: Iterable[Migration] = MIGRATIONS) -> List[str]:
        """
        Apply every pending migration.

        Each migration runs in its own transaction together with the row that
        records it, so a failure leaves the schema at the previous migration.
        Already-applied migrations are skipped.

        Returns:
            Ids of the migrations applied by this call
        """
        self.execute(CREATE_MIGRATIONS_TABLE)
        applied = set(self.applied_migrations())
        newly_applied = []

        for migration in migrations:
            if migration.id in applied:
                continue

            with self.transaction():
                for statement in migration.statements:
                    self.execute(statement)
                self.execute(
                    "INSERT INTO _migrations (id, applied_at) VALUES (?, ?)",
                    (migration.id, to_epoch_ms(local_now())),
                )
            logger.info("Applied migration %s", migration.id)
            newly_applied.append(migration.id)

        return newly_applied

    def applied_migrations(self) -> List[str]:
        """Get the ids of applied migrations in the order they were applied."""
        cursor = self.execute("SELECT id FROM _migrations ORDER BY applied_at, id")
        return [row["id"] for row in cursor.fetchall()]
