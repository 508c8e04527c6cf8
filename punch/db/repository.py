"""
Database repository for punch entries.

This module provides the data access layer for time entries. It never decides
anything about entry state; the lifecycle rules live in punch.core.
"""

import sqlite3
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..errors import StoreError
from ..utils.time_parsing import local_now
from .models import Entry
from .schema import DatabaseManager, from_epoch_ms, to_epoch_ms

TIME_COLUMNS = ("start_time", "end_time", "last_activity", "created_at", "updated_at")
UPDATABLE_COLUMNS = ("task_name", "project", "start_time", "end_time", "last_activity")
SQLITE_MAX_INTEGER = 2**63 - 1


class EntryRepository:
    """Repository for managing time entries in the database."""

    def __init__(self, db_manager: DatabaseManager):
        """Initialize repository with an open database manager."""
        self.db_manager = db_manager

    def insert(self, entry: Entry) -> Entry:
        """Insert a new entry, stamping created_at and updated_at."""
        now = local_now()
        self.db_manager.execute(
            """
            INSERT INTO entries (id, task_name, project, start_time, end_time,
                                 last_activity, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                entry.id,
                entry.task_name,
                entry.project,
                to_epoch_ms(entry.start_time),
                to_epoch_ms(entry.end_time) if entry.end_time else None,
                to_epoch_ms(entry.last_activity) if entry.last_activity else None,
                to_epoch_ms(now),
                to_epoch_ms(now),
            ),
        )

        created = self.get(entry.id)
        if created is None:
            raise StoreError(RuntimeError(f"inserted entry {entry.id} could not be read back"))
        return created

    def get(self, entry_id: str) -> Optional[Entry]:
        """Get an entry by its full id."""
        cursor = self.db_manager.execute("SELECT * FROM entries WHERE id = ?", (entry_id,))
        row = cursor.fetchone()
        return self._row_to_entry(row) if row else None

    def find_active(self) -> Optional[Entry]:
        """Get the entry without an end time (there should be at most one)."""
        cursor = self.db_manager.execute(
            """
            SELECT * FROM entries
            WHERE end_time IS NULL
            ORDER BY start_time DESC, rowid DESC
            LIMIT 1
            """
        )
        row = cursor.fetchone()
        return self._row_to_entry(row) if row else None

    def find_most_recent(self) -> Optional[Entry]:
        """Get the entry with the latest start time."""
        return self.find_at_offset_desc_by_start_time(0)

    def find_at_offset_desc_by_start_time(self, offset: int) -> Optional[Entry]:
        """Get the entry at a zero-based offset in newest-first start order."""
        if offset < 0 or offset > SQLITE_MAX_INTEGER:
            return None
        cursor = self.db_manager.execute(
            """
            SELECT * FROM entries
            ORDER BY start_time DESC, rowid DESC
            LIMIT 1 OFFSET ?
            """,
            (offset,),
        )
        row = cursor.fetchone()
        return self._row_to_entry(row) if row else None

    def find_by_id_prefix(self, prefix: str) -> List[Entry]:
        """
        Get every entry whose id starts with the prefix, ordered by id.

        The comparison is case-sensitive and treats every character of the
        prefix literally.
        """
        cursor = self.db_manager.execute(
            """
            SELECT * FROM entries
            WHERE substr(id, 1, length(?1)) = ?1
            ORDER BY id ASC
            """,
            (prefix,),
        )
        return [self._row_to_entry(row) for row in cursor.fetchall()]

    def find_since(self, start: datetime, project: Optional[str] = None) -> List[Entry]:
        """Get entries started at or after start, oldest first, optionally for one project."""
        sql = "SELECT * FROM entries WHERE start_time >= ?"
        params: List[Any] = [to_epoch_ms(start)]
        if project is not None:
            sql += " AND project = ?"
            params.append(project)
        sql += " ORDER BY start_time ASC, rowid ASC"

        cursor = self.db_manager.execute(sql, params)
        return [self._row_to_entry(row) for row in cursor.fetchall()]

    def update(self, entry_id: str, fields: Dict[str, Any]) -> Optional[Entry]:
        """
        Update the given fields of one entry and refresh updated_at.

        Args:
            entry_id: Full id of the entry
            fields: Column name to new value; datetimes are converted for storage

        Returns:
            The updated entry, or None if no row has that id
        """
        unknown = set(fields) - set(UPDATABLE_COLUMNS)
        if unknown:
            raise ValueError(f"Cannot update entry fields: {', '.join(sorted(unknown))}")

        values = dict(fields)
        values["updated_at"] = local_now()

        assignments = ", ".join(f"{column} = ?" for column in values)
        params = [
            to_epoch_ms(value) if column in TIME_COLUMNS and value is not None else value
            for column, value in values.items()
        ]
        params.append(entry_id)

        cursor = self.db_manager.execute(
            f"UPDATE entries SET {assignments} WHERE id = ?", params
        )
        if cursor.rowcount == 0:
            return None
        return self.get(entry_id)

    def count(self) -> int:
        """Count all entries."""
        cursor = self.db_manager.execute("SELECT COUNT(*) FROM entries")
        return int(cursor.fetchone()[0])

    def count_active(self) -> int:
        """Count entries without an end time."""
        cursor = self.db_manager.execute(
            "SELECT COUNT(*) FROM entries WHERE end_time IS NULL"
        )
        return int(cursor.fetchone()[0])

    def _row_to_entry(self, row: sqlite3.Row) -> Entry:
        """Convert a database row to an Entry model."""
        return Entry(
            id=row["id"],
            task_name=row["task_name"],
            project=row["project"],
            start_time=from_epoch_ms(row["start_time"]),
            end_time=(
                from_epoch_ms(row["end_time"]) if row["end_time"] is not None else None
            ),
            last_activity=(
                from_epoch_ms(row["last_activity"])
                if row["last_activity"] is not None
                else None
            ),
            created_at=from_epoch_ms(row["created_at"]),
            updated_at=from_epoch_ms(row["updated_at"]),
        )
