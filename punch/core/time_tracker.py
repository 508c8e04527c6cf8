"""
Core time tracking functionality for punch.

This module contains the TimeTracker class that owns the entry lifecycle:
punching in, punching out and editing entries while keeping at most one
entry active and every closed entry ending after it starts.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..db.models import EditOptions, Entry, LogEntry, LogOptions
from ..db.repository import EntryRepository
from ..errors import (
    InvalidEndTimeError,
    NoActiveTaskError,
    TaskAlreadyRunningError,
    UpdateFailedError,
)
from ..utils.time_parsing import local_now, parse_time
from .log import query_log
from .resolution import resolve

logger = logging.getLogger(__name__)


class TimeTracker:
    """Time tracking service that coordinates entry lifecycle operations."""

    def __init__(self, repository: EntryRepository):
        """
        Initialize TimeTracker around an entry repository.

        Args:
            repository: Repository bound to an open DatabaseManager
        """
        self.repository = repository
        self.db_manager = repository.db_manager

    def punch_in(self, task_name: str, project: Optional[str] = None) -> Entry:
        """
        Start tracking a new task.

        Args:
            task_name: Name of the task to track
            project: Optional project label; an empty string counts as none

        Returns:
            The created entry

        Raises:
            TaskAlreadyRunningError: If another entry is active
        """
        with self.db_manager.transaction():
            active_entry = self.repository.find_active()
            if active_entry:
                raise TaskAlreadyRunningError(
                    active_entry.task_name, active_entry.start_time
                )

            entry = Entry(
                task_name=task_name,
                project=project or None,
                start_time=local_now(),
                end_time=None,
            )
            created_entry = self.repository.insert(entry)

        logger.info("Punched in on %r (%s)", created_entry.task_name, created_entry.id)
        return created_entry

    def punch_out(self, at: Optional[str] = None) -> Entry:
        """
        Stop the active entry.

        Args:
            at: Optional end time text, parsed relative to today

        Returns:
            The closed entry

        Raises:
            NoActiveTaskError: If no entry is active
            TimeFormatError: If the end time text cannot be parsed
            InvalidEndTimeError: If the end time is not after the start time
            UpdateFailedError: If the entry vanished before the update
        """
        with self.db_manager.transaction():
            active_entry = self.repository.find_active()
            if not active_entry:
                raise NoActiveTaskError()

            now = local_now()
            end_time = parse_time(at, now) if at else now
            self._validate_time_range(active_entry.start_time, end_time)

            stopped_entry = self.repository.update(active_entry.id, {"end_time": end_time})
            if stopped_entry is None:
                raise UpdateFailedError(active_entry.id)

        logger.info("Punched out of %r (%s)", stopped_entry.task_name, stopped_entry.id)
        return stopped_entry

    def punch_edit(self, options: Optional[EditOptions] = None) -> Entry:
        """
        Edit one entry.

        The target is resolved from options.reference. Time texts are parsed
        on the calendar day of the entry's current start time, and the merged
        start/end pair is validated before anything is written.

        Args:
            options: Requested changes; unset fields are left alone

        Returns:
            The updated entry

        Raises:
            NoEntriesToEditError: No reference given and the store is empty
            EntryNotFoundError: The reference matches nothing
            AmbiguousIdPrefixError: The id prefix matches several entries
            TimeFormatError: A time text cannot be parsed
            InvalidEndTimeError: The merged end time is not after the start time
            UpdateFailedError: The entry vanished before the update
        """
        if options is None:
            options = EditOptions()

        with self.db_manager.transaction():
            entry = resolve(self.repository, options.reference)

            changes: Dict[str, Any] = {}
            if options.task_name is not None and options.task_name.strip():
                changes["task_name"] = options.task_name.strip()
            if options.project is not None:
                changes["project"] = options.project
            if options.start is not None:
                changes["start_time"] = parse_time(options.start, entry.start_time)
            if options.end is not None:
                changes["end_time"] = parse_time(options.end, entry.start_time)

            final_start = changes.get("start_time", entry.start_time)
            final_end = changes.get("end_time", entry.end_time)
            if final_end is not None:
                self._validate_time_range(final_start, final_end)

            updated_entry = self.repository.update(entry.id, changes)
            if updated_entry is None:
                raise UpdateFailedError(entry.id)

        logger.info(
            "Edited entry %s (%s)", updated_entry.id, ", ".join(sorted(changes)) or "no fields"
        )
        return updated_entry

    def get_log(
        self, options: Optional[LogOptions] = None, now: Optional[datetime] = None
    ) -> List[LogEntry]:
        """List entries for the log view."""
        return query_log(self.repository, options, now)

    @staticmethod
    def _validate_time_range(start_time: datetime, end_time: datetime) -> None:
        if end_time <= start_time:
            raise InvalidEndTimeError(start_time, end_time)
