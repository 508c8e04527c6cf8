"""
Error taxonomy for punch.

Every failure an operation can report is one of the classes below. User errors
exit with code 1, store and other system errors with code 2.
"""

from datetime import datetime
from typing import List, Optional, Sequence

from .utils.formatting import format_time

MAX_AMBIGUOUS_IDS = 5

USER_ERROR = 1
SYSTEM_ERROR = 2


class PunchError(Exception):
    """Base exception for all expected punch failures."""

    exit_code = SYSTEM_ERROR

    @property
    def message(self) -> str:
        """Human-readable message shown on standard error."""
        return str(self)


class UserError(PunchError):
    """A failure caused by the request, recoverable by the user."""

    exit_code = USER_ERROR


class TaskAlreadyRunningError(UserError):
    """Raised by punch-in while another entry is active."""

    def __init__(self, task_name: str, start_time: datetime):
        self.task_name = task_name
        self.start_time = start_time
        super().__init__(
            f'Task already running: "{task_name}" started at {format_time(start_time)}'
        )


class NoActiveTaskError(UserError):
    """Raised by punch-out when nothing is active."""

    def __init__(self) -> None:
        super().__init__("No active task to stop")


class InvalidEndTimeError(UserError):
    """Raised when an end time is not strictly after the start time."""

    def __init__(self, start_time: datetime, end_time: datetime):
        self.start_time = start_time
        self.end_time = end_time
        super().__init__(
            "End time must be after start time "
            f"(started at {format_time(start_time)}, ends at {format_time(end_time)})"
        )


class EntryNotFoundError(UserError):
    """Raised when a position or id prefix matches nothing."""

    def __init__(self, identifier: str):
        self.identifier = identifier
        super().__init__(f"Entry not found: {identifier}")


class AmbiguousIdPrefixError(UserError):
    """Raised when an id prefix matches more than one entry."""

    def __init__(self, prefix: str, matches: Sequence[str]):
        self.prefix = prefix
        self.matches: List[str] = list(matches)
        super().__init__(f"Ambiguous ID '{prefix}' matches {len(self.matches)} entries")

    @property
    def message(self) -> str:
        shown = self.matches[:MAX_AMBIGUOUS_IDS]
        lines = [f"  {entry_id[:12]}..." for entry_id in shown]
        remaining = len(self.matches) - len(shown)
        if remaining > 0:
            lines.append(f"  ... and {remaining} more")
        id_list = "\n".join(lines)
        return f"{self}:\n{id_list}\n\nUse a longer prefix"


class NoEntriesToEditError(UserError):
    """Raised when an implicit edit target is requested on an empty store."""

    def __init__(self) -> None:
        super().__init__("No entries to edit")


class LogOptionsValidationError(UserError):
    """Raised when more than one log time filter is requested."""

    def __init__(self, filters: Sequence[str]):
        self.filters: List[str] = list(filters)
        super().__init__(
            f"Only one time filter allowed (got: {', '.join(self.filters)})"
        )


class TimeFormatError(UserError):
    """Raised when a time string cannot be parsed."""

    def __init__(self, text: str):
        self.text = text
        super().__init__(f"Invalid time format: {text}")


class StoreError(PunchError):
    """Raised when the database fails; always fatal to the invocation."""

    def __init__(self, cause: BaseException, path: Optional[str] = None):
        self.cause = cause
        self.path = path
        location = f" ({path})" if path else ""
        super().__init__(f"Database error{location}: {cause}")


class UpdateFailedError(PunchError):
    """Raised when an update of a resolved entry matched no row."""

    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(f"Database update failed for entry: {entry_id}")
