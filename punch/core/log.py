"""
Log query for punch.

Validates log filters, works out the time window and projects the matching
entries into display-ready LogEntry records.
"""

from datetime import datetime, timedelta
from typing import List, Optional

from ..db.models import Entry, LogEntry, LogOptions
from ..db.repository import EntryRepository
from ..errors import LogOptionsValidationError
from ..utils.formatting import format_duration, format_time
from ..utils.time_parsing import local_now

TIME_FILTERS = ("today", "week", "month")


def validate_log_options(options: LogOptions) -> str:
    """
    Check the time filters and return the window name to use.

    Raises:
        LogOptionsValidationError: If more than one time filter is set
    """
    selected = [name for name in TIME_FILTERS if getattr(options, name)]
    if len(selected) > 1:
        raise LogOptionsValidationError(selected)
    return selected[0] if selected else "today"


def window_start(window: str, now: Optional[datetime] = None) -> datetime:
    """
    Get the local start of a log window.

    Args:
        window: "today", "week" (from Monday) or "month"
        now: Current time (defaults to now)

    Returns:
        Timezone-aware local datetime at midnight of the window's first day
    """
    if now is None:
        now = local_now()

    midnight = now.astimezone().replace(
        hour=0, minute=0, second=0, microsecond=0, tzinfo=None
    )
    if window == "today":
        start = midnight
    elif window == "week":
        # weekday() is 0 for Monday, so Sunday goes back six days
        start = midnight - timedelta(days=midnight.weekday())
    elif window == "month":
        start = midnight.replace(day=1)
    else:
        raise ValueError(f"Unknown log window: {window}")

    return start.astimezone()


def to_log_entry(entry: Entry) -> LogEntry:
    """Project an entry into a display-ready log record."""
    return LogEntry(
        id=entry.id,
        task_name=entry.task_name,
        project=entry.project,
        start_time=entry.start_time,
        end_time=entry.end_time,
        duration=entry.duration_ms,
        formatted_duration=format_duration(entry.start_time, entry.end_time),
        formatted_start=format_time(entry.start_time),
        formatted_end=format_time(entry.end_time) if entry.end_time else "",
    )


def query_log(
    repository: EntryRepository,
    options: Optional[LogOptions] = None,
    now: Optional[datetime] = None,
) -> List[LogEntry]:
    """
    List entries for the log view.

    Entries started at or after the window start are included, with no upper
    bound, so the active entry always shows. Results are oldest first.

    Raises:
        LogOptionsValidationError: If more than one time filter is set
    """
    if options is None:
        options = LogOptions()

    window = validate_log_options(options)
    start = window_start(window, now)
    entries = repository.find_since(start, project=options.project or None)
    return [to_log_entry(entry) for entry in entries]
