"""
Utility functions for formatting times and display elements.

This module provides consistent formatting for durations, clock times, dates
and entry identifiers.
"""

from datetime import date, datetime, timedelta
from typing import Optional

from .config import get_config_manager


def _local(dt: datetime) -> datetime:
    """Convert a datetime to local time, assuming naive values are local."""
    return dt.astimezone()


def format_time(dt: datetime) -> str:
    """
    Format a datetime as a 12-hour clock time.

    Args:
        dt: The datetime to format

    Returns:
        Formatted time string (e.g., "2:30 PM", "12:00 AM")
    """
    local_dt = _local(dt)
    hour = local_dt.hour % 12 or 12
    meridiem = "AM" if local_dt.hour < 12 else "PM"
    return f"{hour}:{local_dt.minute:02d} {meridiem}"


def format_duration(start: datetime, end: Optional[datetime]) -> str:
    """
    Format the span between two datetimes as a compact duration.

    Args:
        start: Start of the span
        end: End of the span, None for an active entry

    Returns:
        "(active)" without an end, otherwise "45m", "2h" or "2h 30m".
        Partial minutes are dropped.
    """
    if end is None:
        return "(active)"

    total_minutes = int((end - start).total_seconds() // 60)
    if total_minutes < 1:
        return "0m"

    hours, minutes = divmod(total_minutes, 60)
    if hours == 0:
        return f"{minutes}m"
    if minutes == 0:
        return f"{hours}h"
    return f"{hours}h {minutes}m"


def format_timedelta(duration: timedelta) -> str:
    """Format a timedelta the same way as format_duration."""
    start = datetime.min
    return format_duration(start, start + max(duration, timedelta(0)))


def format_date(dt: datetime, today: Optional[date] = None) -> str:
    """
    Format the calendar day of a datetime relative to today.

    Args:
        dt: The datetime to format
        today: Reference day (defaults to the local current date)

    Returns:
        "Today", "Yesterday", or a short date such as "Jan 18"
    """
    if today is None:
        today = date.today()

    target = _local(dt).date()
    if target == today:
        return "Today"
    if target == today - timedelta(days=1):
        return "Yesterday"
    return f"{target.strftime('%b')} {target.day}"


def short_id(entry_id: str, length: int = 8) -> str:
    """Return the leading characters of an entry id for display."""
    return entry_id[:length]


def truncate_text(text: str, max_length: Optional[int] = None) -> str:
    """
    Truncate text to a maximum length with ellipsis.

    Args:
        text: Text to potentially truncate
        max_length: Maximum length (uses config default if None)

    Returns:
        Truncated text with ellipsis if needed
    """
    if max_length is None:
        config = get_config_manager()
        max_length = config.get_max_task_name_length()

    if len(text) <= max_length:
        return text

    return text[:max_length - 3] + "..."
