"""
Human time-string parsing for punch.

Supported forms:

- ``HH:MM`` or ``H:MM`` (24-hour clock, on the reference day)
- ``2pm``, ``2 pm``, ``12am`` (12-hour clock, on the reference day)
- ``14h`` (hour only, on the reference day)
- ``YYYY-MM-DD HH:MM`` (full local datetime, the reference day is ignored)

All results are timezone-aware local datetimes with seconds zeroed.
"""

import re
from datetime import datetime
from typing import Optional

from ..errors import TimeFormatError

DATE_MARKER = re.compile(r"\d{4}-\d{2}-\d{2}")
FULL_DATETIME = re.compile(r"^(\d{4})-(\d{2})-(\d{2})\s+(\d{1,2}):(\d{2})$")
CLOCK_TIME = re.compile(r"^(\d{1,2}):(\d{2})$")
MERIDIEM_TIME = re.compile(r"^(\d{1,2})\s*(am|pm)$", re.IGNORECASE)
HOUR_ONLY = re.compile(r"^(\d{1,2})h$")


def local_now() -> datetime:
    """
    Return the current time as a timezone-aware local datetime.

    Truncated to whole milliseconds, the precision entries are stored with.
    """
    now = datetime.now().astimezone()
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def _on_day(reference: datetime, hour: int, minute: int, text: str) -> datetime:
    """Place hour:minute on the local calendar day of the reference."""
    naive = reference.astimezone().replace(tzinfo=None)
    try:
        moved = naive.replace(hour=hour, minute=minute, second=0, microsecond=0)
    except ValueError as e:
        raise TimeFormatError(text) from e
    return moved.astimezone()


def parse_time(text: str, reference: Optional[datetime] = None) -> datetime:
    """
    Parse a human time string into an absolute local datetime.

    Args:
        text: Time text in one of the supported forms
        reference: Datetime whose calendar day anchors day-less forms
            (defaults to now)

    Returns:
        Timezone-aware local datetime

    Raises:
        TimeFormatError: If the text is not in a supported form or names
            an impossible time
    """
    value = text.strip()
    if reference is None:
        reference = local_now()

    if DATE_MARKER.search(value):
        match = FULL_DATETIME.match(value)
        if not match:
            raise TimeFormatError(text)
        year, month, day, hour, minute = (int(part) for part in match.groups())
        try:
            return datetime(year, month, day, hour, minute).astimezone()
        except ValueError as e:
            raise TimeFormatError(text) from e

    match = CLOCK_TIME.match(value)
    if match:
        hour, minute = int(match.group(1)), int(match.group(2))
        return _on_day(reference, hour, minute, text)

    match = MERIDIEM_TIME.match(value)
    if match:
        hour = int(match.group(1))
        is_pm = match.group(2).lower() == "pm"
        if not 1 <= hour <= 12:
            raise TimeFormatError(text)
        if is_pm and hour != 12:
            hour += 12
        elif not is_pm and hour == 12:
            hour = 0
        return _on_day(reference, hour, 0, text)

    match = HOUR_ONLY.match(value)
    if match:
        return _on_day(reference, int(match.group(1)), 0, text)

    raise TimeFormatError(text)
