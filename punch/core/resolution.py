"""
Entry resolution for punch.

Maps an optional user reference to exactly one stored entry. References are
tried in this order:

1. none: the active entry, else the most recently started one
2. ``-N``: the Nth most recent entry by start time (``-1`` is the latest)
3. anything else: a case-sensitive id prefix that must match exactly one entry
"""

import logging
import re
from typing import Optional

from ..db.models import Entry
from ..db.repository import EntryRepository
from ..errors import AmbiguousIdPrefixError, EntryNotFoundError, NoEntriesToEditError

logger = logging.getLogger(__name__)

POSITION_PATTERN = re.compile(r"^-\d+$")


def is_position_reference(reference: str) -> bool:
    """Check whether a reference is a relative position such as -1 or -12."""
    return POSITION_PATTERN.match(reference) is not None


def find_active_or_last(repository: EntryRepository) -> Entry:
    """Get the active entry, falling back to the most recently started one."""
    entry = repository.find_active() or repository.find_most_recent()
    if entry is None:
        raise NoEntriesToEditError()
    return entry


def find_by_position(repository: EntryRepository, reference: str) -> Entry:
    """Get the entry at a -N position, counting from the newest start time."""
    # -0 gives offset -1, which matches nothing since positions start at -1.
    offset = int(reference[1:]) - 1
    entry = repository.find_at_offset_desc_by_start_time(offset)
    if entry is None:
        raise EntryNotFoundError(reference)
    return entry


def find_by_id_prefix(repository: EntryRepository, prefix: str) -> Entry:
    """Get the single entry whose id starts with prefix."""
    matches = repository.find_by_id_prefix(prefix)
    if not matches:
        raise EntryNotFoundError(prefix)
    if len(matches) > 1:
        raise AmbiguousIdPrefixError(prefix, [match.id for match in matches])
    return matches[0]


def resolve(repository: EntryRepository, reference: Optional[str] = None) -> Entry:
    """
    Resolve a user reference to one entry.

    Args:
        repository: Entry store to search
        reference: None, a -N position, or an id prefix

    Returns:
        The resolved entry

    Raises:
        NoEntriesToEditError: No reference given and the store is empty
        EntryNotFoundError: The position or prefix matches nothing
        AmbiguousIdPrefixError: The prefix matches more than one entry
    """
    if not reference:
        entry = find_active_or_last(repository)
    elif is_position_reference(reference):
        entry = find_by_position(repository, reference)
    else:
        entry = find_by_id_prefix(repository, reference)

    logger.debug("Resolved reference %r to entry %s", reference, entry.id)
    return entry
