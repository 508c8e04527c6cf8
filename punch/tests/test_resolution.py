"""
Tests for entry resolution (punch.core.resolution).
"""

from datetime import datetime, timedelta
from typing import Callable

import pytest

from punch.core.resolution import is_position_reference, resolve
from punch.db.models import Entry
from punch.db.repository import EntryRepository
from punch.errors import (
    AmbiguousIdPrefixError,
    EntryNotFoundError,
    NoEntriesToEditError,
)

FIRST_ID = "abc12345-0000-4000-8000-000000000001"
SECOND_ID = "abc12345-1111-4000-8000-000000000002"


class TestPositionReferences:
    """Test cases for -N references."""

    @pytest.mark.parametrize(
        "reference,expected",
        [("-1", True), ("-12", True), ("-0", True), ("1", False), ("-1a", False), ("--1", False), ("abc", False)],
    )
    def test_is_position_reference(self, reference: str, expected: bool) -> None:
        """Test recognising relative positions."""
        assert is_position_reference(reference) is expected

    @pytest.mark.parametrize("reference,index", [("-1", 2), ("-2", 1), ("-3", 0)])
    def test_position_counts_from_latest_start(
        self,
        entry_repository: EntryRepository,
        closed_entries: list[Entry],
        reference: str,
        index: int,
    ) -> None:
        """Test that -1 is the newest start and -3 the oldest of three."""
        entry = resolve(entry_repository, reference)

        assert entry.id == closed_entries[index].id

    def test_position_past_oldest_raises_error(
        self, entry_repository: EntryRepository, closed_entries: list[Entry]
    ) -> None:
        """Test that -4 on three entries is not found."""
        with pytest.raises(EntryNotFoundError) as exc_info:
            resolve(entry_repository, "-4")

        assert exc_info.value.identifier == "-4"
        assert str(exc_info.value) == "Entry not found: -4"

    def test_position_zero_raises_error(
        self, entry_repository: EntryRepository, closed_entries: list[Entry]
    ) -> None:
        """Test that -0 never matches an entry."""
        with pytest.raises(EntryNotFoundError):
            resolve(entry_repository, "-0")

    def test_position_beyond_integer_range_raises_error(
        self, entry_repository: EntryRepository, closed_entries: list[Entry]
    ) -> None:
        """Test that a position too large for the database is not found."""
        with pytest.raises(EntryNotFoundError) as exc_info:
            resolve(entry_repository, "-99999999999999999999")

        assert exc_info.value.identifier == "-99999999999999999999"

    def test_position_orders_by_start_not_insertion(
        self, entry_repository: EntryRepository, add_entry: Callable[..., Entry], local_day: datetime
    ) -> None:
        """Test that a back-dated entry inserted last is not -1."""
        later = add_entry("Later", local_day + timedelta(hours=15), local_day + timedelta(hours=16))
        add_entry("Earlier", local_day + timedelta(hours=8), local_day + timedelta(hours=9))

        assert resolve(entry_repository, "-1").id == later.id


class TestIdPrefixReferences:
    """Test cases for id prefix references."""

    @pytest.fixture
    def similar_entries(
        self, add_entry: Callable[..., Entry], local_day: datetime
    ) -> list[Entry]:
        """Provide two entries whose ids share an eight character prefix."""
        first = add_entry(
            "First",
            local_day + timedelta(hours=9),
            local_day + timedelta(hours=10),
            entry_id=FIRST_ID,
        )
        second = add_entry(
            "Second",
            local_day + timedelta(hours=11),
            local_day + timedelta(hours=12),
            entry_id=SECOND_ID,
        )
        return [first, second]

    def test_shared_prefix_is_ambiguous(
        self, entry_repository: EntryRepository, similar_entries: list[Entry]
    ) -> None:
        """Test that a shared prefix lists every match."""
        with pytest.raises(AmbiguousIdPrefixError) as exc_info:
            resolve(entry_repository, "abc")

        assert exc_info.value.prefix == "abc"
        assert exc_info.value.matches == [FIRST_ID, SECOND_ID]

    def test_eight_character_prefix_is_still_ambiguous(
        self, entry_repository: EntryRepository, similar_entries: list[Entry]
    ) -> None:
        """Test that the display length of an id is not special."""
        with pytest.raises(AmbiguousIdPrefixError):
            resolve(entry_repository, "abc12345")

    def test_unique_prefix_resolves(
        self, entry_repository: EntryRepository, similar_entries: list[Entry]
    ) -> None:
        """Test that a prefix long enough to be unique resolves."""
        entry = resolve(entry_repository, "abc12345-1")

        assert entry.id == SECOND_ID

    def test_full_id_resolves(
        self, entry_repository: EntryRepository, similar_entries: list[Entry]
    ) -> None:
        """Test that a full id resolves to itself."""
        assert resolve(entry_repository, FIRST_ID).task_name == "First"

    def test_unknown_prefix_raises_error(
        self, entry_repository: EntryRepository, similar_entries: list[Entry]
    ) -> None:
        """Test that a prefix matching nothing is not found."""
        with pytest.raises(EntryNotFoundError) as exc_info:
            resolve(entry_repository, "fff")

        assert exc_info.value.identifier == "fff"

    def test_prefix_is_case_sensitive(
        self, entry_repository: EntryRepository, similar_entries: list[Entry]
    ) -> None:
        """Test that upper-case hex does not match lower-case ids."""
        with pytest.raises(EntryNotFoundError):
            resolve(entry_repository, "ABC12345")

    @pytest.mark.parametrize("prefix", ["%", "_", "abc%", "abc_2345"])
    def test_prefix_wildcards_are_literal(
        self, entry_repository: EntryRepository, similar_entries: list[Entry], prefix: str
    ) -> None:
        """Test that SQL wildcard characters match only themselves."""
        with pytest.raises(EntryNotFoundError):
            resolve(entry_repository, prefix)


class TestImplicitReference:
    """Test cases for resolution without a reference."""

    def test_empty_store_raises_error(self, entry_repository: EntryRepository) -> None:
        """Test that nothing can be resolved in an empty store."""
        with pytest.raises(NoEntriesToEditError):
            resolve(entry_repository)

    def test_prefers_active_entry(
        self, entry_repository: EntryRepository, add_entry: Callable[..., Entry], local_day: datetime
    ) -> None:
        """Test that the active entry wins over a later-started closed one."""
        active = add_entry("Running", local_day + timedelta(hours=8))
        add_entry("Closed", local_day + timedelta(hours=10), local_day + timedelta(hours=11))

        assert resolve(entry_repository).id == active.id

    def test_falls_back_to_latest_start(
        self, entry_repository: EntryRepository, closed_entries: list[Entry]
    ) -> None:
        """Test that without an active entry the latest start is used."""
        assert resolve(entry_repository).id == closed_entries[-1].id

    @pytest.mark.parametrize("reference", [None, ""])
    def test_empty_reference_is_implicit(
        self, entry_repository: EntryRepository, closed_entries: list[Entry], reference: str
    ) -> None:
        """Test that an empty reference behaves like no reference."""
        assert resolve(entry_repository, reference).id == closed_entries[-1].id

    def test_resolution_is_stable(
        self, entry_repository: EntryRepository, closed_entries: list[Entry]
    ) -> None:
        """Test that resolving twice without changes gives the same entry."""
        for reference in [None, "-2", closed_entries[0].id[:8]]:
            assert resolve(entry_repository, reference) == resolve(entry_repository, reference)
