"""
Pytest configuration and fixtures for punch tests.

This module provides shared fixtures and configuration for all test modules.
"""

import tempfile
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Generator, Optional
from unittest.mock import Mock

import pytest

from punch.core.time_tracker import TimeTracker
from punch.db.models import Entry
from punch.db.repository import EntryRepository
from punch.db.schema import DatabaseManager
from punch.utils.config import ConfigManager


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmp_dir:
        yield Path(tmp_dir)


@pytest.fixture
def test_db_path(temp_dir: Path) -> Path:
    """Provide a test database path."""
    return temp_dir / "test_punch.db"


@pytest.fixture
def db_manager(test_db_path: Path) -> Generator[DatabaseManager, None, None]:
    """Provide an open, migrated test database."""
    with DatabaseManager(test_db_path) as manager:
        yield manager


@pytest.fixture
def entry_repository(db_manager: DatabaseManager) -> EntryRepository:
    """Provide a test entry repository."""
    return EntryRepository(db_manager)


@pytest.fixture
def time_tracker(entry_repository: EntryRepository) -> TimeTracker:
    """Provide a time tracker bound to the test database."""
    return TimeTracker(entry_repository)


@pytest.fixture
def local_day() -> datetime:
    """Provide a fixed local midnight (Wednesday 2026-01-14) to anchor entries."""
    return datetime(2026, 1, 14).astimezone()


@pytest.fixture
def add_entry(
    entry_repository: EntryRepository,
) -> Callable[..., Entry]:
    """Insert an entry directly, bypassing the lifecycle rules."""

    def _add(
        task_name: str,
        start_time: datetime,
        end_time: Optional[datetime] = None,
        project: Optional[str] = None,
        entry_id: Optional[str] = None,
    ) -> Entry:
        entry = Entry(
            task_name=task_name,
            project=project,
            start_time=start_time,
            end_time=end_time,
        )
        if entry_id is not None:
            entry.id = entry_id
        return entry_repository.insert(entry)

    return _add


@pytest.fixture
def closed_entries(
    add_entry: Callable[..., Entry], local_day: datetime
) -> list[Entry]:
    """Provide three closed entries A, B, C started one hour apart."""
    entries = []
    for i, name in enumerate(["A", "B", "C"]):
        start = local_day + timedelta(hours=9 + i)
        entries.append(add_entry(name, start, start + timedelta(minutes=30)))
    return entries


@pytest.fixture
def mock_config_manager(temp_dir: Path) -> Mock:
    """Provide a mocked configuration manager pointing at the temp directory."""
    mock_config = Mock(spec=ConfigManager)
    mock_config.get_data_dir.return_value = temp_dir
    mock_config.get_db_path.return_value = temp_dir / "punch.db"
    mock_config.get_log_path.return_value = temp_dir / "punch.log"
    mock_config.get_log_level.return_value = "DEBUG"
    mock_config.get_log_max_bytes.return_value = 100_000
    mock_config.get_log_backup_count.return_value = 1
    mock_config.get_max_task_name_length.return_value = 50
    return mock_config


# Mark tests that require database access
pytest_mark_db = pytest.mark.integration

# Mark unit tests
pytest_mark_unit = pytest.mark.unit
