"""
Database models for punch.

This module defines the Pydantic models for time entries and the request and
result shapes the core operations exchange with the command line.
"""

from datetime import datetime
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator

from ..utils.time_parsing import local_now


def new_entry_id() -> str:
    """Generate a random entry identifier."""
    return str(uuid4())


class Entry(BaseModel):
    """Model for one tracked span of work, active while end_time is None."""

    id: str = Field(default_factory=new_entry_id, description="Unique entry identifier")
    task_name: str = Field(..., min_length=1, description="Name of the task")
    project: Optional[str] = Field(None, description="Optional project label")
    start_time: datetime = Field(
        default_factory=local_now, description="Entry start time"
    )
    end_time: Optional[datetime] = Field(
        None, description="Entry end time (None for the active entry)"
    )
    last_activity: Optional[datetime] = Field(
        None, description="Reserved for heartbeat tracking"
    )
    created_at: datetime = Field(
        default_factory=local_now, description="Row creation time"
    )
    updated_at: datetime = Field(
        default_factory=local_now, description="Last modification time"
    )

    @field_validator("task_name")
    @classmethod
    def validate_task_name(cls, v: str) -> str:
        """Trim the task name and reject blank names."""
        v = v.strip()
        if not v:
            raise ValueError("Task name cannot be empty")
        return v

    @property
    def is_active(self) -> bool:
        """Whether the entry is still running."""
        return self.end_time is None

    @property
    def duration_ms(self) -> Optional[int]:
        """Get entry duration in milliseconds. Returns None for the active entry."""
        if self.end_time is None:
            return None
        return round((self.end_time - self.start_time).total_seconds() * 1000)


class EditOptions(BaseModel):
    """Changes requested for one entry; None leaves a field untouched."""

    reference: Optional[str] = Field(
        None, description="Id prefix or relative position such as -1"
    )
    task_name: Optional[str] = Field(None, description="New task name")
    project: Optional[str] = Field(None, description="New project label")
    start: Optional[str] = Field(None, description="New start time text")
    end: Optional[str] = Field(None, description="New end time text")


class LogOptions(BaseModel):
    """Filters for the log view."""

    today: bool = Field(False, description="Entries started today")
    week: bool = Field(False, description="Entries started this week")
    month: bool = Field(False, description="Entries started this month")
    project: Optional[str] = Field(None, description="Exact project to match")


class LogEntry(BaseModel):
    """Display-ready projection of an entry for the log view."""

    id: str
    task_name: str
    project: Optional[str] = None
    start_time: datetime
    end_time: Optional[datetime] = None
    duration: Optional[int] = Field(None, description="Duration in milliseconds")
    formatted_duration: str
    formatted_start: str
    formatted_end: str
