"""Core models for devkaki.

This module defines the core data structures for task tracking:
- Task: An immutable dataclass representing a task and its properties
- TaskType: Enum for the kind of work a task represents
- Priority: Enum for task priority levels
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from enum import Enum
from typing import Optional, Tuple

import tzlocal


class TaskType(Enum):
    """Kind of work a task represents."""

    BUG = "bug"
    FEATURE = "feature"
    LEARNING = "learning"
    REFACTOR = "refactor"
    MEETING = "meeting"
    REVIEW = "review"

    @property
    def label(self) -> str:
        return self.value.capitalize()

    @property
    def icon(self) -> str:
        return _TYPE_ICONS[self]


_TYPE_ICONS = {
    TaskType.BUG: "\U0001f41b",
    TaskType.FEATURE: "✨",
    TaskType.LEARNING: "\U0001f4da",
    TaskType.REFACTOR: "\U0001f527",
    TaskType.MEETING: "\U0001f465",
    TaskType.REVIEW: "\U0001f440",
}


class Priority(Enum):
    """Task priority levels, highest first."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def label(self) -> str:
        return self.value.capitalize()


def new_task_id() -> str:
    """Generate a fresh opaque task identifier."""
    return str(uuid.uuid4())


def system_zone() -> tzinfo:
    """The system's IANA time zone (honours the TZ environment variable)."""
    return tzlocal.get_localzone()


def local_now() -> datetime:
    """Current time as an aware datetime in the system zone."""
    return datetime.now(system_zone())


@dataclass(frozen=True)
class Task:
    """Task model representing a single tracked item.

    Tasks are immutable: edits and completion toggles produce a replacement
    value with the same id (see ``dataclasses.replace``).

    Attributes:
        name: Display name of the task
        type: Kind of work (bug, feature, ...)
        priority: Priority level of the task
        id: Unique identifier, assigned at creation and never reassigned
        description: Free text, empty by default
        due_date: Deadline instant, None when the task has no deadline
        estimated_hours: Non-negative effort estimate
        is_completed: Whether the task is done
        created_at: Timestamp when the task was created. Left as None, it is
                    stamped by the store clock when the task is added.
        completed_at: Timestamp of completion, set iff is_completed
        tags: Ordered tags, as entered by the caller
    """

    name: str
    type: TaskType
    priority: Priority = Priority.MEDIUM
    id: str = field(default_factory=new_task_id)
    description: str = ""
    due_date: Optional[datetime] = None
    estimated_hours: int = 0
    is_completed: bool = False
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    tags: Tuple[str, ...] = ()
