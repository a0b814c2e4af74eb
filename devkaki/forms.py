"""Create/edit form handling.

Turns the raw values of the task form (free text name, a due-date
selection mode, comma-separated tags, digit-only hours) into a Task that
can be handed to the store.
"""

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional, Tuple

from devkaki.errors import ValidationError
from devkaki.models import Priority, Task, TaskType


class DueOption(Enum):
    """Due-date selection modes offered by the form."""

    TODAY = "today"
    TOMORROW = "tomorrow"
    THIS_WEEK = "week"
    CUSTOM = "custom"


_OPTION_OFFSET_DAYS = {
    DueOption.TODAY: 0,
    DueOption.TOMORROW: 1,
    DueOption.THIS_WEEK: 7,
}


def end_of_day(instant: datetime) -> datetime:
    return instant.replace(hour=23, minute=59, second=59, microsecond=0)


def resolve_due_date(
    option: DueOption, now: datetime, custom: Optional[datetime] = None
) -> datetime:
    """Resolve a due-date selection mode into a concrete instant.

    Today, tomorrow and this week resolve to the last second of the day that
    is 0, 1 or 7 days after ``now``.

    Args:
        option: Selected mode
        now: Current instant
        custom: The picked instant, required for DueOption.CUSTOM

    Returns:
        The due date

    Raises:
        ValidationError: If CUSTOM is selected without a date
    """
    if option == DueOption.CUSTOM:
        if custom is None:
            raise ValidationError("A custom due date requires a date")
        return custom
    return end_of_day(now + timedelta(days=_OPTION_OFFSET_DAYS[option]))


def parse_tags(text: str) -> Tuple[str, ...]:
    """Split comma-separated tags, trimming whitespace and dropping empties."""
    return tuple(part.strip() for part in text.split(",") if part.strip())


def parse_estimated_hours(text: str) -> int:
    """Read an hours estimate, keeping digits only (0 when none are left)."""
    digits = "".join(char for char in text if char.isdigit())
    return int(digits) if digits else 0


@dataclass
class TaskForm:
    """Raw values of the create/edit form.

    Attributes:
        name: Task name as typed
        type: Selected task type
        priority: Selected priority
        due_option: Selected due-date mode, None for no deadline
        custom_date: Picked date when due_option is CUSTOM
        tags: Comma-separated tags
        estimated_hours: Hours as typed
        description: Free text description
    """

    name: str
    type: TaskType = TaskType.FEATURE
    priority: Priority = Priority.MEDIUM
    due_option: Optional[DueOption] = DueOption.TODAY
    custom_date: Optional[datetime] = None
    tags: str = ""
    estimated_hours: str = ""
    description: str = ""

    @classmethod
    def from_task(cls, task: Task) -> "TaskForm":
        """Prefill a form from an existing task, as the edit flow does."""
        return cls(
            name=task.name,
            type=task.type,
            priority=task.priority,
            due_option=DueOption.CUSTOM if task.due_date is not None else None,
            custom_date=task.due_date,
            tags=", ".join(task.tags),
            estimated_hours=str(task.estimated_hours),
            description=task.description,
        )

    def to_task(self, now: datetime, existing: Optional[Task] = None) -> Task:
        """Build the task described by this form.

        Args:
            now: Current instant, used to resolve the due date and as the
                 creation time of a new task
            existing: Task being edited. Its id, completion state and
                      creation time are kept.

        Returns:
            The new or replacement Task

        Raises:
            ValidationError: If the name is blank or the due date is missing
        """
        if not self.name.strip():
            raise ValidationError("Task name cannot be blank")

        due_date = None
        if self.due_option is not None:
            due_date = resolve_due_date(self.due_option, now, self.custom_date)

        fields = dict(
            name=self.name.strip(),
            type=self.type,
            priority=self.priority,
            description=self.description,
            due_date=due_date,
            estimated_hours=parse_estimated_hours(self.estimated_hours),
            tags=parse_tags(self.tags),
        )
        if existing is not None:
            return replace(existing, **fields)
        return Task(created_at=now, **fields)
