"""Derived task views.

Every function here is pure: it takes a collection of tasks (usually a
TaskStore snapshot) and, where time matters, an explicit ``now``. Nothing
reads the system clock.

Calendar days are taken in the zone of ``now``: "today" is the half-open
window from midnight of ``now`` to the next midnight, and the week starts at
the most recent Monday midnight. Day arithmetic is wall-clock arithmetic, so
with an IANA zone a day across a DST change lasts 23 or 25 hours. Task
instants must be comparable with ``now`` (all aware or all naive).
"""

from collections import Counter
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, Iterable, List, NamedTuple, Optional

from devkaki.models import Priority, Task, TaskType

DAY = timedelta(hours=24)
WEEK = 7 * DAY

STREAK_MAX_DAYS = 30


class Window(NamedTuple):
    """Half-open time interval ``[start, end)``."""

    start: datetime
    end: datetime

    def contains(self, instant: Optional[datetime]) -> bool:
        return instant is not None and self.start <= instant < self.end


class StatusFilter(Enum):
    """Completion filter of the all-tasks view."""

    ALL = "all"
    COMPLETED = "completed"
    PENDING = "pending"


def start_of_day(now: datetime) -> datetime:
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def day_window(now: datetime) -> Window:
    start = start_of_day(now)
    return Window(start, start + DAY)


def week_window(now: datetime) -> Window:
    """Window of the week containing ``now``, starting Monday at midnight."""
    start = start_of_day(now) - timedelta(days=now.weekday())
    return Window(start, start + WEEK)


def today(tasks: Iterable[Task], now: datetime) -> List[Task]:
    """Tasks due today, whatever their completion state."""
    window = day_window(now)
    return [task for task in tasks if window.contains(task.due_date)]


def upcoming(tasks: Iterable[Task], now: datetime) -> List[Task]:
    """Open tasks due tomorrow or later."""
    tomorrow = day_window(now).end
    return [
        task
        for task in tasks
        if task.due_date is not None and task.due_date >= tomorrow and not task.is_completed
    ]


def overdue(tasks: Iterable[Task], now: datetime) -> List[Task]:
    """Open tasks due before today."""
    midnight = start_of_day(now)
    return [
        task
        for task in tasks
        if task.due_date is not None and task.due_date < midnight and not task.is_completed
    ]


def weekly(tasks: Iterable[Task], now: datetime) -> List[Task]:
    """Tasks due this week, whatever their completion state."""
    window = week_window(now)
    return [task for task in tasks if window.contains(task.due_date)]


def completed(tasks: Iterable[Task]) -> List[Task]:
    return [task for task in tasks if task.is_completed]


def pending(tasks: Iterable[Task]) -> List[Task]:
    return [task for task in tasks if not task.is_completed]


def by_priority(tasks: Iterable[Task], priority: Priority) -> List[Task]:
    return [task for task in tasks if task.priority == priority]


def by_type(tasks: Iterable[Task], task_type: TaskType) -> List[Task]:
    return [task for task in tasks if task.type == task_type]


def filter_tasks(
    tasks: Iterable[Task],
    status: StatusFilter = StatusFilter.ALL,
    priority: Optional[Priority] = None,
) -> List[Task]:
    """Filter tasks by completion status and, optionally, priority.

    Args:
        tasks: Tasks to filter
        status: Which completion states to keep (default: ALL)
        priority: If provided, only tasks with this priority are kept

    Returns:
        Matching tasks in their original order
    """
    result = []
    for task in tasks:
        if status == StatusFilter.COMPLETED and not task.is_completed:
            continue
        if status == StatusFilter.PENDING and task.is_completed:
            continue
        if priority is not None and task.priority != priority:
            continue
        result.append(task)
    return result


def group_counts_by_type(tasks: Iterable[Task]) -> Dict[TaskType, int]:
    """Count tasks per type.

    Only types that occur are present, in first-seen order.
    """
    return dict(Counter(task.type for task in tasks))


def group_counts_by_priority(tasks: Iterable[Task]) -> Dict[Priority, int]:
    """Count tasks per priority.

    Only priorities that occur are present, in first-seen order.
    """
    return dict(Counter(task.priority for task in tasks))


def completion_ratio(tasks: Iterable[Task]) -> float:
    """Fraction of completed tasks, 0.0 for an empty collection."""
    total = 0
    done = 0
    for task in tasks:
        total += 1
        if task.is_completed:
            done += 1
    if total == 0:
        return 0.0
    return done / total


def streak(tasks: Iterable[Task], now: datetime) -> int:
    """Count consecutive days with at least one completion, ending today.

    The scan walks backward one day at a time from the day containing
    ``now``. A day without completions stops the scan, except today: an
    empty today is not counted but the scan goes on with yesterday. At most
    STREAK_MAX_DAYS days are examined.

    Args:
        tasks: Tasks to inspect; only their completed_at matters
        now: Current instant

    Returns:
        Length of the current streak, between 0 and STREAK_MAX_DAYS
    """
    stamps = [task.completed_at for task in tasks if task.completed_at is not None]
    if not stamps:
        return 0

    midnight = start_of_day(now)
    count = 0
    for offset in range(STREAK_MAX_DAYS):
        window = Window(midnight - offset * DAY, midnight - offset * DAY + DAY)
        if any(window.contains(stamp) for stamp in stamps):
            count += 1
        elif offset > 0:
            break
    return count
