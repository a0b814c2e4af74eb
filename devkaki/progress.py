"""Progress statistics for the dashboard and the stats view.

Aggregates built on top of the query functions. Histograms here are
zero-filled over the full TaskType and Priority domains, in declaration
order, so renderers can draw a fixed set of bars.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable

from devkaki import queries
from devkaki.models import Priority, Task, TaskType


@dataclass(frozen=True)
class Progress:
    """Completed versus total count over some set of tasks."""

    completed: int
    total: int

    @property
    def ratio(self) -> float:
        if self.total == 0:
            return 0.0
        return self.completed / self.total

    @property
    def percent(self) -> int:
        if self.total == 0:
            return 0
        return self.completed * 100 // self.total


@dataclass(frozen=True)
class ProgressReport:
    """Everything the progress view renders.

    Attributes:
        streak: Current consecutive-day completion streak
        overall: Completed versus total over all tasks
        weekly_sprint: Completed versus total over this week's tasks
        by_type: Task count per type, every type present
        by_priority: Task count per priority, every priority present
    """

    streak: int
    overall: Progress
    weekly_sprint: Progress
    by_type: Dict[TaskType, int]
    by_priority: Dict[Priority, int]


def progress_of(tasks: Iterable[Task]) -> Progress:
    tasks = list(tasks)
    return Progress(completed=len(queries.completed(tasks)), total=len(tasks))


def today_progress(tasks: Iterable[Task], now: datetime) -> Progress:
    """Progress over the tasks due today."""
    return progress_of(queries.today(tasks, now))


def weekly_sprint(tasks: Iterable[Task], now: datetime) -> Progress:
    """Progress over the tasks due this week."""
    return progress_of(queries.weekly(tasks, now))


def type_histogram(tasks: Iterable[Task]) -> Dict[TaskType, int]:
    counts = queries.group_counts_by_type(tasks)
    return {task_type: counts.get(task_type, 0) for task_type in TaskType}


def priority_histogram(tasks: Iterable[Task]) -> Dict[Priority, int]:
    counts = queries.group_counts_by_priority(tasks)
    return {priority: counts.get(priority, 0) for priority in Priority}


def build_report(tasks: Iterable[Task], now: datetime) -> ProgressReport:
    """Compute the full progress report for a snapshot.

    Args:
        tasks: Tasks to summarize, usually a store snapshot
        now: Current instant

    Returns:
        ProgressReport for the given tasks
    """
    tasks = list(tasks)
    return ProgressReport(
        streak=queries.streak(queries.completed(tasks), now),
        overall=progress_of(tasks),
        weekly_sprint=weekly_sprint(tasks, now),
        by_type=type_histogram(tasks),
        by_priority=priority_histogram(tasks),
    )
