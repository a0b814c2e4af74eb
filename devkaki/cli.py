"""Command-line interface for devkaki.

This module provides the CLI for tracking tasks using argparse.
It supports the following commands:
- add: Create a new task
- edit: Change an existing task
- list: List all tasks, filtered by status and priority
- home: Today's progress, weekly sprint and the today/upcoming/overdue tabs
- show: Show a single task in detail
- toggle: Flip a task between pending and completed
- delete: Delete a task
- stats: Streak, totals and per-type/per-priority histograms
"""

import argparse
import logging
import sys
from datetime import date, datetime, time
from typing import Iterable, List, Optional

from devkaki import progress, queries
from devkaki.config import get_settings
from devkaki.errors import NotFoundError, TaskError, ValidationError
from devkaki.forms import DueOption, TaskForm
from devkaki.logging_setup import setup_logging
from devkaki.models import Priority, Task, TaskType
from devkaki.storage import JsonStorage
from devkaki.store import TaskStore

logger = logging.getLogger(__name__)

DATE_FORMAT = "%b %d, %Y"
SHORT_ID_LENGTH = 8
BAR_WIDTH = 20

TYPE_CHOICES = [t.value for t in TaskType]
PRIORITY_CHOICES = [p.value for p in Priority]
DUE_CHOICES = [o.value for o in DueOption] + ["none"]
TAB_CHOICES = ["today", "upcoming", "overdue"]


def _add_form_arguments(parser: argparse.ArgumentParser, editing: bool) -> None:
    """Add the task form options shared by 'add' and 'edit'.

    When editing, every option defaults to None so that only the given
    options change the task.
    """
    parser.add_argument(
        "--type",
        choices=TYPE_CHOICES,
        default=None if editing else TaskType.FEATURE.value,
        help="Task type" + ("" if editing else " (default: feature)"),
    )
    parser.add_argument(
        "--priority",
        choices=PRIORITY_CHOICES,
        default=None if editing else Priority.MEDIUM.value,
        help="Task priority" + ("" if editing else " (default: medium)"),
    )
    parser.add_argument(
        "--due",
        choices=DUE_CHOICES,
        default=None,
        help="Due date: today, tomorrow, week, custom (with --date) or none"
        + ("" if editing else " (default: today)"),
    )
    parser.add_argument("--date", help="Custom due date, YYYY-MM-DD or ISO 8601 timestamp")
    parser.add_argument("--tags", default=None, help="Comma-separated tags")
    parser.add_argument("--hours", default=None, help="Estimated hours")
    parser.add_argument("--description", default=None, help="Task description")


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        prog="devkaki",
        description="Personal task tracker"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    add_parser = subparsers.add_parser("add", help="Add a new task")
    add_parser.add_argument("name", help="Task name")
    _add_form_arguments(add_parser, editing=False)

    edit_parser = subparsers.add_parser("edit", help="Edit a task")
    edit_parser.add_argument("id", help="Task ID (or unique prefix)")
    edit_parser.add_argument("--name", default=None, help="New task name")
    _add_form_arguments(edit_parser, editing=True)

    list_parser = subparsers.add_parser("list", help="List tasks")
    list_parser.add_argument(
        "--status",
        choices=[s.value for s in queries.StatusFilter],
        default=queries.StatusFilter.ALL.value,
        help="Filter tasks by status (default: all)"
    )
    list_parser.add_argument("--priority", choices=PRIORITY_CHOICES, help="Filter tasks by priority")

    home_parser = subparsers.add_parser("home", help="Show the dashboard")
    home_parser.add_argument(
        "--tab",
        choices=TAB_CHOICES,
        default="today",
        help="Task list to show (default: today)"
    )

    show_parser = subparsers.add_parser("show", help="Show task details")
    show_parser.add_argument("id", help="Task ID (or unique prefix)")

    toggle_parser = subparsers.add_parser("toggle", help="Toggle task completion")
    toggle_parser.add_argument("id", help="Task ID (or unique prefix)")

    delete_parser = subparsers.add_parser("delete", help="Delete a task")
    delete_parser.add_argument("id", help="Task ID (or unique prefix)")

    subparsers.add_parser("stats", help="Show progress statistics")

    return parser


def format_date(instant: Optional[datetime]) -> str:
    if instant is None:
        return "No due date"
    return instant.strftime(DATE_FORMAT)


def format_task(task: Task) -> str:
    """Format a task as a single list line."""
    status_icon = "✓" if task.is_completed else " "
    line = (
        f"[{status_icon}] {task.id[:SHORT_ID_LENGTH]} {task.type.icon} {task.name} "
        f"[{task.priority.value}]"
    )
    if task.due_date is not None:
        line += f" due {format_date(task.due_date)}"
    return line


def format_bar(count: int, max_count: int) -> str:
    if max_count == 0:
        return ""
    return "#" * (count * BAR_WIDTH // max_count)


def parse_date(text: str, now: datetime) -> datetime:
    """Parse a custom due date typed on the command line.

    A bare date (any form ``date.fromisoformat`` accepts) means the end of
    that day. Naive timestamps are taken in the zone of ``now``.

    Raises:
        ValidationError: If the text is not an ISO 8601 date or timestamp
    """
    try:
        day = date.fromisoformat(text)
    except ValueError:
        pass
    else:
        return datetime.combine(day, time(23, 59, 59), tzinfo=now.tzinfo)

    try:
        instant = datetime.fromisoformat(text)
    except ValueError as exc:
        raise ValidationError(f"Invalid date {text!r}, expected YYYY-MM-DD") from exc
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=now.tzinfo)
    return instant


def resolve_task(store: TaskStore, ref: str) -> Task:
    """Find a task by full ID or unique ID prefix.

    Raises:
        NotFoundError: If no task matches
        ValidationError: If the prefix matches more than one task
    """
    task = store.get_by_id(ref)
    if task is not None:
        return task

    matches = [t for t in store.snapshot() if t.id.startswith(ref)] if ref else []
    if not matches:
        raise NotFoundError(ref)
    if len(matches) > 1:
        raise ValidationError(f"Task ID prefix '{ref}' is ambiguous ({len(matches)} tasks)")
    return matches[0]


def _apply_form_arguments(form: TaskForm, args: argparse.Namespace, now: datetime) -> TaskForm:
    if args.type is not None:
        form.type = TaskType(args.type)
    if args.priority is not None:
        form.priority = Priority(args.priority)
    if args.tags is not None:
        form.tags = args.tags
    if args.hours is not None:
        form.estimated_hours = args.hours
    if args.description is not None:
        form.description = args.description

    if args.date is not None:
        form.custom_date = parse_date(args.date, now)
        if args.due is None:
            form.due_option = DueOption.CUSTOM
    if args.due == "none":
        form.due_option = None
    elif args.due is not None:
        form.due_option = DueOption(args.due)
    return form


def _print_tasks(tasks: Iterable[Task], empty_message: str) -> None:
    tasks = list(tasks)
    if not tasks:
        print(empty_message)
        return
    for task in tasks:
        print(format_task(task))


def cmd_add(args: argparse.Namespace, store: TaskStore) -> int:
    """Handle the 'add' command.

    Args:
        args: Parsed command-line arguments
        store: TaskStore instance

    Returns:
        Exit code (0 for success)
    """
    now = store.clock()
    form = _apply_form_arguments(TaskForm(name=args.name), args, now)
    task = store.add(form.to_task(now))
    print(f"Task added: #{task.id} {task.name} [{task.priority.value}]")
    return 0


def cmd_edit(args: argparse.Namespace, store: TaskStore) -> int:
    """Handle the 'edit' command.

    Args:
        args: Parsed command-line arguments
        store: TaskStore instance

    Returns:
        Exit code (0 for success)
    """
    now = store.clock()
    existing = resolve_task(store, args.id)
    form = TaskForm.from_task(existing)
    if args.name is not None:
        form.name = args.name
    form = _apply_form_arguments(form, args, now)
    task = store.update(form.to_task(now, existing=existing))
    print(f"Task updated: #{task.id} {task.name} [{task.priority.value}]")
    return 0


def cmd_list(args: argparse.Namespace, store: TaskStore) -> int:
    """Handle the 'list' command.

    Args:
        args: Parsed command-line arguments
        store: TaskStore instance

    Returns:
        Exit code (0 for success)
    """
    priority = Priority(args.priority) if args.priority else None
    tasks = queries.filter_tasks(
        store.snapshot(), status=queries.StatusFilter(args.status), priority=priority
    )

    print(f"{len(tasks)} task(s)")
    _print_tasks(tasks, "No tasks found.")
    return 0


def cmd_home(args: argparse.Namespace, store: TaskStore) -> int:
    """Handle the 'home' command.

    Args:
        args: Parsed command-line arguments
        store: TaskStore instance

    Returns:
        Exit code (0 for success)
    """
    now = store.clock()
    tasks = store.snapshot()

    day = progress.today_progress(tasks, now)
    sprint = progress.weekly_sprint(tasks, now)
    print(f"Today's Progress: {day.completed} / {day.total} tasks done ({day.percent}%)")
    print(f"Weekly Sprint: {sprint.completed} / {sprint.total} ({sprint.percent}%)")
    print()

    views = {
        "today": (queries.today, "No tasks for today"),
        "upcoming": (queries.upcoming, "No upcoming tasks"),
        "overdue": (queries.overdue, "No overdue tasks"),
    }
    view, empty_message = views[args.tab]
    print(f"{args.tab.capitalize()}:")
    _print_tasks(view(tasks, now), empty_message)
    return 0


def cmd_show(args: argparse.Namespace, store: TaskStore) -> int:
    """Handle the 'show' command.

    Args:
        args: Parsed command-line arguments
        store: TaskStore instance

    Returns:
        Exit code (0 for success)
    """
    task = resolve_task(store, args.id)

    print(task.name)
    print(f"  ID:        {task.id}")
    print(f"  Status:    {'Completed' if task.is_completed else 'Pending'}")
    print(f"  Type:      {task.type.icon} {task.type.label}")
    print(f"  Priority:  {task.priority.label}")
    print(f"  Due Date:  {format_date(task.due_date)}")
    print(f"  Estimated: {task.estimated_hours} hours")
    if task.tags:
        print(f"  Tags:      {', '.join(task.tags)}")
    if task.description:
        print(f"  Description: {task.description}")
    print(f"  Created:   {format_date(task.created_at)}")
    if task.completed_at is not None:
        print(f"  Completed: {format_date(task.completed_at)}")
    return 0


def cmd_toggle(args: argparse.Namespace, store: TaskStore) -> int:
    """Handle the 'toggle' command.

    Args:
        args: Parsed command-line arguments
        store: TaskStore instance

    Returns:
        Exit code (0 for success)
    """
    task = store.toggle_completion(resolve_task(store, args.id).id)
    state = "done" if task.is_completed else "pending"
    print(f"Task #{task.id} marked as {state}: {task.name}")
    return 0


def cmd_delete(args: argparse.Namespace, store: TaskStore) -> int:
    """Handle the 'delete' command.

    Deleting an unknown id changes nothing and still succeeds.

    Args:
        args: Parsed command-line arguments
        store: TaskStore instance

    Returns:
        Exit code (0 for success)
    """
    try:
        task = resolve_task(store, args.id)
    except NotFoundError:
        print(f"Task #{args.id} not found, nothing deleted.")
        return 0
    store.delete(task.id)
    print(f"Task #{task.id} deleted.")
    return 0


def cmd_stats(args: argparse.Namespace, store: TaskStore) -> int:
    """Handle the 'stats' command.

    Args:
        args: Parsed command-line arguments
        store: TaskStore instance

    Returns:
        Exit code (0 for success)
    """
    report = progress.build_report(store.snapshot(), store.clock())

    streak_note = "Keep it going!" if report.streak > 0 else "Start today!"
    print(f"Streak: {report.streak} day(s). {streak_note}")
    print(f"Completed: {report.overall.completed} / {report.overall.total}")
    print(
        f"Weekly Sprint: {report.weekly_sprint.completed} / {report.weekly_sprint.total} "
        f"({report.weekly_sprint.percent}%)"
    )

    print()
    print("Tasks by Type:")
    max_count = max(report.by_type.values())
    for task_type, count in report.by_type.items():
        print(f"  {task_type.label:<9} {count:>3} {format_bar(count, max_count)}")

    print()
    print("Tasks by Priority:")
    max_count = max(report.by_priority.values())
    for priority, count in report.by_priority.items():
        print(f"  {priority.label:<9} {count:>3} {format_bar(count, max_count)}")
    return 0


COMMANDS = {
    "add": cmd_add,
    "edit": cmd_edit,
    "list": cmd_list,
    "home": cmd_home,
    "show": cmd_show,
    "toggle": cmd_toggle,
    "delete": cmd_delete,
    "stats": cmd_stats,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI.

    Args:
        argv: Command-line arguments. If None, uses sys.argv[1:]

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    handler = COMMANDS.get(args.command)
    if handler is None:
        print(f"Error: Unknown command '{args.command}'", file=sys.stderr)
        return 1

    try:
        settings = get_settings()
        setup_logging(settings.log_level)

        storage = JsonStorage(str(settings.db_path), tz=settings.timezone)
        store = TaskStore.from_snapshot(storage.load(), clock=settings.now)
        store.subscribe(storage.save)
        logger.debug("Loaded %d task(s) from %s", len(store), settings.db_path)

        return handler(args, store)
    except TaskError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
