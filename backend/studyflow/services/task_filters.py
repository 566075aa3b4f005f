"""Search/priority/status filtering over a user's task list."""

from collections.abc import Sequence
from typing import Protocol, TypeVar

from studyflow.schemas.tasks import TaskCounts


class FilterableTask(Protocol):
    text: str
    priority: str
    completed: bool


T = TypeVar("T", bound=FilterableTask)


def matches_search(task: FilterableTask, search: str | None) -> bool:
    if not search:
        return True
    return search.lower() in task.text.lower()


def matches_priority(task: FilterableTask, priority: str) -> bool:
    return priority == "all" or task.priority == priority


def matches_status(task: FilterableTask, status: str) -> bool:
    if status == "completed":
        return task.completed
    if status == "pending":
        return not task.completed
    return True


def filter_tasks(
    tasks: Sequence[T],
    search: str | None = None,
    priority: str = "all",
    status: str = "all",
) -> list[T]:
    """
    Return the tasks satisfying all three filters, in input order.

    Args:
        tasks: Tasks to filter (ORM rows or schemas)
        search: Case-insensitive substring matched against task text
        priority: "all" or one of low/medium/high
        status: "all", "completed" or "pending"
    """
    return [
        task
        for task in tasks
        if matches_search(task, search)
        and matches_priority(task, priority)
        and matches_status(task, status)
    ]


def summarize(
    tasks: Sequence[FilterableTask],
    filtered: Sequence[FilterableTask],
    search: str | None = None,
    priority: str = "all",
    status: str = "all",
) -> TaskCounts:
    """Completion counters for the full and the filtered list."""
    return TaskCounts(
        completed_count=sum(1 for task in tasks if task.completed),
        total_count=len(tasks),
        filtered_completed_count=sum(1 for task in filtered if task.completed),
        filtered_total_count=len(filtered),
        is_filtered=bool(search) or priority != "all" or status != "all",
    )
