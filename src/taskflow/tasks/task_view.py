# src/taskflow/tasks/task_view.py

"""
Derived, read-only task views: filter by completion status, then by priority,
then sort.

All sorts are stable (Python's sorted), so equal keys keep the relative order
of the input.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import StrEnum

from .task_models import Task, TaskPriority


class StatusFilter(StrEnum):
    ALL = "all"
    PENDING = "pending"
    COMPLETED = "completed"


class PriorityFilter(StrEnum):
    ALL = "all"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TaskSort(StrEnum):
    CREATED_AT_DESC = "created_at_desc"
    CREATED_AT_ASC = "created_at_asc"
    PRIORITY_DESC = "priority_desc"
    DEADLINE_ASC = "deadline_asc"


@dataclass(frozen=True, slots=True)
class TaskFilter:
    status: StatusFilter = StatusFilter.ALL
    priority: PriorityFilter = PriorityFilter.ALL
    sort: TaskSort = TaskSort.CREATED_AT_DESC


def _matches(task: Task, flt: TaskFilter) -> bool:
    if flt.status == StatusFilter.COMPLETED and not task.is_completed:
        return False
    if flt.status == StatusFilter.PENDING and task.is_completed:
        return False
    if flt.priority != PriorityFilter.ALL and task.priority != TaskPriority(flt.priority.value):
        return False
    return True


def sort_tasks(tasks: Iterable[Task], order: TaskSort) -> list[Task]:
    items = list(tasks)

    if order == TaskSort.CREATED_AT_ASC:
        return sorted(items, key=lambda t: t.created_at)

    if order == TaskSort.PRIORITY_DESC:
        return sorted(items, key=lambda t: t.priority.rank, reverse=True)

    if order == TaskSort.DEADLINE_ASC:
        dated = sorted((t for t in items if t.deadline is not None), key=lambda t: t.deadline)
        undated = [t for t in items if t.deadline is None]
        return dated + undated

    return sorted(items, key=lambda t: t.created_at, reverse=True)


def filter_and_sort(tasks: Iterable[Task], flt: TaskFilter | None = None) -> tuple[Task, ...]:
    flt = flt or TaskFilter()
    return tuple(sort_tasks((t for t in tasks if _matches(t, flt)), flt.sort))
