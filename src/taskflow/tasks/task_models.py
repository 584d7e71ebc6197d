# src/taskflow/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any


class TaskPriority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def from_raw(cls, raw: Any) -> TaskPriority:
        """Coerce anything unknown (or missing) to LOW."""
        if not raw:
            return cls.LOW
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            return cls.LOW

    @classmethod
    def parse(cls, raw: Any) -> TaskPriority | None:
        """Strict variant: None when raw is not a known priority."""
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            return None

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    TaskPriority.HIGH: 3,
    TaskPriority.MEDIUM: 2,
    TaskPriority.LOW: 1,
}


@dataclass(slots=True)
class Task:
    id: str
    user_id: str
    title: str
    description: str | None
    is_completed: bool
    priority: TaskPriority
    deadline: datetime | None
    created_at: datetime
    updated_at: datetime


def utcnow() -> datetime:
    return datetime.now(UTC)


def parse_timestamp(raw: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp (as stored by the provider). Naive values are taken as UTC."""
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        dt = raw
    else:
        dt = datetime.fromisoformat(str(raw).strip())
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt


def format_timestamp(dt: datetime | None) -> str | None:
    return dt.isoformat() if dt is not None else None


def normalize_description(raw: Any) -> str | None:
    if raw is None:
        return None
    text = str(raw).strip()
    return text or None


def task_from_row(row: dict[str, Any]) -> Task:
    """
    Build a Task from a provider/handler JSON row.

    Missing priority falls back to low, missing deadline to None.
    """
    created_at = parse_timestamp(row.get("created_at")) or utcnow()
    return Task(
        id=str(row["id"]),
        user_id=str(row.get("user_id") or ""),
        title=str(row.get("title") or ""),
        description=normalize_description(row.get("description")),
        is_completed=bool(row.get("is_completed", False)),
        priority=TaskPriority.from_raw(row.get("priority")),
        deadline=parse_timestamp(row.get("deadline")),
        created_at=created_at,
        updated_at=parse_timestamp(row.get("updated_at")) or created_at,
    )


def task_to_json(task: Task) -> dict[str, Any]:
    return {
        "id": task.id,
        "user_id": task.user_id,
        "title": task.title,
        "description": task.description,
        "is_completed": task.is_completed,
        "priority": task.priority.value,
        "deadline": format_timestamp(task.deadline),
        "created_at": format_timestamp(task.created_at),
        "updated_at": format_timestamp(task.updated_at),
    }
