# src/taskflow/client/task_controller.py

"""
Client-side task state.

Holds the authenticated user's tasks as last confirmed by the server, plus
at most one optimistic guess per task while a completion toggle is in flight.

Key invariants:
- create/update/delete touch the local collection only after the server confirms,
- toggle_complete applies locally first and always ends in either the
  server-returned task or the pre-toggle value (never a stale guess),
- view() never mutates the collection.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any

from ..core.errors import ValidationError, get_error_message
from ..tasks.task_models import Task, TaskPriority, format_timestamp, task_from_row
from ..tasks.task_view import TaskFilter, filter_and_sort
from .http import ApiClient

logger = logging.getLogger(__name__)

_UNSET: Any = object()


@dataclass(frozen=True, slots=True)
class OpResult:
    success: bool
    task: Task | None = None
    error: str | None = None


@dataclass(frozen=True, slots=True)
class _LocalChange:
    """One applied local edit and how to undo it."""

    task_id: str
    applied: dict[str, Any]
    inverse: dict[str, Any]


class TaskController:
    def __init__(self, api: ApiClient, *, settle_delay_seconds: float = 0.05) -> None:
        self._api = api
        self._settle_delay = max(0.0, float(settle_delay_seconds))
        self._settled = False
        self._busy: set[str] = set()

        self.tasks: list[Task] = []
        self.is_loading = False
        self.error: str | None = None

    # ---- local state helpers ----

    def _index(self, task_id: str) -> int | None:
        for i, t in enumerate(self.tasks):
            if t.id == task_id:
                return i
        return None

    def get(self, task_id: str) -> Task | None:
        i = self._index(task_id)
        return self.tasks[i] if i is not None else None

    def is_busy(self, task_id: str) -> bool:
        return task_id in self._busy

    def _apply(self, task_id: str, fields: dict[str, Any]) -> _LocalChange | None:
        i = self._index(task_id)
        if i is None:
            return None
        current = self.tasks[i]
        inverse = {k: getattr(current, k) for k in fields}
        self.tasks[i] = replace(current, **fields)
        return _LocalChange(task_id=task_id, applied=dict(fields), inverse=inverse)

    def _revert(self, change: _LocalChange) -> None:
        i = self._index(change.task_id)
        if i is None:
            return
        self.tasks[i] = replace(self.tasks[i], **change.inverse)

    def _replace(self, task: Task) -> None:
        i = self._index(task.id)
        if i is not None:
            self.tasks[i] = task

    def _fail(self, err: Any) -> OpResult:
        msg = get_error_message(err)
        self.error = msg
        return OpResult(success=False, error=msg)

    # ---- operations ----

    async def load(self) -> OpResult:
        """Replace the collection with the server's list; on failure clear it."""
        if not self._settled:
            # The session cookie may not be visible to the API immediately after login.
            await asyncio.sleep(self._settle_delay)
            self._settled = True

        self.is_loading = True
        self.error = None
        try:
            result = await self._api.fetch_tasks()
            self.tasks = [task_from_row(row) for row in result.get("tasks") or []]
            logger.debug("Loaded %d tasks", len(self.tasks))
            return OpResult(success=True)
        except Exception as e:
            logger.info("Task load failed: %s", e)
            self.tasks = []
            return self._fail(e)
        finally:
            self.is_loading = False

    async def create(
        self,
        title: str,
        description: str | None = None,
        priority: TaskPriority | str | None = None,
        deadline: datetime | None = None,
    ) -> OpResult:
        if not title or not title.strip():
            return self._fail(ValidationError("Task title is required"))

        prio = TaskPriority.from_raw(priority)
        try:
            result = await self._api.create_task(
                title.strip(),
                description,
                prio.value,
                format_timestamp(deadline),
            )
            task = task_from_row(result["task"])
        except Exception as e:
            logger.info("Task create failed: %s", e)
            return self._fail(e)

        self.tasks.insert(0, task)
        return OpResult(success=True, task=task)

    async def update(
        self,
        task_id: str,
        *,
        title: str | None = _UNSET,
        description: str | None = _UNSET,
        is_completed: bool = _UNSET,
        priority: TaskPriority | str = _UNSET,
        deadline: datetime | None = _UNSET,
    ) -> OpResult:
        """Send only the fields that were passed; None clears description/deadline."""
        updates: dict[str, Any] = {}
        if title is not _UNSET:
            if title is None or not title.strip():
                return self._fail(ValidationError("Task title cannot be empty"))
            updates["title"] = title.strip()
        if description is not _UNSET:
            updates["description"] = description
        if is_completed is not _UNSET:
            updates["is_completed"] = bool(is_completed)
        if priority is not _UNSET:
            parsed = TaskPriority.parse(priority)
            if parsed is not None:
                updates["priority"] = str(parsed)
        if deadline is not _UNSET:
            updates["deadline"] = format_timestamp(deadline)

        self._busy.add(task_id)
        try:
            result = await self._api.update_task(task_id, updates)
            task = task_from_row(result["task"])
        except Exception as e:
            logger.info("Task update failed id=%s: %s", task_id, e)
            return self._fail(e)
        finally:
            self._busy.discard(task_id)

        self._replace(task)
        return OpResult(success=True, task=task)

    async def delete(self, task_id: str) -> OpResult:
        self._busy.add(task_id)
        try:
            await self._api.delete_task(task_id)
        except Exception as e:
            logger.info("Task delete failed id=%s: %s", task_id, e)
            return self._fail(e)
        finally:
            self._busy.discard(task_id)

        self.tasks = [t for t in self.tasks if t.id != task_id]
        return OpResult(success=True)

    async def toggle_complete(self, task_id: str, is_completed: bool) -> OpResult:
        """Optimistic: flip locally, commit remotely, undo the local flip on failure."""
        change = self._apply(task_id, {"is_completed": bool(is_completed)})
        self._busy.add(task_id)
        try:
            result = await self._api.toggle_task_complete(task_id, bool(is_completed))
            confirmed = task_from_row(result["task"]) if result.get("task") else None
        except Exception as e:
            if change is not None:
                self._revert(change)
            logger.info("Toggle failed id=%s, rolled back: %s", task_id, e)
            return self._fail(e)
        finally:
            self._busy.discard(task_id)

        if confirmed is not None:
            self._replace(confirmed)
        return OpResult(success=True, task=confirmed or self.get(task_id))

    def view(self, task_filter: TaskFilter | None = None) -> tuple[Task, ...]:
        return filter_and_sort(self.tasks, task_filter)
