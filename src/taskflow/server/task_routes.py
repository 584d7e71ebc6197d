# src/taskflow/server/task_routes.py

"""
Task CRUD handlers.

Every route authenticates the bearer token with the provider, then scopes
every table call to the authenticated user's id, so a task is only ever
visible to (and mutable by) its owner. Error bodies use {error, details?}.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..core.errors import ProviderError
from ..core.ports import AuthUser
from ..tasks.task_models import TaskPriority, format_timestamp, normalize_description, utcnow
from .schemas import TaskCreateBody, TaskUpdateBody
from .services import Services, get_services

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/tasks", tags=["tasks"])

bearer = HTTPBearer(auto_error=False)


class RouteError(Exception):
    """Short-circuits a handler with a ready JSON body (see the app's exception handler)."""

    def __init__(self, status: int, body: dict[str, Any]) -> None:
        super().__init__(body.get("error") or body.get("message"))
        self.status = status
        self.body = body


@dataclass(frozen=True, slots=True)
class Caller:
    user: AuthUser
    token: str


async def require_caller(
    creds: HTTPAuthorizationCredentials | None = Depends(bearer),
    services: Services = Depends(get_services),
) -> Caller:
    if creds is None or not creds.credentials:
        raise RouteError(401, {"error": "Unauthorized - No token provided"})

    try:
        user = await services.auth.get_user(creds.credentials)
    except ProviderError as e:
        logger.info("Rejected bearer token: %s", e.message)
        raise RouteError(401, {"error": "Unauthorized - Invalid token"}) from e

    return Caller(user=user, token=creds.credentials)


def _internal_error(where: str, e: Exception) -> JSONResponse:
    logger.exception("%s failed", where)
    return JSONResponse({"error": "Internal server error", "details": str(e)}, status_code=500)


@router.get("")
async def list_tasks(
    caller: Caller = Depends(require_caller),
    services: Services = Depends(get_services),
) -> JSONResponse:
    try:
        rows = await services.tasks.list_tasks(caller.token, caller.user.id)
    except ProviderError as e:
        logger.warning("list_tasks failed user_id=%s: %s", caller.user.id, e.message)
        return JSONResponse({"error": "Failed to fetch tasks", "details": e.message}, status_code=500)
    except Exception as e:
        return _internal_error("list_tasks", e)
    return JSONResponse({"tasks": rows})


@router.post("")
async def create_task(
    body: TaskCreateBody,
    caller: Caller = Depends(require_caller),
    services: Services = Depends(get_services),
) -> JSONResponse:
    title = (body.title or "").strip()
    if not title:
        return JSONResponse({"error": "Task title is required"}, status_code=400)

    row = {
        "user_id": caller.user.id,
        "title": title,
        "description": normalize_description(body.description),
        "is_completed": False,
        "priority": TaskPriority.from_raw(body.priority).value,
        "deadline": format_timestamp(body.deadline),
    }
    try:
        task = await services.tasks.insert_task(caller.token, row)
    except ProviderError as e:
        logger.warning("insert_task failed user_id=%s: %s", caller.user.id, e.message)
        return JSONResponse({"error": "Failed to create task", "details": e.message}, status_code=500)
    except Exception as e:
        return _internal_error("create_task", e)

    logger.info("Task created id=%s user_id=%s", task.get("id"), caller.user.id)
    return JSONResponse({"task": task}, status_code=201)


@router.get("/{task_id}")
async def get_task(
    task_id: str,
    caller: Caller = Depends(require_caller),
    services: Services = Depends(get_services),
) -> JSONResponse:
    try:
        task = await services.tasks.get_task(caller.token, caller.user.id, task_id)
    except ProviderError as e:
        logger.info("get_task failed id=%s: %s", task_id, e.message)
        task = None
    except Exception as e:
        return _internal_error("get_task", e)

    if not task:
        return JSONResponse({"error": "Task not found"}, status_code=404)
    return JSONResponse({"task": task})


@router.put("/{task_id}")
async def update_task(
    task_id: str,
    body: TaskUpdateBody,
    caller: Caller = Depends(require_caller),
    services: Services = Depends(get_services),
) -> JSONResponse:
    provided = body.model_fields_set
    changes: dict[str, Any] = {"updated_at": format_timestamp(utcnow())}

    if "title" in provided:
        title = (body.title or "").strip()
        if not title:
            return JSONResponse({"error": "Task title cannot be empty"}, status_code=400)
        changes["title"] = title

    if "description" in provided:
        changes["description"] = normalize_description(body.description)

    if "is_completed" in provided and body.is_completed is not None:
        changes["is_completed"] = body.is_completed

    if "priority" in provided:
        # Unknown priorities are ignored rather than rejected.
        priority = TaskPriority.parse(body.priority)
        if priority is not None:
            changes["priority"] = priority.value

    if "deadline" in provided:
        changes["deadline"] = format_timestamp(body.deadline)

    try:
        task = await services.tasks.update_task(caller.token, caller.user.id, task_id, changes)
    except ProviderError as e:
        logger.info("update_task failed id=%s: %s", task_id, e.message)
        task = None
    except Exception as e:
        return _internal_error("update_task", e)

    if not task:
        return JSONResponse({"error": "Failed to update task or task not found"}, status_code=404)
    logger.debug("Task updated id=%s fields=%s", task_id, sorted(changes))
    return JSONResponse({"task": task})


@router.delete("/{task_id}")
async def delete_task(
    task_id: str,
    caller: Caller = Depends(require_caller),
    services: Services = Depends(get_services),
) -> JSONResponse:
    try:
        deleted = await services.tasks.delete_task(caller.token, caller.user.id, task_id)
    except ProviderError as e:
        logger.info("delete_task failed id=%s: %s", task_id, e.message)
        deleted = False
    except Exception as e:
        return _internal_error("delete_task", e)

    if not deleted:
        return JSONResponse({"error": "Failed to delete task or task not found"}, status_code=404)
    logger.info("Task deleted id=%s user_id=%s", task_id, caller.user.id)
    return JSONResponse({"message": "Task deleted successfully"})
