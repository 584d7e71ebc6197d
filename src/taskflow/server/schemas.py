# src/taskflow/server/schemas.py

"""
Request bodies for the route handlers.

Fields are deliberately loose (all optional): the handlers do their own
required-field checks so the error messages and status codes match the API
contract instead of FastAPI's default 422 payload.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, field_validator


class EmailBody(BaseModel):
    email: str | None = None


class OtpBody(BaseModel):
    email: str | None = None
    token: str | None = None


class CredentialsBody(BaseModel):
    email: str | None = None
    password: str | None = None


class ResetPasswordBody(BaseModel):
    password: str | None = None
    email: str | None = None
    token: str | None = None


class TaskCreateBody(BaseModel):
    title: str | None = None
    description: str | None = None
    priority: str | None = None
    deadline: datetime | None = None

    @field_validator("deadline", mode="before")
    @classmethod
    def empty_deadline_is_none(cls, v: Any) -> Any:
        return None if v == "" else v


class TaskUpdateBody(TaskCreateBody):
    is_completed: bool | None = None
