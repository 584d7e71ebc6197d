# src/taskflow/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) for the hosted auth/database provider.

Route handlers depend on these Protocols instead of a concrete client, so the
HTTP provider and the in-memory provider are interchangeable (and tests never
need the network).

Failures are reported by raising ProviderError.
"""

from dataclasses import dataclass
from typing import Any, Protocol

TaskRow = dict[str, Any]
# Provider row for the tasks table: {"id", "user_id", "title", ...}.


@dataclass(frozen=True, slots=True)
class AuthUser:
    id: str
    email: str | None


@dataclass(frozen=True, slots=True)
class AuthSession:
    access_token: str
    refresh_token: str | None
    expires_in: int | None
    expires_at: int | None
    user: AuthUser | None

    def to_json(self) -> dict[str, Any]:
        return {
            "accessToken": self.access_token,
            "refreshToken": self.refresh_token,
            "expiresIn": self.expires_in,
            "expiresAt": self.expires_at,
        }


class AuthProvider(Protocol):
    """Email OTP + password authentication, plus the admin calls the handlers need."""

    async def send_email_otp(self, email: str) -> None: ...
    async def verify_email_otp(self, email: str, token: str) -> AuthSession: ...
    async def sign_in_with_password(self, email: str, password: str) -> AuthSession: ...
    async def get_user(self, access_token: str) -> AuthUser: ...
    async def sign_out(self, access_token: str) -> None: ...
    async def send_password_recovery(self, email: str, redirect_to: str) -> None: ...

    # Admin (service credentials)
    async def find_user_by_email(self, email: str) -> AuthUser | None: ...
    async def update_user_password(self, user_id: str, password: str) -> None: ...


class TaskTable(Protocol):
    """
    Per-user task rows.

    Every call carries the caller's access token and user id; implementations
    must never return or touch rows owned by another user.
    """

    async def list_tasks(self, access_token: str, user_id: str) -> list[TaskRow]: ...
    async def get_task(self, access_token: str, user_id: str, task_id: str) -> TaskRow | None: ...
    async def insert_task(self, access_token: str, row: TaskRow) -> TaskRow: ...
    async def update_task(
            self,
            access_token: str,
            user_id: str,
            task_id: str,
            changes: dict[str, Any],
    ) -> TaskRow | None: ...
    async def delete_task(self, access_token: str, user_id: str, task_id: str) -> bool: ...


class ProfileTable(Protocol):
    """user_profiles rows (service credentials)."""

    async def upsert_profile(self, row: dict[str, Any]) -> None: ...
    async def update_profile(self, user_id: str, changes: dict[str, Any]) -> None: ...
    async def get_profile(self, user_id: str) -> dict[str, Any] | None: ...
