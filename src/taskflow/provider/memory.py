# src/taskflow/provider/memory.py

from __future__ import annotations

import hashlib
import logging
import secrets
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from ..core.errors import ProviderError
from ..core.ports import AuthSession, AuthUser, TaskRow
from ..tasks.task_models import format_timestamp, parse_timestamp, utcnow

logger = logging.getLogger(__name__)

ACCESS_TOKEN_TTL_SECONDS = 3600


def _hash_password(password: str, salt: str) -> str:
    return hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), 100_000).hex()


@dataclass(slots=True)
class _User:
    id: str
    email: str
    password_hash: str | None = None
    password_salt: str = ""


@dataclass(slots=True)
class OutboxMessage:
    """An email the provider would have sent."""

    email: str
    kind: str  # "otp" | "recovery"
    payload: str


@dataclass
class InMemoryProvider:
    """
    Offline, deterministic provider used for local demos and tests.

    Implements AuthProvider, TaskTable and ProfileTable with plain dicts.
    Emails (OTP codes, recovery links) are not sent; they are appended to
    `outbox` and logged, so a demo user can read their code from the log.

    Error messages mimic the hosted provider's wording so the client-side
    message normalization behaves the same against both.
    """

    users: dict[str, _User] = field(default_factory=dict)
    tasks: dict[str, TaskRow] = field(default_factory=dict)
    profiles: dict[str, dict[str, Any]] = field(default_factory=dict)
    outbox: list[OutboxMessage] = field(default_factory=list)

    _otps: dict[str, str] = field(default_factory=dict)
    _sessions: dict[str, str] = field(default_factory=dict)  # access token -> user id
    _last_created: datetime | None = None

    async def aclose(self) -> None:
        return

    # ---- helpers ----

    def _user_by_email(self, email: str) -> _User | None:
        wanted = email.strip().lower()
        for u in self.users.values():
            if u.email == wanted:
                return u
        return None

    def _issue_session(self, user: _User) -> AuthSession:
        token = secrets.token_urlsafe(24)
        self._sessions[token] = user.id
        return AuthSession(
            access_token=token,
            refresh_token=secrets.token_urlsafe(24),
            expires_in=ACCESS_TOKEN_TTL_SECONDS,
            expires_at=int(time.time()) + ACCESS_TOKEN_TTL_SECONDS,
            user=AuthUser(id=user.id, email=user.email),
        )

    def _owner_of(self, access_token: str) -> str:
        user_id = self._sessions.get(access_token)
        if user_id is None:
            raise ProviderError("JWT expired", 401)
        return user_id

    def _next_created_at(self) -> datetime:
        # Strictly increasing so created_at ordering is total within one process.
        now = utcnow()
        if self._last_created is not None and now <= self._last_created:
            now = self._last_created + timedelta(microseconds=1)
        self._last_created = now
        return now

    def last_otp(self, email: str) -> str | None:
        for msg in reversed(self.outbox):
            if msg.kind == "otp" and msg.email == email.strip().lower():
                return msg.payload
        return None

    # ---- auth ----

    async def send_email_otp(self, email: str) -> None:
        email = email.strip().lower()
        if self._user_by_email(email) is None:
            user = _User(id=str(uuid.uuid4()), email=email)
            self.users[user.id] = user
            logger.debug("InMemoryProvider: created user id=%s", user.id)

        code = f"{secrets.randbelow(1_000_000):06d}"
        self._otps[email] = code
        self.outbox.append(OutboxMessage(email=email, kind="otp", payload=code))
        logger.info("Offline provider: OTP for %s is %s", email, code)

    async def verify_email_otp(self, email: str, token: str) -> AuthSession:
        email = email.strip().lower()
        expected = self._otps.get(email)
        if expected is None or not secrets.compare_digest(expected, token):
            raise ProviderError("Token has expired or is invalid", 403)
        del self._otps[email]

        user = self._user_by_email(email)
        if user is None:
            raise ProviderError("User not found", 404)
        return self._issue_session(user)

    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        user = self._user_by_email(email)
        if user is None or user.password_hash is None:
            raise ProviderError("Invalid login credentials", 400)
        if not secrets.compare_digest(user.password_hash, _hash_password(password, user.password_salt)):
            raise ProviderError("Invalid login credentials", 400)
        return self._issue_session(user)

    async def get_user(self, access_token: str) -> AuthUser:
        user = self.users.get(self._owner_of(access_token))
        if user is None:
            raise ProviderError("User not found", 404)
        return AuthUser(id=user.id, email=user.email)

    async def sign_out(self, access_token: str) -> None:
        self._sessions.pop(access_token, None)

    async def send_password_recovery(self, email: str, redirect_to: str) -> None:
        email = email.strip().lower()
        self.outbox.append(OutboxMessage(email=email, kind="recovery", payload=redirect_to))
        logger.info("Offline provider: password recovery for %s -> %s", email, redirect_to)

    async def find_user_by_email(self, email: str) -> AuthUser | None:
        user = self._user_by_email(email)
        return AuthUser(id=user.id, email=user.email) if user else None

    async def update_user_password(self, user_id: str, password: str) -> None:
        user = self.users.get(user_id)
        if user is None:
            raise ProviderError("User not found", 404)
        user.password_salt = secrets.token_hex(16)
        user.password_hash = _hash_password(password, user.password_salt)

    # ---- tasks table ----

    def _owned(self, access_token: str, user_id: str, task_id: str) -> TaskRow | None:
        if self._owner_of(access_token) != user_id:
            return None
        row = self.tasks.get(task_id)
        if row is None or row["user_id"] != user_id:
            return None
        return row

    async def list_tasks(self, access_token: str, user_id: str) -> list[TaskRow]:
        if self._owner_of(access_token) != user_id:
            return []
        rows = [dict(r) for r in self.tasks.values() if r["user_id"] == user_id]
        rows.sort(key=lambda r: parse_timestamp(r["created_at"]), reverse=True)
        return rows

    async def get_task(self, access_token: str, user_id: str, task_id: str) -> TaskRow | None:
        row = self._owned(access_token, user_id, task_id)
        return dict(row) if row else None

    async def insert_task(self, access_token: str, row: TaskRow) -> TaskRow:
        if self._owner_of(access_token) != row.get("user_id"):
            raise ProviderError("new row violates row-level security policy for table \"tasks\"", 403)
        created = format_timestamp(self._next_created_at())
        stored: TaskRow = {
            "id": str(uuid.uuid4()),
            "user_id": row["user_id"],
            "title": row["title"],
            "description": row.get("description"),
            "is_completed": bool(row.get("is_completed", False)),
            "priority": row.get("priority") or "low",
            "deadline": row.get("deadline"),
            "created_at": created,
            "updated_at": created,
        }
        self.tasks[stored["id"]] = stored
        return dict(stored)

    async def update_task(
        self,
        access_token: str,
        user_id: str,
        task_id: str,
        changes: dict[str, Any],
    ) -> TaskRow | None:
        row = self._owned(access_token, user_id, task_id)
        if row is None:
            return None
        for key, value in changes.items():
            if key in ("id", "user_id", "created_at"):
                continue
            row[key] = value
        return dict(row)

    async def delete_task(self, access_token: str, user_id: str, task_id: str) -> bool:
        if self._owned(access_token, user_id, task_id) is None:
            return False
        del self.tasks[task_id]
        return True

    # ---- user_profiles table ----

    async def upsert_profile(self, row: dict[str, Any]) -> None:
        current = self.profiles.setdefault(str(row["id"]), {})
        current.update(row)

    async def update_profile(self, user_id: str, changes: dict[str, Any]) -> None:
        if user_id in self.profiles:
            self.profiles[user_id].update(changes)

    async def get_profile(self, user_id: str) -> dict[str, Any] | None:
        profile = self.profiles.get(user_id)
        return dict(profile) if profile is not None else None
