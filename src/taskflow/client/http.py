# src/taskflow/client/http.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from ..core.errors import ApiError

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ClientSession:
    """Tokens returned by /api/auth/login (or verify-otp), kept in memory only."""

    access_token: str | None = None
    refresh_token: str | None = None
    user_id: str | None = None
    email: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.access_token)

    def clear(self) -> None:
        self.access_token = None
        self.refresh_token = None
        self.user_id = None
        self.email = None


def _error_from_response(resp: httpx.Response) -> ApiError:
    try:
        data = resp.json()
    except ValueError:
        data = {}
    msg = ""
    if isinstance(data, dict):
        msg = data.get("error") or data.get("message") or ""
    return ApiError(str(msg) or f"HTTP {resp.status_code}", resp.status_code)


class ApiClient:
    """
    JSON client for the route handlers.

    - Bodies are sent only for POST/PUT.
    - requires_auth=True attaches `Authorization: Bearer <access token>` when a
      session is present.
    - Non-2xx responses raise ApiError(body.error or body.message or "HTTP <status>").
    - Transport failures raise ApiError(<exception text> or "API call failed").
    No retries.
    """

    def __init__(
        self,
        base_url: str,
        *,
        session: ClientSession | None = None,
        timeout_seconds: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.session = session or ClientSession()
        self._http = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout_seconds,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def call(
        self,
        endpoint: str,
        method: str = "GET",
        data: Any = None,
        *,
        requires_auth: bool = False,
    ) -> dict[str, Any]:
        headers: dict[str, str] = {}
        if requires_auth and self.session.access_token:
            headers["Authorization"] = f"Bearer {self.session.access_token}"

        json_body = data if data is not None and method in ("POST", "PUT") else None

        try:
            resp = await self._http.request(method, endpoint, json=json_body, headers=headers)
        except httpx.HTTPError as e:
            logger.info("API %s %s transport error: %r", method, endpoint, e)
            raise ApiError(str(e) or "API call failed") from e

        if resp.is_error:
            err = _error_from_response(resp)
            logger.debug("API %s %s -> %s %s", method, endpoint, resp.status_code, err.message)
            raise err

        try:
            result = resp.json()
        except ValueError as e:
            raise ApiError("API call failed", resp.status_code) from e
        return result if isinstance(result, dict) else {"data": result}

    # ---- auth ----

    async def signup(self, email: str) -> dict[str, Any]:
        return await self.call("/api/auth/signup", "POST", {"email": email})

    async def verify_otp(self, email: str, token: str) -> dict[str, Any]:
        return await self.call("/api/auth/verify-otp", "POST", {"email": email, "token": token})

    async def set_password(self, email: str, password: str) -> dict[str, Any]:
        return await self.call("/api/auth/set-password", "POST", {"email": email, "password": password})

    async def login(self, email: str, password: str) -> dict[str, Any]:
        result = await self.call("/api/auth/login", "POST", {"email": email, "password": password})
        data = result.get("data") or {}
        sess = data.get("session") or {}
        user = data.get("user") or {}
        self.session.access_token = sess.get("accessToken")
        self.session.refresh_token = sess.get("refreshToken")
        self.session.user_id = user.get("id")
        self.session.email = user.get("email")
        return result

    async def logout(self) -> dict[str, Any]:
        try:
            return await self.call("/api/auth/logout", "POST", requires_auth=True)
        finally:
            self.session.clear()
            self._http.cookies.clear()

    async def forgot_password(self, email: str) -> dict[str, Any]:
        return await self.call("/api/auth/forgot-password", "POST", {"email": email})

    async def reset_password(self, password: str, *, email: str | None = None, token: str | None = None) -> dict[str, Any]:
        body: dict[str, Any] = {"password": password}
        if email:
            body["email"] = email
        if token:
            body["token"] = token
        return await self.call("/api/auth/reset-password", "POST", body)

    # ---- tasks ----

    async def fetch_tasks(self) -> dict[str, Any]:
        return await self.call("/api/tasks", "GET", requires_auth=True)

    async def fetch_task(self, task_id: str) -> dict[str, Any]:
        return await self.call(f"/api/tasks/{task_id}", "GET", requires_auth=True)

    async def create_task(
        self,
        title: str,
        description: str | None = None,
        priority: str = "low",
        deadline: str | None = None,
    ) -> dict[str, Any]:
        body = {"title": title, "description": description, "priority": priority, "deadline": deadline}
        return await self.call("/api/tasks", "POST", body, requires_auth=True)

    async def update_task(self, task_id: str, updates: dict[str, Any]) -> dict[str, Any]:
        return await self.call(f"/api/tasks/{task_id}", "PUT", updates, requires_auth=True)

    async def delete_task(self, task_id: str) -> dict[str, Any]:
        return await self.call(f"/api/tasks/{task_id}", "DELETE", requires_auth=True)

    async def toggle_task_complete(self, task_id: str, is_completed: bool) -> dict[str, Any]:
        return await self.update_task(task_id, {"is_completed": is_completed})
