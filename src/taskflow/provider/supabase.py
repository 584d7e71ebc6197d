# src/taskflow/provider/supabase.py

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..core.errors import ProviderError
from ..core.ports import AuthSession, AuthUser, TaskRow

logger = logging.getLogger(__name__)

_ADMIN_PAGE_SIZE = 1000


def _make_timeout(seconds: float) -> httpx.Timeout:
    connect_s = min(5.0, seconds)
    return httpx.Timeout(connect=connect_s, read=seconds, write=10.0, pool=connect_s)


def _error_message(resp: httpx.Response) -> str:
    """GoTrue uses msg/error_description, PostgREST uses message."""
    try:
        data = resp.json()
    except ValueError:
        data = None
    if isinstance(data, dict):
        for key in ("msg", "error_description", "message", "error"):
            val = data.get(key)
            if isinstance(val, str) and val.strip():
                return val.strip()
    return f"HTTP {resp.status_code}"


def _user_from_json(data: Any) -> AuthUser | None:
    if not isinstance(data, dict) or not data.get("id"):
        return None
    return AuthUser(id=str(data["id"]), email=data.get("email"))


def _session_from_json(data: Any) -> AuthSession:
    if not isinstance(data, dict) or not data.get("access_token"):
        raise ProviderError("Provider returned no session")
    return AuthSession(
        access_token=str(data["access_token"]),
        refresh_token=data.get("refresh_token"),
        expires_in=data.get("expires_in"),
        expires_at=data.get("expires_at"),
        user=_user_from_json(data.get("user")),
    )


class SupabaseProvider:
    """
    Supabase-compatible provider over its REST surface (GoTrue + PostgREST).

    One httpx.AsyncClient per process, created by the composition root and
    closed on shutdown. Calls are single round trips; no retries.

    Credentials:
    - anon key: public auth calls, and table calls made on behalf of a user
      (Authorization carries the user's access token, so row-level security applies)
    - service key: admin user lookups/updates and user_profiles writes
    """

    def __init__(
        self,
        *,
        url: str,
        anon_key: str,
        service_key: str,
        timeout_seconds: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not url or not anon_key or not service_key:
            raise ValueError("url, anon_key and service_key are required")
        self._anon_key = anon_key
        self._service_key = service_key
        self._http = httpx.AsyncClient(
            base_url=url.rstrip("/"),
            timeout=_make_timeout(timeout_seconds),
            transport=transport,
        )
        logger.info("SupabaseProvider ready url=%s", url)

    async def aclose(self) -> None:
        await self._http.aclose()

    # ---- low-level helpers ----

    def _headers(self, *, bearer: str | None = None, service: bool = False, prefer: str | None = None) -> dict[str, str]:
        key = self._service_key if service else self._anon_key
        headers = {
            "apikey": key,
            "Authorization": f"Bearer {bearer or key}",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        *,
        headers: dict[str, str],
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> Any:
        try:
            resp = await self._http.request(method, path, headers=headers, params=params, json=json)
        except httpx.HTTPError as e:
            logger.warning("Provider request failed %s %s: %r", method, path, e)
            raise ProviderError(f"Provider network error: {e.__class__.__name__}") from e

        if resp.is_error:
            msg = _error_message(resp)
            logger.debug("Provider %s %s -> %s %s", method, path, resp.status_code, msg)
            raise ProviderError(msg, resp.status_code)

        logger.debug("Provider %s %s -> %s", method, path, resp.status_code)
        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError:
            return None

    # ---- auth ----

    async def send_email_otp(self, email: str) -> None:
        # No redirect URL: the provider sends a 6-digit code instead of a magic link.
        await self._request(
            "POST",
            "/auth/v1/otp",
            headers=self._headers(),
            json={"email": email, "create_user": True},
        )

    async def verify_email_otp(self, email: str, token: str) -> AuthSession:
        data = await self._request(
            "POST",
            "/auth/v1/verify",
            headers=self._headers(),
            json={"type": "email", "email": email, "token": token},
        )
        return _session_from_json(data)

    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        data = await self._request(
            "POST",
            "/auth/v1/token",
            headers=self._headers(),
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        return _session_from_json(data)

    async def get_user(self, access_token: str) -> AuthUser:
        data = await self._request("GET", "/auth/v1/user", headers=self._headers(bearer=access_token))
        user = _user_from_json(data)
        if user is None:
            raise ProviderError("Invalid token", 401)
        return user

    async def sign_out(self, access_token: str) -> None:
        await self._request("POST", "/auth/v1/logout", headers=self._headers(bearer=access_token))

    async def send_password_recovery(self, email: str, redirect_to: str) -> None:
        await self._request(
            "POST",
            "/auth/v1/recover",
            headers=self._headers(),
            params={"redirect_to": redirect_to},
            json={"email": email},
        )

    async def find_user_by_email(self, email: str) -> AuthUser | None:
        """Admin lookup; walks the user list page by page."""
        wanted = email.strip().lower()
        page = 1
        while True:
            data = await self._request(
                "GET",
                "/auth/v1/admin/users",
                headers=self._headers(service=True),
                params={"page": page, "per_page": _ADMIN_PAGE_SIZE},
            )
            users = data.get("users", []) if isinstance(data, dict) else []
            for raw in users:
                if str(raw.get("email") or "").lower() == wanted:
                    return _user_from_json(raw)
            if len(users) < _ADMIN_PAGE_SIZE:
                return None
            page += 1

    async def update_user_password(self, user_id: str, password: str) -> None:
        await self._request(
            "PUT",
            f"/auth/v1/admin/users/{user_id}",
            headers=self._headers(service=True),
            json={"password": password},
        )

    # ---- tasks table ----

    async def list_tasks(self, access_token: str, user_id: str) -> list[TaskRow]:
        data = await self._request(
            "GET",
            "/rest/v1/tasks",
            headers=self._headers(bearer=access_token),
            params={"select": "*", "user_id": f"eq.{user_id}", "order": "created_at.desc"},
        )
        return list(data or [])

    async def get_task(self, access_token: str, user_id: str, task_id: str) -> TaskRow | None:
        data = await self._request(
            "GET",
            "/rest/v1/tasks",
            headers=self._headers(bearer=access_token),
            params={"select": "*", "id": f"eq.{task_id}", "user_id": f"eq.{user_id}", "limit": 1},
        )
        return data[0] if data else None

    async def insert_task(self, access_token: str, row: TaskRow) -> TaskRow:
        data = await self._request(
            "POST",
            "/rest/v1/tasks",
            headers=self._headers(bearer=access_token, prefer="return=representation"),
            json=[row],
        )
        if not data:
            raise ProviderError("Insert returned no row")
        return data[0]

    async def update_task(
        self,
        access_token: str,
        user_id: str,
        task_id: str,
        changes: dict[str, Any],
    ) -> TaskRow | None:
        data = await self._request(
            "PATCH",
            "/rest/v1/tasks",
            headers=self._headers(bearer=access_token, prefer="return=representation"),
            params={"id": f"eq.{task_id}", "user_id": f"eq.{user_id}"},
            json=changes,
        )
        return data[0] if data else None

    async def delete_task(self, access_token: str, user_id: str, task_id: str) -> bool:
        data = await self._request(
            "DELETE",
            "/rest/v1/tasks",
            headers=self._headers(bearer=access_token, prefer="return=representation"),
            params={"id": f"eq.{task_id}", "user_id": f"eq.{user_id}"},
        )
        return bool(data)

    # ---- user_profiles table ----

    async def upsert_profile(self, row: dict[str, Any]) -> None:
        await self._request(
            "POST",
            "/rest/v1/user_profiles",
            headers=self._headers(service=True, prefer="resolution=merge-duplicates,return=minimal"),
            params={"on_conflict": "id"},
            json=[row],
        )

    async def update_profile(self, user_id: str, changes: dict[str, Any]) -> None:
        await self._request(
            "PATCH",
            "/rest/v1/user_profiles",
            headers=self._headers(service=True, prefer="return=minimal"),
            params={"id": f"eq.{user_id}"},
            json=changes,
        )

    async def get_profile(self, user_id: str) -> dict[str, Any] | None:
        data = await self._request(
            "GET",
            "/rest/v1/user_profiles",
            headers=self._headers(service=True),
            params={"select": "*", "id": f"eq.{user_id}", "limit": 1},
        )
        return data[0] if data else None
