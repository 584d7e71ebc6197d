# src/taskflow/server/gate.py

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from urllib.parse import urlencode

from fastapi import Request, Response
from fastapi.responses import RedirectResponse

from ..core.errors import ProviderError
from .auth_routes import ACCESS_COOKIE
from .services import Services

logger = logging.getLogger(__name__)

PROTECTED_PATHS = ("/dashboard",)
AUTH_PATHS = ("/login", "/signup")
LOGIN_PATH = "/login"
HOME_PATH = "/dashboard"


def _request_token(request: Request) -> str | None:
    token = request.cookies.get(ACCESS_COOKIE)
    if token:
        return token
    auth = request.headers.get("authorization") or ""
    if auth.lower().startswith("bearer "):
        return auth[7:].strip() or None
    return None


def _under(path: str, roots: tuple[str, ...]) -> bool:
    return any(path == root or path.startswith(root + "/") for root in roots)


def _to_login(path: str, *, expired: bool = False) -> RedirectResponse:
    params = {"redirect": path}
    if expired:
        params["error"] = "session_expired"
    return RedirectResponse(f"{LOGIN_PATH}?{urlencode(params)}", status_code=307)


async def route_gate(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
    """
    Page-level gate:
    - protected pages without a valid session -> /login?redirect=<path>
    - auth pages with a valid session -> /dashboard
    API routes are not gated here; they check the bearer token themselves.
    """
    path = request.url.path
    is_protected = _under(path, PROTECTED_PATHS)
    is_auth_page = _under(path, AUTH_PATHS)
    if not is_protected and not is_auth_page:
        return await call_next(request)

    token = _request_token(request)
    services: Services = request.app.state.services

    if is_protected:
        if not token:
            return _to_login(path)
        try:
            await services.auth.get_user(token)
        except ProviderError as e:
            logger.info("Gate: session rejected path=%s: %s", path, e.message)
            return _to_login(path, expired=True)
        except Exception:
            logger.exception("Gate: token check crashed path=%s", path)
            return _to_login(path)
        return await call_next(request)

    if token:
        try:
            await services.auth.get_user(token)
        except ProviderError:
            return await call_next(request)
        except Exception:
            logger.exception("Gate: token check crashed path=%s", path)
            return await call_next(request)
        return RedirectResponse(HOME_PATH, status_code=307)

    return await call_next(request)
