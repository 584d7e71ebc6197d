# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import httpx
import pytest
from fastapi import FastAPI

from taskflow.client.http import ApiClient
from taskflow.client.task_controller import TaskController
from taskflow.core.state import AppState
from taskflow.provider.memory import InMemoryProvider
from taskflow.server.app import create_app
from taskflow.server.services import Services

BASE_URL = "http://testserver"


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with Services, AppState and the handlers.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated from the environment and any local .env.
    """
    return SimpleNamespace(
        app_name="taskflow-test",
        data_dir=tmp_path / "data",
        provider="memory",
        app_url=BASE_URL,
        api_url=BASE_URL,
        cookie_secure=False,
        http_timeout_seconds=5.0,
        # No waiting in tests.
        settle_delay_seconds=0.0,
        redirect_delay_seconds=0.0,
    )


@pytest.fixture()
def provider() -> InMemoryProvider:
    return InMemoryProvider()


@pytest.fixture()
def app(settings: SimpleNamespace, provider: InMemoryProvider) -> FastAPI:
    services = Services(settings=settings, auth=provider, tasks=provider, profiles=provider)
    return create_app(services)


@pytest.fixture()
def http(app: FastAPI) -> httpx.AsyncClient:
    """Raw client for status codes, headers and cookies (redirects are not followed)."""
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url=BASE_URL)


@pytest.fixture()
def api(app: FastAPI) -> ApiClient:
    """The real console-side API client, talking to the app in-process."""
    return ApiClient(BASE_URL, transport=httpx.ASGITransport(app=app))


@pytest.fixture()
def state(settings: SimpleNamespace, api: ApiClient) -> AppState:
    """Console AppState wired to the in-process app and the in-memory provider."""
    return AppState(
        settings=settings,
        api=api,
        tasks=TaskController(api, settle_delay_seconds=0.0),
    )
