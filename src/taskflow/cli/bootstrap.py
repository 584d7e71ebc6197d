# src/taskflow/cli/bootstrap.py

"""
Composition root.

- checks provider credentials once (missing credentials abort startup),
- ensures the local (gitignored) data directory exists,
- builds the provider client and wires it into Services for the API server,
- builds ApiClient + controllers into AppState for the console client.
"""

from __future__ import annotations

import logging

from ..client.http import ApiClient
from ..client.task_controller import TaskController
from ..config import PROVIDER_MEMORY, Settings, get_settings
from ..core.state import AppState
from ..provider.memory import InMemoryProvider
from ..provider.supabase import SupabaseProvider
from ..server.services import Services

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings: Settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)


def create_services(*, settings: Settings | None = None) -> Services:
    """
    Build the provider client for the API server.

    Raises ConfigError when the hosted provider is selected without credentials;
    there is no silent fallback to the in-memory provider.
    """
    if settings is None:
        settings = get_settings()

    settings.require_provider_credentials()
    _ensure_local_dirs(settings)

    provider: SupabaseProvider | InMemoryProvider
    if settings.provider == PROVIDER_MEMORY:
        logger.warning("Using the in-memory provider: data is lost on exit, OTP codes are logged.")
        provider = InMemoryProvider()
    else:
        provider = SupabaseProvider(
            url=settings.supabase_url,
            anon_key=str(settings.supabase_anon_key),
            service_key=str(settings.supabase_service_key),
            timeout_seconds=settings.http_timeout_seconds,
        )

    return Services(settings=settings, auth=provider, tasks=provider, profiles=provider)


def create_console_state(*, settings: Settings | None = None, api: ApiClient | None = None) -> AppState:
    """Build the console client's state. `api` is injectable for tests."""
    if settings is None:
        settings = get_settings()

    if api is None:
        api = ApiClient(settings.api_url, timeout_seconds=settings.http_timeout_seconds)

    return AppState(
        settings=settings,
        api=api,
        tasks=TaskController(api, settle_delay_seconds=settings.settle_delay_seconds),
    )
