# src/taskflow/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (server and console client).
- No secrets required at import time; credentials are checked when the
  provider is constructed.
- The unprefixed NEXT_PUBLIC_SUPABASE_* / SUPABASE_* names are accepted as
  fallbacks so an existing hosted-project .env keeps working.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

from .core.errors import ConfigError

ENV_PREFIX = "TASKFLOW"

PROVIDER_SUPABASE = "supabase"
PROVIDER_MEMORY = "memory"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _load_dotenv() -> None:
    """Load .env from the working directory (if any). Real environment variables win."""
    load_dotenv(find_dotenv(usecwd=True), override=False)


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str
    data_dir: Path

    # ---- Hosted provider ----
    provider: str
    supabase_url: str
    supabase_anon_key: str | None
    supabase_service_key: str | None

    # ---- HTTP server ----
    host: str
    port: int
    app_url: str
    cookie_secure: bool

    # ---- Console client ----
    api_url: str
    http_timeout_seconds: float
    settle_delay_seconds: float
    redirect_delay_seconds: float

    @staticmethod
    def from_env() -> "Settings":
        _load_dotenv()

        app_name = _first_env(_k("APP_NAME"), default="taskflow") or "taskflow"
        log_level = _env(_k("LOG_LEVEL"), "INFO")
        data_dir = _env_path(_k("DATA_DIR"), Path(".local/taskflow"))

        provider = (_env(_k("PROVIDER"), PROVIDER_SUPABASE).strip().lower() or PROVIDER_SUPABASE)

        supabase_url = (
            _first_env(_k("SUPABASE_URL"), "NEXT_PUBLIC_SUPABASE_URL", "SUPABASE_URL", default="") or ""
        ).strip().rstrip("/")
        supabase_anon_key = _first_env(
            _k("SUPABASE_ANON_KEY"), "NEXT_PUBLIC_SUPABASE_ANON_KEY", "SUPABASE_ANON_KEY", default=None
        )
        supabase_service_key = _first_env(
            _k("SUPABASE_SERVICE_ROLE_KEY"), "SUPABASE_SERVICE_ROLE_KEY", default=None
        )

        host = _env(_k("HOST"), "127.0.0.1")
        port = _env_int(_k("PORT"), 3000)
        app_url = (
            _first_env(_k("APP_URL"), "NEXT_PUBLIC_APP_URL", default=f"http://localhost:{port}") or ""
        ).rstrip("/")
        cookie_secure = _env_bool(_k("COOKIE_SECURE"), False)

        api_url = (_first_env(_k("API_URL"), "NEXT_PUBLIC_API_URL", default=app_url) or app_url).rstrip("/")
        http_timeout_seconds = _env_float(_k("HTTP_TIMEOUT_SECONDS"), 30.0)
        settle_delay_seconds = _env_float(_k("SETTLE_DELAY_SECONDS"), 0.05)
        redirect_delay_seconds = _env_float(_k("REDIRECT_DELAY_SECONDS"), 2.0)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            provider=provider,
            supabase_url=supabase_url,
            supabase_anon_key=supabase_anon_key,
            supabase_service_key=supabase_service_key,
            host=host,
            port=port,
            app_url=app_url,
            cookie_secure=cookie_secure,
            api_url=api_url,
            http_timeout_seconds=http_timeout_seconds,
            settle_delay_seconds=settle_delay_seconds,
            redirect_delay_seconds=redirect_delay_seconds,
        )

    def require_provider_credentials(self) -> None:
        """Abort startup when the hosted provider is selected without credentials."""
        if self.provider == PROVIDER_MEMORY:
            return
        if self.provider != PROVIDER_SUPABASE:
            raise ConfigError(f"Unknown provider: {self.provider!r}. Use 'supabase' or 'memory'.")

        missing = []
        if not self.supabase_url:
            missing.append(_k("SUPABASE_URL"))
        if not (self.supabase_anon_key or "").strip():
            missing.append(_k("SUPABASE_ANON_KEY"))
        if not (self.supabase_service_key or "").strip():
            missing.append(_k("SUPABASE_SERVICE_ROLE_KEY"))
        if missing:
            raise ConfigError("Missing provider environment variables: " + ", ".join(missing))


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    """Settings for the running process, read from the environment on first use."""
    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = Settings.from_env()
    return _SETTINGS
