# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real secrets; keep the service role key in .env (gitignored).

The NEXT_PUBLIC_* / SUPABASE_* names are accepted as fallbacks so an existing
hosted-project .env can be reused as is.
"""

ENV_VARS = {
    # App / logging
    "TASKFLOW_APP_NAME": "App display name (default: taskflow).",
    "TASKFLOW_LOG_LEVEL": "Console logging level (default: INFO).",
    "TASKFLOW_DATA_DIR": "Local data directory for logs (default: .local/taskflow).",
    # Provider
    "TASKFLOW_PROVIDER": "supabase (default) or memory (local development, data lost on exit).",
    "TASKFLOW_SUPABASE_URL": "Project URL (fallback: NEXT_PUBLIC_SUPABASE_URL, SUPABASE_URL).",
    "TASKFLOW_SUPABASE_ANON_KEY": "Public anon key (fallback: NEXT_PUBLIC_SUPABASE_ANON_KEY).",
    "TASKFLOW_SUPABASE_SERVICE_ROLE_KEY": (
        "Service role key for admin lookups and password updates (fallback: SUPABASE_SERVICE_ROLE_KEY)."
    ),
    # Server
    "TASKFLOW_HOST": "Bind address for `taskflow serve` (default: 127.0.0.1).",
    "TASKFLOW_PORT": "Bind port (default: 3000).",
    "TASKFLOW_APP_URL": "Public base URL (fallback: NEXT_PUBLIC_APP_URL, default: http://localhost:<port>).",
    "TASKFLOW_COOKIE_SECURE": "Mark session cookies Secure (true in production).",
    # Console client
    "TASKFLOW_API_URL": "API base URL used by `taskflow console` (fallback: NEXT_PUBLIC_API_URL, default: app URL).",
    # Tuning
    "TASKFLOW_HTTP_TIMEOUT_SECONDS": "Timeout for provider and API requests (default: 30).",
    "TASKFLOW_SETTLE_DELAY_SECONDS": "Delay before the first task load after login (default: 0.05).",
    "TASKFLOW_REDIRECT_DELAY_SECONDS": "Delay before leaving the signup success step (default: 2).",
}
