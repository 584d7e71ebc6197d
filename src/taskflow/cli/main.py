# src/taskflow/cli/main.py

"""
CLI entrypoint.

    taskflow serve    - run the HTTP API (route handlers + page gate) under uvicorn
    taskflow console  - run the interactive console client against TASKFLOW_API_URL

Initializes logging first; configuration errors abort with exit code 2.
"""

from __future__ import annotations

import argparse
import asyncio
import logging

import uvicorn

from ..cli.bootstrap import create_console_state, create_services
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..core.errors import ConfigError
from ..logging_setup import setup_logging
from ..server.app import create_app

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="taskflow", description="Task manager API server and console client.")
    sub = parser.add_subparsers(dest="command")

    serve = sub.add_parser("serve", help="Run the HTTP API server.")
    serve.add_argument("--host", default=None, help="Bind address (default: TASKFLOW_HOST).")
    serve.add_argument("--port", type=int, default=None, help="Bind port (default: TASKFLOW_PORT).")

    sub.add_parser("console", help="Run the interactive console client.")
    return parser


def _serve(settings, host: str | None, port: int | None) -> None:
    services = create_services(settings=settings)
    app = create_app(services)
    uvicorn.run(
        app,
        host=host or settings.host,
        port=port or settings.port,
        log_config=None,  # keep our handlers
    )


async def _console(settings) -> None:
    state = create_console_state(settings=settings)
    try:
        await run_console_loop(state)
    finally:
        await state.api.aclose()


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    command = args.command or "serve"

    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s (%s)...", settings.app_name, command)

    try:
        if command == "console":
            asyncio.run(_console(settings))
        else:
            _serve(settings, getattr(args, "host", None), getattr(args, "port", None))
    except ConfigError as e:
        logger.error("Configuration error: %s", e)
        return 2
    except KeyboardInterrupt:
        logger.info("Interrupted.")

    logger.info("Bye.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
