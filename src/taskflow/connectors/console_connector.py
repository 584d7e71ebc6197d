# src/taskflow/connectors/console_connector.py

from __future__ import annotations

import asyncio
import getpass
import logging
from datetime import datetime

from ..cli.commands import ConsoleIO, registry as command_registry
from ..core.state import AppState

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


class TerminalIO:
    """stdin/stdout for command handlers; blocking reads run in a worker thread."""

    def emit(self, text: str) -> None:
        print(f"[{_ts_local()}] {text}", flush=True)

    async def ask(self, prompt: str, *, secret: bool = False) -> str:
        reader = getpass.getpass if secret else input
        return await asyncio.to_thread(reader, prompt)


async def run_console_loop(state: AppState, io: ConsoleIO | None = None) -> None:
    if io is None:
        io = TerminalIO()
    logger.info("Console client started (api=%s).", getattr(state.settings, "api_url", "?"))
    io.emit("Type /help for commands, /signup to register, /login <email> to sign in. /exit to quit.\n")

    while True:
        try:
            user_input = (await io.ask(">>> ")).strip()
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if not user_input:
            continue

        if user_input.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        try:
            response = await command_registry.handle(state, user_input, io)
        except (EOFError, KeyboardInterrupt):
            io.emit("Cancelled.")
            continue
        except Exception:
            logger.exception("Command handler crashed.")
            response = "Internal error while handling a command."

        if response is None:
            response = "Commands start with '/'. Use /help to list them."
        io.emit(response)

    logger.info("Console client finished.")
