# src/taskflow/cli/commands.py

from __future__ import annotations

import logging
import shlex
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any, Protocol

from ..client.signup_flow import EmailStep, OtpStep, PasswordStep, SuccessStep
from ..core.errors import get_error_message
from ..core.state import AppState
from ..core.validation import validate_email, validate_password
from ..tasks.task_models import Task, TaskPriority, parse_timestamp
from ..tasks.task_view import PriorityFilter, StatusFilter, TaskFilter, TaskSort

logger = logging.getLogger(__name__)


class ConsoleIO(Protocol):
    """How command handlers talk to the user (implemented by the console connector)."""

    def emit(self, text: str) -> None: ...
    async def ask(self, prompt: str, *, secret: bool = False) -> str: ...


CommandHandler = Callable[[AppState, list[str], ConsoleIO], Awaitable[str]]


class CommandRegistry:
    """Slash-command registry used by the console connector (/help, /add, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(self, state: AppState, line: str, io: ConsoleIO) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        try:
            parts = shlex.split(line[1:])
        except ValueError as e:
            return f"Could not parse command: {e}."
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        return await handler(state, args, io)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- helpers ----


def _split_options(args: list[str]) -> tuple[list[str], dict[str, str]]:
    """Split `a b --key value` into (["a", "b"], {"key": "value"})."""
    positional: list[str] = []
    opts: dict[str, str] = {}
    i = 0
    while i < len(args):
        arg = args[i]
        if arg.startswith("--") and len(arg) > 2:
            key = arg[2:].lower()
            if i + 1 >= len(args):
                raise ValueError(f"Missing value for --{key}")
            opts[key] = args[i + 1]
            i += 2
            continue
        positional.append(arg)
        i += 1
    return positional, opts


def _parse_deadline(raw: str) -> datetime | None:
    if raw.strip().lower() in ("", "none", "-"):
        return None
    return parse_timestamp(raw)


def _pick(state: AppState, raw: str) -> Task | None:
    """Resolve a 1-based position in the last rendered list."""
    try:
        n = int(raw)
    except ValueError:
        return None
    if n < 1 or n > len(state.last_view):
        return None
    return state.last_view[n - 1]


def render_task(n: int, task: Task) -> str:
    mark = "x" if task.is_completed else " "
    due = f" due {task.deadline.date().isoformat()}" if task.deadline else ""
    line = f"{n:>3}. [{mark}] {task.title} ({task.priority.value}){due}"
    if task.description:
        line += f"\n       {task.description}"
    return line


def render_tasks(state: AppState) -> str:
    view = state.tasks.view(state.task_filter)
    state.last_view = view
    flt = state.task_filter
    header = f"Tasks (status={flt.status.value}, priority={flt.priority.value}, sort={flt.sort.value}):"
    if not view:
        return header + "\n  (none)"
    return "\n".join([header, *(render_task(i, t) for i, t in enumerate(view, start=1))])


def _require_login(state: AppState) -> str | None:
    if not state.api.session.is_authenticated:
        return "Not logged in. Use /login <email>."
    return None


# ---- commands ----


async def cmd_help(state: AppState, args: list[str], io: ConsoleIO) -> str:
    return registry.build_help()


async def cmd_status(state: AppState, args: list[str], io: ConsoleIO) -> str:
    session = state.api.session
    who = session.email or session.user_id if session.is_authenticated else "not logged in"
    return (
        "Status:\n"
        f"  API: {getattr(state.settings, 'api_url', '?')}\n"
        f"  User: {who}\n"
        f"  Tasks loaded: {len(state.tasks.tasks)}"
    )


async def cmd_signup(state: AppState, args: list[str], io: ConsoleIO) -> str:
    """
    Walk the signup flow interactively:
    email -> OTP (type 'back' to change the email) -> password -> done.
    """
    flow = state.new_signup()
    email = args[0] if args else ""

    while not isinstance(flow.state, SuccessStep):
        if isinstance(flow.state, EmailStep):
            if not email:
                email = (await io.ask("Email: ")).strip()
                if not email:
                    return "Signup cancelled."
            if not await flow.submit_email(email):
                io.emit(flow.error or "Signup failed.")
                email = ""
            else:
                io.emit(f"We sent a 6-digit code to {flow.state.email}.")

        elif isinstance(flow.state, OtpStep):
            code = (await io.ask("OTP (or 'back'): ")).strip()
            if code.lower() == "back":
                flow.back_to_email()
                email = ""
                continue
            if not code:
                return "Signup cancelled."
            if not await flow.submit_otp(code):
                io.emit(flow.error or "Verification failed.")

        elif isinstance(flow.state, PasswordStep):
            password = await io.ask("Password: ", secret=True)
            if not password:
                return "Signup cancelled."
            confirm = await io.ask("Confirm password: ", secret=True)
            if not await flow.submit_password(password, confirm):
                io.emit(flow.error or "Could not set password.")

    io.emit("Account created! Redirecting to login...")
    target = await flow.wait_and_leave()
    state.signup = None
    return f"Go to {target}: use /login {flow.state.email}"


async def cmd_login(state: AppState, args: list[str], io: ConsoleIO) -> str:
    email = args[0] if args else (await io.ask("Email: ")).strip()
    if not validate_email(email):
        return "Please enter a valid email"
    password = await io.ask("Password: ", secret=True)
    if not password:
        return "Password is required"

    try:
        await state.api.login(email, password)
    except Exception as e:
        return get_error_message(e)

    result = await state.tasks.load()
    if not result.success:
        return f"Logged in, but loading tasks failed: {result.error}"
    return render_tasks(state)


async def cmd_logout(state: AppState, args: list[str], io: ConsoleIO) -> str:
    try:
        await state.api.logout()
    except Exception as e:
        logger.info("Logout request failed: %s", e)
    state.tasks.tasks = []
    state.last_view = ()
    return "Logged out."


async def cmd_forgot(state: AppState, args: list[str], io: ConsoleIO) -> str:
    email = args[0] if args else (await io.ask("Email: ")).strip()
    if not validate_email(email):
        return "Please enter a valid email"
    try:
        result = await state.api.forgot_password(email)
    except Exception as e:
        return get_error_message(e)
    return str(result.get("message") or "If email exists, password reset link has been sent")


async def cmd_reset(state: AppState, args: list[str], io: ConsoleIO) -> str:
    email = args[0] if args else (await io.ask("Email: ")).strip()
    if not validate_email(email):
        return "Please enter a valid email"
    password = await io.ask("New password: ", secret=True)
    confirm = await io.ask("Confirm password: ", secret=True)
    if password != confirm:
        return "Passwords do not match"
    check = validate_password(password)
    if not check.valid:
        return "\n".join(check.errors)
    try:
        await state.api.reset_password(password, email=email)
    except Exception as e:
        return get_error_message(e)
    return "Password reset successfully. Use /login to sign in."


async def cmd_tasks(state: AppState, args: list[str], io: ConsoleIO) -> str:
    if msg := _require_login(state):
        return msg
    return render_tasks(state)


async def cmd_reload(state: AppState, args: list[str], io: ConsoleIO) -> str:
    if msg := _require_login(state):
        return msg
    result = await state.tasks.load()
    if not result.success:
        return result.error or "Failed to load tasks."
    return render_tasks(state)


async def cmd_add(state: AppState, args: list[str], io: ConsoleIO) -> str:
    """/add <title> [--desc TEXT] [--priority low|medium|high] [--deadline YYYY-MM-DD]"""
    if msg := _require_login(state):
        return msg
    try:
        positional, opts = _split_options(args)
        deadline = _parse_deadline(opts["deadline"]) if "deadline" in opts else None
    except ValueError as e:
        return f"{e}. Usage: /add <title> [--desc TEXT] [--priority P] [--deadline YYYY-MM-DD]"

    result = await state.tasks.create(
        " ".join(positional),
        description=opts.get("desc"),
        priority=opts.get("priority"),
        deadline=deadline,
    )
    if not result.success:
        return result.error or "Failed to create task."
    return render_tasks(state)


async def cmd_edit(state: AppState, args: list[str], io: ConsoleIO) -> str:
    """/edit <n> [--title T] [--desc D|none] [--priority P] [--deadline YYYY-MM-DD|none]"""
    if msg := _require_login(state):
        return msg
    try:
        positional, opts = _split_options(args)
    except ValueError as e:
        return str(e)
    task = _pick(state, positional[0]) if positional else None
    if task is None:
        return "Usage: /edit <n> [--title T] [--desc D] [--priority P] [--deadline D]. Use /tasks for numbers."
    if state.tasks.is_busy(task.id):
        return "That task is still saving, try again in a moment."

    fields: dict[str, Any] = {}
    if "title" in opts:
        fields["title"] = opts["title"]
    if "desc" in opts:
        fields["description"] = None if opts["desc"].lower() == "none" else opts["desc"]
    if "priority" in opts:
        if TaskPriority.parse(opts["priority"]) is None:
            return "Priority must be low, medium or high."
        fields["priority"] = opts["priority"]
    if "deadline" in opts:
        try:
            fields["deadline"] = _parse_deadline(opts["deadline"])
        except ValueError:
            return "Deadline must look like YYYY-MM-DD (or 'none')."
    if not fields:
        return "Nothing to change."

    result = await state.tasks.update(task.id, **fields)
    if not result.success:
        return result.error or "Failed to update task."
    return render_tasks(state)


async def _toggle(state: AppState, args: list[str], value: bool) -> str:
    if msg := _require_login(state):
        return msg
    task = _pick(state, args[0]) if args else None
    if task is None:
        return "Which task? Use /tasks for numbers."
    if state.tasks.is_busy(task.id):
        return "That task is still saving, try again in a moment."
    result = await state.tasks.toggle_complete(task.id, value)
    if not result.success:
        return result.error or "Failed to update task."
    return render_tasks(state)


async def cmd_done(state: AppState, args: list[str], io: ConsoleIO) -> str:
    return await _toggle(state, args, True)


async def cmd_undo(state: AppState, args: list[str], io: ConsoleIO) -> str:
    return await _toggle(state, args, False)


async def cmd_rm(state: AppState, args: list[str], io: ConsoleIO) -> str:
    if msg := _require_login(state):
        return msg
    task = _pick(state, args[0]) if args else None
    if task is None:
        return "Which task? Use /tasks for numbers."
    answer = (await io.ask(f"Delete '{task.title}'? [y/N] ")).strip().lower()
    if answer not in ("y", "yes"):
        return "Kept."
    result = await state.tasks.delete(task.id)
    if not result.success:
        return result.error or "Failed to delete task."
    return render_tasks(state)


_STATUS_VALUES = frozenset(s.value for s in StatusFilter)
_PRIORITY_VALUES = frozenset(p.value for p in PriorityFilter)


async def cmd_filter(state: AppState, args: list[str], io: ConsoleIO) -> str:
    """/filter [all|pending|completed] [all|low|medium|high] (either order)"""
    status = state.task_filter.status
    priority = state.task_filter.priority
    for arg in args:
        value = arg.lower()
        if value == "all":
            status, priority = StatusFilter.ALL, PriorityFilter.ALL
        elif value in _STATUS_VALUES:
            status = StatusFilter(value)
        elif value in _PRIORITY_VALUES:
            priority = PriorityFilter(value)
        else:
            return f"Unknown filter value: {arg}. Use all|pending|completed and/or all|low|medium|high."
    state.task_filter = TaskFilter(status=status, priority=priority, sort=state.task_filter.sort)
    return render_tasks(state)


async def cmd_sort(state: AppState, args: list[str], io: ConsoleIO) -> str:
    options = ", ".join(s.value for s in TaskSort)
    if not args:
        return f"Current sort: {state.task_filter.sort.value}. Options: {options}."
    try:
        order = TaskSort(args[0].lower())
    except ValueError:
        return f"Unknown sort: {args[0]}. Options: {options}."
    state.task_filter = TaskFilter(status=state.task_filter.status, priority=state.task_filter.priority, sort=order)
    return render_tasks(state)


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show API URL and who is logged in.")
registry.register("signup", cmd_signup, help_text="Create an account: email -> OTP -> password.")
registry.register("login", cmd_login, help_text="Log in: /login <email>.")
registry.register("logout", cmd_logout, help_text="Log out and clear the session.")
registry.register("forgot", cmd_forgot, help_text="Send a password reset email: /forgot <email>.")
registry.register("reset", cmd_reset, help_text="Reset a password: /reset <email>.")
registry.register("tasks", cmd_tasks, help_text="Show tasks with the current filter/sort.", aliases=["ls"])
registry.register("reload", cmd_reload, help_text="Fetch tasks from the server again.")
registry.register("add", cmd_add, help_text="Add a task: /add <title> [--desc D] [--priority P] [--deadline YYYY-MM-DD].")
registry.register("edit", cmd_edit, help_text="Edit a task: /edit <n> [--title T] [--desc D] [--priority P] [--deadline D].")
registry.register("done", cmd_done, help_text="Mark task <n> completed.")
registry.register("undo", cmd_undo, help_text="Mark task <n> pending again.")
registry.register("rm", cmd_rm, help_text="Delete task <n>.", aliases=["delete"])
registry.register("filter", cmd_filter, help_text="Filter: /filter [all|pending|completed] [all|low|medium|high].")
registry.register("sort", cmd_sort, help_text="Sort: /sort created_at_desc|created_at_asc|priority_desc|deadline_asc.")
