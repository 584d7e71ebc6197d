# tests/test_commands.py

from __future__ import annotations

import pytest

from taskflow.cli.commands import CommandRegistry, registry
from taskflow.connectors.console_connector import run_console_loop
from taskflow.core.state import AppState
from taskflow.provider.memory import InMemoryProvider
from taskflow.tasks.task_view import StatusFilter, TaskSort

from .fakes import STRONG_PASSWORD, ScriptedIO, register_user


async def _logged_in(state: AppState, provider: InMemoryProvider) -> None:
    await register_user(provider, "a@b.co")
    reply = await registry.handle(state, "/login a@b.co", ScriptedIO([STRONG_PASSWORD]))
    assert reply is not None and reply.startswith("Tasks")


@pytest.mark.asyncio
async def test_registry_routes_commands_and_aliases(state: AppState) -> None:
    reg = CommandRegistry()
    seen: list[list[str]] = []

    async def echo(state, args, io):
        seen.append(args)
        return "ok"

    reg.register("echo", echo, help_text="Echo.", aliases=["e"])

    assert await reg.handle(state, "/echo a 'b c'", ScriptedIO()) == "ok"
    assert await reg.handle(state, "/E x", ScriptedIO()) == "ok"
    assert seen == [["a", "b c"], ["x"]]
    assert await reg.handle(state, "not a command", ScriptedIO()) is None
    assert "Unknown command" in (await reg.handle(state, "/nope", ScriptedIO()) or "")
    assert "Could not parse" in (await reg.handle(state, "/echo 'open", ScriptedIO()) or "")
    assert "/echo - Echo." in reg.build_help()


@pytest.mark.asyncio
async def test_task_commands_need_login(state: AppState) -> None:
    reply = await registry.handle(state, "/add Buy milk", ScriptedIO())
    assert reply == "Not logged in. Use /login <email>."


@pytest.mark.asyncio
async def test_signup_command_walks_the_flow(state: AppState, provider: InMemoryProvider) -> None:
    io = ScriptedIO(["12", lambda: provider.last_otp("new@b.co") or "", STRONG_PASSWORD, STRONG_PASSWORD])

    reply = await registry.handle(state, "/signup new@b.co", io)

    assert reply == "Go to /login: use /login new@b.co"
    assert "Please enter a valid 6-digit OTP" in io.emitted
    assert "Account created! Redirecting to login..." in io.emitted
    user = await provider.find_user_by_email("new@b.co")
    assert user is not None
    assert provider.profiles[user.id]["is_password_set"] is True


@pytest.mark.asyncio
async def test_signup_command_back_to_email(state: AppState, provider: InMemoryProvider) -> None:
    io = ScriptedIO(["back", "other@b.co", ""])

    reply = await registry.handle(state, "/signup first@b.co", io)

    assert reply == "Signup cancelled."
    assert provider.last_otp("first@b.co") is not None
    assert provider.last_otp("other@b.co") is not None


@pytest.mark.asyncio
async def test_login_rejects_bad_password(state: AppState, provider: InMemoryProvider) -> None:
    await register_user(provider, "a@b.co")

    reply = await registry.handle(state, "/login a@b.co", ScriptedIO(["Wrong000!"]))

    assert reply == "Invalid email or password"
    assert not state.api.session.is_authenticated


@pytest.mark.asyncio
async def test_add_done_filter_sort_and_remove(state: AppState, provider: InMemoryProvider) -> None:
    await _logged_in(state, provider)
    io = ScriptedIO()

    await registry.handle(state, "/add Write report --priority high --deadline 2024-03-01", io)
    reply = await registry.handle(state, '/add "Buy milk" --desc "2 litres"', io)
    assert reply is not None
    assert "1. [ ] Buy milk (low)" in reply
    assert "2. [ ] Write report (high) due 2024-03-01" in reply
    assert "2 litres" in reply

    reply = await registry.handle(state, "/done 2", io)
    assert "[x] Write report" in (reply or "")

    reply = await registry.handle(state, "/filter completed", io)
    assert state.task_filter.status is StatusFilter.COMPLETED
    assert "Buy milk" not in (reply or "")

    await registry.handle(state, "/filter all", io)
    reply = await registry.handle(state, "/sort priority_desc", io)
    assert state.task_filter.sort is TaskSort.PRIORITY_DESC
    assert (reply or "").index("Write report") < (reply or "").index("Buy milk")

    reply = await registry.handle(state, "/rm 1", ScriptedIO(["y"]))
    assert "Write report" not in (reply or "")
    assert [t["title"] for t in provider.tasks.values()] == ["Buy milk"]


@pytest.mark.asyncio
async def test_edit_command(state: AppState, provider: InMemoryProvider) -> None:
    await _logged_in(state, provider)
    io = ScriptedIO()
    await registry.handle(state, "/add Draft --deadline 2024-03-01", io)

    reply = await registry.handle(state, '/edit 1 --title "Final draft" --priority medium --deadline none', io)

    assert "1. [ ] Final draft (medium)" in (reply or "")
    assert "due" not in (reply or "")
    assert await registry.handle(state, "/edit 1 --priority urgent", io) == "Priority must be low, medium or high."
    assert await registry.handle(state, "/edit 9 --title x", io) is not None
    assert await registry.handle(state, "/edit 1", io) == "Nothing to change."


@pytest.mark.asyncio
async def test_logout_command_clears_state(state: AppState, provider: InMemoryProvider) -> None:
    await _logged_in(state, provider)

    reply = await registry.handle(state, "/logout", ScriptedIO())

    assert reply == "Logged out."
    assert not state.api.session.is_authenticated
    assert state.tasks.tasks == []


@pytest.mark.asyncio
async def test_console_loop_dispatches_until_exit(state: AppState) -> None:
    io = ScriptedIO(["/help", "hello", "", "/exit", "/help"])

    await run_console_loop(state, io)

    assert any(line.startswith("Available commands:") for line in io.emitted)
    assert "Commands start with '/'. Use /help to list them." in io.emitted
    # Stopped at /exit.
    assert io.answers == ["/help"]


@pytest.mark.asyncio
async def test_console_loop_stops_on_eof(state: AppState) -> None:
    await run_console_loop(state, ScriptedIO([]))
