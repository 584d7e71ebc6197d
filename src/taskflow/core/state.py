# src/taskflow/core/state.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ..client.http import ApiClient
from ..client.signup_flow import SignupFlow
from ..client.task_controller import TaskController
from ..tasks.task_models import Task
from ..tasks.task_view import TaskFilter


@dataclass
class AppState:
    """Console client state: one API client, one task controller, the current view."""

    # Settings object (kept untyped so tests can pass a SimpleNamespace).
    settings: Any

    api: ApiClient
    tasks: TaskController

    task_filter: TaskFilter = field(default_factory=TaskFilter)
    signup: SignupFlow | None = None

    # Last rendered view; commands address tasks by their 1-based position in it.
    last_view: tuple[Task, ...] = ()

    def new_signup(self) -> SignupFlow:
        self.signup = SignupFlow(
            self.api,
            redirect_delay_seconds=float(getattr(self.settings, "redirect_delay_seconds", 2.0)),
        )
        return self.signup
