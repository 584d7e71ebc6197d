# src/taskflow/server/services.py

from __future__ import annotations

import contextlib
import logging
from dataclasses import dataclass
from typing import Any

from fastapi import Request

from ..config import Settings
from ..core.ports import AuthProvider, ProfileTable, TaskTable

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """
    Everything a route handler needs, constructed once by the composition root
    and stored on app.state. Handlers never build provider clients themselves.
    """

    settings: Settings
    auth: AuthProvider
    tasks: TaskTable
    profiles: ProfileTable

    async def aclose(self) -> None:
        """Close each distinct provider once (the same object often backs all three ports)."""
        seen: set[int] = set()
        for port in (self.auth, self.tasks, self.profiles):
            if id(port) in seen:
                continue
            seen.add(id(port))
            close: Any = getattr(port, "aclose", None)
            if close is None:
                continue
            with contextlib.suppress(Exception):
                await close()
        logger.debug("Provider clients closed.")


def get_services(request: Request) -> Services:
    return request.app.state.services
