# src/taskflow/core/errors.py

"""
Error taxonomy and message normalization.

Three kinds of failure reach the user:
- client-side validation failures (raised/reported before any request),
- request/transport failures (network, non-2xx from a route handler),
- provider-reported business failures (duplicate email, bad credentials, ...).

Whatever the kind, the UI shows one string produced by get_error_message().
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

GENERIC_ERROR_MESSAGE = "An unexpected error occurred"


class TaskflowError(Exception):
    """Base class for application errors."""


class ConfigError(TaskflowError):
    """Required configuration is missing or invalid. Fatal at startup."""


class ValidationError(TaskflowError):
    """Input rejected client-side before any request was issued."""


class ApiError(TaskflowError):
    """A call to a route handler failed (transport error or non-2xx status)."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status


class ProviderError(TaskflowError):
    """The hosted auth/database provider reported a failure."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status


class FlowStateError(TaskflowError):
    """A signup flow transition was invoked from the wrong state."""


def format_error(error: Any) -> str:
    """Extract a raw message from a string, exception or error-shaped mapping."""
    if error is None:
        return ""
    if isinstance(error, str):
        return error
    if isinstance(error, Mapping):
        for key in ("message", "error"):
            val = error.get(key)
            if isinstance(val, str) and val:
                return val
        return ""
    msg = getattr(error, "message", None)
    if isinstance(msg, str) and msg:
        return msg
    return str(error)


# Order matters: "Invalid email or password" must win over "Invalid email".
_FRIENDLY_MESSAGES: tuple[tuple[tuple[str, ...], str], ...] = (
    (("Invalid email or password",), "Invalid email or password"),
    (("Invalid email",), "Please enter a valid email address"),
    (("already registered",), "This email is already registered"),
    (("Invalid or expired OTP",), "The OTP you entered is invalid or has expired"),
    (("weak",), "Password is too weak. Use uppercase, lowercase, numbers, and special characters"),
    (("network", "connection"), "Network error. Please check your connection"),
)


def get_error_message(error: Any) -> str:
    """Map known provider/transport messages to user-friendly text; pass the rest through."""
    message = format_error(error).strip()
    if not message:
        return GENERIC_ERROR_MESSAGE

    lowered = message.lower()
    for needles, friendly in _FRIENDLY_MESSAGES:
        if any(n.lower() in lowered for n in needles):
            return friendly
    return message
