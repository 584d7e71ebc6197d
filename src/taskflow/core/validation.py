# src/taskflow/core/validation.py

from __future__ import annotations

import re
from dataclasses import dataclass, field

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
OTP_RE = re.compile(r"^[0-9]{6}$")

PASSWORD_MIN_LENGTH = 8
PASSWORD_SYMBOLS = '!@#$%^&*(),.?":{}|<>'

MSG_TOO_SHORT = f"Password must be at least {PASSWORD_MIN_LENGTH} characters"
MSG_NO_UPPER = "Password must contain at least one uppercase letter"
MSG_NO_LOWER = "Password must contain at least one lowercase letter"
MSG_NO_DIGIT = "Password must contain at least one number"
MSG_NO_SYMBOL = "Password must contain at least one special character"


@dataclass(frozen=True, slots=True)
class PasswordCheck:
    valid: bool
    errors: list[str] = field(default_factory=list)


def validate_email(email: str | None) -> bool:
    return bool(email) and EMAIL_RE.fullmatch(email) is not None


def validate_otp(otp: str | None) -> bool:
    """Exactly six ASCII digits."""
    return bool(otp) and OTP_RE.fullmatch(otp) is not None


def validate_password(password: str | None) -> PasswordCheck:
    """
    Check the password policy and report every failing rule, not just the first.

    Rules: length >= 8, one uppercase, one lowercase, one digit, one symbol
    from PASSWORD_SYMBOLS.
    """
    pw = password or ""
    errors: list[str] = []

    if len(pw) < PASSWORD_MIN_LENGTH:
        errors.append(MSG_TOO_SHORT)
    if not re.search(r"[A-Z]", pw):
        errors.append(MSG_NO_UPPER)
    if not re.search(r"[a-z]", pw):
        errors.append(MSG_NO_LOWER)
    if not re.search(r"[0-9]", pw):
        errors.append(MSG_NO_DIGIT)
    if not any(ch in PASSWORD_SYMBOLS for ch in pw):
        errors.append(MSG_NO_SYMBOL)

    return PasswordCheck(valid=not errors, errors=errors)
