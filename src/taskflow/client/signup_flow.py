# src/taskflow/client/signup_flow.py

"""
Signup as an explicit state machine.

    EmailStep --submit_email--> OtpStep --submit_otp--> PasswordStep --submit_password--> SuccessStep
                 OtpStep --back_to_email--> EmailStep
    SuccessStep --wait_and_leave / dismiss--> navigate to /login

One method per transition. Guards and request failures keep the current state
and record the (normalized) error; calling a transition from the wrong state is
a programming error and raises FlowStateError.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from ..core.errors import FlowStateError, get_error_message
from ..core.validation import validate_email, validate_otp, validate_password
from .http import ApiClient

logger = logging.getLogger(__name__)

LOGIN_PATH = "/login"


@dataclass(frozen=True, slots=True)
class EmailStep:
    name = "email"


@dataclass(frozen=True, slots=True)
class OtpStep:
    email: str
    name = "otp"


@dataclass(frozen=True, slots=True)
class PasswordStep:
    email: str
    name = "password"


@dataclass(frozen=True, slots=True)
class SuccessStep:
    email: str
    name = "success"


SignupState = EmailStep | OtpStep | PasswordStep | SuccessStep


class SignupFlow:
    def __init__(self, api: ApiClient, *, redirect_delay_seconds: float = 2.0) -> None:
        self._api = api
        self._redirect_delay = max(0.0, float(redirect_delay_seconds))

        self.state: SignupState = EmailStep()
        self.is_loading = False
        self.errors: list[str] = []
        self.navigate_to: str | None = None

    @property
    def error(self) -> str | None:
        """All current errors as one message (policy failures are listed together)."""
        return "\n".join(self.errors) if self.errors else None

    def _expect(self, *allowed: type) -> None:
        if not isinstance(self.state, allowed):
            names = "/".join(a.name for a in allowed)
            raise FlowStateError(f"Signup is at step {self.state.name!r}, expected {names!r}")

    def _reject(self, *messages: str) -> bool:
        self.errors = list(messages)
        return False

    # ---- transitions ----

    async def submit_email(self, email: str) -> bool:
        self._expect(EmailStep)
        if self.is_loading:
            return False
        self.errors = []

        email = (email or "").strip()
        if not validate_email(email):
            return self._reject("Please enter a valid email")

        self.is_loading = True
        try:
            result = await self._api.signup(email)
        except Exception as e:
            return self._reject(get_error_message(e))
        finally:
            self.is_loading = False

        if not result.get("success"):
            return self._reject(get_error_message(result))

        self.state = OtpStep(email=email)
        logger.debug("Signup -> otp")
        return True

    def back_to_email(self) -> None:
        self._expect(OtpStep)
        self.errors = []
        self.state = EmailStep()

    async def submit_otp(self, code: str) -> bool:
        self._expect(OtpStep)
        if self.is_loading:
            return False
        self.errors = []

        code = (code or "").strip()
        if not validate_otp(code):
            return self._reject("Please enter a valid 6-digit OTP")

        email = self.state.email
        self.is_loading = True
        try:
            result = await self._api.verify_otp(email, code)
        except Exception as e:
            return self._reject(get_error_message(e))
        finally:
            self.is_loading = False

        if not result.get("success"):
            return self._reject(get_error_message(result))

        self.state = PasswordStep(email=email)
        logger.debug("Signup -> password")
        return True

    async def submit_password(self, password: str, confirm: str) -> bool:
        self._expect(PasswordStep)
        if self.is_loading:
            return False
        self.errors = []

        if not password:
            return self._reject("Password is required")
        if password != confirm:
            return self._reject("Passwords do not match")
        check = validate_password(password)
        if not check.valid:
            return self._reject(*check.errors)

        email = self.state.email
        self.is_loading = True
        try:
            result = await self._api.set_password(email, password)
        except Exception as e:
            return self._reject(get_error_message(e))
        finally:
            self.is_loading = False

        if not result.get("success"):
            return self._reject(get_error_message(result))

        self.state = SuccessStep(email=email)
        logger.info("Signup completed email=%s", email)
        return True

    def dismiss(self) -> str:
        """User closed the success notice: leave immediately."""
        self._expect(SuccessStep)
        self.navigate_to = LOGIN_PATH
        return LOGIN_PATH

    async def wait_and_leave(self) -> str:
        """Leave after the fixed delay unless the user dismissed first."""
        self._expect(SuccessStep)
        if self.navigate_to is None:
            await asyncio.sleep(self._redirect_delay)
            self.navigate_to = LOGIN_PATH
        return self.navigate_to
