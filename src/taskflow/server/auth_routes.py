# src/taskflow/server/auth_routes.py

"""
Auth route handlers: signup (email OTP), OTP verification, password set/reset,
login/logout, forgot-password.

Every response has the shape {success, message, data?}. Provider failures are
mapped to fixed messages (400/401/404); anything unexpected becomes a 500 with
the exception text. No handler retries.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from ..core.errors import ProviderError
from ..core.validation import validate_email, validate_password
from ..tasks.task_models import format_timestamp, utcnow
from .schemas import CredentialsBody, EmailBody, OtpBody, ResetPasswordBody
from .services import Services, get_services

logger = logging.getLogger(__name__)

ACCESS_COOKIE = "sb-access-token"
REFRESH_COOKIE = "sb-refresh-token"
ACCESS_COOKIE_MAX_AGE = 60 * 60 * 24 * 7
REFRESH_COOKIE_MAX_AGE = 60 * 60 * 24 * 30

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _ok(message: str, data: dict[str, Any] | None = None, status: int = 200) -> JSONResponse:
    body: dict[str, Any] = {"success": True, "message": message}
    if data is not None:
        body["data"] = data
    return JSONResponse(body, status_code=status)


def _fail(message: str, status: int) -> JSONResponse:
    return JSONResponse({"success": False, "message": message}, status_code=status)


def _internal_error(where: str, e: Exception) -> JSONResponse:
    logger.exception("%s failed", where)
    return _fail(str(e) or "Internal server error", 500)


def _bearer_or_cookie(request: Request) -> str | None:
    auth = request.headers.get("authorization") or ""
    if auth.lower().startswith("bearer "):
        token = auth[7:].strip()
        if token:
            return token
    return request.cookies.get(ACCESS_COOKIE) or None


@router.post("/signup")
async def signup(body: EmailBody, services: Services = Depends(get_services)) -> JSONResponse:
    try:
        if not body.email:
            return _fail("Email is required", 400)
        if not validate_email(body.email):
            return _fail("Invalid email format", 400)
        email = body.email.lower()

        try:
            existing = await services.auth.find_user_by_email(email)
            profile = await services.profiles.get_profile(existing.id) if existing else None
        except ProviderError as e:
            logger.warning("Duplicate check skipped email=%s: %s", email, e.message)
            profile = None
        if profile and profile.get("is_password_set"):
            return _fail("User already registered", 400)

        try:
            await services.auth.send_email_otp(email)
        except ProviderError as e:
            logger.warning("OTP send failed email=%s: %s", email, e.message)
            return _fail(e.message, 400)

        logger.info("Signup OTP sent email=%s", email)
        return _ok("OTP sent to your email", {"email": email, "otpSent": True})
    except Exception as e:
        return _internal_error("signup", e)


@router.post("/verify-otp")
async def verify_otp(body: OtpBody, services: Services = Depends(get_services)) -> JSONResponse:
    try:
        if not body.email or not body.token:
            return _fail("Email and OTP token are required", 400)
        email = body.email.lower()

        try:
            session = await services.auth.verify_email_otp(email, body.token)
        except ProviderError as e:
            logger.info("OTP verification failed email=%s: %s", email, e.message)
            return _fail("Invalid or expired OTP", 400)

        if session.user is None:
            return _fail("User not found", 404)
        user_id = session.user.id

        try:
            await services.profiles.upsert_profile(
                {
                    "id": user_id,
                    "email": email,
                    "is_password_set": False,
                    "updated_at": format_timestamp(utcnow()),
                }
            )
        except ProviderError as e:
            # Not fatal: the password step updates the profile again.
            logger.warning("Profile upsert failed user_id=%s: %s", user_id, e.message)

        return _ok(
            "OTP verified successfully",
            {
                "userId": user_id,
                "email": email,
                "session": session.to_json(),
                "otpVerified": True,
            },
        )
    except Exception as e:
        return _internal_error("verify-otp", e)


@router.post("/set-password")
async def set_password(body: CredentialsBody, services: Services = Depends(get_services)) -> JSONResponse:
    try:
        if not body.email or not body.password:
            return _fail("Email and password are required", 400)

        check = validate_password(body.password)
        if not check.valid:
            return _fail(check.errors[0], 400)

        email = body.email.lower()
        try:
            user = await services.auth.find_user_by_email(email)
            profile = await services.profiles.get_profile(user.id) if user else None
        except ProviderError as e:
            logger.warning("User lookup failed email=%s: %s", email, e.message)
            return _fail("Failed to find user", 400)
        if user is None:
            return _fail("User not found", 404)

        if profile and profile.get("is_password_set"):
            return _fail("Password already set. Use password reset instead.", 400)

        try:
            await services.auth.update_user_password(user.id, body.password)
        except ProviderError as e:
            logger.warning("Set password failed user_id=%s: %s", user.id, e.message)
            return _fail("Failed to set password", 400)

        now = format_timestamp(utcnow())
        try:
            await services.profiles.update_profile(
                user.id,
                {"is_password_set": True, "password_created_at": now, "updated_at": now},
            )
        except ProviderError as e:
            logger.warning("Profile update failed user_id=%s: %s", user.id, e.message)
            return _fail("Failed to update user profile", 400)

        logger.info("Password set user_id=%s", user.id)
        return _ok("Password set successfully", {"userId": user.id, "email": email, "passwordSet": True})
    except Exception as e:
        return _internal_error("set-password", e)


@router.post("/login")
async def login(body: CredentialsBody, services: Services = Depends(get_services)) -> JSONResponse:
    try:
        if not body.email or not body.password:
            return _fail("Email and password are required", 400)
        if not validate_email(body.email):
            return _fail("Invalid email format", 400)
        email = body.email.lower()

        try:
            session = await services.auth.sign_in_with_password(email, body.password)
        except ProviderError as e:
            logger.info("Login failed email=%s: %s", email, e.message)
            return _fail("Invalid email or password", 401)

        user = session.user
        resp = _ok(
            "Logged in successfully",
            {
                "user": {"id": user.id if user else None, "email": user.email if user else email},
                "session": session.to_json(),
            },
        )

        secure = services.settings.cookie_secure
        resp.set_cookie(
            ACCESS_COOKIE,
            session.access_token,
            max_age=ACCESS_COOKIE_MAX_AGE,
            httponly=True,
            secure=secure,
            samesite="lax",
            path="/",
        )
        if session.refresh_token:
            resp.set_cookie(
                REFRESH_COOKIE,
                session.refresh_token,
                max_age=REFRESH_COOKIE_MAX_AGE,
                httponly=True,
                secure=secure,
                samesite="lax",
                path="/",
            )
        logger.info("Login ok user_id=%s", user.id if user else None)
        return resp
    except Exception as e:
        return _internal_error("login", e)


@router.post("/logout")
async def logout(request: Request, services: Services = Depends(get_services)) -> JSONResponse:
    token = _bearer_or_cookie(request)
    if token:
        try:
            await services.auth.sign_out(token)
        except ProviderError as e:
            logger.info("Provider sign-out failed: %s", e.message)
        except Exception:
            logger.exception("logout: provider sign-out crashed")

    resp = _ok("Logged out successfully")
    resp.delete_cookie(ACCESS_COOKIE, path="/")
    resp.delete_cookie(REFRESH_COOKIE, path="/")
    return resp


@router.post("/forgot-password")
async def forgot_password(body: EmailBody, services: Services = Depends(get_services)) -> JSONResponse:
    generic = "If email exists, password reset link has been sent"
    try:
        if not body.email:
            return _fail("Email is required", 400)
        if not validate_email(body.email):
            return _fail("Invalid email format", 400)
        email = body.email.lower()

        try:
            user = await services.auth.find_user_by_email(email)
        except ProviderError as e:
            logger.warning("User lookup failed email=%s: %s", email, e.message)
            return _fail("Failed to process request", 400)

        if user is not None:
            redirect_to = f"{services.settings.app_url}/auth/reset-password"
            try:
                await services.auth.send_password_recovery(email, redirect_to)
            except ProviderError as e:
                # Answer identically either way so callers cannot probe for accounts.
                logger.warning("Recovery email failed user_id=%s: %s", user.id, e.message)

        return _ok(generic)
    except Exception as e:
        return _internal_error("forgot-password", e)


@router.post("/reset-password")
async def reset_password(body: ResetPasswordBody, services: Services = Depends(get_services)) -> JSONResponse:
    try:
        if not body.password or (not body.token and not body.email):
            return _fail("Password and token/email are required", 400)

        check = validate_password(body.password)
        if not check.valid:
            return _fail(check.errors[0], 400)

        user_id: str | None = None
        if body.email:
            try:
                user = await services.auth.find_user_by_email(body.email)
            except ProviderError as e:
                logger.warning("User lookup failed: %s", e.message)
                return _fail("Failed to process request", 400)
            if user is None:
                return _fail("User not found", 404)
            user_id = user.id

        # TODO: resolve the user from a recovery token once the token format is settled;
        # until then a token-only request cannot be matched to an account.
        if not user_id:
            return _fail("Unable to identify user", 400)

        try:
            await services.auth.update_user_password(user_id, body.password)
        except ProviderError as e:
            logger.warning("Reset password failed user_id=%s: %s", user_id, e.message)
            return _fail("Failed to reset password", 400)

        now = format_timestamp(utcnow())
        try:
            await services.profiles.update_profile(user_id, {"password_created_at": now, "updated_at": now})
        except ProviderError as e:
            logger.warning("Profile update failed user_id=%s: %s", user_id, e.message)
            return _fail("Failed to update user profile", 400)

        logger.info("Password reset user_id=%s", user_id)
        return _ok("Password reset successfully", {"userId": user_id, "passwordReset": True})
    except Exception as e:
        return _internal_error("reset-password", e)
