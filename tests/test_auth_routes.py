# tests/test_auth_routes.py

from __future__ import annotations

import httpx
import pytest

from taskflow.client.http import ApiClient
from taskflow.client.signup_flow import SignupFlow, SuccessStep
from taskflow.core.errors import ApiError
from taskflow.provider.memory import InMemoryProvider
from taskflow.server.auth_routes import ACCESS_COOKIE, REFRESH_COOKIE

from .fakes import STRONG_PASSWORD, register_user


@pytest.mark.asyncio
async def test_signup_flow_end_to_end_then_login(api: ApiClient, provider: InMemoryProvider) -> None:
    flow = SignupFlow(api, redirect_delay_seconds=0.0)

    assert await flow.submit_email("New@Example.com")
    code = provider.last_otp("new@example.com")
    assert code is not None and len(code) == 6

    assert await flow.submit_otp(code)
    assert await flow.submit_password(STRONG_PASSWORD, STRONG_PASSWORD)
    assert isinstance(flow.state, SuccessStep)

    profile = next(iter(provider.profiles.values()))
    assert profile["is_password_set"] is True
    assert profile["password_created_at"]

    result = await api.login("new@example.com", STRONG_PASSWORD)
    assert result["success"] is True
    assert api.session.is_authenticated
    assert api.session.email == "new@example.com"


@pytest.mark.asyncio
async def test_signup_validation(http: httpx.AsyncClient) -> None:
    resp = await http.post("/api/auth/signup", json={})
    assert resp.status_code == 400
    assert resp.json() == {"success": False, "message": "Email is required"}

    resp = await http.post("/api/auth/signup", json={"email": "nope"})
    assert resp.status_code == 400
    assert resp.json()["message"] == "Invalid email format"

    resp = await http.post("/api/auth/signup", json={"email": "a@b.co\n"})
    assert resp.status_code == 400
    assert resp.json()["message"] == "Invalid email format"


@pytest.mark.asyncio
async def test_signup_rejects_registered_email(http: httpx.AsyncClient, provider: InMemoryProvider) -> None:
    await register_user(provider, "taken@example.com")

    resp = await http.post("/api/auth/signup", json={"email": "taken@example.com"})

    assert resp.status_code == 400
    assert resp.json()["message"] == "User already registered"


@pytest.mark.asyncio
async def test_signup_response_shape(http: httpx.AsyncClient) -> None:
    resp = await http.post("/api/auth/signup", json={"email": "a@b.co"})

    assert resp.status_code == 200
    assert resp.json() == {
        "success": True,
        "message": "OTP sent to your email",
        "data": {"email": "a@b.co", "otpSent": True},
    }


@pytest.mark.asyncio
async def test_verify_otp_wrong_code(http: httpx.AsyncClient, provider: InMemoryProvider) -> None:
    await http.post("/api/auth/signup", json={"email": "a@b.co"})
    wrong = "000000" if provider.last_otp("a@b.co") != "000000" else "111111"

    resp = await http.post("/api/auth/verify-otp", json={"email": "a@b.co", "token": wrong})

    assert resp.status_code == 400
    assert resp.json()["message"] == "Invalid or expired OTP"


@pytest.mark.asyncio
async def test_verify_otp_returns_session(http: httpx.AsyncClient, provider: InMemoryProvider) -> None:
    await http.post("/api/auth/signup", json={"email": "a@b.co"})

    resp = await http.post("/api/auth/verify-otp", json={"email": "a@b.co", "token": provider.last_otp("a@b.co")})

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["otpVerified"] is True
    assert data["email"] == "a@b.co"
    assert set(data["session"]) == {"accessToken", "refreshToken", "expiresIn", "expiresAt"}
    assert provider.profiles[data["userId"]]["is_password_set"] is False


@pytest.mark.asyncio
async def test_set_password_policy_returns_first_error(http: httpx.AsyncClient) -> None:
    resp = await http.post("/api/auth/set-password", json={"email": "a@b.co", "password": "abc"})

    assert resp.status_code == 400
    assert resp.json()["message"] == "Password must be at least 8 characters"


@pytest.mark.asyncio
async def test_set_password_unknown_user(http: httpx.AsyncClient) -> None:
    resp = await http.post("/api/auth/set-password", json={"email": "ghost@b.co", "password": STRONG_PASSWORD})

    assert resp.status_code == 404
    assert resp.json()["message"] == "User not found"


@pytest.mark.asyncio
async def test_set_password_refuses_when_already_set(http: httpx.AsyncClient, provider: InMemoryProvider) -> None:
    await register_user(provider, "a@b.co")

    resp = await http.post("/api/auth/set-password", json={"email": "a@b.co", "password": "Different1!"})

    assert resp.status_code == 400
    assert resp.json()["message"] == "Password already set. Use password reset instead."


@pytest.mark.asyncio
async def test_login_sets_http_only_cookies(http: httpx.AsyncClient, provider: InMemoryProvider) -> None:
    user_id = await register_user(provider, "a@b.co")

    resp = await http.post("/api/auth/login", json={"email": "a@b.co", "password": STRONG_PASSWORD})

    assert resp.status_code == 200
    body = resp.json()
    assert body["data"]["user"] == {"id": user_id, "email": "a@b.co"}

    cookies = resp.headers.get_list("set-cookie")
    access = next(c for c in cookies if c.startswith(f"{ACCESS_COOKIE}="))
    refresh = next(c for c in cookies if c.startswith(f"{REFRESH_COOKIE}="))
    assert "HttpOnly" in access and "Max-Age=604800" in access
    assert "samesite=lax" in access.lower()
    assert "Max-Age=2592000" in refresh


@pytest.mark.asyncio
async def test_login_bad_credentials(http: httpx.AsyncClient, provider: InMemoryProvider) -> None:
    await register_user(provider, "a@b.co")

    resp = await http.post("/api/auth/login", json={"email": "a@b.co", "password": "Wrong000!"})

    assert resp.status_code == 401
    assert resp.json() == {"success": False, "message": "Invalid email or password"}
    assert "set-cookie" not in resp.headers


@pytest.mark.asyncio
async def test_login_error_surfaces_through_client(api: ApiClient) -> None:
    with pytest.raises(ApiError) as exc:
        await api.login("nobody@b.co", STRONG_PASSWORD)

    assert exc.value.status == 401
    assert exc.value.message == "Invalid email or password"
    assert not api.session.is_authenticated


@pytest.mark.asyncio
async def test_logout_clears_session_and_revokes_token(api: ApiClient, provider: InMemoryProvider) -> None:
    await register_user(provider, "a@b.co")
    await api.login("a@b.co", STRONG_PASSWORD)
    token = api.session.access_token

    await api.logout()

    assert not api.session.is_authenticated
    assert token not in provider._sessions


@pytest.mark.asyncio
async def test_forgot_password_answers_the_same_for_unknown_email(
    http: httpx.AsyncClient, provider: InMemoryProvider
) -> None:
    await register_user(provider, "a@b.co")

    known = await http.post("/api/auth/forgot-password", json={"email": "a@b.co"})
    unknown = await http.post("/api/auth/forgot-password", json={"email": "ghost@b.co"})

    assert known.status_code == unknown.status_code == 200
    assert known.json() == unknown.json() == {
        "success": True,
        "message": "If email exists, password reset link has been sent",
    }
    assert [m.email for m in provider.outbox if m.kind == "recovery"] == ["a@b.co"]
    assert provider.outbox[-1].payload == "http://testserver/auth/reset-password"


@pytest.mark.asyncio
async def test_reset_password_by_email_changes_login(api: ApiClient, provider: InMemoryProvider) -> None:
    await register_user(provider, "a@b.co")

    result = await api.reset_password("N3wPassword!", email="a@b.co")
    assert result["data"]["passwordReset"] is True

    with pytest.raises(ApiError):
        await api.login("a@b.co", STRONG_PASSWORD)
    assert (await api.login("a@b.co", "N3wPassword!"))["success"] is True


@pytest.mark.asyncio
async def test_reset_password_token_only_cannot_identify_user(http: httpx.AsyncClient) -> None:
    resp = await http.post("/api/auth/reset-password", json={"password": "N3wPassword!", "token": "abc"})

    assert resp.status_code == 400
    assert resp.json()["message"] == "Unable to identify user"


@pytest.mark.asyncio
async def test_reset_password_requires_password_and_identity(http: httpx.AsyncClient) -> None:
    resp = await http.post("/api/auth/reset-password", json={"password": "N3wPassword!"})

    assert resp.status_code == 400
    assert resp.json()["message"] == "Password and token/email are required"


@pytest.mark.asyncio
async def test_malformed_body_is_a_400(http: httpx.AsyncClient) -> None:
    resp = await http.post("/api/auth/login", json={"email": ["not", "a", "string"]})

    assert resp.status_code == 400
    assert resp.json()["success"] is False
