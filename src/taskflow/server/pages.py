# src/taskflow/server/pages.py

# Placeholder pages; the interactive UI is the console client.

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import HTMLResponse

router = APIRouter(include_in_schema=False)


def _page(title: str, body: str) -> HTMLResponse:
    return HTMLResponse(f"<!doctype html><html><head><title>{title} - TaskFlow</title></head><body>{body}</body></html>")


@router.get("/", response_class=HTMLResponse)
async def home() -> HTMLResponse:
    return _page("Home", '<h1>TaskFlow</h1><p><a href="/signup">Get Started</a> | <a href="/login">Login</a></p>')


@router.get("/login", response_class=HTMLResponse)
async def login_page() -> HTMLResponse:
    return _page("Login", "<h1>Login</h1>")


@router.get("/signup", response_class=HTMLResponse)
async def signup_page() -> HTMLResponse:
    return _page("Sign up", "<h1>Create Account</h1>")


@router.get("/dashboard", response_class=HTMLResponse)
async def dashboard_page() -> HTMLResponse:
    return _page("Dashboard", "<h1>My Tasks</h1>")
