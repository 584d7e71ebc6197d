# src/taskflow/server/app.py

"""
FastAPI application factory.

The app never constructs provider clients itself: the composition root
(cli/bootstrap.py) builds Services once and passes them in; the lifespan hook
closes them on shutdown.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from . import auth_routes, pages, task_routes
from .gate import route_gate
from .services import Services
from .task_routes import RouteError

logger = logging.getLogger(__name__)


async def _route_error_handler(request: Request, exc: RouteError) -> JSONResponse:
    return JSONResponse(exc.body, status_code=exc.status)


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("Malformed request body path=%s: %s", request.url.path, exc.errors())
    if request.url.path.startswith("/api/tasks"):
        return JSONResponse({"error": "Invalid request body", "details": str(exc.errors())}, status_code=400)
    return JSONResponse({"success": False, "message": "Invalid request body"}, status_code=400)


def create_app(services: Services) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("%s API started (provider=%s)", services.settings.app_name, services.settings.provider)
        yield
        await services.aclose()
        logger.info("%s API stopped", services.settings.app_name)

    app = FastAPI(title="TaskFlow API", version="1.0.0", lifespan=lifespan)
    app.state.services = services

    app.add_exception_handler(RouteError, _route_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.middleware("http")(route_gate)

    app.include_router(auth_routes.router)
    app.include_router(task_routes.router)
    app.include_router(pages.router)
    return app
