"""FastAPI application factory with role-based route mounting."""

from __future__ import annotations

from fastapi import FastAPI, Request, Response

from staybook.config import AppRole, get_settings
from staybook.observability.correlation import (
    CORRELATION_ID_HEADER,
    correlation_id_from_headers,
    correlation_scope,
)
from staybook.observability.logging import configure_logging

from .routers import public
from .routes import admin


def create_app(role: AppRole | None = None) -> FastAPI:
    """Create the FastAPI app.

    Args:
        role: Explicit role override. If None, APP_ROLE decides
              (default "public"). "admin" additionally mounts /admin routes.

    Returns:
        Configured FastAPI application.
    """
    settings = get_settings()
    if role is None:
        role = settings.app_role

    configure_logging(settings.log_level)

    app = FastAPI(title="Staybook", docs_url=None, redoc_url=None)

    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next) -> Response:
        cid = correlation_id_from_headers(request.headers)
        with correlation_scope(cid):
            response = await call_next(request)
            response.headers[CORRELATION_ID_HEADER] = cid
            return response

    app.include_router(public.router)

    if role == "admin":
        app.include_router(admin.router)

    return app
