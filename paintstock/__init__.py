"""Application factory and top-level wiring for PaintStock.

Brings together configuration, database setup, middleware, error handlers and
the routers for the HTML pages and the JSON API.
"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from starlette.middleware.sessions import SessionMiddleware

from .core.config import settings
from .core.errors import register_exception_handlers
from .db.migrate import run_migrations
from .db.session import Base, engine
from .middlewares import RequestIdMiddleware, SecurityHeadersMiddleware

# Registers every table on Base.metadata.
from . import models as _models  # noqa: F401
from .routers import (
    api_auth,
    api_inventory,
    api_projects,
    api_reconciliations,
    api_reports,
    api_tools,
    auth_ui,
    ui,
)


def init_db() -> None:
    Base.metadata.create_all(bind=engine)
    run_migrations(engine)


def create_app() -> FastAPI:
    app = FastAPI(title=settings.APP_NAME)

    app.mount("/static", StaticFiles(directory=str(settings.STATIC_DIR)), name="static")

    # Starlette runs the last-added middleware first.
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.APP_SECRET,
        session_cookie=settings.SESSION_COOKIE_NAME,
        max_age=settings.SESSION_MAX_AGE,
        same_site="lax",
        https_only=False,
    )
    if settings.ALLOWED_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.ALLOWED_ORIGINS,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    app.add_middleware(SecurityHeadersMiddleware, hsts=settings.APP_ENV == "prod")
    app.add_middleware(RequestIdMiddleware)

    register_exception_handlers(app)

    app.include_router(auth_ui.router)
    app.include_router(ui.router)
    app.include_router(api_auth.router)
    app.include_router(api_inventory.router)
    app.include_router(api_tools.router)
    app.include_router(api_projects.router)
    app.include_router(api_reconciliations.router)
    app.include_router(api_reports.router)

    @app.get("/health", include_in_schema=False)
    async def health() -> dict[str, bool]:
        return {"ok": True}

    return app


__all__ = ["create_app", "init_db"]
