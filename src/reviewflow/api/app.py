"""FastAPI application with lifespan and router mounting."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from reviewflow.api.errors import register_error_handlers
from reviewflow.api.guard import AllowAllAccessGuard
from reviewflow.api.routes import health, reviews, workflows
from reviewflow.core.config import AppSettings
from reviewflow.core.logging import configure_logging
from reviewflow.core.protocols import IAccessGuard
from reviewflow.engine import ReviewServices, create_services


def create_app(
    services: ReviewServices | None = None,
    guard: IAccessGuard | None = None,
    settings: AppSettings | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Services built elsewhere (tests, workers) can be injected; otherwise they
    are wired from settings during startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Initialize and tear down application resources."""
        app_settings = settings or AppSettings()
        configure_logging(app_settings.log_level)
        app.state.settings = app_settings
        if getattr(app.state, "services", None) is None:
            app.state.services = create_services(app_settings)
        yield

    app = FastAPI(
        title="ReviewFlow Review Workflow Engine",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.services = services
    app.state.guard = guard or AllowAllAccessGuard()
    register_error_handlers(app)
    app.include_router(health.router)
    app.include_router(workflows.router, prefix="/workflows")
    app.include_router(reviews.router, prefix="/reviews")
    return app
