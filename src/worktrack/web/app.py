"""FastAPI application factory for Worktrack.

This module provides the application factory that creates and configures
a FastAPI application with:
- CORS middleware for cross-origin requests
- Request logging middleware with correlation IDs
- Database connection lifecycle management
- Exception handlers mapping the Worktrack error taxonomy to HTTP
- Routers for auth, users, projects, tasks, notifications and activity logs

Example usage:
    >>> from worktrack.config import WorktrackConfig
    >>> from worktrack.web.app import create_app
    >>>
    >>> config = WorktrackConfig()
    >>> app = create_app(config)
    >>>
    >>> # Run with uvicorn
    >>> import uvicorn
    >>> uvicorn.run(app, host="0.0.0.0", port=8000)
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from worktrack import __version__
from worktrack.config import WorktrackConfig
from worktrack.database.connection import get_engine, get_session_factory
from worktrack.errors import (
    AuthenticationError,
    ForbiddenError,
    InvalidPayloadError,
    WorktrackError,
)
from worktrack.logging import get_logger
from worktrack.web.middleware import RequestLoggingMiddleware
from worktrack.web.routes.activity_logs import create_activity_logs_router
from worktrack.web.routes.auth import create_auth_router
from worktrack.web.routes.health import create_health_router
from worktrack.web.routes.notifications import create_notifications_router
from worktrack.web.routes.projects import create_projects_router
from worktrack.web.routes.tasks import create_tasks_router
from worktrack.web.routes.users import create_users_router

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create the engine and session factory on startup, dispose on shutdown.

    Args:
        app: FastAPI application instance

    Yields:
        None after startup, cleans up on context exit
    """
    config: WorktrackConfig = app.state.config

    logger.info("app_startup_begin", host=config.web.host, port=config.web.port)

    engine: AsyncEngine = get_engine(config.database)
    session_factory: async_sessionmaker[AsyncSession] = get_session_factory(engine)

    app.state.engine = engine
    app.state.session_factory = session_factory

    logger.info(
        "database_pool_initialized",
        pool_size=config.database.pool_size,
        max_overflow=config.database.max_overflow,
    )

    yield

    logger.info("app_shutdown_begin")
    await engine.dispose()
    logger.info("database_pool_disposed")


async def worktrack_error_handler(request: Request, exc: WorktrackError) -> JSONResponse:
    """Translate a WorktrackError into its HTTP response."""

    body: dict[str, Any] = {"detail": exc.message}
    headers: dict[str, str] | None = None

    if isinstance(exc, ForbiddenError):
        body["reason"] = exc.reason
    elif isinstance(exc, InvalidPayloadError):
        body["field"] = exc.field
    elif isinstance(exc, AuthenticationError):
        headers = {"WWW-Authenticate": "Bearer"}

    logger.warning(
        "request_rejected",
        error=type(exc).__name__,
        status_code=exc.status_code,
        detail=exc.message,
        method=request.method,
        path=request.url.path,
    )
    return JSONResponse(status_code=exc.status_code, content=body, headers=headers)


def create_app(config: WorktrackConfig | None = None) -> FastAPI:
    """Create and configure a FastAPI application.

    Args:
        config: Optional WorktrackConfig. If None, creates default config.

    Returns:
        Configured FastAPI application instance.

    Example:
        >>> from worktrack.config import WorktrackConfig, WebConfig
        >>>
        >>> app = create_app()
        >>> app = create_app(WorktrackConfig(web=WebConfig(cors_origins=["https://example.com"])))
    """
    if config is None:
        config = WorktrackConfig()

    app = FastAPI(
        title="Worktrack",
        version=__version__,
        description="Role-scoped project and task tracking with audit trail and notifications",
        lifespan=lifespan,
    )

    # Lifespan and dependencies read config from app.state
    app.state.config = config

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.web.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    app.add_exception_handler(WorktrackError, worktrack_error_handler)

    app.include_router(create_health_router())
    app.include_router(create_auth_router())
    app.include_router(create_users_router())
    app.include_router(create_projects_router())
    app.include_router(create_tasks_router())
    app.include_router(create_notifications_router())
    app.include_router(create_activity_logs_router())

    logger.info("app_created", cors_origins=config.web.cors_origins, version=__version__)

    return app
