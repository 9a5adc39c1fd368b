"""FastAPI Application Factory.

Creates and configures the Workroom API application with full
middleware stack: security headers, request tracing, error
handling, and CORS.
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from src.api.config import APIConfig, DEFAULT_API_CONFIG
from src.api.models import HealthResponse
from src.api.routes import invitations, workspaces
from src.api_errors.handlers import register_exception_handlers
from src.api_errors.middleware import ErrorHandlingMiddleware
from src.db.engine import get_session_factory
from src.logging_config import configure_logging
from src.logging_config.middleware import RequestTracingMiddleware
from src.settings import Settings, get_settings
from src.workspaces.collaborators import SettingsTableFlags, SqlUserDirectory
from src.workspaces.config import WorkspacesConfig
from src.workspaces.coordinator import LifecycleCoordinator
from src.workspaces.mailer import InvitationMailer, build_mailer

logger = logging.getLogger(__name__)


# ── Security Headers Middleware ───────────────────────────────────────


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds standard security headers to all HTTP responses."""

    async def dispatch(self, request: Request, call_next: Any) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        if os.environ.get("WORKROOM_ENABLE_HSTS", "").lower() == "true":
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )
        return response


# ── Lifespan (startup / shutdown) ────────────────────────────────────


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: initialize logging at startup."""
    configure_logging()
    logger.info("Workroom API starting up")
    yield
    logger.info("Workroom API shutting down")


# ── App Factory ──────────────────────────────────────────────────────


def create_app(
    config: Optional[APIConfig] = None,
    settings: Optional[Settings] = None,
    session_factory: Optional[sessionmaker] = None,
    mailer: Optional[InvitationMailer] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Middleware stack (outermost → innermost):
        SecurityHeaders → RequestTracing → ErrorHandling → CORS → App

    Args:
        config: API configuration. Uses defaults if not provided.
        settings: Service settings. Loaded from the environment if not provided.
        session_factory: Session factory. Built from ``settings.database_url`` if not provided.
        mailer: Invitation mailer. SMTP when configured, otherwise logging.

    Returns:
        Configured FastAPI application.
    """
    config = config or DEFAULT_API_CONFIG
    settings = settings or get_settings()
    session_factory = session_factory or get_session_factory()

    app = FastAPI(
        title=config.title,
        version=config.version,
        description=config.description,
        docs_url=config.docs_url,
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Services ─────────────────────────────────────────────────

    app.state.settings = settings
    app.state.session_factory = session_factory
    app.state.coordinator = LifecycleCoordinator(
        session_factory,
        flags=SettingsTableFlags(session_factory, default_enabled=settings.workspaces_enabled_default),
        directory=SqlUserDirectory(session_factory),
        mailer=mailer or build_mailer(settings),
        config=WorkspacesConfig.from_settings(settings),
    )

    # ── Middleware stack ──────────────────────────────────────────
    # add_middleware prepends, so order here is innermost-first.

    # 1. CORS (innermost, handles preflight before routing)
    cors_origins = os.environ.get("WORKROOM_CORS_ORIGINS", "").split(",")
    cors_origins = [o.strip() for o in cors_origins if o.strip()] or config.cors_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=config.cors_methods,
        allow_headers=config.cors_headers,
    )

    # 2. Error handling (catches exceptions → structured JSON responses)
    app.add_middleware(ErrorHandlingMiddleware)
    register_exception_handlers(app)

    # 3. Request tracing (assigns X-Request-ID, logs lifecycle)
    app.add_middleware(RequestTracingMiddleware)

    # 4. Security headers (outermost, always adds headers)
    app.add_middleware(SecurityHeadersMiddleware)

    # ── Health check ─────────────────────────────────────────────

    @app.get("/health", response_model=HealthResponse)
    def health():
        components = {}
        try:
            with session_factory() as session:
                session.execute(text("SELECT 1"))
            components["database"] = "ok"
        except SQLAlchemyError as e:
            logger.warning(f"Health check database failure: {e}")
            components["database"] = "error"

        overall = "ok" if all(v == "ok" for v in components.values()) else "degraded"
        return HealthResponse(status=overall, version=config.version, components=components)

    # ── Route modules ────────────────────────────────────────────

    app.include_router(workspaces.router, prefix=config.prefix)
    app.include_router(invitations.router, prefix=config.prefix)

    logger.info(f"Workroom API v{config.version} initialized")
    return app
