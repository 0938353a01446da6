"""
Contact Manager API - Main Application Entry Point

Builds the FastAPI application and wires the telemetry pipelines into it:

- telemetry pipelines are configured once in create_app() and stored on
  app.state.telemetry; they are shut down (and flushed) with the app
- TracingMiddleware opens a SERVER span per request and records the HTTP
  server metrics (health checks excluded)
- RequestTaggingMiddleware, running inside that span, tags request metadata
- /metrics is mounted when the Prometheus sink is enabled
- domain services are built per request (src.api.deps) from the registry and
  the unit_of_work_factory; ConflictError maps to 409
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Callable, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app

from src.api.routes.health import router as health_router
from src.core.config import Settings, get_settings
from src.core.exceptions import ConflictError, ContactsApiException
from src.observability.logging import configure_logging
from src.observability.pipeline import ExporterFactory, configure_telemetry
from src.observability.tracing import RequestTaggingMiddleware, TracingMiddleware
from src.repositories.base import UnitOfWork

logger = logging.getLogger(__name__)

# Application metadata
APP_NAME = "Contact Manager API"
APP_DESCRIPTION = "Personal information management: contacts, groups and tags"

# Paths never traced
UNTRACED_PREFIXES = ["/api/health"]


# =============================================================================
# Lifespan
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Log startup; flush and shut down telemetry on exit."""
    settings: Settings = app.state.settings
    logger.info(
        "Starting %s version %s",
        settings.telemetry.service_name,
        settings.telemetry.service_version,
    )
    app.state.initialized = True

    yield

    logger.info("%s shutting down", settings.telemetry.service_name)
    app.state.initialized = False
    app.state.telemetry.shutdown()


# =============================================================================
# Error Handlers
# =============================================================================


def _error_body(exc: ContactsApiException) -> dict[str, Any]:
    code = getattr(exc.error_code, "value", exc.error_code)
    return {"error": code, "message": exc.message}


async def conflict_handler(request: Request, exc: ConflictError) -> JSONResponse:
    return JSONResponse(status_code=409, content=_error_body(exc))


# =============================================================================
# Application Factory
# =============================================================================


def create_app(
    settings: Optional[Settings] = None,
    exporters: Optional[ExporterFactory] = None,
    register_globals: bool = True,
    unit_of_work_factory: Optional[Callable[[], UnitOfWork]] = None,
) -> FastAPI:
    """
    Create the FastAPI application with telemetry configured.

    Args:
        settings: Application settings (default: environment)
        exporters: Exporter factory override (tests)
        register_globals: Install providers process-wide (False in tests)
        unit_of_work_factory: Creates the unit of work behind the domain
            services (see src.api.deps)

    Raises:
        TelemetryConfigurationError: If a telemetry sink is misconfigured
    """
    settings = settings or get_settings()
    configure_logging(level=settings.log_level)

    telemetry = configure_telemetry(
        settings, exporters=exporters, register_globals=register_globals
    )

    app = FastAPI(
        title=APP_NAME,
        description=APP_DESCRIPTION,
        version=settings.telemetry.service_version,
        docs_url="/docs" if settings.environment != "production" else None,
        redoc_url="/redoc" if settings.environment != "production" else None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.telemetry = telemetry
    app.state.unit_of_work_factory = unit_of_work_factory

    prometheus = settings.telemetry.exporter.prometheus

    # Last added runs first: the tracing span must exist before tagging
    app.add_middleware(RequestTaggingMiddleware)
    app.add_middleware(
        TracingMiddleware,
        registry=telemetry.registry,
        exclude_prefixes=UNTRACED_PREFIXES + [prometheus.path],
    )

    app.add_exception_handler(ConflictError, conflict_handler)

    app.include_router(health_router)

    if prometheus.enabled:
        app.mount(prometheus.path, make_asgi_app())

    @app.get("/", tags=["Info"])
    async def root() -> dict[str, Any]:
        """Root endpoint returning basic service information."""
        return {
            "service": APP_NAME,
            "version": settings.telemetry.service_version,
            "health": "/api/health",
            "docs": "/docs" if settings.environment != "production" else "disabled",
        }

    return app


app = create_app()
