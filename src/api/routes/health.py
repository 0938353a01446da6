"""
Health Router

Liveness and readiness endpoints. Both live under /api/health, which the
tracing middleware excludes from traces.

Reference Documents:
- Building Microservices (Newman) pp. 273-275: Service metrics and synthetic monitoring
- Building Python Microservices with FastAPI (Sinha) pp. 89-91: Dependency injection patterns
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel, Field

from src.api.deps import get_telemetry
from src.observability.pipeline import TelemetryPipelines

logger = logging.getLogger(__name__)

# =============================================================================
# Response Models
# =============================================================================


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    timestamp: datetime
    service: str
    version: str


class ReadinessResponse(BaseModel):
    """Readiness check response model."""

    status: str
    checks: dict[str, bool]
    sinks: dict[str, list[str]] = Field(default_factory=dict)


# =============================================================================
# Router
# =============================================================================

router = APIRouter(prefix="/api/health", tags=["Health"])


@router.get("", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """Liveness: the process is up and serving."""
    return HealthResponse(
        status="Healthy",
        timestamp=datetime.now(timezone.utc),
        service=request.app.title,
        version=request.app.version,
    )


@router.get("/ready", response_model=ReadinessResponse)
async def readiness_check(
    response: Response,
    telemetry: Optional[TelemetryPipelines] = Depends(get_telemetry),
) -> ReadinessResponse:
    """
    Readiness: telemetry pipelines are configured.

    Returns 503 when the pipelines were never built or have been shut down.
    """
    telemetry_ready = telemetry is not None and not telemetry.is_shut_down
    checks = {"telemetry": telemetry_ready}

    if not telemetry_ready:
        logger.warning("Readiness check failed: telemetry pipelines unavailable")
        response.status_code = 503

    return ReadinessResponse(
        status="Ready" if all(checks.values()) else "Not Ready",
        checks=checks,
        sinks=telemetry.sinks if telemetry is not None else {},
    )
