"""
API Dependencies

FastAPI dependency injection functions for the API layer. All dependencies
can be overridden in tests using FastAPI's dependency_overrides mechanism.

The domain services are built per request from the app's instrumentation
registry and a unit of work obtained from the persistence factory passed to
create_app(). The persistence layer itself lives outside this package.
"""

from typing import Optional

from fastapi import Depends, Request

from src.core.config import Settings, get_settings as _get_settings
from src.observability.instrumentation import InstrumentationRegistry
from src.observability.pipeline import TelemetryPipelines
from src.repositories.base import UnitOfWork
from src.services.contacts import ContactService
from src.services.groups import GroupService
from src.services.tags import TagService


def get_settings() -> Settings:
    """
    Get application settings.

    Pattern: Singleton with @lru_cache (from core.config)
    """
    return _get_settings()


# =============================================================================
# Telemetry
# =============================================================================


def get_telemetry(request: Request) -> Optional[TelemetryPipelines]:
    """Telemetry pipelines stored on app.state at startup, if any."""
    return getattr(request.app.state, "telemetry", None)


def get_instrumentation_registry(request: Request) -> InstrumentationRegistry:
    """
    Instrumentation registry for constructing domain services.

    Raises:
        RuntimeError: If the app was created without telemetry
    """
    telemetry = get_telemetry(request)
    if telemetry is None:
        raise RuntimeError("Telemetry pipelines are not configured")
    return telemetry.registry


# =============================================================================
# Persistence
# =============================================================================


def get_unit_of_work(request: Request) -> UnitOfWork:
    """
    New unit of work from the factory given to create_app().

    Raises:
        RuntimeError: If the app was created without a persistence factory
    """
    factory = getattr(request.app.state, "unit_of_work_factory", None)
    if factory is None:
        raise RuntimeError("Persistence is not configured")
    return factory()


# =============================================================================
# Domain Services
# Pattern: Factory function for DI (Sinha p. 90)
# =============================================================================


def get_contact_service(
    unit_of_work: UnitOfWork = Depends(get_unit_of_work),
    registry: InstrumentationRegistry = Depends(get_instrumentation_registry),
) -> ContactService:
    return ContactService(unit_of_work, registry)


def get_group_service(
    unit_of_work: UnitOfWork = Depends(get_unit_of_work),
    registry: InstrumentationRegistry = Depends(get_instrumentation_registry),
) -> GroupService:
    return GroupService(unit_of_work, registry)


def get_tag_service(
    unit_of_work: UnitOfWork = Depends(get_unit_of_work),
    registry: InstrumentationRegistry = Depends(get_instrumentation_registry),
) -> TagService:
    return TagService(unit_of_work, registry)


__all__ = [
    "get_settings",
    "get_telemetry",
    "get_instrumentation_registry",
    "get_unit_of_work",
    "get_contact_service",
    "get_group_service",
    "get_tag_service",
]
