"""
Service resource attributes.

The resource is the static attribute set attached to every span, metric and
log record this process emits. It is built once at startup and shared by the
tracer, meter and logger providers.
"""

import socket
from typing import Optional

from opentelemetry.sdk.resources import (
    DEPLOYMENT_ENVIRONMENT,
    HOST_NAME,
    SERVICE_NAME,
    SERVICE_VERSION,
    Resource,
)

from src.core.config import TelemetrySettings


def build_resource(
    telemetry: TelemetrySettings,
    environment: str = "development",
    host_name: Optional[str] = None,
) -> Resource:
    """
    Create the service resource.

    ``Resource.create`` merges the SDK's own ``telemetry.sdk.*`` attributes and
    anything supplied through ``OTEL_RESOURCE_ATTRIBUTES``; the values given
    here take precedence.

    Args:
        telemetry: Telemetry settings carrying service name and version
        environment: Deployment environment name
        host_name: Host name override (defaults to ``socket.gethostname()``)

    Returns:
        Immutable OpenTelemetry Resource
    """
    return Resource.create(
        {
            SERVICE_NAME: telemetry.service_name,
            SERVICE_VERSION: telemetry.service_version,
            DEPLOYMENT_ENVIRONMENT: environment,
            HOST_NAME: host_name or socket.gethostname(),
        }
    )
