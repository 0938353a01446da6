"""
Instrumentation handles for domain services.

An ``InstrumentationRegistry`` is built once by the pipeline configurator and
passed by reference to everything that emits telemetry. Each domain service
wraps it in a ``ServiceInstrumentation``, which owns the service's tracer and
meter and creates its metric instruments exactly once.

Span lifecycle per operation:
    created -> attributes/status set by the owning operation -> ended

Usage:
    >>> telemetry = ServiceInstrumentation(registry, "ContactService")
    >>> created = telemetry.counter("contacts.created", "Number of contacts created")
    >>> with telemetry.operation("CreateContact", **{"contact.company": "Acme"}) as span:
    ...     contact = await repository.add(...)
    ...     span.set_attribute("contact.id", str(contact.id))
    ...     created.add(1)
"""

import logging
import threading
from contextlib import contextmanager
from typing import Any, Generator, Optional

from opentelemetry.metrics import Counter, Histogram, Meter, MeterProvider
from opentelemetry.trace import Span, SpanKind, Status, StatusCode, Tracer, TracerProvider

from src.observability.logging import log_scope

logger = logging.getLogger(__name__)

# Instrumentation scope prefix for every service tracer/meter
INSTRUMENTATION_PREFIX = "MyOpenTelemetryApi"


class InstrumentationRegistry:
    """
    Long-lived source of tracers and meters.

    Tracers and meters are cached per name, so repeated lookups return the
    same handle for the life of the process.
    """

    def __init__(
        self,
        tracer_provider: TracerProvider,
        meter_provider: MeterProvider,
        version: Optional[str] = None,
    ) -> None:
        self.tracer_provider = tracer_provider
        self.meter_provider = meter_provider
        self.version = version
        self._tracers: dict[str, Tracer] = {}
        self._meters: dict[str, Meter] = {}
        self._lock = threading.Lock()

    def tracer(self, name: str) -> Tracer:
        with self._lock:
            if name not in self._tracers:
                self._tracers[name] = self.tracer_provider.get_tracer(
                    name, self.version
                )
            return self._tracers[name]

    def meter(self, name: str) -> Meter:
        with self._lock:
            if name not in self._meters:
                self._meters[name] = self.meter_provider.get_meter(name, self.version)
            return self._meters[name]


class ServiceInstrumentation:
    """
    Span and metric emitter for one domain service.

    Attributes:
        service_name: Short service name, e.g. "ContactService"
        source_name: Instrumentation scope, e.g. "MyOpenTelemetryApi.ContactService"
    """

    def __init__(self, registry: InstrumentationRegistry, service_name: str) -> None:
        self.service_name = service_name
        self.source_name = f"{INSTRUMENTATION_PREFIX}.{service_name}"
        self.tracer = registry.tracer(self.source_name)
        self.meter = registry.meter(self.source_name)

    def counter(self, name: str, description: str = "", unit: str = "1") -> Counter:
        """Create a monotonic counter. Call once per instrument, at construction."""
        return self.meter.create_counter(name, unit=unit, description=description)

    def histogram(
        self, name: str, description: str = "", unit: str = "ms"
    ) -> Histogram:
        """Create a histogram. Call once per instrument, at construction."""
        return self.meter.create_histogram(name, unit=unit, description=description)

    @contextmanager
    def operation(self, name: str, **attributes: Any) -> Generator[Span, None, None]:
        """
        Run a domain operation inside an INTERNAL span.

        Attributes with a ``None`` value are skipped. If the block raises, the
        span status is set to ERROR with the exception message and the
        exception is re-raised unchanged.

        Args:
            name: Operation name, used as the span name
            **attributes: Initial span attributes (dotted keys via ``**{...}``)

        Yields:
            The active span
        """
        with self.tracer.start_as_current_span(
            name,
            kind=SpanKind.INTERNAL,
            record_exception=False,
            set_status_on_exception=False,
        ) as span, log_scope(f"{self.service_name}.{name}"):
            set_attributes(span, attributes)
            try:
                yield span
            except Exception as e:
                span.set_status(Status(StatusCode.ERROR, str(e)))
                span.record_exception(e)
                raise


def set_attributes(span: Span, attributes: dict[str, Any]) -> None:
    """Set span attributes, dropping None values and stringifying UUIDs."""
    for key, value in attributes.items():
        if value is None:
            continue
        if not isinstance(value, (str, bool, int, float)):
            value = str(value)
        span.set_attribute(key, value)


def mark_not_found(span: Span, message: str) -> None:
    """Flag a lookup miss on the span without raising."""
    span.set_status(Status(StatusCode.ERROR, message))
