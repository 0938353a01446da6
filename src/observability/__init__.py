"""
Observability Package

Telemetry pipelines for the Contact Manager API:
- Pipeline configuration: resource, sampler and sinks per signal (pipeline.py)
- Line-delimited JSON file sink for log records (file_exporter.py)
- Trace sampling policy (sampling.py)
- HTTP tracing and request tagging middleware (tracing.py)
- Instrumentation registry and per-service span/metric emitter (instrumentation.py)
- Structured diagnostics and logging scopes (logging.py)
"""

from src.observability.file_exporter import FileLogExporter, LogEntry
from src.observability.instrumentation import (
    InstrumentationRegistry,
    ServiceInstrumentation,
)
from src.observability.logging import configure_logging, get_logger, log_scope
from src.observability.pipeline import (
    ExporterFactory,
    OtlpProtocol,
    TelemetryPipelines,
    configure_telemetry,
)
from src.observability.resource import build_resource
from src.observability.sampling import SamplerKind, select_sampler
from src.observability.tracing import (
    RequestTaggingMiddleware,
    TracingMiddleware,
    get_current_span_id,
    get_current_trace_id,
)

__all__ = [
    # Pipelines
    "ExporterFactory",
    "OtlpProtocol",
    "TelemetryPipelines",
    "configure_telemetry",
    "build_resource",
    # Sampling
    "SamplerKind",
    "select_sampler",
    # File sink
    "FileLogExporter",
    "LogEntry",
    # Instrumentation
    "InstrumentationRegistry",
    "ServiceInstrumentation",
    # Middleware
    "TracingMiddleware",
    "RequestTaggingMiddleware",
    "get_current_trace_id",
    "get_current_span_id",
    # Logging
    "configure_logging",
    "get_logger",
    "log_scope",
]
