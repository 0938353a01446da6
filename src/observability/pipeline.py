"""
Telemetry Pipeline Configuration

Builds the three signal pipelines (traces, metrics, logs) from settings:

    Resource ──┬── TracerProvider ── BatchSpanProcessor ──────── console / OTLP
               ├── MeterProvider ─── PeriodicExportingMetricReader ─ console / OTLP
               │                 └── PrometheusMetricReader (/metrics)
               └── LoggerProvider ── BatchLogRecordProcessor ── console / OTLP / file

Disabled sinks are omitted. A pipeline with no sinks still records (spans are
still sampled and ended) but exports nowhere.

This is the only place that creates process-wide instrumentation handles:
the returned ``TelemetryPipelines.registry`` is passed by reference to the
services and middleware that emit telemetry.

Reference Documents:
- OpenTelemetry Python SDK: TracerProvider, MeterProvider, LoggerProvider
- OTLP exporter: gRPC (port 4317) and HTTP/protobuf (port 4318) transports
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from opentelemetry import metrics, trace
from opentelemetry._logs import set_logger_provider
from opentelemetry.exporter.otlp.proto.grpc._log_exporter import (
    OTLPLogExporter as GrpcLogExporter,
)
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import (
    OTLPMetricExporter as GrpcMetricExporter,
)
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import (
    OTLPSpanExporter as GrpcSpanExporter,
)
from opentelemetry.exporter.otlp.proto.http._log_exporter import (
    OTLPLogExporter as HttpLogExporter,
)
from opentelemetry.exporter.otlp.proto.http.metric_exporter import (
    OTLPMetricExporter as HttpMetricExporter,
)
from opentelemetry.exporter.otlp.proto.http.trace_exporter import (
    OTLPSpanExporter as HttpSpanExporter,
)
from opentelemetry.exporter.prometheus import PrometheusMetricReader
from opentelemetry.sdk._logs import LoggerProvider, LoggingHandler
from opentelemetry.sdk._logs.export import (
    BatchLogRecordProcessor,
    ConsoleLogExporter,
    LogExporter,
)
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import (
    ConsoleMetricExporter,
    MetricExporter,
    MetricReader,
    PeriodicExportingMetricReader,
)
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SpanExporter,
)
from opentelemetry.sdk.trace.sampling import Sampler
from pydantic import AnyHttpUrl, TypeAdapter, ValidationError

from src.core.config import OtlpExporterSettings, Settings
from src.core.exceptions import TelemetryConfigurationError
from src.observability.file_exporter import FileLogExporter
from src.observability.instrumentation import InstrumentationRegistry
from src.observability.logging import LogScopeFilter, get_logger
from src.observability.resource import build_resource
from src.observability.sampling import select_sampler

logger = get_logger(__name__)

_URL_ADAPTER = TypeAdapter(AnyHttpUrl)


# =============================================================================
# OTLP Target
# =============================================================================


class OtlpProtocol(str, Enum):
    """OTLP transport."""

    GRPC = "grpc"
    HTTP_PROTOBUF = "http_protobuf"


DEFAULT_OTLP_PROTOCOL = OtlpProtocol.GRPC


def resolve_otlp_protocol(value: str) -> OtlpProtocol:
    """
    Map a configured protocol name onto OtlpProtocol.

    Unknown names fall back to gRPC with a warning; the sink is never dropped.
    """
    try:
        return OtlpProtocol(value)
    except ValueError:
        logger.warning(
            "unrecognized OTLP protocol, using default",
            configured=value,
            protocol=DEFAULT_OTLP_PROTOCOL.value,
        )
        return DEFAULT_OTLP_PROTOCOL


@dataclass(frozen=True)
class OtlpTarget:
    """Validated OTLP endpoint and transport."""

    endpoint: str
    protocol: OtlpProtocol
    insecure: bool

    def signal_url(self, signal: str) -> str:
        """Per-signal URL used by the HTTP/protobuf transport."""
        return f"{self.endpoint.rstrip('/')}/v1/{signal}"


def resolve_otlp_target(otlp: OtlpExporterSettings) -> OtlpTarget:
    """
    Validate the OTLP endpoint and resolve the transport.

    Raises:
        TelemetryConfigurationError: If the endpoint is not an http(s) URL
    """
    try:
        url = _URL_ADAPTER.validate_python(otlp.endpoint)
    except ValidationError as e:
        raise TelemetryConfigurationError(
            f"Invalid OTLP endpoint '{otlp.endpoint}': {e.errors()[0]['msg']}",
            setting="telemetry.exporter.otlp.endpoint",
            value=otlp.endpoint,
        ) from e

    return OtlpTarget(
        endpoint=otlp.endpoint,
        protocol=resolve_otlp_protocol(otlp.protocol),
        insecure=url.scheme == "http",
    )


# =============================================================================
# Exporter Factory
# =============================================================================


class ExporterFactory:
    """
    Creates sink exporters.

    Every exporter is built through this class so that tests can substitute
    in-memory exporters and count which sinks were instantiated.
    """

    def console_span_exporter(self) -> SpanExporter:
        return ConsoleSpanExporter()

    def console_metric_exporter(self) -> MetricExporter:
        return ConsoleMetricExporter()

    def console_log_exporter(self) -> LogExporter:
        return ConsoleLogExporter()

    def otlp_span_exporter(self, target: OtlpTarget) -> SpanExporter:
        if target.protocol is OtlpProtocol.GRPC:
            return GrpcSpanExporter(endpoint=target.endpoint, insecure=target.insecure)
        if target.protocol is OtlpProtocol.HTTP_PROTOBUF:
            return HttpSpanExporter(endpoint=target.signal_url("traces"))
        raise AssertionError(f"Unhandled OTLP protocol: {target.protocol}")

    def otlp_metric_exporter(self, target: OtlpTarget) -> MetricExporter:
        if target.protocol is OtlpProtocol.GRPC:
            return GrpcMetricExporter(
                endpoint=target.endpoint, insecure=target.insecure
            )
        if target.protocol is OtlpProtocol.HTTP_PROTOBUF:
            return HttpMetricExporter(endpoint=target.signal_url("metrics"))
        raise AssertionError(f"Unhandled OTLP protocol: {target.protocol}")

    def otlp_log_exporter(self, target: OtlpTarget) -> LogExporter:
        if target.protocol is OtlpProtocol.GRPC:
            return GrpcLogExporter(endpoint=target.endpoint, insecure=target.insecure)
        if target.protocol is OtlpProtocol.HTTP_PROTOBUF:
            return HttpLogExporter(endpoint=target.signal_url("logs"))
        raise AssertionError(f"Unhandled OTLP protocol: {target.protocol}")

    def file_log_exporter(self, path: str) -> LogExporter:
        return FileLogExporter(path)

    def prometheus_reader(self) -> MetricReader:
        return PrometheusMetricReader()


# =============================================================================
# Pipelines
# =============================================================================


@dataclass
class TelemetryPipelines:
    """
    The assembled signal pipelines.

    Attributes:
        sinks: Names of the enabled sinks per signal ("traces", "metrics", "logs")
        logging_handler: stdlib handler bridging records into the log pipeline
        registry: Tracer/meter source handed to services and middleware
    """

    resource: Resource
    sampler: Sampler
    tracer_provider: TracerProvider
    meter_provider: MeterProvider
    logger_provider: LoggerProvider
    logging_handler: LoggingHandler
    registry: InstrumentationRegistry
    sinks: dict[str, list[str]] = field(default_factory=dict)
    globals_registered: bool = False
    _shut_down: bool = field(default=False, init=False, repr=False)

    @property
    def is_shut_down(self) -> bool:
        return self._shut_down

    def force_flush(self, timeout_millis: int = 30000) -> None:
        self.tracer_provider.force_flush(timeout_millis)
        self.meter_provider.force_flush(timeout_millis)
        self.logger_provider.force_flush(timeout_millis)

    def shutdown(self) -> None:
        """Flush and shut down all three providers. Safe to call twice."""
        if self._shut_down:
            return
        self._shut_down = True

        logging.getLogger().removeHandler(self.logging_handler)
        self.tracer_provider.shutdown()
        self.meter_provider.shutdown()
        self.logger_provider.shutdown()
        logger.info("telemetry pipelines shut down")


def _build_tracer_provider(
    settings: Settings,
    resource: Resource,
    sampler: Sampler,
    exporters: ExporterFactory,
    otlp: Optional[OtlpTarget],
    sinks: list[str],
) -> TracerProvider:
    provider = TracerProvider(resource=resource, sampler=sampler)
    sink_config = settings.telemetry.exporter

    if sink_config.console.enabled:
        provider.add_span_processor(BatchSpanProcessor(exporters.console_span_exporter()))
        sinks.append("console")
    if otlp is not None:
        provider.add_span_processor(BatchSpanProcessor(exporters.otlp_span_exporter(otlp)))
        sinks.append("otlp")

    return provider


def _build_meter_provider(
    settings: Settings,
    resource: Resource,
    exporters: ExporterFactory,
    otlp: Optional[OtlpTarget],
    sinks: list[str],
) -> MeterProvider:
    telemetry = settings.telemetry
    interval = telemetry.metric_export_interval_ms
    readers: list[MetricReader] = []

    if telemetry.exporter.console.enabled:
        readers.append(
            PeriodicExportingMetricReader(
                exporters.console_metric_exporter(), export_interval_millis=interval
            )
        )
        sinks.append("console")
    if otlp is not None:
        readers.append(
            PeriodicExportingMetricReader(
                exporters.otlp_metric_exporter(otlp), export_interval_millis=interval
            )
        )
        sinks.append("otlp")
    if telemetry.exporter.prometheus.enabled:
        readers.append(exporters.prometheus_reader())
        sinks.append("prometheus")

    return MeterProvider(resource=resource, metric_readers=readers)


def _build_logger_provider(
    settings: Settings,
    resource: Resource,
    exporters: ExporterFactory,
    otlp: Optional[OtlpTarget],
    sinks: list[str],
) -> LoggerProvider:
    provider = LoggerProvider(resource=resource)
    sink_config = settings.telemetry.exporter

    if sink_config.console.enabled:
        provider.add_log_record_processor(
            BatchLogRecordProcessor(exporters.console_log_exporter())
        )
        sinks.append("console")
    if sink_config.file.enabled:
        provider.add_log_record_processor(
            BatchLogRecordProcessor(
                exporters.file_log_exporter(sink_config.file.log_path)
            )
        )
        sinks.append("file")
    if otlp is not None:
        provider.add_log_record_processor(
            BatchLogRecordProcessor(exporters.otlp_log_exporter(otlp))
        )
        sinks.append("otlp")

    return provider


def configure_telemetry(
    settings: Settings,
    exporters: Optional[ExporterFactory] = None,
    register_globals: bool = True,
) -> TelemetryPipelines:
    """
    Build the log, trace and metric pipelines.

    Args:
        settings: Application settings
        exporters: Exporter factory (default: real exporters)
        register_globals: Install the providers as the process-wide
            OpenTelemetry providers and attach the logging handler to the
            root logger. Tests pass False to keep pipelines isolated.

    Returns:
        TelemetryPipelines

    Raises:
        TelemetryConfigurationError: If the OTLP sink is enabled with an
            unparsable endpoint
    """
    telemetry = settings.telemetry
    exporters = exporters or ExporterFactory()

    otlp: Optional[OtlpTarget] = None
    if telemetry.exporter.otlp.enabled:
        otlp = resolve_otlp_target(telemetry.exporter.otlp)

    resource = build_resource(telemetry, environment=settings.environment)
    sampler = select_sampler(telemetry.sampling, service_name=telemetry.service_name)

    sinks: dict[str, list[str]] = {"traces": [], "metrics": [], "logs": []}
    tracer_provider = _build_tracer_provider(
        settings, resource, sampler, exporters, otlp, sinks["traces"]
    )
    meter_provider = _build_meter_provider(
        settings, resource, exporters, otlp, sinks["metrics"]
    )
    logger_provider = _build_logger_provider(
        settings, resource, exporters, otlp, sinks["logs"]
    )

    handler = LoggingHandler(level=logging.NOTSET, logger_provider=logger_provider)
    handler.addFilter(LogScopeFilter())

    registry = InstrumentationRegistry(
        tracer_provider, meter_provider, version=telemetry.service_version
    )

    if register_globals:
        trace.set_tracer_provider(tracer_provider)
        metrics.set_meter_provider(meter_provider)
        set_logger_provider(logger_provider)
        root = logging.getLogger()
        root.addHandler(handler)
        root.setLevel(settings.log_level)

    logger.info(
        "telemetry pipelines configured",
        service=telemetry.service_name,
        version=telemetry.service_version,
        traces=sinks["traces"],
        metrics=sinks["metrics"],
        logs=sinks["logs"],
    )

    return TelemetryPipelines(
        resource=resource,
        sampler=sampler,
        tracer_provider=tracer_provider,
        meter_provider=meter_provider,
        logger_provider=logger_provider,
        logging_handler=handler,
        registry=registry,
        sinks=sinks,
        globals_registered=register_globals,
    )
