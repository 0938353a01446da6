"""
Tests for telemetry pipeline configuration.

Exporters are built through a recording factory, so every test can assert
exactly which sinks were instantiated and inspect what they received.
"""

import json
import logging
from typing import Any

import pytest
from opentelemetry.exporter.otlp.proto.http.trace_exporter import (
    OTLPSpanExporter as HttpSpanExporter,
)
from opentelemetry.sdk._logs.export import InMemoryLogExporter
from opentelemetry.sdk.metrics.export import InMemoryMetricReader
from opentelemetry.sdk.trace.export.in_memory_span_exporter import (
    InMemorySpanExporter,
)

from src.core.config import OtlpExporterSettings, Settings
from src.core.exceptions import TelemetryConfigurationError
from src.observability.pipeline import (
    ExporterFactory,
    OtlpProtocol,
    OtlpTarget,
    configure_telemetry,
    resolve_otlp_protocol,
    resolve_otlp_target,
)


class RecordingExporterFactory(ExporterFactory):
    """Exporter factory returning in-memory exporters and recording each call."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, Any]] = []
        self.span_exporters: list[InMemorySpanExporter] = []
        self.log_exporters: list[InMemoryLogExporter] = []

    def _span(self, kind: str, target: Any = None) -> InMemorySpanExporter:
        self.calls.append((kind, target))
        exporter = InMemorySpanExporter()
        self.span_exporters.append(exporter)
        return exporter

    def _log(self, kind: str, target: Any = None) -> InMemoryLogExporter:
        self.calls.append((kind, target))
        exporter = InMemoryLogExporter()
        self.log_exporters.append(exporter)
        return exporter

    def console_span_exporter(self):
        return self._span("console_span")

    def console_metric_exporter(self):
        self.calls.append(("console_metric", None))
        return super().console_metric_exporter()

    def console_log_exporter(self):
        return self._log("console_log")

    def otlp_span_exporter(self, target):
        return self._span("otlp_span", target)

    def otlp_metric_exporter(self, target):
        self.calls.append(("otlp_metric", target))
        return super().console_metric_exporter()

    def otlp_log_exporter(self, target):
        return self._log("otlp_log", target)

    def file_log_exporter(self, path):
        self.calls.append(("file_log", path))
        return super().file_log_exporter(path)

    def prometheus_reader(self):
        self.calls.append(("prometheus", None))
        return InMemoryMetricReader()

    def kinds(self) -> list[str]:
        return [kind for kind, _ in self.calls]


def make_settings(**exporter: Any) -> Settings:
    return Settings(
        telemetry={
            "service_name": "pipeline-test",
            "service_version": "2.0.0",
            "exporter": exporter,
        }
    )


@pytest.fixture
def factory() -> RecordingExporterFactory:
    return RecordingExporterFactory()


@pytest.fixture
def build(factory):
    """Build pipelines without touching process-wide providers; shut down after."""
    built = []

    def _build(settings: Settings):
        pipelines = configure_telemetry(
            settings, exporters=factory, register_globals=False
        )
        built.append(pipelines)
        return pipelines

    yield _build
    for pipelines in built:
        pipelines.shutdown()


def emit_logs(pipelines, name: str, count: int) -> None:
    app_logger = logging.getLogger(name)
    app_logger.setLevel(logging.INFO)
    app_logger.propagate = False
    app_logger.addHandler(pipelines.logging_handler)
    try:
        for i in range(count):
            app_logger.info("record %d", i)
    finally:
        app_logger.removeHandler(pipelines.logging_handler)
    pipelines.force_flush()


# =============================================================================
# Sink Selection
# =============================================================================


class TestSinkSelection:
    """Tests that only enabled sinks are instantiated."""

    def test_no_sinks_by_default(self, build, factory) -> None:
        pipelines = build(make_settings())

        assert factory.calls == []
        assert pipelines.sinks == {"traces": [], "metrics": [], "logs": []}

    def test_file_only_routes_every_record_to_file(
        self, build, factory, tmp_path
    ) -> None:
        log_path = tmp_path / "logs" / "otel.json"
        pipelines = build(
            make_settings(file={"enabled": True, "log_path": str(log_path)})
        )

        emit_logs(pipelines, "tests.pipeline.file_only", 3)

        assert factory.kinds() == ["file_log"]
        assert factory.span_exporters == []
        assert factory.log_exporters == []
        lines = [json.loads(line) for line in log_path.read_text().splitlines()]
        assert [line["formattedMessage"] for line in lines] == [
            "record 0",
            "record 1",
            "record 2",
        ]
        assert all(line["body"] == "record %d" for line in lines)
        assert lines[0]["categoryName"] == "tests.pipeline.file_only"
        assert lines[0]["logLevel"] == "INFO"

    def test_console_sink_covers_all_signals(self, build, factory) -> None:
        pipelines = build(make_settings(console={"enabled": True}))

        assert sorted(factory.kinds()) == [
            "console_log",
            "console_metric",
            "console_span",
        ]
        assert pipelines.sinks == {
            "traces": ["console"],
            "metrics": ["console"],
            "logs": ["console"],
        }

    def test_prometheus_adds_metric_reader_only(self, build, factory) -> None:
        pipelines = build(make_settings(prometheus={"enabled": True}))

        assert factory.kinds() == ["prometheus"]
        assert pipelines.sinks["metrics"] == ["prometheus"]

    def test_otlp_sink_covers_all_signals(self, build, factory) -> None:
        pipelines = build(
            make_settings(otlp={"enabled": True, "endpoint": "http://collector:4317"})
        )

        assert sorted(factory.kinds()) == ["otlp_log", "otlp_metric", "otlp_span"]
        assert pipelines.sinks["traces"] == ["otlp"]

    def test_spans_reach_enabled_sink_with_resource(self, build, factory) -> None:
        pipelines = build(make_settings(console={"enabled": True}))
        tracer = pipelines.registry.tracer("tests.pipeline")

        with tracer.start_as_current_span("work"):
            pass
        pipelines.force_flush()

        spans = factory.span_exporters[0].get_finished_spans()
        assert [s.name for s in spans] == ["work"]
        assert spans[0].resource.attributes["service.name"] == "pipeline-test"
        assert spans[0].resource.attributes["service.version"] == "2.0.0"

    def test_handler_not_attached_without_globals(self, build) -> None:
        pipelines = build(make_settings())

        assert pipelines.logging_handler not in logging.getLogger().handlers
        assert pipelines.globals_registered is False


# =============================================================================
# OTLP Target Resolution
# =============================================================================


class TestOtlpTarget:
    """Tests for endpoint validation and protocol resolution."""

    def test_invalid_endpoint_fails_configuration(self, build) -> None:
        with pytest.raises(TelemetryConfigurationError) as exc_info:
            build(make_settings(otlp={"enabled": True, "endpoint": "not a url"}))

        assert exc_info.value.setting == "telemetry.exporter.otlp.endpoint"
        assert exc_info.value.value == "not a url"

    def test_invalid_endpoint_ignored_when_disabled(self, build) -> None:
        pipelines = build(make_settings(otlp={"enabled": False, "endpoint": "nope"}))

        assert pipelines.sinks["traces"] == []

    def test_unknown_protocol_falls_back_to_grpc(self, build, factory) -> None:
        build(
            make_settings(
                otlp={
                    "enabled": True,
                    "endpoint": "http://collector:4317",
                    "protocol": "carrier-pigeon",
                }
            )
        )

        targets = [target for kind, target in factory.calls if kind == "otlp_span"]
        assert targets[0].protocol is OtlpProtocol.GRPC

    @pytest.mark.parametrize(
        ("configured", "expected"),
        [
            ("grpc", OtlpProtocol.GRPC),
            ("http_protobuf", OtlpProtocol.HTTP_PROTOBUF),
            ("websocket", OtlpProtocol.GRPC),
        ],
    )
    def test_resolve_protocol(self, configured: str, expected: OtlpProtocol) -> None:
        assert resolve_otlp_protocol(configured) is expected

    def test_http_endpoint_is_insecure(self) -> None:
        target = resolve_otlp_target(
            OtlpExporterSettings(enabled=True, endpoint="http://localhost:4317")
        )

        assert target.insecure is True
        assert target.protocol is OtlpProtocol.GRPC

    def test_https_endpoint_is_secure(self) -> None:
        target = resolve_otlp_target(
            OtlpExporterSettings(
                enabled=True, endpoint="https://otel.example.com", protocol="HttpProtobuf"
            )
        )

        assert target.insecure is False
        assert target.protocol is OtlpProtocol.HTTP_PROTOBUF

    def test_signal_url(self) -> None:
        target = OtlpTarget(
            endpoint="http://collector:4318/",
            protocol=OtlpProtocol.HTTP_PROTOBUF,
            insecure=True,
        )

        assert target.signal_url("logs") == "http://collector:4318/v1/logs"

    def test_http_protobuf_builds_http_exporter(self) -> None:
        target = OtlpTarget(
            endpoint="http://collector:4318",
            protocol=OtlpProtocol.HTTP_PROTOBUF,
            insecure=True,
        )

        exporter = ExporterFactory().otlp_span_exporter(target)

        assert isinstance(exporter, HttpSpanExporter)
        exporter.shutdown()


# =============================================================================
# Shutdown
# =============================================================================


class TestShutdown:
    """Tests for TelemetryPipelines.shutdown()."""

    def test_shutdown_is_idempotent(self, build) -> None:
        pipelines = build(make_settings())

        pipelines.shutdown()
        pipelines.shutdown()

        assert pipelines.is_shut_down is True

    def test_shutdown_flushes_file_sink(self, build, tmp_path) -> None:
        log_path = tmp_path / "otel.json"
        pipelines = build(
            make_settings(file={"enabled": True, "log_path": str(log_path)})
        )
        app_logger = logging.getLogger("tests.pipeline.shutdown")
        app_logger.propagate = False
        app_logger.setLevel(logging.INFO)
        app_logger.addHandler(pipelines.logging_handler)
        try:
            app_logger.warning("flushed on shutdown")
        finally:
            app_logger.removeHandler(pipelines.logging_handler)

        pipelines.shutdown()

        lines = log_path.read_text().splitlines()
        assert json.loads(lines[0])["formattedMessage"] == "flushed on shutdown"
