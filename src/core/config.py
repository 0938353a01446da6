"""
Core configuration module for the Contact Manager API.

This module provides centralized configuration management using Pydantic Settings.
All configuration is loaded from environment variables with the CONTACTS_API_ prefix.
Nested telemetry settings use a double underscore as delimiter, so the
``telemetry.sampling.ratio`` key is read from
``CONTACTS_API_TELEMETRY__SAMPLING__RATIO``.

Reference:
- OpenTelemetry SDK environment conventions (service.name, service.version)
- GUIDELINES: Sinha pp. 193-195 - Pydantic BaseSettings pattern
"""

from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings


# =============================================================================
# Telemetry Sampling
# =============================================================================


class SamplingSettings(BaseModel):
    """Trace sampling configuration (``telemetry.sampling.*``)."""

    always_on: bool = Field(
        default=True,
        description="Record every trace regardless of ratio",
    )
    # Out-of-range values are clamped by the sampler selector, not rejected here
    ratio: float = Field(
        default=1.0,
        description="Probability of sampling a new root trace (0.0 - 1.0)",
    )


# =============================================================================
# Telemetry Exporters
# =============================================================================


class ConsoleExporterSettings(BaseModel):
    """Console sink for traces, metrics and logs."""

    enabled: bool = False


class FileExporterSettings(BaseModel):
    """Line-delimited JSON file sink for log records."""

    enabled: bool = False
    log_path: str = Field(
        default="logs/otel-logs.json",
        description="Path of the append-only log file",
    )

    @field_validator("log_path")
    @classmethod
    def validate_log_path(cls, v: str) -> str:
        """Reject blank file paths."""
        if not v.strip():
            raise ValueError("File exporter log_path must not be empty")
        return v


class OtlpExporterSettings(BaseModel):
    """OTLP sink for traces, metrics and logs."""

    enabled: bool = False
    endpoint: str = Field(
        default="http://localhost:4317",
        description="OTLP collector endpoint",
    )
    # Kept as a raw string: unknown values fall back to grpc at pipeline build time
    protocol: str = Field(
        default="grpc",
        description="OTLP transport: grpc or http_protobuf",
    )

    @field_validator("protocol")
    @classmethod
    def normalize_protocol(cls, v: str) -> str:
        """Normalize protocol names (``Grpc``, ``HttpProtobuf``) to snake case."""
        normalized = v.strip().lower()
        if normalized == "httpprotobuf":
            return "http_protobuf"
        return normalized


class PrometheusExporterSettings(BaseModel):
    """Prometheus scrape endpoint for metrics."""

    enabled: bool = False
    path: str = "/metrics"


class ExporterSettings(BaseModel):
    """Enabled sinks per exporter kind (``telemetry.exporter.*``)."""

    console: ConsoleExporterSettings = Field(default_factory=ConsoleExporterSettings)
    file: FileExporterSettings = Field(default_factory=FileExporterSettings)
    otlp: OtlpExporterSettings = Field(default_factory=OtlpExporterSettings)
    prometheus: PrometheusExporterSettings = Field(
        default_factory=PrometheusExporterSettings
    )


class TelemetrySettings(BaseModel):
    """Top-level telemetry configuration (``telemetry.*``)."""

    service_name: str = Field(
        default="MyOpenTelemetryApi",
        description="Value of the service.name resource attribute",
    )
    service_version: str = Field(
        default="1.0.0",
        description="Value of the service.version resource attribute",
    )
    metric_export_interval_ms: int = Field(
        default=60000,
        ge=100,
        description="Interval between periodic metric exports",
    )
    sampling: SamplingSettings = Field(default_factory=SamplingSettings)
    exporter: ExporterSettings = Field(default_factory=ExporterSettings)


# =============================================================================
# Application Settings
# =============================================================================


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All fields use the CONTACTS_API_ prefix for environment variables.
    Example: CONTACTS_API_ENVIRONMENT=production
    """

    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Deployment environment",
    )
    log_level: str = Field(
        default="INFO",
        description="Minimum level for application and diagnostic logs",
    )
    telemetry: TelemetrySettings = Field(default_factory=TelemetrySettings)

    model_config = {
        "env_prefix": "CONTACTS_API_",
        "env_nested_delimiter": "__",
        "case_sensitive": False,
        "extra": "ignore",
    }

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()


@lru_cache
def get_settings() -> Settings:
    """
    Get the application settings singleton.

    Uses functools.lru_cache to ensure only one Settings instance is created.

    Returns:
        Settings: The application settings instance.
    """
    return Settings()
