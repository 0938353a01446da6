"""
Line-delimited JSON file exporter for OpenTelemetry log records.

Each exported batch is appended to a single file, one compact JSON object per
line. Batches exported concurrently never interleave: the serialize, open,
write and close sequence of one batch runs under a lock. A batch is the unit
of failure; when anything goes wrong the whole batch is reported failed, the
error is written to the diagnostic log and nothing is retried.

Line format (camelCase):
    timestamp, traceId, spanId, traceFlags, categoryName, logLevel,
    formattedMessage, body, scopeValues, exception, attributes
"""

import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Sequence, Union

from opentelemetry.sdk._logs.export import LogExporter, LogExportResult
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from src.core.exceptions import ExportError
from src.observability.logging import (
    MESSAGE_TEMPLATE_ATTRIBUTE,
    SCOPE_VALUES_ATTRIBUTE,
    get_logger,
)

logger = get_logger(__name__)

# Semantic convention attributes set by the stdlib logging bridge
_EXCEPTION_TYPE = "exception.type"
_EXCEPTION_MESSAGE = "exception.message"
_EXCEPTION_STACKTRACE = "exception.stacktrace"


# =============================================================================
# Line Model
# =============================================================================


class LogEntry(BaseModel):
    """One line of the log file."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    timestamp: str
    trace_id: str
    span_id: str
    trace_flags: str
    category_name: str
    log_level: str
    formatted_message: Optional[str] = None
    body: Optional[str] = None
    scope_values: list[str] = Field(default_factory=list)
    exception: Optional[str] = None
    attributes: dict[str, Any] = Field(default_factory=dict)

    def to_json_line(self) -> str:
        """Compact single-line JSON with camelCase keys."""
        return self.model_dump_json(by_alias=True)


def _format_timestamp(nanos: Optional[int]) -> str:
    if not nanos:
        return datetime.now(timezone.utc).isoformat()
    return datetime.fromtimestamp(nanos / 1e9, tz=timezone.utc).isoformat()


def _format_level(record: Any) -> str:
    if record.severity_text:
        return str(record.severity_text)
    if record.severity_number is not None:
        return record.severity_number.name
    return "UNSPECIFIED"


def _pop_exception(attributes: dict[str, Any]) -> Optional[str]:
    """Remove the exception attributes and render them as one string."""
    exc_type = attributes.pop(_EXCEPTION_TYPE, None)
    exc_message = attributes.pop(_EXCEPTION_MESSAGE, "")
    stacktrace = attributes.pop(_EXCEPTION_STACKTRACE, None)
    if stacktrace:
        return str(stacktrace)
    if exc_type:
        return f"{exc_type}: {exc_message}"
    return None


def to_log_entry(item: Any) -> LogEntry:
    """
    Convert an exported log item into a LogEntry.

    Accepts both the SDK's ``LogData`` wrapper (``.log_record`` plus
    ``.instrumentation_scope``) and bare readable records.
    """
    record = getattr(item, "log_record", item)
    scope = getattr(item, "instrumentation_scope", None)

    attributes = dict(record.attributes or {})
    scope_values = [
        str(value)
        for value in attributes.pop(SCOPE_VALUES_ATTRIBUTE, ())
        if value is not None
    ]
    template = attributes.pop(MESSAGE_TEMPLATE_ATTRIBUTE, None)
    exception = _pop_exception(attributes)

    formatted = None if record.body is None else str(record.body)

    return LogEntry(
        timestamp=_format_timestamp(record.timestamp or record.observed_timestamp),
        trace_id=format(record.trace_id or 0, "032x"),
        span_id=format(record.span_id or 0, "016x"),
        trace_flags=format(int(record.trace_flags or 0), "02x"),
        category_name=scope.name if scope is not None else "",
        log_level=_format_level(record),
        formatted_message=formatted,
        body=str(template) if template is not None else formatted,
        scope_values=scope_values,
        exception=exception,
        attributes=attributes,
    )


# =============================================================================
# Exporter
# =============================================================================


class FileLogExporter(LogExporter):
    """
    Append log batches to a line-delimited JSON file.

    Thread-safe: one lock per exporter instance serializes batch writes.
    Export never raises; failures are returned as ``LogExportResult.FAILURE``.
    """

    def __init__(self, file_path: Union[str, Path]) -> None:
        """
        Initialize the exporter and create the parent directory.

        Args:
            file_path: Target file; appended to, never truncated
        """
        self._file_path = Path(file_path)
        self._lock = threading.Lock()
        self._shutdown = False

        self._file_path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def file_path(self) -> Path:
        return self._file_path

    def export(self, batch: Sequence[Any]) -> LogExportResult:
        """
        Append every record of the batch, in order.

        Args:
            batch: Log records handed over by the log record processor

        Returns:
            SUCCESS if all lines were written, FAILURE otherwise
        """
        if self._shutdown:
            logger.warning(
                "file log exporter already shut down, dropping batch",
                path=str(self._file_path),
                batch_size=len(batch),
            )
            return LogExportResult.FAILURE

        try:
            self._write_batch(batch)
        except ExportError as e:
            logger.error(
                "error exporting logs to file",
                path=str(self._file_path),
                batch_size=e.batch_size,
                error=e.message,
            )
            return LogExportResult.FAILURE

        return LogExportResult.SUCCESS

    def _write_batch(self, batch: Sequence[Any]) -> None:
        try:
            with self._lock:
                # Serialize first so a bad record fails the batch before any write
                lines = [to_log_entry(item).to_json_line() + "\n" for item in batch]
                with self._file_path.open("a", encoding="utf-8") as handle:
                    handle.writelines(lines)
        except (OSError, ValueError, TypeError, AttributeError) as e:
            raise ExportError(
                f"{type(e).__name__}: {e}", batch_size=len(batch)
            ) from e

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        # Every export closes the file, nothing is buffered here
        return True

    def shutdown(self) -> None:
        self._shutdown = True
