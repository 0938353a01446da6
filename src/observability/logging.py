"""
Structured Logging Module

Two logging paths exist in the service:

- Diagnostics of the telemetry machinery itself go through structlog,
  rendered as JSON to a stream (stderr by default). Exporter failures are
  reported here so they can never loop back into the log pipeline.
- Application logs use the stdlib ``logging`` module and are bridged into the
  OpenTelemetry log pipeline by the handler the pipeline configurator attaches.

This module also provides logging scopes: ``log_scope()`` pushes a value onto a
context-local stack and ``LogScopeFilter`` copies the active scopes (and the
unformatted message template) onto every stdlib record it sees.

Pattern: Singleton configuration (configure once at startup)
"""

import contextvars
import logging
import sys
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Generator, Optional, TextIO

import structlog
from opentelemetry import trace
from structlog.types import EventDict, Processor


# Record attributes stamped by LogScopeFilter and read back by the file exporter
SCOPE_VALUES_ATTRIBUTE = "scope_values"
MESSAGE_TEMPLATE_ATTRIBUTE = "message_template"

_configured: bool = False


# =============================================================================
# Logging Scopes
# =============================================================================

_scope_var: contextvars.ContextVar[tuple[str, ...]] = contextvars.ContextVar(
    "log_scopes", default=()
)


def get_scope_values() -> tuple[str, ...]:
    """Return the active logging scopes, outermost first."""
    return _scope_var.get()


@contextmanager
def log_scope(value: object) -> Generator[None, None, None]:
    """
    Push a logging scope for the duration of the block.

    Args:
        value: Scope value; converted to ``str`` when stamped on records

    Example:
        >>> with log_scope("ContactService.CreateContact"):
        ...     logger.info("creating contact")
    """
    token = _scope_var.set(_scope_var.get() + (str(value),))
    try:
        yield
    finally:
        _scope_var.reset(token)


class LogScopeFilter(logging.Filter):
    """
    Stamp active scopes and the message template onto stdlib log records.

    Attached to the OpenTelemetry logging handler; the stamped values end up
    as record attributes and are lifted into ``scopeValues`` and ``body`` by
    the file exporter.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        scopes = get_scope_values()
        if scopes:
            setattr(record, SCOPE_VALUES_ATTRIBUTE, list(scopes))
        if isinstance(record.msg, str) and record.args:
            setattr(record, MESSAGE_TEMPLATE_ATTRIBUTE, record.msg)
        return True


# =============================================================================
# Custom Processors
# =============================================================================


def add_trace_context(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add trace_id / span_id of the active span, if any."""
    span_context = trace.get_current_span().get_span_context()
    if span_context.is_valid:
        event_dict["trace_id"] = format(span_context.trace_id, "032x")
        event_dict["span_id"] = format(span_context.span_id, "016x")
    return event_dict


def add_timestamp(
    logger: logging.Logger, _method_name: str, event_dict: EventDict
) -> EventDict:
    """Add ISO 8601 timestamp to log event."""
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def rename_level(
    logger: logging.Logger, _method_name: str, event_dict: EventDict
) -> EventDict:
    """Rename log_level to level for cleaner output."""
    if "log_level" in event_dict:
        event_dict["level"] = event_dict.pop("log_level")
    return event_dict


# =============================================================================
# Singleton Configuration
# =============================================================================


def configure_logging(
    level: str = "INFO",
    stream: Optional[TextIO] = None,
    force: bool = False,
) -> None:
    """
    Configure structlog for telemetry diagnostics.

    This should be called once at application startup. Subsequent calls
    are no-ops to avoid reconfiguration overhead, unless force=True.

    Args:
        level: Default log level (DEBUG, INFO, WARNING, ERROR)
        stream: Output stream (default: sys.stderr)
        force: Force reconfiguration (for testing only)
    """
    global _configured

    if _configured and not force:
        return

    processors: list[Processor] = [
        structlog.stdlib.add_log_level,
        add_timestamp,
        add_trace_context,
        rename_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            _level_to_int(level)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream or sys.stderr),
        cache_logger_on_first_use=False,
    )

    _configured = True


def reset_logging() -> None:
    """
    Reset logging configuration state.

    WARNING: This should only be used in tests.
    """
    global _configured
    _configured = False


def get_logger(
    name: str,
    stream: Optional[TextIO] = None,
    level: str = "INFO",
) -> structlog.BoundLogger:
    """
    Get a configured structured logger.

    Args:
        name: Logger name (typically module name)
        stream: Output stream - used for initial config only
        level: Log level - used for initial config only

    Returns:
        Configured structlog BoundLogger
    """
    configure_logging(level=level, stream=stream)
    return structlog.get_logger().bind(logger=name)


def _level_to_int(level: str) -> int:
    """Convert level string to logging int."""
    levels = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }
    return levels.get(level.upper(), logging.INFO)
