"""
Custom exceptions for the Contact Manager API.

This module provides a hierarchy of custom exceptions. All exceptions inherit
from ContactsApiException and include error codes for consistent error
handling and API responses.

Telemetry errors are either fatal at startup (TelemetryConfigurationError) or
fully contained inside an exporter (ExportError). Domain errors are raised by
the services and only observed, never handled, by their instrumentation.
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """
    Error codes for Contact Manager API exceptions.

    These codes provide a consistent way to identify error types
    across the API and in logging.
    """

    API_ERROR = "API_ERROR"
    TELEMETRY_CONFIGURATION_ERROR = "TELEMETRY_CONFIGURATION_ERROR"
    EXPORT_ERROR = "EXPORT_ERROR"
    CONFLICT = "CONFLICT"


# =============================================================================
# Base Exception
# =============================================================================


class ContactsApiException(Exception):
    """
    Base exception for all Contact Manager API errors.

    Attributes:
        message: Human-readable error message.
        error_code: Machine-readable error code from ErrorCode enum.
    """

    def __init__(
        self,
        message: str,
        error_code: str = ErrorCode.API_ERROR,
        **kwargs: Any,
    ) -> None:
        """
        Initialize the exception.

        Args:
            message: Human-readable error message.
            error_code: Machine-readable error code.
            **kwargs: Additional attributes to set on the exception.
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code

        for key, value in kwargs.items():
            setattr(self, key, value)


# =============================================================================
# Telemetry Errors
# =============================================================================


class TelemetryConfigurationError(ContactsApiException):
    """
    Raised at startup when a telemetry sink can never work.

    An OTLP endpoint that is not a valid http(s) URL is the canonical case.

    Attributes:
        setting: Dotted name of the offending configuration key.
        value: The rejected value.
    """

    def __init__(
        self,
        message: str,
        setting: str | None = None,
        value: Any = None,
        error_code: str = ErrorCode.TELEMETRY_CONFIGURATION_ERROR,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_code, **kwargs)
        self.setting = setting
        self.value = value


class ExportError(ContactsApiException):
    """
    I/O or serialization failure while writing a telemetry batch.

    Never propagates out of an exporter; it is logged and converted
    into a failed export result.

    Attributes:
        batch_size: Number of records in the failed batch.
    """

    def __init__(
        self,
        message: str,
        batch_size: int = 0,
        error_code: str = ErrorCode.EXPORT_ERROR,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_code, **kwargs)
        self.batch_size = batch_size


# =============================================================================
# Domain Errors
# =============================================================================


class ConflictError(ContactsApiException):
    """Entity conflicts with existing state (e.g. duplicate tag name)."""

    def __init__(
        self,
        message: str,
        entity: str,
        error_code: str = ErrorCode.CONFLICT,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_code, **kwargs)
        self.entity = entity
