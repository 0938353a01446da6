"""
Core module for the Contact Manager API.

This module contains configuration, exceptions, and shared utilities.
"""

from src.core.config import Settings, TelemetrySettings, get_settings
from src.core.exceptions import (
    ConflictError,
    ContactsApiException,
    ErrorCode,
    ExportError,
    TelemetryConfigurationError,
)

__all__ = [
    # Config
    "Settings",
    "TelemetrySettings",
    "get_settings",
    # Exceptions
    "ErrorCode",
    "ContactsApiException",
    "TelemetryConfigurationError",
    "ExportError",
    "ConflictError",
]
