"""
Error types and formatting helpers shared by the library and the backend.

Every externally visible error carries a short machine-readable code plus a
human-readable message. Internal detail (driver errors, tracebacks) is logged
but never copied into these objects.
"""

from __future__ import annotations
from typing import Dict, Optional


class OptvizError(Exception):
    """Base class for all errors raised by optviz."""


class OptionValidationError(OptvizError):
    """
    A field-level validation failure.

    Raised by both the client form rules and the store's re-validation.
    Never persisted and never fatal.
    """

    def __init__(self, code: str, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.field = field

    def to_dict(self) -> Dict[str, str]:
        return {"error": self.code, "message": self.message}


class StorageError(OptvizError):
    """The backing table could not be read or written."""

    def __init__(self, operation: str):
        super().__init__(f"Storage failure during {operation}")
        self.operation = operation


class PriceFetchError(OptvizError):
    """Historical prices could not be fetched from the backend."""


class BackendUnavailableError(OptvizError):
    """The options API could not be reached or answered with a server error."""


def format_error_body(code: str, message: str) -> Dict[str, str]:
    """
    Build the standard JSON error body.

    Examples:
        >>> format_error_body("Option not found", "No option found with ID 7")
        {'error': 'Option not found', 'message': 'No option found with ID 7'}
    """
    return {"error": code, "message": message}


def format_fetch_error_message(
    source: str,
    url: Optional[str] = None,
    error: Optional[Exception] = None,
    additional_info: Optional[str] = None,
) -> str:
    """
    Format a standardized message for a failed price fetch.

    Args:
        source: Data source name (e.g., "backend")
        url: Optional URL that was being fetched
        error: Optional exception that occurred
        additional_info: Optional additional information to include

    Returns:
        Formatted error message string
    """
    parts = [f"[{source}]"]

    if url:
        parts.append(f"url={url}")

    if error:
        parts.append(f"error: {type(error).__name__}: {error}")

    if additional_info:
        parts.append(additional_info)

    return " ".join(parts)
