"""
Utility modules for optviz.

Error types and YAML config loading.
"""

from optviz.utils.error_handling import (
    OptvizError,
    OptionValidationError,
    StorageError,
    PriceFetchError,
    BackendUnavailableError,
    format_error_body,
)

__all__ = [
    "OptvizError",
    "OptionValidationError",
    "StorageError",
    "PriceFetchError",
    "BackendUnavailableError",
    "format_error_body",
]
