"""
HTTP-facing error type.

Endpoints raise ``ApiError`` with the status, short code and message that
should reach the client; ``main`` turns it into the standard JSON body.
"""

from optviz.utils.error_handling import OptionValidationError, StorageError


class ApiError(Exception):
    def __init__(self, status_code: int, error: str, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.error = error
        self.message = message

    @classmethod
    def from_validation(cls, exc: OptionValidationError) -> "ApiError":
        return cls(400, exc.code, exc.message)

    @classmethod
    def from_storage(cls, exc: StorageError) -> "ApiError":
        # Driver detail is logged by the store, never returned
        return cls(500, f"Failed to {exc.operation}", "Database error")
