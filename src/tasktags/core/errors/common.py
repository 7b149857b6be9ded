"""Root of the engine's exception hierarchy."""

from typing import Any, Dict


class TaskStoreError(Exception):
    """Base class for every error raised by the engine.

    Class attributes drive handling without inspecting messages:

    Attributes:
        code: Stable machine-readable code.
        retryable: Whether a retry of the same call may succeed.
        client_error: Whether the caller's input caused the failure. Client
            errors never count against circuit breakers.
    """

    code = "TASK_STORE_ERROR"
    retryable = False
    client_error = True

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_details(self) -> Dict[str, Any]:
        """Structured fields for error responses."""
        return {}
