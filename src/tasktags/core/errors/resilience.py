"""Resilience error classes."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

from tasktags.core.errors.common import TaskStoreError

if TYPE_CHECKING:
    from tasktags.core.resilience import CircuitState


class CircuitOpenError(TaskStoreError):
    """Circuit breaker is open and rejecting requests.

    Retrying consumes a slot without doing work, so the error is marked
    retryable and the retry backoff spaces out the attempts.

    Attributes:
        breaker_name: Name of the circuit breaker.
        state: Current state of the breaker.
        retry_after: Seconds until the breaker admits a trial call.
        next_attempt_time: Clock value at which the trial becomes possible.
    """

    code = "CIRCUIT_BREAKER_OPEN"
    retryable = True
    client_error = False

    def __init__(
        self,
        message: str,
        breaker_name: Optional[str] = None,
        state: Optional[CircuitState] = None,
        retry_after: Optional[float] = None,
        next_attempt_time: Optional[float] = None,
    ):
        super().__init__(message)
        self.breaker_name = breaker_name
        self.state = state
        self.retry_after = retry_after
        self.next_attempt_time = next_attempt_time

    def to_details(self) -> Dict[str, Any]:
        return {
            "breaker_name": self.breaker_name,
            "state": self.state.value if self.state is not None else None,
            "retry_after": self.retry_after,
        }


class MaxRetriesExceededError(TaskStoreError):
    """Every attempt of a protected operation failed.

    Attributes:
        operation: Name of the protected operation.
        attempts: Total attempts made (first call plus retries).
        last_error: The exception raised by the final attempt.
    """

    code = "MAX_RETRIES_EXCEEDED"
    client_error = False

    def __init__(self, operation: str, attempts: int, last_error: BaseException):
        self.operation = operation
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Operation {operation} failed after {attempts} attempts: {last_error}")

    def to_details(self) -> Dict[str, Any]:
        return {
            "operation": self.operation,
            "attempts": self.attempts,
            "last_error": str(self.last_error),
            "last_error_type": type(self.last_error).__name__,
        }
