"""
Core types for engine response contracts.

Defines the fundamental building blocks: error codes, error types,
the standard OperationResponse dataclass, and the internal _build_meta() helper.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Sequence

from tasktags.core.context import get_correlation_id


class ErrorCode(str, Enum):
    """Machine-readable error codes for engine responses.

    Codes follow SCREAMING_SNAKE_CASE convention.

    Categories:
        - Validation (input errors)
        - Resource (not found, conflict)
        - System (locks, circuit breakers, storage)
    """

    # Validation errors
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_FORMAT = "INVALID_FORMAT"
    MISSING_REQUIRED = "MISSING_REQUIRED"
    COUNT_MISMATCH = "COUNT_MISMATCH"
    SELF_REFERENCE = "SELF_REFERENCE"
    HAS_SUBTASKS = "HAS_SUBTASKS"
    INVALID_TAG_NAME = "INVALID_TAG_NAME"
    INVALID_OPTIONS = "INVALID_OPTIONS"
    SAME_SOURCE_TARGET_TAG = "SAME_SOURCE_TARGET_TAG"
    SUBTASK_MOVE_RESTRICTION = "SUBTASK_MOVE_RESTRICTION"

    # Resource errors
    NOT_FOUND = "NOT_FOUND"
    TASK_NOT_FOUND = "TASK_NOT_FOUND"
    TAG_NOT_FOUND = "TAG_NOT_FOUND"
    PARENT_NOT_FOUND = "PARENT_NOT_FOUND"
    DUPLICATE_ENTRY = "DUPLICATE_ENTRY"
    CIRCULAR_DEPENDENCY = "CIRCULAR_DEPENDENCY"
    CROSS_TAG_DEPENDENCY_CONFLICT = "CROSS_TAG_DEPENDENCY_CONFLICT"

    # System errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    UNAVAILABLE = "UNAVAILABLE"
    LOCK_TIMEOUT = "LOCK_TIMEOUT"
    CIRCUIT_BREAKER_OPEN = "CIRCUIT_BREAKER_OPEN"
    MAX_RETRIES_EXCEEDED = "MAX_RETRIES_EXCEEDED"
    STORE_CORRUPTED = "STORE_CORRUPTED"
    STORE_WRITE_FAILED = "STORE_WRITE_FAILED"


class ErrorType(str, Enum):
    """Error categories for routing and client-side handling.

    Each type corresponds to an HTTP status code analog and indicates
    whether the operation should be retried.
    """

    VALIDATION = "validation"  # 400 - No retry, fix input
    NOT_FOUND = "not_found"  # 404 - No retry
    CONFLICT = "conflict"  # 409 - No retry, resolve conflict
    LOCKED = "locked"  # 423 - Yes, after the holder releases
    INTERNAL = "internal"  # 500 - Yes, with backoff
    UNAVAILABLE = "unavailable"  # 503 - Yes, after retry_after


HTTP_STATUS_BY_TYPE: Dict[ErrorType, int] = {
    ErrorType.VALIDATION: 400,
    ErrorType.NOT_FOUND: 404,
    ErrorType.CONFLICT: 409,
    ErrorType.LOCKED: 423,
    ErrorType.INTERNAL: 500,
    ErrorType.UNAVAILABLE: 503,
}


@dataclass
class OperationResponse:
    """
    Standard response structure for engine operations.

    Attributes:
        success: Whether the operation completed successfully
        data: The primary payload (operation-specific structured data)
        error: Error message if success is False, None otherwise
        meta: Response metadata including version identifier
    """

    success: bool
    data: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None
    meta: Dict[str, Any] = field(default_factory=lambda: {"version": "response-v2"})


def _build_meta(
    *,
    request_id: Optional[str] = None,
    warnings: Optional[Sequence[str]] = None,
    extra: Optional[Mapping[str, Any]] = None,
    auto_inject_request_id: bool = True,
) -> Dict[str, Any]:
    """Construct a metadata payload that always includes the response version."""
    meta: Dict[str, Any] = {"version": "response-v2"}

    effective_request_id = request_id
    if effective_request_id is None and auto_inject_request_id:
        effective_request_id = get_correlation_id() or None

    if effective_request_id:
        meta["request_id"] = effective_request_id
    if warnings:
        meta["warnings"] = list(warnings)
    if extra:
        meta.update(dict(extra))

    return meta
