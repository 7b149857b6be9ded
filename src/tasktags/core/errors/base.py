"""Error-to-ErrorCode mapping registry.

Provides a centralized mapping from exception types to (ErrorCode, ErrorType)
tuples plus remediation suggestions, so route handlers and the CLI produce
consistent error responses.

Usage:
    from tasktags.core.errors.base import error_to_response

    try:
        await engine.move_tasks_between_tags(...)
    except Exception as e:
        result = error_to_response(e)
        if result is not None:
            return result
        raise  # Unknown error, re-raise
"""

from __future__ import annotations

from typing import Dict, Optional, Tuple, Type

from tasktags.core.errors.moves import (
    CircularDependencyError,
    ConflictingOptionsError,
    CountMismatchError,
    CrossTagDependencyConflictError,
    DestinationExistsError,
    DestinationParentNotFoundError,
    HasSubtasksError,
    InvalidIdFormatError,
    MissingArgumentError,
    SelfMoveError,
    SourceNotFoundError,
    SubtaskCrossTagMoveError,
    TaskNotFoundError,
)
from tasktags.core.errors.resilience import CircuitOpenError, MaxRetriesExceededError
from tasktags.core.errors.storage import LockTimeoutError, StoreCorruptedError, StoreWriteError
from tasktags.core.errors.tags import (
    InvalidTagNameError,
    SameTagError,
    TagNotFoundError,
    TagStructureError,
)
from tasktags.core.responses.types import (
    HTTP_STATUS_BY_TYPE,
    ErrorCode,
    ErrorType,
)

ERROR_MAPPINGS: Dict[Type[Exception], Tuple[ErrorCode, ErrorType]] = {
    # --- Identifier / argument errors ---
    InvalidIdFormatError: (ErrorCode.INVALID_FORMAT, ErrorType.VALIDATION),
    MissingArgumentError: (ErrorCode.MISSING_REQUIRED, ErrorType.VALIDATION),
    ConflictingOptionsError: (ErrorCode.INVALID_OPTIONS, ErrorType.VALIDATION),
    CountMismatchError: (ErrorCode.COUNT_MISMATCH, ErrorType.VALIDATION),
    SelfMoveError: (ErrorCode.SELF_REFERENCE, ErrorType.VALIDATION),
    HasSubtasksError: (ErrorCode.HAS_SUBTASKS, ErrorType.VALIDATION),
    # --- Resource errors ---
    SourceNotFoundError: (ErrorCode.TASK_NOT_FOUND, ErrorType.NOT_FOUND),
    TaskNotFoundError: (ErrorCode.TASK_NOT_FOUND, ErrorType.NOT_FOUND),
    DestinationParentNotFoundError: (ErrorCode.PARENT_NOT_FOUND, ErrorType.NOT_FOUND),
    DestinationExistsError: (ErrorCode.DUPLICATE_ENTRY, ErrorType.CONFLICT),
    CircularDependencyError: (ErrorCode.CIRCULAR_DEPENDENCY, ErrorType.CONFLICT),
    # --- Cross-tag errors ---
    CrossTagDependencyConflictError: (ErrorCode.CROSS_TAG_DEPENDENCY_CONFLICT, ErrorType.CONFLICT),
    SubtaskCrossTagMoveError: (ErrorCode.SUBTASK_MOVE_RESTRICTION, ErrorType.VALIDATION),
    # --- Tag errors ---
    TagNotFoundError: (ErrorCode.TAG_NOT_FOUND, ErrorType.NOT_FOUND),
    SameTagError: (ErrorCode.SAME_SOURCE_TARGET_TAG, ErrorType.VALIDATION),
    InvalidTagNameError: (ErrorCode.INVALID_TAG_NAME, ErrorType.VALIDATION),
    TagStructureError: (ErrorCode.STORE_CORRUPTED, ErrorType.INTERNAL),
    # --- Storage / concurrency errors ---
    LockTimeoutError: (ErrorCode.LOCK_TIMEOUT, ErrorType.LOCKED),
    StoreCorruptedError: (ErrorCode.STORE_CORRUPTED, ErrorType.INTERNAL),
    StoreWriteError: (ErrorCode.STORE_WRITE_FAILED, ErrorType.INTERNAL),
    # --- Resilience errors ---
    CircuitOpenError: (ErrorCode.CIRCUIT_BREAKER_OPEN, ErrorType.UNAVAILABLE),
    MaxRetriesExceededError: (ErrorCode.MAX_RETRIES_EXCEEDED, ErrorType.UNAVAILABLE),
}

_NOT_FOUND_SUGGESTIONS = (
    "Check available tags: tasktags validate-tags",
    "Verify the task IDs exist in the source tag",
    "Pass --tag to select the tag that holds the task",
)

ERROR_SUGGESTIONS: Dict[Type[Exception], Tuple[str, ...]] = {
    CrossTagDependencyConflictError: (
        "Use --with-dependencies to move dependent tasks together",
        "Use --ignore-dependencies to break cross-tag dependencies",
        "Validate dependencies in the source tag before moving",
        "Move the dependencies first, then move the main task",
    ),
    SubtaskCrossTagMoveError: (
        "Promote the subtask to a full task first: tasktags move --from <P.S> --to <id>",
        "Move the parent task with all subtasks using --with-dependencies",
    ),
    TagNotFoundError: _NOT_FOUND_SUGGESTIONS,
    TaskNotFoundError: _NOT_FOUND_SUGGESTIONS,
    SameTagError: (
        "Use different tags for cross-tag moves",
        "Use a within-tag move instead: tasktags move --from <id> --to <id> --tag <tag>",
        "Check available tags: tasktags validate-tags",
    ),
    LockTimeoutError: (
        "Retry after the current operation on the tag completes",
        "Inspect held locks and breaker state: tasktags status",
    ),
    CircuitOpenError: ("Retry after the reported retry_after interval",),
}

_REMEDIATIONS: Dict[Type[Exception], str] = {
    CountMismatchError: "Provide one destination ID for each source ID",
    HasSubtasksError: "Move or remove the task's subtasks before demoting it",
    DestinationExistsError: "Choose an unused destination ID",
    SameTagError: "Choose a different target tag",
}


def _lookup(exc: Exception) -> Optional[Tuple[Type[Exception], Tuple[ErrorCode, ErrorType]]]:
    for klass in type(exc).__mro__:
        mapping = ERROR_MAPPINGS.get(klass)
        if mapping is not None:
            return klass, mapping
    return None


def error_to_response(exc: Exception) -> Optional[dict]:
    """Convert a known exception to a standard error_response dict, or None if unknown.

    Walks the exception's MRO for the first type registered in ERROR_MAPPINGS
    and builds a response carrying the mapped ErrorCode and ErrorType, the
    HTTP status analog, the exception's structured fields and suggestions.

    Args:
        exc: The exception to convert.

    Returns:
        A dict suitable for a route or CLI response, or None if no type in the
        exception's MRO is registered.
    """
    found = _lookup(exc)
    if found is None:
        return None

    from dataclasses import asdict

    from tasktags.core.responses.builders import error_response

    klass, (code, error_type) = found
    to_details = getattr(exc, "to_details", None)
    details = to_details() if callable(to_details) else None
    meta = None
    if isinstance(exc, CircuitOpenError) and exc.retry_after is not None:
        meta = {"retry_after": exc.retry_after}

    return asdict(
        error_response(
            str(exc),
            error_code=code,
            error_type=error_type,
            remediation=_REMEDIATIONS.get(klass),
            suggestions=ERROR_SUGGESTIONS.get(klass),
            details=details,
            http_status=HTTP_STATUS_BY_TYPE[error_type],
            meta=meta,
        )
    )
