"""Unified error hierarchy for tasktags.

All exception classes derive from ``TaskStoreError`` and live in
domain-specific modules within this package. This __init__.py re-exports
everything for convenient access.

Usage:
    from tasktags.core.errors import CrossTagDependencyConflictError, error_to_response
"""

from tasktags.core.errors.base import ERROR_MAPPINGS, ERROR_SUGGESTIONS, error_to_response
from tasktags.core.errors.common import TaskStoreError

# --- Move errors ---
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

# --- Resilience errors ---
from tasktags.core.errors.resilience import CircuitOpenError, MaxRetriesExceededError

# --- Storage errors ---
from tasktags.core.errors.storage import LockTimeoutError, StoreCorruptedError, StoreWriteError

# --- Tag errors ---
from tasktags.core.errors.tags import (
    InvalidTagNameError,
    SameTagError,
    TagNotFoundError,
    TagStructureError,
)

__all__ = [
    "ERROR_MAPPINGS",
    "ERROR_SUGGESTIONS",
    "error_to_response",
    "TaskStoreError",
    "CircularDependencyError",
    "ConflictingOptionsError",
    "CountMismatchError",
    "CrossTagDependencyConflictError",
    "DestinationExistsError",
    "DestinationParentNotFoundError",
    "HasSubtasksError",
    "InvalidIdFormatError",
    "MissingArgumentError",
    "SelfMoveError",
    "SourceNotFoundError",
    "SubtaskCrossTagMoveError",
    "TaskNotFoundError",
    "CircuitOpenError",
    "MaxRetriesExceededError",
    "LockTimeoutError",
    "StoreCorruptedError",
    "StoreWriteError",
    "InvalidTagNameError",
    "SameTagError",
    "TagNotFoundError",
    "TagStructureError",
]
