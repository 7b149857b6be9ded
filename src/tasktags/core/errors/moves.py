"""Structural errors raised while moving tasks and subtasks.

Each class carries the ids and counts involved so callers can build
responses without parsing messages.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence, Union

from tasktags.core.errors.common import TaskStoreError

if TYPE_CHECKING:
    from tasktags.core.dependencies import CrossTagConflict

TaskId = Union[int, str]


class InvalidIdFormatError(TaskStoreError):
    """An identifier is neither a positive integer nor ``"P.S"``."""

    code = "INVALID_ID_FORMAT"

    def __init__(self, raw: Any, reason: Optional[str] = None):
        self.raw = raw
        self.reason = reason
        message = f"Invalid task ID format: {raw!r}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)

    def to_details(self) -> Dict[str, Any]:
        return {"raw": str(self.raw), "reason": self.reason}


class MissingArgumentError(TaskStoreError):
    """A required argument was empty."""

    code = "MISSING_ARGUMENT"

    def __init__(self, argument: str, message: Optional[str] = None):
        self.argument = argument
        super().__init__(message or f"{argument} is required")

    def to_details(self) -> Dict[str, Any]:
        return {"argument": self.argument}


class SourceNotFoundError(TaskStoreError):
    """The entity being moved does not exist."""

    code = "SOURCE_NOT_FOUND"

    def __init__(self, source_id: TaskId, message: Optional[str] = None):
        self.source_id = source_id
        super().__init__(message or f"Source task with ID {source_id} not found")

    def to_details(self) -> Dict[str, Any]:
        return {"source_id": self.source_id}


class DestinationParentNotFoundError(TaskStoreError):
    """The parent named by a ``"P.S"`` destination does not exist."""

    code = "DESTINATION_PARENT_NOT_FOUND"

    def __init__(self, parent_id: int, message: Optional[str] = None):
        self.parent_id = parent_id
        super().__init__(message or f"Destination parent task with ID {parent_id} not found")

    def to_details(self) -> Dict[str, Any]:
        return {"parent_id": self.parent_id}


class DestinationExistsError(TaskStoreError):
    """The destination id is already occupied."""

    code = "DESTINATION_EXISTS"

    def __init__(self, destination_id: TaskId, tag: Optional[str] = None):
        self.destination_id = destination_id
        self.tag = tag
        kind = "Subtask" if isinstance(destination_id, str) and "." in destination_id else "Task"
        message = f"{kind} with ID {destination_id} already exists"
        if tag:
            message = f'{message} in tag "{tag}"'
        super().__init__(message)

    def to_details(self) -> Dict[str, Any]:
        return {"destination_id": self.destination_id, "tag": self.tag}


class CountMismatchError(TaskStoreError):
    """Batch moves need one destination per source."""

    code = "COUNT_MISMATCH"

    def __init__(self, source_count: int, destination_count: int):
        self.source_count = source_count
        self.destination_count = destination_count
        super().__init__(
            f"Number of source IDs ({source_count}) must match number of "
            f"destination IDs ({destination_count})"
        )

    def to_details(self) -> Dict[str, Any]:
        return {
            "source_count": self.source_count,
            "destination_count": self.destination_count,
        }


class SelfMoveError(TaskStoreError):
    """Source and destination name the same entity, or a task its own child."""

    code = "SELF_MOVE"

    def __init__(self, source_id: TaskId, destination_id: TaskId):
        self.source_id = source_id
        self.destination_id = destination_id
        super().__init__(f"Cannot move {source_id} to {destination_id}: source and destination overlap")

    def to_details(self) -> Dict[str, Any]:
        return {"source_id": self.source_id, "destination_id": self.destination_id}


class HasSubtasksError(TaskStoreError):
    """A task that owns subtasks cannot become a subtask."""

    code = "HAS_SUBTASKS"

    def __init__(self, task_id: int, destination_id: str, subtask_count: int):
        self.task_id = task_id
        self.destination_id = destination_id
        self.subtask_count = subtask_count
        super().__init__(
            f"Cannot move task {task_id} to subtask position {destination_id} "
            f"because it has {subtask_count} subtasks"
        )

    def to_details(self) -> Dict[str, Any]:
        return {
            "task_id": self.task_id,
            "destination_id": self.destination_id,
            "subtask_count": self.subtask_count,
        }


class CircularDependencyError(TaskStoreError):
    """A mutation would leave a dependency cycle inside a tag."""

    code = "CIRCULAR_DEPENDENCY"

    def __init__(self, tag: str, cycle: Sequence[str]):
        self.tag = tag
        self.cycle = list(cycle)
        path = " -> ".join(self.cycle)
        super().__init__(f'Move would create a circular dependency in tag "{tag}": {path}')

    def to_details(self) -> Dict[str, Any]:
        return {"tag": self.tag, "cycle": self.cycle}


class TaskNotFoundError(TaskStoreError):
    """A task named for a cross-tag operation does not exist."""

    code = "TASK_NOT_FOUND"

    def __init__(self, task_id: TaskId, tag: Optional[str] = None):
        self.task_id = task_id
        self.tag = tag
        super().__init__(f"Task {task_id} not found")

    def to_details(self) -> Dict[str, Any]:
        return {"task_id": self.task_id, "tag": self.tag}


class SubtaskCrossTagMoveError(TaskStoreError):
    """Subtasks only travel between tags with their parent."""

    code = "SUBTASK_MOVE_RESTRICTION"

    def __init__(self, task_id: str):
        self.task_id = task_id
        super().__init__(f"Cannot move subtask {task_id} directly between tags")

    def to_details(self) -> Dict[str, Any]:
        return {"task_id": self.task_id}


class CrossTagDependencyConflictError(TaskStoreError):
    """Moving the requested tasks would split dependencies across tags."""

    code = "CROSS_TAG_DEPENDENCY_CONFLICT"

    def __init__(
        self,
        conflicts: List[CrossTagConflict],
        source_tag: str,
        target_tag: str,
    ):
        self.conflicts = list(conflicts)
        self.source_tag = source_tag
        self.target_tag = target_tag
        pairs = ", ".join(f"{c.task_id} -> {c.dependency_id}" for c in self.conflicts)
        super().__init__(
            f'Cannot move tasks from "{source_tag}" to "{target_tag}" due to '
            f"cross-tag dependency conflicts: {pairs}"
        )

    def to_details(self) -> Dict[str, Any]:
        return {
            "source_tag": self.source_tag,
            "target_tag": self.target_tag,
            "conflicts": [c.to_dict() for c in self.conflicts],
        }


class ConflictingOptionsError(TaskStoreError):
    """Mutually exclusive options were both requested."""

    code = "CONFLICTING_OPTIONS"

    def __init__(self, options: Sequence[str]):
        self.options = list(options)
        super().__init__(f"Options cannot be combined: {', '.join(self.options)}")

    def to_details(self) -> Dict[str, Any]:
        return {"options": self.options}
