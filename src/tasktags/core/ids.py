"""Task identifier parsing and dependency reference resolution.

Two identifier shapes exist:

- ``5``: a top-level task (positive integer, or a numeric string)
- ``"5.2"``: subtask 2 of task 5

Dependency values stored on tasks and subtasks are resolved once, with the
owner's context, into one of the ``DependencyRef`` variants below. A bare
integer inside a subtask's dependency list refers to a sibling when a sibling
with that id exists, otherwise to a top-level task.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Collection, Iterable, List, Optional, Union

from tasktags.core.errors.moves import InvalidIdFormatError

_ID_PATTERN = re.compile(r"^(\d+)(?:\.(\d+))?$")


class IdKind(str, Enum):
    TASK = "task"
    SUBTASK = "subtask"


@dataclass(frozen=True)
class ParsedId:
    """A validated identifier.

    ``str(parsed)`` is the canonical text form and parses back to an equal
    value.
    """

    kind: IdKind
    task_id: int
    subtask_id: Optional[int] = None

    @property
    def is_subtask(self) -> bool:
        return self.kind is IdKind.SUBTASK

    def __str__(self) -> str:
        if self.subtask_id is None:
            return str(self.task_id)
        return f"{self.task_id}.{self.subtask_id}"


def parse_id(raw: Any) -> ParsedId:
    """Parse and classify a task or subtask identifier.

    Raises:
        InvalidIdFormatError: ``raw`` is not a positive integer or ``"int.int"``
            with positive parts.
    """
    if isinstance(raw, ParsedId):
        return raw
    if isinstance(raw, bool):
        raise InvalidIdFormatError(raw, "booleans are not identifiers")
    if isinstance(raw, int):
        if raw <= 0:
            raise InvalidIdFormatError(raw, "must be a positive integer")
        return ParsedId(IdKind.TASK, raw)
    if not isinstance(raw, str):
        raise InvalidIdFormatError(raw, f"unsupported type {type(raw).__name__}")

    match = _ID_PATTERN.match(raw.strip())
    if match is None:
        raise InvalidIdFormatError(raw)

    task_id = int(match.group(1))
    if task_id <= 0:
        raise InvalidIdFormatError(raw, "task id must be positive")
    if match.group(2) is None:
        return ParsedId(IdKind.TASK, task_id)

    subtask_id = int(match.group(2))
    if subtask_id <= 0:
        raise InvalidIdFormatError(raw, "subtask id must be positive")
    return ParsedId(IdKind.SUBTASK, task_id, subtask_id)


def parse_id_list(raw: Union[str, int, Iterable[Any], None]) -> List[ParsedId]:
    """Parse a comma-separated string (``"1, 2,3.1"``) or a sequence of ids."""
    if raw is None:
        return []
    if isinstance(raw, (str, int)) and not isinstance(raw, bool):
        items: Iterable[Any] = str(raw).split(",")
    else:
        items = raw
    parsed = []
    for item in items:
        if isinstance(item, str) and not item.strip():
            continue
        parsed.append(parse_id(item))
    return parsed


# ---------------------------------------------------------------------------
# Dependency references
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TaskRef:
    """Reference to a top-level task."""

    task_id: int


@dataclass(frozen=True)
class SiblingRef:
    """Bare-integer reference to another subtask of the same parent."""

    subtask_id: int


@dataclass(frozen=True)
class QualifiedRef:
    """``"P.S"`` reference to subtask S of task P."""

    parent_id: int
    subtask_id: int


@dataclass(frozen=True)
class UnresolvedRef:
    """A stored value that is not a recognizable identifier; kept as-is."""

    raw: Any


DependencyRef = Union[TaskRef, SiblingRef, QualifiedRef, UnresolvedRef]


def resolve_dependency(raw: Any, sibling_ids: Optional[Collection[int]] = None) -> DependencyRef:
    """Resolve a stored dependency value.

    Args:
        raw: The value from a ``dependencies`` list.
        sibling_ids: Ids of the owner's sibling subtasks when the owner is a
            subtask; None for top-level tasks.
    """
    try:
        parsed = parse_id(raw)
    except InvalidIdFormatError:
        return UnresolvedRef(raw)

    if parsed.is_subtask:
        return QualifiedRef(parsed.task_id, parsed.subtask_id)  # type: ignore[arg-type]
    if sibling_ids is not None and parsed.task_id in sibling_ids:
        return SiblingRef(parsed.task_id)
    return TaskRef(parsed.task_id)


def ref_key(ref: DependencyRef, parent_id: Optional[int] = None) -> Optional[str]:
    """Index key (``"5"`` or ``"5.2"``) for a reference, or None if unresolved."""
    if isinstance(ref, TaskRef):
        return str(ref.task_id)
    if isinstance(ref, QualifiedRef):
        return f"{ref.parent_id}.{ref.subtask_id}"
    if isinstance(ref, SiblingRef):
        if parent_id is None:
            return str(ref.subtask_id)
        return f"{parent_id}.{ref.subtask_id}"
    return None


def ref_to_raw(ref: DependencyRef) -> Any:
    """Stored form of a reference."""
    if isinstance(ref, TaskRef):
        return ref.task_id
    if isinstance(ref, SiblingRef):
        return ref.subtask_id
    if isinstance(ref, QualifiedRef):
        return f"{ref.parent_id}.{ref.subtask_id}"
    return ref.raw


def normalize_key(key: str) -> Union[int, str]:
    """``"5"`` -> ``5``; ``"5.2"`` stays a string."""
    return int(key) if key.isdigit() else key
