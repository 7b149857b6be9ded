"""
Cross-tag dependency analysis.

A task index has the shape ``{tag: {"5": task, "5.2": subtask, ...}}`` (see
``build_task_index``). A conflict is a dependency edge that a cross-tag move
would split: one end moves to the target tag, the other stays behind.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Union

from tasktags.core.errors.moves import SubtaskCrossTagMoveError, TaskNotFoundError
from tasktags.core.errors.tags import TagNotFoundError
from tasktags.core.ids import (
    TaskRef,
    normalize_key,
    parse_id,
    ref_key,
    resolve_dependency,
)
from tasktags.core.store.tagged import TaskIndex, as_int, build_task_index

logger = logging.getLogger(__name__)

TaskId = Union[int, str]


@dataclass(frozen=True)
class CrossTagConflict:
    """One dependency edge that a move would split across tags.

    Attributes:
        task_id: The entity holding the dependency.
        dependency_id: The entity depended on.
        task_tag: Tag of ``task_id`` before the move.
        dependency_tag: Tag of ``dependency_id`` before the move.
        moving_side: ``"task"`` when the dependent moves and its dependency
            stays behind, ``"dependency"`` when the dependency moves.
    """

    task_id: TaskId
    dependency_id: TaskId
    task_tag: str
    dependency_tag: str
    moving_side: str = "task"

    @property
    def message(self) -> str:
        return f"Task {self.task_id} depends on {self.dependency_id}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "task_id": self.task_id,
            "dependency_id": self.dependency_id,
            "task_tag": self.task_tag,
            "dependency_tag": self.dependency_tag,
            "moving_side": self.moving_side,
            "message": self.message,
        }


@dataclass
class CrossTagValidation:
    can_move: bool
    conflicts: List[CrossTagConflict] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "can_move": self.can_move,
            "conflicts": [c.to_dict() for c in self.conflicts],
        }


# ---------------------------------------------------------------------------
# Index access
# ---------------------------------------------------------------------------


def as_index(data: Dict[str, Any]) -> TaskIndex:
    """Accept either a tagged document or a prebuilt task index."""
    for value in data.values():
        if isinstance(value, dict) and isinstance(value.get("tasks"), list):
            return build_task_index(data)
    return data


def _tag_entries(index: TaskIndex, tag: str, role: str = "Source") -> Dict[str, Dict[str, Any]]:
    raw_entries = index.get(tag)
    if not isinstance(raw_entries, dict):
        raise TagNotFoundError(tag, role=role)

    entries: Dict[str, Dict[str, Any]] = {str(key): value for key, value in raw_entries.items() if isinstance(value, dict)}
    # Hand-built indexes may only list top-level tasks; expose their subtasks too.
    for key, entry in list(entries.items()):
        if "." in key:
            continue
        for subtask in entry.get("subtasks") or []:
            sub_id = as_int(subtask.get("id")) if isinstance(subtask, dict) else None
            if sub_id is not None:
                entries.setdefault(f"{key}.{sub_id}", {**subtask, "parentTaskId": as_int(key)})
    return entries


def _dependency_keys(entries: Dict[str, Dict[str, Any]], key: str) -> List[str]:
    entry = entries.get(key)
    if entry is None:
        return []
    raw_deps = entry.get("dependencies") or []
    if not isinstance(raw_deps, list):
        return []

    parent = key.split(".", 1)[0] if "." in key else None
    keys: List[str] = []
    for raw in raw_deps:
        ref = resolve_dependency(raw)
        if isinstance(ref, TaskRef) and parent is not None and f"{parent}.{ref.task_id}" in entries:
            dep = f"{parent}.{ref.task_id}"
        else:
            dep = ref_key(ref)
        if dep is not None and dep not in keys:
            keys.append(dep)
    return keys


def _subtask_keys(entries: Dict[str, Dict[str, Any]], task_key: str) -> List[str]:
    prefix = f"{task_key}."
    return [key for key in entries if key.startswith(prefix)]


def _source_keys(source_ids: Iterable[Any]) -> List[str]:
    keys: List[str] = []
    for raw in source_ids:
        key = str(parse_id(raw))
        if key not in keys:
            keys.append(key)
    return keys


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def validate_subtask_move(task_id: Any, source_tag: Optional[str] = None, target_tag: Optional[str] = None) -> None:
    """Raise if ``task_id`` is a subtask; subtasks only move with their parent."""
    if parse_id(task_id).is_subtask:
        raise SubtaskCrossTagMoveError(str(parse_id(task_id)))


def validate_cross_tag_move(
    task: Union[Dict[str, Any], TaskId],
    source_tag: str,
    target_tag: str,
    index: Dict[str, Any],
) -> CrossTagValidation:
    """Check one task's direct dependencies against the tag it is leaving.

    Only direct edges are considered; use ``find_cross_tag_dependencies`` for
    a batch.
    """
    task_id = task.get("id") if isinstance(task, dict) else task
    validate_subtask_move(task_id, source_tag, target_tag)

    entries = _tag_entries(as_index(index), source_tag)
    key = str(parse_id(task_id))
    if key not in entries:
        raise TaskNotFoundError(normalize_key(key), source_tag)

    conflicts = [
        CrossTagConflict(
            task_id=normalize_key(key),
            dependency_id=normalize_key(dep),
            task_tag=source_tag,
            dependency_tag=source_tag,
        )
        for dep in _dependency_keys(entries, key)
        if dep in entries and dep.split(".", 1)[0] != key
    ]
    return CrossTagValidation(can_move=not conflicts, conflicts=conflicts)


def find_cross_tag_dependencies(
    source_ids: Sequence[Any],
    source_tag: str,
    target_tag: str,
    index: Dict[str, Any],
) -> List[CrossTagConflict]:
    """
    Find the dependency edges a move of ``source_ids`` would split.

    Discovery is bounded. It reports:

    1. direct dependencies of each moving task (or its subtasks) that stay
       behind in ``source_tag``;
    2. the direct dependencies of those left-behind dependencies;
    3. left-behind entities that depend directly on something moving.

    Edges to ids that do not exist in the source tag are ignored.

    Raises:
        TagNotFoundError: ``source_tag`` is not in the index.
        TaskNotFoundError: A source id is not in ``source_tag``.
    """
    if not source_ids:
        return []

    entries = _tag_entries(as_index(index), source_tag)
    moving = _source_keys(source_ids)
    for key in moving:
        if key not in entries:
            raise TaskNotFoundError(normalize_key(key), source_tag)

    moving_roots: Set[str] = {key.split(".", 1)[0] for key in moving}

    def is_moving(key: str) -> bool:
        return key in moving or key.split(".", 1)[0] in moving_roots

    conflicts: List[CrossTagConflict] = []
    seen: Set[tuple] = set()

    def add(owner: str, dep: str, moving_side: str) -> None:
        if (owner, dep) in seen:
            return
        seen.add((owner, dep))
        conflicts.append(
            CrossTagConflict(
                task_id=normalize_key(owner),
                dependency_id=normalize_key(dep),
                task_tag=source_tag,
                dependency_tag=source_tag,
                moving_side=moving_side,
            )
        )

    for key in moving:
        for owner in [key, *_subtask_keys(entries, key)]:
            for dep in _dependency_keys(entries, owner):
                if is_moving(dep) or dep not in entries:
                    continue
                add(owner, dep, "task")
                for second in _dependency_keys(entries, dep):
                    if is_moving(second) or second not in entries:
                        continue
                    add(dep, second, "task")

    for owner in entries:
        if is_moving(owner):
            continue
        for dep in _dependency_keys(entries, owner):
            if is_moving(dep):
                add(owner, dep, "dependency")

    if conflicts:
        logger.debug(
            "Found %d cross-tag conflicts moving %s from %s to %s",
            len(conflicts),
            moving,
            source_tag,
            target_tag,
        )
    return conflicts


def get_dependent_task_ids(
    source_ids: Sequence[Any],
    conflicts: Sequence[CrossTagConflict],
    index: Dict[str, Any],
    source_tag: Optional[str] = None,
) -> List[int]:
    """
    Top-level task ids that must travel together with ``source_ids``.

    Starts from the source ids and both ends of every conflict, then follows
    dependency edges (including those held by subtasks) to a full transitive
    closure. Subtask ids map to their parent task.
    """
    resolved_index = as_index(index)
    if source_tag is None:
        source_tag = _infer_source_tag(source_ids, conflicts, resolved_index)
    entries = _tag_entries(resolved_index, source_tag)

    queue: List[str] = _source_keys(source_ids)
    for conflict in conflicts:
        queue.append(str(conflict.task_id))
        queue.append(str(conflict.dependency_id))

    visited: Set[str] = set()
    ordered: List[int] = []
    while queue:
        key = queue.pop(0)
        root = key.split(".", 1)[0]
        if root in visited or root not in entries:
            continue
        visited.add(root)
        ordered.append(int(root))
        for owner in [root, *_subtask_keys(entries, root)]:
            for dep in _dependency_keys(entries, owner):
                if dep.split(".", 1)[0] not in visited:
                    queue.append(dep)
    return ordered


def _infer_source_tag(
    source_ids: Sequence[Any],
    conflicts: Sequence[CrossTagConflict],
    index: TaskIndex,
) -> str:
    if conflicts:
        return conflicts[0].task_tag
    keys = _source_keys(source_ids)
    for tag in index:
        entries = index[tag]
        if isinstance(entries, dict) and all(key in {str(k) for k in entries} for key in keys):
            return tag
    raise TaskNotFoundError(", ".join(keys))


def can_move_with_dependencies(
    task_id: TaskId,
    source_tag: str,
    target_tag: str,
    index: Dict[str, Any],
) -> Dict[str, Any]:
    """Report whether a task can move as-is and what would have to come along.

    Never raises for conflicts; lookup errors still propagate.
    """
    validate_subtask_move(task_id, source_tag, target_tag)
    resolved_index = as_index(index)
    conflicts = find_cross_tag_dependencies([task_id], source_tag, target_tag, resolved_index)
    dependent_ids = get_dependent_task_ids([task_id], conflicts, resolved_index, source_tag)
    return {
        "can_move": not conflicts,
        "conflicts": conflicts,
        "dependent_task_ids": dependent_ids,
    }
