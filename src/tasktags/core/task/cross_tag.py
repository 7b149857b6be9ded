"""
Moves of top-level tasks between tags.

Subtasks travel with their parent and are never moved across tags on their
own. Dependency edges that a move would split are reported, carried along,
or severed depending on ``MoveOptions``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from tasktags.core.dependencies import (
    CrossTagConflict,
    find_cross_tag_dependencies,
    get_dependent_task_ids,
)
from tasktags.core.errors.moves import (
    ConflictingOptionsError,
    CrossTagDependencyConflictError,
    DestinationExistsError,
    MissingArgumentError,
    SubtaskCrossTagMoveError,
    TaskNotFoundError,
)
from tasktags.core.errors.tags import InvalidTagNameError, SameTagError, TagNotFoundError
from tasktags.core.ids import parse_id, parse_id_list
from tasktags.core.store.tagged import (
    build_task_index,
    ensure_partition,
    entity_dependency_keys,
    find_subtask,
    find_task,
    find_task_index,
    get_all_tasks_with_tags,
    get_partition,
    touch,
)
from tasktags.core.tags import validate_tag_name

logger = logging.getLogger(__name__)

__all__ = [
    "MoveOptions",
    "move_tasks_between_tags",
    "get_all_tasks_with_tags",
]


@dataclass(frozen=True)
class MoveOptions:
    """How a cross-tag move treats dependencies that would be split.

    Attributes:
        with_dependencies: Carry every task the moving set depends on, and
            every task depending on it, until no edge crosses tags.
        ignore_dependencies: Delete the crossing references instead.
        force: Normalize malformed partitions instead of rejecting them and
            skip target tag name validation.
    """

    with_dependencies: bool = False
    ignore_dependencies: bool = False
    force: bool = False


def move_tasks_between_tags(
    document: Dict[str, Any],
    source_ids: Any,
    source_tag: str,
    target_tag: str,
    options: Optional[MoveOptions] = None,
) -> Dict[str, Any]:
    """
    Move top-level tasks from ``source_tag`` to ``target_tag``.

    The target tag is created when absent. Tasks are removed from the source
    and appended to the target in moving order.

    Args:
        document: Tagged document (mutated in place)
        source_ids: Task ids, as a list or a comma-separated string
        source_tag: Tag the tasks currently belong to
        target_tag: Tag to move them to
        options: Dependency handling; defaults reject any conflict

    Returns:
        ``{"message", "moved_tasks": [{"id", "from_tag", "to_tag"}], ...}``

    Raises:
        ConflictingOptionsError: Both dependency flags were set.
        SubtaskCrossTagMoveError: A source id names a subtask.
        TagNotFoundError: The source tag is absent.
        SameTagError: Source and target are the same tag.
        TaskNotFoundError: A source task is absent from the source tag.
        CrossTagDependencyConflictError: Conflicts exist and neither
            dependency flag was set.
        DestinationExistsError: A moving id is already used in the target.
    """
    options = options or MoveOptions()
    if options.with_dependencies and options.ignore_dependencies:
        raise ConflictingOptionsError(["with_dependencies", "ignore_dependencies"])

    parsed = parse_id_list(source_ids)
    if not parsed:
        raise MissingArgumentError("source IDs", "Source IDs are required")
    for pid in parsed:
        if pid.is_subtask:
            raise SubtaskCrossTagMoveError(str(pid))

    if source_tag not in document:
        raise TagNotFoundError(source_tag, role="Source")
    if source_tag == target_tag:
        raise SameTagError(source_tag)

    validate = not options.force
    source = get_partition(document, source_tag, role="Source", validate=validate)
    if target_tag in document:
        get_partition(document, target_tag, role="Target", validate=validate)
    elif not options.force:
        name_check = validate_tag_name(target_tag)
        if not name_check.valid:
            raise InvalidTagNameError(target_tag, name_check.error or "invalid name")

    moving: List[int] = []
    for pid in parsed:
        if pid.task_id not in moving:
            moving.append(pid.task_id)
    for task_id in moving:
        if find_task(source["tasks"], task_id) is None:
            raise TaskNotFoundError(task_id, source_tag)

    index = build_task_index(document)
    conflicts = find_cross_tag_dependencies(moving, source_tag, target_tag, index)
    requested = list(moving)
    severed: List[CrossTagConflict] = []

    if conflicts:
        if options.with_dependencies:
            moving, conflicts = _expand_to_fixed_point(moving, conflicts, source_tag, target_tag, index)
            if conflicts:
                raise CrossTagDependencyConflictError(conflicts, source_tag, target_tag)
        elif not options.ignore_dependencies:
            raise CrossTagDependencyConflictError(conflicts, source_tag, target_tag)

    existing_target = document.get(target_tag)
    if isinstance(existing_target, dict):
        for task_id in moving:
            if find_task(existing_target.get("tasks") or [], task_id) is not None:
                raise DestinationExistsError(task_id, tag=target_tag)

    if conflicts and options.ignore_dependencies:
        severed = _sever_crossing_edges(source["tasks"], moving, conflicts)

    target, created = ensure_partition(document, target_tag)
    moved_tasks = []
    for task_id in moving:
        task = source["tasks"].pop(find_task_index(source["tasks"], task_id))
        target["tasks"].append(task)
        moved_tasks.append({"id": task_id, "from_tag": source_tag, "to_tag": target_tag})

    touch(source)
    touch(target)

    logger.info(
        "Moved %d tasks from %s to %s (requested %s)",
        len(moved_tasks),
        source_tag,
        target_tag,
        requested,
    )

    result: Dict[str, Any] = {
        "message": f'Successfully moved {len(moved_tasks)} tasks from "{source_tag}" to "{target_tag}"',
        "moved_tasks": moved_tasks,
    }
    if created:
        result["created_tag"] = target_tag
    if len(moving) > len(requested):
        result["dependent_task_ids"] = [tid for tid in moving if tid not in requested]
    if severed:
        result["severed_dependencies"] = [c.to_dict() for c in severed]
    return result


def _expand_to_fixed_point(
    moving: List[int],
    conflicts: List[CrossTagConflict],
    source_tag: str,
    target_tag: str,
    index: Dict[str, Any],
):
    while conflicts:
        closure = get_dependent_task_ids(moving, conflicts, index, source_tag)
        added = [tid for tid in closure if tid not in moving]
        if not added:
            break
        moving = moving + added
        conflicts = find_cross_tag_dependencies(moving, source_tag, target_tag, index)
    return moving, conflicts


def _sever_crossing_edges(
    tasks: List[Dict[str, Any]],
    moving: Sequence[int],
    conflicts: Sequence[CrossTagConflict],
) -> List[CrossTagConflict]:
    """Drop references that would point across tags once the move happens."""
    roots = {str(task_id) for task_id in moving}

    def is_moving(key: str) -> bool:
        return key.split(".", 1)[0] in roots

    severed = []
    for conflict in conflicts:
        owner_key, dep_key = str(conflict.task_id), str(conflict.dependency_id)
        if is_moving(owner_key) == is_moving(dep_key):
            continue
        if _remove_reference(tasks, owner_key, dep_key):
            severed.append(conflict)
    return severed


def _remove_reference(tasks: List[Dict[str, Any]], owner_key: str, dep_key: str) -> bool:
    owner_id = parse_id(owner_key)
    task = find_task(tasks, owner_id.task_id)
    if task is None:
        return False
    if owner_id.is_subtask:
        entity = find_subtask(task, owner_id.subtask_id)  # type: ignore[arg-type]
        parent: Optional[Dict[str, Any]] = task
    else:
        entity, parent = task, None
    if entity is None or not isinstance(entity.get("dependencies"), list):
        return False

    kept = []
    removed = False
    for raw in entity["dependencies"]:
        # Resolve each value alone so a list holding both 2 and "2" drops both.
        keys = entity_dependency_keys({"dependencies": [raw]}, parent)
        if keys and keys[0] == dep_key:
            removed = True
            continue
        kept.append(raw)
    entity["dependencies"] = kept
    return removed
