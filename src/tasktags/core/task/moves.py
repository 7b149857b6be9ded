"""
Within-tag moves: renumber, demote, promote and reparent.

Every function mutates the document passed in and returns a result mapping,
or raises a structural error and leaves persistence to the caller. Callers
work on a snapshot, so a raised error never reaches disk.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Union

from tasktags.core.errors.moves import (
    CircularDependencyError,
    CountMismatchError,
    DestinationExistsError,
    DestinationParentNotFoundError,
    HasSubtasksError,
    MissingArgumentError,
    SelfMoveError,
    SourceNotFoundError,
)
from tasktags.core.graph import DependencyGraph
from tasktags.core.ids import (
    ParsedId,
    QualifiedRef,
    SiblingRef,
    parse_id,
    parse_id_list,
    resolve_dependency,
)
from tasktags.core.store._constants import DEFAULT_PRIORITY
from tasktags.core.store.tagged import (
    find_subtask,
    find_task,
    find_task_index,
    get_partition,
    insert_sorted,
    subtask_ids,
    touch,
)

logger = logging.getLogger(__name__)

IdInput = Union[str, int, Iterable[Any]]


def move_tasks(
    document: Dict[str, Any],
    tag: str,
    source_ids: IdInput,
    destination_ids: IdInput,
) -> Dict[str, Any]:
    """Move one entity or a comma-separated batch within ``tag``.

    Rejects the whole call if it would introduce a dependency cycle that
    did not exist before.

    Returns:
        A single-move result, or a batch result with ``moves`` when more than
        one pair was given.
    """
    sources = parse_id_list(source_ids)
    destinations = parse_id_list(destination_ids)

    cycle_before = DependencyGraph.for_tag(document, tag).find_cycle()

    if len(sources) == 1 and len(destinations) == 1:
        result = move_within_tag(document, tag, sources[0], destinations[0])
    else:
        result = move_batch_within_tag(document, tag, sources, destinations)

    if cycle_before is None:
        cycle_after = DependencyGraph.for_tag(document, tag).find_cycle()
        if cycle_after is not None:
            raise CircularDependencyError(tag, cycle_after)

    return result


def move_batch_within_tag(
    document: Dict[str, Any],
    tag: str,
    source_ids: IdInput,
    destination_ids: IdInput,
) -> Dict[str, Any]:
    """Apply source/destination pairs in order against the same document.

    Raises:
        CountMismatchError: Source and destination counts differ.
        MissingArgumentError: Both lists are empty.
    """
    sources = parse_id_list(source_ids)
    destinations = parse_id_list(destination_ids)

    if len(sources) != len(destinations):
        raise CountMismatchError(len(sources), len(destinations))
    if not sources:
        raise MissingArgumentError("source IDs", "Source IDs are required")

    moves = [move_within_tag(document, tag, src, dst) for src, dst in zip(sources, destinations)]
    return {
        "message": f"Successfully moved {len(moves)} tasks/subtasks",
        "moves": moves,
    }


def move_within_tag(
    document: Dict[str, Any],
    tag: str,
    source_id: Any,
    destination_id: Any,
) -> Dict[str, Any]:
    """
    Move a task or subtask to a new identifier inside one tag.

    The source/destination shapes select the behavior:

    - task -> task: renumber (destination must be free)
    - task -> subtask: demote under an existing parent (task must have no subtasks)
    - subtask -> task: promote, rewriting sibling references to the former parent
    - subtask -> subtask: reparent or renumber, rewriting ``"old.N"`` to ``"new.N"``

    Args:
        document: Tagged document (mutated in place)
        tag: Tag holding both ends of the move
        source_id: Id being moved (``5`` or ``"5.2"``)
        destination_id: Target id (``7`` or ``"7.1"``)

    Returns:
        ``{"message", "moved_item", "source_id", "destination_id", "kind"}``
    """
    source = parse_id(source_id)
    destination = parse_id(destination_id)
    if source == destination:
        raise SelfMoveError(str(source), str(destination))

    partition = get_partition(document, tag)
    tasks: List[Dict[str, Any]] = partition["tasks"]

    if not source.is_subtask and not destination.is_subtask:
        kind = "task_to_task"
        message, moved = _move_task_to_task(tasks, source, destination)
    elif not source.is_subtask:
        kind = "task_to_subtask"
        message, moved = _move_task_to_subtask(tasks, source, destination)
    elif not destination.is_subtask:
        kind = "subtask_to_task"
        message, moved = _move_subtask_to_task(tasks, source, destination)
    else:
        kind = "subtask_to_subtask"
        message, moved = _move_subtask_to_subtask(tasks, source, destination)

    touch(partition)
    logger.debug("%s in tag %s: %s", kind, tag, message)
    return {
        "message": message,
        "moved_item": moved,
        "source_id": str(source),
        "destination_id": str(destination),
        "kind": kind,
    }


def _move_task_to_task(tasks: List[Dict[str, Any]], source: ParsedId, destination: ParsedId):
    index = find_task_index(tasks, source.task_id)
    if index < 0:
        raise SourceNotFoundError(source.task_id)
    if find_task(tasks, destination.task_id) is not None:
        raise DestinationExistsError(destination.task_id)

    # References held by other tasks keep pointing at the old id.
    task = tasks.pop(index)
    task["id"] = destination.task_id
    for subtask in task.get("subtasks") or []:
        if isinstance(subtask, dict) and "parentTaskId" in subtask:
            subtask["parentTaskId"] = destination.task_id
    insert_sorted(tasks, task)

    return f"Moved task {source} to new ID {destination}", task


def _move_task_to_subtask(tasks: List[Dict[str, Any]], source: ParsedId, destination: ParsedId):
    index = find_task_index(tasks, source.task_id)
    if index < 0:
        raise SourceNotFoundError(source.task_id)
    if destination.task_id == source.task_id:
        raise SelfMoveError(str(source), str(destination))

    parent = find_task(tasks, destination.task_id)
    if parent is None:
        raise DestinationParentNotFoundError(destination.task_id)

    task = tasks[index]
    owned = task.get("subtasks") or []
    if owned:
        raise HasSubtasksError(source.task_id, str(destination), len(owned))
    if find_subtask(parent, destination.subtask_id) is not None:  # type: ignore[arg-type]
        raise DestinationExistsError(str(destination))

    tasks.pop(index)
    subtask = {key: value for key, value in task.items() if key != "subtasks"}
    subtask["id"] = destination.subtask_id
    subtask["parentTaskId"] = destination.task_id

    if not isinstance(parent.get("subtasks"), list):
        parent["subtasks"] = []
    insert_sorted(parent["subtasks"], subtask)

    return f"Converted task {source} to subtask {destination}", subtask


def _move_subtask_to_task(tasks: List[Dict[str, Any]], source: ParsedId, destination: ParsedId):
    parent = find_task(tasks, source.task_id)
    if parent is None:
        raise SourceNotFoundError(str(source), f"Source parent task with ID {source.task_id} not found")
    subtask = find_subtask(parent, source.subtask_id)  # type: ignore[arg-type]
    if subtask is None:
        raise SourceNotFoundError(str(source), f"Source subtask {source} not found")
    if find_task(tasks, destination.task_id) is not None:
        raise DestinationExistsError(destination.task_id)

    siblings = {sid for sid in subtask_ids(parent) if sid != source.subtask_id}
    parent["subtasks"] = [s for s in parent["subtasks"] if s is not subtask]

    task = {key: value for key, value in subtask.items() if key != "parentTaskId"}
    task["id"] = destination.task_id
    task["dependencies"] = promote_dependencies(subtask.get("dependencies"), source.task_id, siblings)
    task["subtasks"] = []
    if not task.get("priority"):
        task["priority"] = parent.get("priority") or DEFAULT_PRIORITY
    insert_sorted(tasks, task)

    return f"Converted subtask {source} to task {destination}", task


def _move_subtask_to_subtask(tasks: List[Dict[str, Any]], source: ParsedId, destination: ParsedId):
    source_parent = find_task(tasks, source.task_id)
    if source_parent is None:
        raise SourceNotFoundError(str(source), f"Source parent task with ID {source.task_id} not found")
    subtask = find_subtask(source_parent, source.subtask_id)  # type: ignore[arg-type]
    if subtask is None:
        raise SourceNotFoundError(str(source), f"Source subtask {source} not found")
    destination_parent = find_task(tasks, destination.task_id)
    if destination_parent is None:
        raise DestinationParentNotFoundError(destination.task_id)
    if find_subtask(destination_parent, destination.subtask_id) is not None:  # type: ignore[arg-type]
        raise DestinationExistsError(str(destination))

    source_parent["subtasks"] = [s for s in source_parent["subtasks"] if s is not subtask]

    moved = dict(subtask)
    moved["id"] = destination.subtask_id
    if "parentTaskId" in moved:
        moved["parentTaskId"] = destination.task_id
    if source.task_id != destination.task_id:
        moved["dependencies"] = reparent_dependencies(
            subtask.get("dependencies"), source.task_id, destination.task_id
        )

    if not isinstance(destination_parent.get("subtasks"), list):
        destination_parent["subtasks"] = []
    insert_sorted(destination_parent["subtasks"], moved)

    return f"Moved subtask {source} to {destination}", moved


# ---------------------------------------------------------------------------
# Dependency rewrites
# ---------------------------------------------------------------------------


def promote_dependencies(raw_deps: Any, original_parent: int, sibling_ids: Iterable[int]) -> List[Any]:
    """Rewrite a promoted subtask's dependencies.

    Sibling references and ``"<original_parent>.N"`` collapse to the bare
    original parent id; everything else is kept verbatim. Duplicates created
    by the collapse are dropped, first occurrence wins.

    >>> promote_dependencies(["16.1", 20], 16, {1, 2, 3})
    [16, 20]
    """
    siblings = set(sibling_ids)
    rewritten: List[Any] = []
    for raw in raw_deps or []:
        ref = resolve_dependency(raw, siblings)
        if isinstance(ref, SiblingRef) or (isinstance(ref, QualifiedRef) and ref.parent_id == original_parent):
            value: Any = original_parent
        else:
            value = raw
        if value not in rewritten:
            rewritten.append(value)
    return rewritten


def reparent_dependencies(raw_deps: Any, old_parent: int, new_parent: int) -> List[Any]:
    """Rewrite ``"<old_parent>.N"`` to ``"<new_parent>.N"``; bare values unchanged.

    >>> reparent_dependencies(["1.2", 3], 1, 2)
    ['2.2', 3]
    """
    rewritten: List[Any] = []
    for raw in raw_deps or []:
        ref = resolve_dependency(raw)
        if isinstance(ref, QualifiedRef) and ref.parent_id == old_parent:
            rewritten.append(f"{new_parent}.{ref.subtask_id}")
        else:
            rewritten.append(raw)
    return rewritten
