"""
Helpers over an in-memory tagged document.

A document maps tag name -> partition ``{"tasks": [...], "metadata": {...}}``.
Functions here never touch the filesystem.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from tasktags.core.errors.tags import TagNotFoundError, TagStructureError
from tasktags.core.ids import ref_key, resolve_dependency
from tasktags.core.store._constants import MASTER_TAG, TAG_DESCRIPTION_TEMPLATE
from tasktags.core.store.io import now_iso

TaskIndex = Dict[str, Dict[str, Dict[str, Any]]]


def new_partition(tag: str, description: Optional[str] = None) -> Dict[str, Any]:
    timestamp = now_iso()
    return {
        "tasks": [],
        "metadata": {
            "created": timestamp,
            "updated": timestamp,
            "description": description or TAG_DESCRIPTION_TEMPLATE.format(tag=tag),
        },
    }


def new_document() -> Dict[str, Any]:
    """Minimal valid document: an empty ``master`` partition."""
    return {MASTER_TAG: new_partition(MASTER_TAG)}


def partition_shape_issues(partition: Any) -> List[str]:
    """Shape problems that block mutation (not per-task schema checks)."""
    if not isinstance(partition, dict):
        return ["tag data must be an object"]
    issues = []
    if "tasks" not in partition:
        issues.append("missing required field: tasks")
    elif not isinstance(partition["tasks"], list):
        issues.append("tasks field must be an array")
    if "metadata" not in partition:
        issues.append("missing required field: metadata")
    elif not isinstance(partition["metadata"], dict):
        issues.append("metadata field must be an object")
    return issues


def normalize_partition(partition: Dict[str, Any], tag: str) -> Dict[str, Any]:
    """Coerce malformed ``tasks``/``metadata`` fields in place."""
    if not isinstance(partition.get("tasks"), list):
        partition["tasks"] = []
    metadata = partition.get("metadata")
    if not isinstance(metadata, dict):
        metadata = new_partition(tag)["metadata"]
        partition["metadata"] = metadata
    timestamp = now_iso()
    metadata.setdefault("created", timestamp)
    metadata.setdefault("updated", timestamp)
    return partition


def get_partition(
    document: Dict[str, Any],
    tag: str,
    *,
    role: Optional[str] = None,
    validate: bool = True,
) -> Dict[str, Any]:
    """Return the partition for ``tag``.

    Raises:
        TagNotFoundError: The tag is absent.
        TagStructureError: ``validate`` is set and the partition is malformed.
    """
    partition = document.get(tag)
    if partition is None:
        raise TagNotFoundError(tag, role=role)
    if validate:
        issues = partition_shape_issues(partition)
        if issues:
            raise TagStructureError(tag, issues)
    elif not isinstance(partition, dict):
        partition = new_partition(tag)
        document[tag] = partition
    else:
        normalize_partition(partition, tag)
    return partition


def ensure_partition(document: Dict[str, Any], tag: str, description: Optional[str] = None) -> Tuple[Dict[str, Any], bool]:
    """Return ``(partition, created)``, creating an empty partition if absent."""
    if tag in document and isinstance(document[tag], dict):
        return document[tag], False
    partition = new_partition(tag, description)
    document[tag] = partition
    return partition, True


def touch(partition: Dict[str, Any]) -> None:
    metadata = partition.setdefault("metadata", {})
    metadata["updated"] = now_iso()


def tag_names(document: Dict[str, Any]) -> List[str]:
    return [tag for tag, value in document.items() if isinstance(value, dict) and "tasks" in value]


def find_task(tasks: List[Dict[str, Any]], task_id: int) -> Optional[Dict[str, Any]]:
    for task in tasks:
        if isinstance(task, dict) and as_int(task.get("id")) == task_id:
            return task
    return None


def find_task_index(tasks: List[Dict[str, Any]], task_id: int) -> int:
    for index, task in enumerate(tasks):
        if isinstance(task, dict) and as_int(task.get("id")) == task_id:
            return index
    return -1


def find_subtask(task: Dict[str, Any], subtask_id: int) -> Optional[Dict[str, Any]]:
    for subtask in task.get("subtasks") or []:
        if isinstance(subtask, dict) and as_int(subtask.get("id")) == subtask_id:
            return subtask
    return None


def subtask_ids(task: Dict[str, Any]) -> List[int]:
    ids = []
    for subtask in task.get("subtasks") or []:
        if isinstance(subtask, dict):
            value = as_int(subtask.get("id"))
            if value is not None:
                ids.append(value)
    return ids


def insert_sorted(items: List[Dict[str, Any]], item: Dict[str, Any]) -> None:
    """Insert ``item`` before the first entry with a larger id."""
    item_id = as_int(item.get("id")) or 0
    for index, existing in enumerate(items):
        existing_id = as_int(existing.get("id")) if isinstance(existing, dict) else None
        if existing_id is not None and existing_id > item_id:
            items.insert(index, item)
            return
    items.append(item)


def as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


# ---------------------------------------------------------------------------
# Cross-tag views
# ---------------------------------------------------------------------------


def entity_dependency_keys(entity: Dict[str, Any], parent: Optional[Dict[str, Any]] = None) -> List[str]:
    """Resolve an entity's stored dependencies to index keys.

    ``parent`` is the owning task when ``entity`` is a subtask.
    """
    raw_deps = entity.get("dependencies") or []
    if not isinstance(raw_deps, list):
        return []
    if parent is None:
        sibling_ids = None
        parent_id = None
    else:
        sibling_ids = set(subtask_ids(parent))
        parent_id = as_int(parent.get("id"))
    keys = []
    for raw in raw_deps:
        key = ref_key(resolve_dependency(raw, sibling_ids), parent_id)
        if key is not None and key not in keys:
            keys.append(key)
    return keys


def build_task_index(document: Dict[str, Any]) -> TaskIndex:
    """Index every task and subtask as ``{tag: {"5": task, "5.2": subtask}}``.

    Each entry is a shallow copy whose ``dependencies`` are resolved keys, so
    lookups do not need the owner's context again.
    """
    index: TaskIndex = {}
    for tag, partition in document.items():
        if not isinstance(partition, dict) or not isinstance(partition.get("tasks"), list):
            continue
        entries: Dict[str, Dict[str, Any]] = {}
        for task in partition["tasks"]:
            if not isinstance(task, dict):
                continue
            task_id = as_int(task.get("id"))
            if task_id is None:
                continue
            entries[str(task_id)] = {**task, "dependencies": entity_dependency_keys(task)}
            for subtask in task.get("subtasks") or []:
                if not isinstance(subtask, dict):
                    continue
                sub_id = as_int(subtask.get("id"))
                if sub_id is None:
                    continue
                entries[f"{task_id}.{sub_id}"] = {
                    **subtask,
                    "parentTaskId": task_id,
                    "dependencies": entity_dependency_keys(subtask, task),
                }
        index[tag] = entries
    return index


def get_all_tasks_with_tags(document: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Flat list of top-level tasks, each annotated with its ``tag``."""
    flattened = []
    for tag, partition in document.items():
        if not isinstance(partition, dict) or not isinstance(partition.get("tasks"), list):
            continue
        for task in partition["tasks"]:
            if isinstance(task, dict):
                flattened.append({**task, "tag": tag})
    return flattened
