"""
Pydantic models describing a tag partition.

The stored document stays plain JSON dicts so unknown fields survive a round
trip; these models validate a partition and report precise issues.
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, ValidationError, field_validator

TaskStatus = Literal["pending", "in-progress", "done", "cancelled", "deferred", "blocked"]
DependencyValue = Union[int, str]


class SubtaskModel(BaseModel):
    """A subtask: the task shape without nested subtasks."""

    model_config = {"extra": "allow"}

    id: int = Field(..., gt=0, description="Unique within the parent task")
    title: str = ""
    description: str = ""
    details: str = ""
    status: TaskStatus = "pending"
    dependencies: List[DependencyValue] = Field(default_factory=list)
    parentTaskId: Optional[int] = None

    @field_validator("dependencies", mode="before")
    @classmethod
    def coerce_missing_dependencies(cls, v: Any) -> Any:
        """Stored documents sometimes carry ``null`` dependency lists."""
        return [] if v is None else v


class TaskModel(BaseModel):
    """A top-level task."""

    model_config = {"extra": "allow"}

    id: int = Field(..., gt=0, description="Unique within the tag")
    title: str = ""
    description: str = ""
    details: str = ""
    testStrategy: str = ""
    status: TaskStatus = "pending"
    priority: Optional[str] = None
    dependencies: List[DependencyValue] = Field(default_factory=list)
    subtasks: List[SubtaskModel] = Field(default_factory=list)

    @field_validator("dependencies", "subtasks", mode="before")
    @classmethod
    def coerce_missing_lists(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("subtasks")
    @classmethod
    def validate_unique_subtask_ids(cls, v: List[SubtaskModel]) -> List[SubtaskModel]:
        seen = set()
        for subtask in v:
            if subtask.id in seen:
                raise ValueError(f"duplicate subtask id {subtask.id}")
            seen.add(subtask.id)
        return v


class TagMetadata(BaseModel):
    model_config = {"extra": "allow"}

    created: Optional[str] = None
    updated: Optional[str] = None
    description: str = ""


class TagPartitionModel(BaseModel):
    """``{tasks: [...], metadata: {...}}`` for one tag."""

    model_config = {"extra": "allow"}

    tasks: List[TaskModel]
    metadata: TagMetadata

    @field_validator("tasks")
    @classmethod
    def validate_unique_task_ids(cls, v: List[TaskModel]) -> List[TaskModel]:
        seen = set()
        for task in v:
            if task.id in seen:
                raise ValueError(f"duplicate task id {task.id}")
            seen.add(task.id)
        return v


def partition_issues(data: Any) -> List[str]:
    """Validate a partition and return human-readable issues (empty if valid)."""
    try:
        TagPartitionModel.model_validate(data)
    except ValidationError as exc:
        issues = []
        for error in exc.errors():
            location = ".".join(str(part) for part in error["loc"])
            issues.append(f"{location}: {error['msg']}" if location else error["msg"])
        return issues
    return []


def describe_partition(data: Dict[str, Any]) -> Dict[str, Any]:
    """Counts used by status and validation reports."""
    tasks = data.get("tasks") if isinstance(data, dict) else None
    if not isinstance(tasks, list):
        return {"task_count": 0, "subtask_count": 0}
    subtask_count = sum(
        len(task.get("subtasks") or []) for task in tasks if isinstance(task, dict)
    )
    return {"task_count": len(tasks), "subtask_count": subtask_count}
