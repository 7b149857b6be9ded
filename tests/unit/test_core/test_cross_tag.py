"""Tests for moving tasks between tags."""

import pytest

from doc_builders import make_partition, make_task

from tasktags.core.errors import (
    ConflictingOptionsError,
    CrossTagDependencyConflictError,
    DestinationExistsError,
    InvalidTagNameError,
    MissingArgumentError,
    SameTagError,
    SubtaskCrossTagMoveError,
    TagNotFoundError,
    TagStructureError,
    TaskNotFoundError,
)
from tasktags.core.task import MoveOptions, move_tasks_between_tags
from tasktags.core.task.cross_tag import get_all_tasks_with_tags


def _ids(document, tag):
    return [task["id"] for task in document[tag]["tasks"]]


def _task(document, tag, task_id):
    return next(task for task in document[tag]["tasks"] if task["id"] == task_id)


class TestMoveWithoutConflicts:
    def test_moves_and_appends_to_target(self, sample_document):
        result = move_tasks_between_tags(sample_document, [3], "master", "backlog")

        assert result["message"] == 'Successfully moved 1 tasks from "master" to "backlog"'
        assert result["moved_tasks"] == [{"id": 3, "from_tag": "master", "to_tag": "backlog"}]
        assert _ids(sample_document, "backlog") == [10, 3]
        assert 3 not in _ids(sample_document, "master")
        assert "created_tag" not in result

    def test_creates_missing_target_tag(self, sample_document):
        result = move_tasks_between_tags(sample_document, "3", "master", "sprint-1")

        assert result["created_tag"] == "sprint-1"
        assert _ids(sample_document, "sprint-1") == [3]
        assert sample_document["sprint-1"]["metadata"]["description"] == "Tasks for sprint-1 context"

    def test_subtasks_travel_with_parent(self, sample_document):
        sample_document["master"]["tasks"][0]["dependencies"] = []
        sample_document["master"]["tasks"] = [
            t for t in sample_document["master"]["tasks"] if t["id"] != 2
        ]
        move_tasks_between_tags(sample_document, [1], "master", "backlog")

        assert [s["id"] for s in _task(sample_document, "backlog", 1)["subtasks"]] == [1, 2]

    def test_target_updated_timestamp_is_touched(self, sample_document):
        before = sample_document["backlog"]["metadata"]["updated"]
        move_tasks_between_tags(sample_document, [3], "master", "backlog")
        assert sample_document["backlog"]["metadata"]["updated"] != before


class TestConflictHandling:
    """Dependency conflicts are rejected, carried along, or severed."""

    def test_conflict_rejected_by_default(self, sample_document):
        with pytest.raises(CrossTagDependencyConflictError) as exc_info:
            move_tasks_between_tags(sample_document, [2], "master", "backlog")

        conflicts = exc_info.value.conflicts
        assert [(c.task_id, c.dependency_id) for c in conflicts] == [(2, 1)]
        assert 2 in _ids(sample_document, "master")

    def test_dependent_moving_away_from_its_dependency_names_the_pair(self):
        document = {
            "backlog": make_partition([make_task(1, dependencies=[2]), make_task(2)]),
            "in-progress": make_partition([]),
        }

        with pytest.raises(CrossTagDependencyConflictError) as exc_info:
            move_tasks_between_tags(document, [1], "backlog", "in-progress")

        assert [(c.task_id, c.dependency_id) for c in exc_info.value.conflicts] == [(1, 2)]
        assert "1 -> 2" in str(exc_info.value)
        assert _ids(document, "backlog") == [1, 2]
        assert _ids(document, "in-progress") == []

    def test_with_dependencies_carries_the_closure(self, sample_document):
        result = move_tasks_between_tags(
            sample_document, [2], "master", "backlog", MoveOptions(with_dependencies=True)
        )

        assert result["dependent_task_ids"] == [1]
        assert _ids(sample_document, "backlog") == [10, 2, 1]
        assert _ids(sample_document, "master") == [3, 16, 20]

    def test_with_dependencies_pulls_in_dependents(self, sample_document):
        # 16.2 depends on 20, so task 16 must come along
        result = move_tasks_between_tags(
            sample_document, [20], "master", "backlog", MoveOptions(with_dependencies=True)
        )

        assert [m["id"] for m in result["moved_tasks"]] == [20, 16]
        assert result["dependent_task_ids"] == [16]

    def test_ignore_dependencies_severs_outgoing_edge(self, sample_document):
        result = move_tasks_between_tags(
            sample_document, [2], "master", "backlog", MoveOptions(ignore_dependencies=True)
        )

        assert _task(sample_document, "backlog", 2)["dependencies"] == []
        assert [d["dependency_id"] for d in result["severed_dependencies"]] == [1]

    def test_ignore_dependencies_severs_incoming_edge(self, sample_document):
        move_tasks_between_tags(
            sample_document, [20], "master", "backlog", MoveOptions(ignore_dependencies=True)
        )

        subtask = _task(sample_document, "master", 16)["subtasks"][1]
        assert subtask["dependencies"] == [1, "16.1"]

    def test_conflicting_options(self, sample_document):
        with pytest.raises(ConflictingOptionsError):
            move_tasks_between_tags(
                sample_document,
                [2],
                "master",
                "backlog",
                MoveOptions(with_dependencies=True, ignore_dependencies=True),
            )


class TestValidation:
    def test_subtask_ids_rejected(self, sample_document):
        with pytest.raises(SubtaskCrossTagMoveError) as exc_info:
            move_tasks_between_tags(sample_document, ["1.1"], "master", "backlog")
        assert str(exc_info.value) == "Cannot move subtask 1.1 directly between tags"

    def test_missing_source_tag(self, sample_document):
        with pytest.raises(TagNotFoundError) as exc_info:
            move_tasks_between_tags(sample_document, [1], "nope", "backlog")
        assert str(exc_info.value) == 'Source tag "nope" not found'

    def test_same_tag(self, sample_document):
        with pytest.raises(SameTagError):
            move_tasks_between_tags(sample_document, [3], "master", "master")

    def test_missing_task(self, sample_document):
        with pytest.raises(TaskNotFoundError) as exc_info:
            move_tasks_between_tags(sample_document, [99], "master", "backlog")
        assert str(exc_info.value) == "Task 99 not found"

    def test_empty_ids(self, sample_document):
        with pytest.raises(MissingArgumentError):
            move_tasks_between_tags(sample_document, "", "master", "backlog")

    def test_id_already_used_in_target(self, sample_document):
        sample_document["backlog"]["tasks"].append(make_task(3))
        with pytest.raises(DestinationExistsError) as exc_info:
            move_tasks_between_tags(sample_document, [3], "master", "backlog")
        assert exc_info.value.tag == "backlog"

    def test_invalid_new_tag_name(self, sample_document):
        with pytest.raises(InvalidTagNameError):
            move_tasks_between_tags(sample_document, [3], "master", "bad tag!")

    def test_force_skips_name_validation(self, sample_document):
        result = move_tasks_between_tags(sample_document, [3], "master", "bad tag!", MoveOptions(force=True))
        assert result["created_tag"] == "bad tag!"

    def test_malformed_target_rejected_without_force(self, sample_document):
        sample_document["broken"] = {"tasks": "oops"}
        with pytest.raises(TagStructureError):
            move_tasks_between_tags(sample_document, [3], "master", "broken")

    def test_force_normalizes_malformed_target(self, sample_document):
        sample_document["broken"] = {"tasks": "oops"}
        move_tasks_between_tags(sample_document, [3], "master", "broken", MoveOptions(force=True))
        assert _ids(sample_document, "broken") == [3]
        assert "created" in sample_document["broken"]["metadata"]


class TestGetAllTasksWithTags:
    def test_flattens_with_tag_annotation(self):
        document = {
            "a": make_partition([make_task(1)]),
            "b": make_partition([make_task(1), make_task(2)]),
        }
        tasks = get_all_tasks_with_tags(document)
        assert [(t["tag"], t["id"]) for t in tasks] == [("a", 1), ("b", 1), ("b", 2)]
