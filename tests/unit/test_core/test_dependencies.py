"""Tests for cross-tag dependency analysis."""

import pytest

from doc_builders import make_partition, make_subtask, make_task

from tasktags.core.dependencies import (
    CrossTagConflict,
    can_move_with_dependencies,
    find_cross_tag_dependencies,
    get_dependent_task_ids,
    validate_cross_tag_move,
    validate_subtask_move,
)
from tasktags.core.errors import SubtaskCrossTagMoveError, TagNotFoundError, TaskNotFoundError
from tasktags.core.store import build_task_index


def _pairs(conflicts):
    return [(c.task_id, c.dependency_id) for c in conflicts]


@pytest.fixture
def chain_index():
    """1 -> [2, 3], 2 -> 4, 3 -> 5, 5 -> 6 in tag ``work``."""
    return build_task_index(
        {
            "work": make_partition(
                [
                    make_task(1, dependencies=[2, 3]),
                    make_task(2, dependencies=[4]),
                    make_task(3, dependencies=[5]),
                    make_task(4),
                    make_task(5, dependencies=[6]),
                    make_task(6),
                ]
            ),
            "done": make_partition([]),
        }
    )


class TestFindCrossTagDependencies:
    def test_empty_source_ids(self, chain_index):
        assert find_cross_tag_dependencies([], "work", "done", chain_index) == []

    def test_discovery_stops_after_second_level(self, chain_index):
        conflicts = find_cross_tag_dependencies([1], "work", "done", chain_index)

        assert len(conflicts) == 4
        assert (5, 6) not in _pairs(conflicts)
        assert {(1, 2), (1, 3), (2, 4), (3, 5)} == set(_pairs(conflicts))

    def test_cycle_reports_each_edge_once(self):
        index = build_task_index(
            {
                "work": make_partition(
                    [
                        make_task(1, dependencies=[2]),
                        make_task(2, dependencies=[3]),
                        make_task(3, dependencies=[1]),
                    ]
                )
            }
        )
        conflicts = find_cross_tag_dependencies([1], "work", "done", index)

        assert _pairs(conflicts) == [(1, 2), (2, 3), (3, 1)]
        assert [c.moving_side for c in conflicts] == ["task", "task", "dependency"]

    def test_subtask_dependencies_count_for_the_parent(self):
        index = build_task_index(
            {
                "work": make_partition(
                    [
                        make_task(1, subtasks=[make_subtask(1, 1, dependencies=[2])]),
                        make_task(2),
                    ]
                )
            }
        )
        conflicts = find_cross_tag_dependencies([1], "work", "done", index)
        assert _pairs(conflicts) == [("1.1", 2)]

    def test_mixed_task_and_subtask_dependencies(self):
        index = build_task_index(
            {
                "work": make_partition(
                    [
                        make_task(1, dependencies=[2, "3.1"]),
                        make_task(2),
                        make_task(3, subtasks=[make_subtask(1, 3)]),
                    ]
                )
            }
        )
        conflicts = find_cross_tag_dependencies([1], "work", "done", index)
        assert _pairs(conflicts) == [(1, 2), (1, "3.1")]

    def test_string_dependencies_normalize_to_ints(self):
        index = build_task_index(
            {"work": make_partition([make_task(1, dependencies=["2"]), make_task(2)])}
        )
        conflicts = find_cross_tag_dependencies(["1"], "work", "done", index)
        assert _pairs(conflicts) == [(1, 2)]

    def test_missing_dependencies_are_ignored(self):
        index = build_task_index({"work": make_partition([make_task(1, dependencies=[42])])})
        assert find_cross_tag_dependencies([1], "work", "done", index) == []

    def test_null_dependencies(self):
        index = {"work": {"1": {"id": 1, "dependencies": None}}}
        assert find_cross_tag_dependencies([1], "work", "done", index) == []

    def test_accepts_raw_document(self, sample_document):
        conflicts = find_cross_tag_dependencies([2], "master", "backlog", sample_document)
        assert _pairs(conflicts) == [(2, 1)]

    def test_unknown_tag(self, chain_index):
        with pytest.raises(TagNotFoundError) as exc_info:
            find_cross_tag_dependencies([1], "nope", "done", chain_index)
        assert str(exc_info.value) == 'Source tag "nope" not found'

    def test_unknown_task(self, chain_index):
        with pytest.raises(TaskNotFoundError) as exc_info:
            find_cross_tag_dependencies([999], "work", "done", chain_index)
        assert str(exc_info.value) == "Task 999 not found"


class TestGetDependentTaskIds:
    def test_full_transitive_closure(self, chain_index):
        conflicts = find_cross_tag_dependencies([1], "work", "done", chain_index)
        ids = get_dependent_task_ids([1], conflicts, chain_index, "work")
        assert sorted(ids) == [1, 2, 3, 4, 5, 6]
        assert ids[0] == 1

    def test_infers_source_tag_from_conflicts(self, chain_index):
        conflicts = find_cross_tag_dependencies([3], "work", "done", chain_index)
        assert sorted(get_dependent_task_ids([3], conflicts, chain_index)) == [1, 2, 3, 4, 5, 6]

    def test_subtask_references_map_to_parent(self):
        index = build_task_index(
            {
                "work": make_partition(
                    [make_task(1, dependencies=["2.1"]), make_task(2, subtasks=[make_subtask(1, 2)])]
                )
            }
        )
        assert get_dependent_task_ids([1], [], index, "work") == [1, 2]


class TestValidateMoves:
    def test_subtask_rejected(self):
        with pytest.raises(SubtaskCrossTagMoveError):
            validate_subtask_move("3.1", "a", "b")

    def test_task_accepted(self):
        assert validate_subtask_move(3, "a", "b") is None

    def test_direct_dependencies_only(self, chain_index):
        validation = validate_cross_tag_move({"id": 1}, "work", "done", chain_index)
        assert validation.can_move is False
        assert _pairs(validation.conflicts) == [(1, 2), (1, 3)]

    def test_task_without_dependencies(self, chain_index):
        validation = validate_cross_tag_move(6, "work", "done", chain_index)
        assert validation.to_dict() == {"can_move": True, "conflicts": []}

    def test_can_move_with_dependencies(self, chain_index):
        report = can_move_with_dependencies(5, "work", "done", chain_index)
        assert report["can_move"] is False
        assert sorted(report["dependent_task_ids"]) == [3, 5, 6]


class TestCrossTagConflict:
    def test_to_dict_includes_message(self):
        conflict = CrossTagConflict(2, 1, "master", "master")
        data = conflict.to_dict()
        assert data["message"] == "Task 2 depends on 1"
        assert data["moving_side"] == "task"
