"""Tests for identifier parsing and dependency reference resolution."""

import pytest

from tasktags.core.errors import InvalidIdFormatError
from tasktags.core.ids import (
    IdKind,
    QualifiedRef,
    SiblingRef,
    TaskRef,
    UnresolvedRef,
    normalize_key,
    parse_id,
    parse_id_list,
    ref_key,
    ref_to_raw,
    resolve_dependency,
)


class TestParseId:
    """parse_id classification and rejection."""

    def test_integer_is_task(self):
        parsed = parse_id(5)
        assert parsed.kind is IdKind.TASK
        assert parsed.task_id == 5
        assert parsed.subtask_id is None

    def test_numeric_string_is_task(self):
        assert parse_id(" 12 ").task_id == 12

    def test_dotted_string_is_subtask(self):
        parsed = parse_id("5.2")
        assert parsed.is_subtask
        assert (parsed.task_id, parsed.subtask_id) == (5, 2)

    @pytest.mark.parametrize("raw", ["5", "5.2", 7, "10.11"])
    def test_canonical_form_reparses_to_equal_value(self, raw):
        parsed = parse_id(raw)
        assert parse_id(str(parsed)) == parsed

    @pytest.mark.parametrize("raw", [0, -1, "0", "5.0", "0.1", "abc", "1.2.3", "", "1.", True, None, 1.5])
    def test_rejects_invalid_values(self, raw):
        with pytest.raises(InvalidIdFormatError):
            parse_id(raw)

    def test_error_is_client_error_and_not_retryable(self):
        with pytest.raises(InvalidIdFormatError) as exc_info:
            parse_id("x")
        assert exc_info.value.client_error is True
        assert exc_info.value.retryable is False


class TestParseIdList:
    def test_comma_separated_string(self):
        assert [str(p) for p in parse_id_list("1, 2,3.1")] == ["1", "2", "3.1"]

    def test_sequence_of_mixed_values(self):
        assert [str(p) for p in parse_id_list([4, "5.1"])] == ["4", "5.1"]

    def test_empty_segments_are_skipped(self):
        assert [str(p) for p in parse_id_list("1,,2,")] == ["1", "2"]

    def test_none_is_empty(self):
        assert parse_id_list(None) == []


class TestResolveDependency:
    """Dependency values resolve against the owner's sibling set."""

    def test_bare_integer_on_task_is_task_ref(self):
        assert resolve_dependency(3) == TaskRef(3)

    def test_bare_integer_matching_sibling_is_sibling_ref(self):
        assert resolve_dependency(1, sibling_ids={1, 2}) == SiblingRef(1)

    def test_bare_integer_without_matching_sibling_is_task_ref(self):
        assert resolve_dependency(9, sibling_ids={1, 2}) == TaskRef(9)

    def test_dotted_value_is_qualified(self):
        assert resolve_dependency("16.1", sibling_ids={1}) == QualifiedRef(16, 1)

    def test_numeric_string_normalizes_to_task(self):
        assert resolve_dependency("4") == TaskRef(4)

    def test_garbage_is_unresolved(self):
        assert resolve_dependency("later") == UnresolvedRef("later")

    def test_ref_keys(self):
        assert ref_key(TaskRef(3)) == "3"
        assert ref_key(QualifiedRef(2, 1)) == "2.1"
        assert ref_key(SiblingRef(4), parent_id=7) == "7.4"
        assert ref_key(UnresolvedRef("x")) is None

    def test_ref_to_raw(self):
        assert ref_to_raw(TaskRef(3)) == 3
        assert ref_to_raw(SiblingRef(2)) == 2
        assert ref_to_raw(QualifiedRef(1, 2)) == "1.2"
        assert ref_to_raw(UnresolvedRef("x")) == "x"

    def test_normalize_key(self):
        assert normalize_key("5") == 5
        assert normalize_key("5.2") == "5.2"
