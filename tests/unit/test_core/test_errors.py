"""Tests for the error hierarchy and its response mapping."""

import pytest

from tasktags.core.dependencies import CrossTagConflict
from tasktags.core.errors import (
    ERROR_MAPPINGS,
    CircuitOpenError,
    CountMismatchError,
    CrossTagDependencyConflictError,
    LockTimeoutError,
    MaxRetriesExceededError,
    SameTagError,
    TaskStoreError,
    error_to_response,
)
from tasktags.core.resilience import CircuitState


class TestErrorAttributes:
    """Retry and client-error flags drive breaker and retry behavior."""

    @pytest.mark.parametrize("error_class", list(ERROR_MAPPINGS))
    def test_every_mapped_error_is_a_task_store_error(self, error_class):
        assert issubclass(error_class, TaskStoreError)

    def test_lock_timeout_is_retryable_system_error(self):
        exc = LockTimeoutError("master", 30.0)
        assert exc.retryable is True
        assert exc.client_error is False
        assert str(exc) == 'Failed to acquire lock for tag "master" within 30.0s'

    def test_max_retries_keeps_last_error(self):
        cause = OSError("disk busy")
        exc = MaxRetriesExceededError("move_task", 4, cause)
        assert exc.to_details()["last_error_type"] == "OSError"
        assert "after 4 attempts" in str(exc)


class TestErrorToResponse:
    def test_conflict_error_response(self):
        """Test that conflicts and suggestions are carried into the envelope."""
        conflict = CrossTagConflict(2, 1, "master", "master")
        response = error_to_response(CrossTagDependencyConflictError([conflict], "master", "backlog"))

        assert response["success"] is False
        assert response["data"]["error_code"] == "CROSS_TAG_DEPENDENCY_CONFLICT"
        assert response["data"]["error_type"] == "conflict"
        assert response["data"]["http_status"] == 409
        assert response["data"]["details"]["conflicts"][0]["message"] == "Task 2 depends on 1"
        assert any("--with-dependencies" in s for s in response["data"]["suggestions"])

    def test_remediation(self):
        response = error_to_response(CountMismatchError(2, 1))
        assert response["data"]["remediation"] == "Provide one destination ID for each source ID"
        assert response["data"]["error_type"] == "validation"

    def test_same_tag_suggestions(self):
        response = error_to_response(SameTagError("backlog"))
        assert response["error"] == 'Source and target tags are the same ("backlog")'
        assert len(response["data"]["suggestions"]) == 3

    def test_circuit_open_carries_retry_after(self):
        exc = CircuitOpenError("open", breaker_name="file-system", state=CircuitState.OPEN, retry_after=4.5)
        response = error_to_response(exc)
        assert response["meta"]["retry_after"] == 4.5
        assert response["data"]["details"]["state"] == "open"
        assert response["data"]["http_status"] == 503

    def test_unknown_errors_return_none(self):
        assert error_to_response(ValueError("nope")) is None

    def test_subclasses_resolve_through_mro(self):
        class CustomSameTag(SameTagError):
            pass

        response = error_to_response(CustomSameTag("x"))
        assert response["data"]["error_code"] == "SAME_SOURCE_TARGET_TAG"
