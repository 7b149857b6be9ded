"""Tests for EngineContext: locking, persistence, regeneration and recovery."""

import json

import pytest

from tasktags.core.engine import TASK_OPERATIONS, EngineContext
from tasktags.core.errors import (
    CrossTagDependencyConflictError,
    LockTimeoutError,
    SourceNotFoundError,
    StoreCorruptedError,
)


class RegenerateRecorder:
    def __init__(self, fail_for=()):
        self.calls = []
        self.fail_for = set(fail_for)

    def __call__(self, tasks_path, tag):
        self.calls.append((tasks_path, tag))
        if tag in self.fail_for:
            raise RuntimeError(f"cannot render {tag}")


@pytest.fixture
def regenerate():
    return RegenerateRecorder()


@pytest.fixture
def engine(engine_config, write_document, sample_document, regenerate):
    write_document(sample_document)
    return EngineContext(engine_config, regenerate=regenerate)


def _ids(document, tag):
    return [task["id"] for task in document[tag]["tasks"]]


class TestMoveTask:
    @pytest.mark.asyncio
    async def test_persists_and_releases_lock(self, engine, read_document):
        result = await engine.move_task("2", "5", tag="master")

        assert result["message"] == "Moved task 2 to new ID 5"
        assert result["tag"] == "master"
        assert result["correlation_id"].startswith("move_")
        assert _ids(read_document(), "master") == [1, 3, 5, 16, 20]
        assert engine.locks.lock_count == 0

    @pytest.mark.asyncio
    async def test_batch_regenerates_once(self, engine, regenerate, tasks_file):
        result = await engine.move_task("2,3", "5,6", tag="master", generate_files=True)

        assert len(result["moves"]) == 2
        assert regenerate.calls == [(tasks_file, "master")]

    @pytest.mark.asyncio
    async def test_no_regeneration_by_default(self, engine, regenerate):
        await engine.move_task(3, 4, tag="master")
        assert regenerate.calls == []

    @pytest.mark.asyncio
    async def test_uses_current_tag_from_state(self, engine, engine_config, read_document):
        engine_config.get_state_path().write_text(json.dumps({"currentTag": "backlog"}))

        result = await engine.move_task(10, 11)

        assert result["tag"] == "backlog"
        assert _ids(read_document(), "backlog") == [11]

    @pytest.mark.asyncio
    async def test_structural_error_leaves_file_untouched(self, engine, read_document, sample_document):
        with pytest.raises(SourceNotFoundError):
            await engine.move_task(99, 100, tag="master")

        assert read_document() == sample_document
        assert engine.breakers.get_breaker(TASK_OPERATIONS).failure_count == 0
        assert engine.locks.lock_count == 0

    @pytest.mark.asyncio
    async def test_transient_write_failure_is_retried(self, engine, monkeypatch, read_document):
        original_write = engine.store.write
        attempts = []

        def flaky_write(document):
            attempts.append(1)
            if len(attempts) == 1:
                raise OSError("disk busy")
            original_write(document)

        monkeypatch.setattr(engine.store, "write", flaky_write)

        await engine.move_task(3, 4, tag="master")

        assert len(attempts) == 2
        assert 4 in _ids(read_document(), "master")

    @pytest.mark.asyncio
    async def test_held_lock_times_out(self, engine_config, write_document, sample_document, fake_clock, recorded_sleeps):
        write_document(sample_document)
        engine_config.locks.poll_interval = 1.0
        engine = EngineContext(engine_config, clock=fake_clock, sleep=recorded_sleeps)
        await engine.locks.acquire_lock("master", "someone_else")

        with pytest.raises(LockTimeoutError):
            await engine.move_task(3, 4, tag="master")


class TestMoveTasksBetweenTags:
    @pytest.mark.asyncio
    async def test_regenerates_source_and_target(self, engine, regenerate, read_document):
        result = await engine.move_tasks_between_tags([3], "master", "backlog", generate_files=True)

        assert [tag for _, tag in regenerate.calls] == ["master", "backlog"]
        assert _ids(read_document(), "backlog") == [10, 3]
        assert result["correlation_id"].startswith("move_")
        assert engine.locks.lock_count == 0

    @pytest.mark.asyncio
    async def test_regeneration_failure_becomes_warning(self, engine_config, write_document, sample_document, read_document):
        write_document(sample_document)
        engine = EngineContext(engine_config, regenerate=RegenerateRecorder(fail_for={"backlog"}))

        result = await engine.move_tasks_between_tags([3], "master", "backlog", generate_files=True)

        assert result["warnings"] == ["File regeneration failed for tag 'backlog': cannot render backlog"]
        assert 3 in _ids(read_document(), "backlog")

    @pytest.mark.asyncio
    async def test_conflict_leaves_file_untouched(self, engine, read_document, sample_document):
        with pytest.raises(CrossTagDependencyConflictError):
            await engine.move_tasks_between_tags([2], "master", "backlog")
        assert read_document() == sample_document

    @pytest.mark.asyncio
    async def test_with_dependencies(self, engine, read_document):
        result = await engine.move_tasks_between_tags([2], "master", "backlog", with_dependencies=True)

        assert result["dependent_task_ids"] == [1]
        assert _ids(read_document(), "backlog") == [10, 2, 1]

    @pytest.mark.asyncio
    async def test_async_regenerate_callback(self, engine_config, write_document, sample_document):
        write_document(sample_document)
        seen = []

        async def regenerate(tasks_path, tag):
            seen.append(tag)

        engine = EngineContext(engine_config, regenerate=regenerate)
        await engine.move_tasks_between_tags([3], "master", "sprint", generate_files=True)
        assert seen == ["master", "sprint"]


class TestRecoveryAndReporting:
    @pytest.mark.asyncio
    async def test_missing_file_is_created_before_mutation(self, engine_config, read_document):
        engine = EngineContext(engine_config)

        with pytest.raises(SourceNotFoundError):
            await engine.move_task(1, 2, tag="master")

        assert read_document()["master"]["tasks"] == []

    @pytest.mark.asyncio
    async def test_corrupted_file_without_recovery(self, engine_config, tasks_file):
        engine_config.recovery.enabled = False
        tasks_file.write_text("{oops")
        engine = EngineContext(engine_config)

        with pytest.raises(StoreCorruptedError):
            await engine.move_task(1, 2, tag="master")

        assert tasks_file.read_text() == "{oops"

    def test_check_cross_tag_move(self, engine):
        report = engine.check_cross_tag_move(2, "master", "backlog")

        assert report["can_move"] is False
        assert report["conflicts"][0]["dependency_id"] == 1
        assert report["dependent_task_ids"] == [2, 1]

    def test_heal_and_validate(self, engine):
        assert engine.heal().healthy
        assert engine.validate_tags()["valid"] is True

    def test_status(self, engine, tasks_file):
        status = engine.status()

        assert status["tasks_file"] == str(tasks_file)
        assert status["tasks_file_exists"] is True
        assert status["tags"] == ["master", "backlog"]
        assert status["locks"] == []
        assert status["auditor"]["running"] is False

    @pytest.mark.asyncio
    async def test_context_manager_respects_self_healing_flag(self, engine_config):
        async with EngineContext(engine_config) as engine:
            assert not engine.auditor.is_running

        engine_config.recovery.self_healing_enabled = True
        engine_config.recovery.self_healing_interval = 60.0
        async with EngineContext(engine_config) as engine:
            assert engine.auditor.is_running
        assert not engine.auditor.is_running
