"""Shared fixtures for core unit tests."""

import json
from pathlib import Path

import pytest

from doc_builders import make_partition, make_subtask, make_task

from tasktags.config import EngineConfig


@pytest.fixture
def sample_document():
    """A master tag with subtasks and cross-references, plus an empty backlog."""
    return {
        "master": make_partition(
            [
                make_task(
                    1,
                    priority="high",
                    subtasks=[
                        make_subtask(1, 1),
                        make_subtask(2, 1, dependencies=[1]),
                    ],
                ),
                make_task(2, dependencies=[1]),
                make_task(3),
                make_task(
                    16,
                    priority="low",
                    subtasks=[
                        make_subtask(1, 16),
                        make_subtask(2, 16, dependencies=[1, "16.1", 20]),
                    ],
                ),
                make_task(20),
            ]
        ),
        "backlog": make_partition([make_task(10)]),
    }


@pytest.fixture
def tasks_file(tmp_path):
    """Path to a tasks.json inside a temporary project."""
    path = tmp_path / ".taskmaster" / "tasks" / "tasks.json"
    path.parent.mkdir(parents=True)
    return path


@pytest.fixture
def write_document(tasks_file):
    def _write(document):
        tasks_file.write_text(json.dumps(document, indent=2))
        return tasks_file

    return _write


@pytest.fixture
def read_document(tasks_file):
    def _read():
        return json.loads(tasks_file.read_text())

    return _read


@pytest.fixture
def engine_config(tmp_path, tasks_file) -> EngineConfig:
    """Config rooted at tmp_path with fast locks and no retry delay."""
    config = EngineConfig(project_root=tmp_path, tasks_file=tasks_file)
    config.locks.timeout = 5.0
    config.locks.poll_interval = 0.01
    config.resilience.retry.base_delay = 0.0
    config.resilience.retry.max_delay = 0.0
    config.recovery.self_healing_enabled = False
    return config


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def recorded_sleeps(fake_clock):
    """Async sleep that records delays and advances the fake clock."""
    delays = []

    async def _sleep(seconds: float) -> None:
        delays.append(seconds)
        fake_clock.advance(seconds)

    _sleep.delays = delays
    return _sleep


@pytest.fixture
def project_root(tmp_path) -> Path:
    return tmp_path
