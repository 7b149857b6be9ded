"""Shared fixtures for CLI command tests."""

import json

import pytest
from click.testing import CliRunner


@pytest.fixture
def cli_runner():
    return CliRunner()


@pytest.fixture
def tasks_file(tmp_path):
    """A tasks.json with a master tag (1 <- 2, 3) and a backlog tag (10)."""
    path = tmp_path / ".taskmaster" / "tasks" / "tasks.json"
    path.parent.mkdir(parents=True)
    metadata = {
        "created": "2025-01-01T00:00:00Z",
        "updated": "2025-01-01T00:00:00Z",
        "description": "fixture",
    }
    document = {
        "master": {
            "tasks": [
                {
                    "id": 1,
                    "title": "Schema",
                    "status": "pending",
                    "dependencies": [],
                    "subtasks": [
                        {"id": 1, "title": "Draft", "status": "pending", "dependencies": [], "parentTaskId": 1}
                    ],
                },
                {"id": 2, "title": "API", "status": "pending", "dependencies": [1], "subtasks": []},
                {"id": 3, "title": "Docs", "status": "pending", "dependencies": [], "subtasks": []},
            ],
            "metadata": dict(metadata),
        },
        "backlog": {
            "tasks": [{"id": 10, "title": "Later", "status": "pending", "dependencies": [], "subtasks": []}],
            "metadata": dict(metadata),
        },
    }
    path.write_text(json.dumps(document, indent=2))
    return path


@pytest.fixture
def invoke(cli_runner, tasks_file, tmp_path):
    """Run ``tasktags --project-root <tmp> --tasks-file <file> ARGS`` and parse stdout."""
    from tasktags.cli.main import cli

    def _invoke(*args):
        result = cli_runner.invoke(
            cli,
            ["--project-root", str(tmp_path), "--tasks-file", str(tasks_file), *args],
            env={"TASKTAGS_CONFIG_FILE": ""},
        )
        payload = json.loads(result.stdout) if result.stdout.strip() else None
        return result, payload

    return _invoke


@pytest.fixture
def read_tasks(tasks_file):
    def _read():
        return json.loads(tasks_file.read_text())

    return _read
