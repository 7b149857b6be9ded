"""Tests for EngineConfig loading from TOML files and environment variables."""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from tasktags.config import EngineConfig, RecoverySettings, RetrySettings


@pytest.fixture
def isolated(tmp_path, monkeypatch):
    """Run from an empty directory with no user or XDG config."""
    monkeypatch.chdir(tmp_path)
    with patch.object(Path, "home", return_value=tmp_path / "home"):
        with patch.dict(os.environ, {"XDG_CONFIG_HOME": str(tmp_path / "xdg")}, clear=True):
            yield tmp_path


class TestDefaults:
    def test_default_paths(self, tmp_path):
        config = EngineConfig(project_root=tmp_path)
        assert config.get_tasks_path() == tmp_path / ".taskmaster" / "tasks" / "tasks.json"
        assert config.get_state_path() == tmp_path / ".taskmaster" / "state.json"

    def test_relative_tasks_file_resolves_against_root(self, tmp_path):
        config = EngineConfig(project_root=tmp_path, tasks_file=Path("custom.json"))
        assert config.get_tasks_path() == tmp_path / "custom.json"

    def test_default_breaker_table(self):
        breakers = EngineConfig().resilience.breakers
        assert breakers["file-system"].failure_threshold == 3
        assert breakers["task-operations"].recovery_timeout == 20.0

    def test_describe(self, tmp_path):
        summary = EngineConfig(project_root=tmp_path).describe()
        assert summary["default_tag"] == "master"
        assert summary["breakers"] == ["file-system", "tag-operations", "task-operations"]


class TestTomlLoading:
    """Explicit config files and the project-level lookup."""

    def test_explicit_file(self, isolated):
        config_file = isolated / "custom.toml"
        config_file.write_text(
            """
[workspace]
default_tag = "backlog"

[locks]
timeout = 12
poll_interval = 0.5

[retry]
max_retries = 5
jitter = false

[breakers.file-system]
failure_threshold = 7

[breakers.remote]
recovery_timeout = 3

[recovery]
recreate_unreadable = true
self_healing_interval = 5
"""
        )
        config = EngineConfig.from_env(str(config_file))

        assert config.default_tag == "backlog"
        assert config.locks.timeout == 12.0
        assert config.locks.poll_interval == 0.5
        assert config.resilience.retry.max_retries == 5
        assert config.resilience.retry.jitter is False
        assert config.resilience.breakers["file-system"].failure_threshold == 7
        assert config.resilience.breakers["remote"].recovery_timeout == 3.0
        assert config.recovery.recreate_unreadable is True
        assert config.recovery.self_healing_interval == 5.0

    def test_project_file_discovered(self, isolated):
        (isolated / "tasktags.toml").write_text('[logging]\nlevel = "debug"\n')
        config = EngineConfig.from_env()
        assert config.log_level == "DEBUG"

    def test_hidden_project_file(self, isolated):
        (isolated / ".tasktags.toml").write_text('[workspace]\ndefault_tag = "hidden"\n')
        assert EngineConfig.from_env().default_tag == "hidden"

    def test_malformed_file_is_ignored(self, isolated):
        config_file = isolated / "bad.toml"
        config_file.write_text("[locks\ntimeout = ")
        config = EngineConfig.from_env(str(config_file))
        assert config.locks.timeout == 30.0

    def test_missing_file_is_ignored(self, isolated):
        config = EngineConfig.from_env(str(isolated / "absent.toml"))
        assert config.default_tag == "master"


class TestEnvironment:
    def test_env_overrides_toml(self, isolated):
        config_file = isolated / "custom.toml"
        config_file.write_text("[locks]\ntimeout = 12\n")
        with patch.dict(os.environ, {"TASKTAGS_LOCK_TIMEOUT": "3"}):
            config = EngineConfig.from_env(str(config_file))
        assert config.locks.timeout == 3.0

    def test_breaker_env_pattern(self, isolated):
        env = {
            "TASKTAGS_BREAKER_FILE_SYSTEM_THRESHOLD": "2",
            "TASKTAGS_BREAKER_TAG_OPERATIONS_RECOVERY_TIMEOUT": "1.5",
        }
        with patch.dict(os.environ, env):
            config = EngineConfig.from_env()
        assert config.resilience.breakers["file-system"].failure_threshold == 2
        assert config.resilience.breakers["tag-operations"].recovery_timeout == 1.5

    def test_invalid_numbers_are_ignored(self, isolated):
        with patch.dict(os.environ, {"TASKTAGS_MAX_RETRIES": "lots", "TASKTAGS_LOCK_TIMEOUT": "-1"}):
            config = EngineConfig.from_env()
        assert config.resilience.retry.max_retries == RetrySettings().max_retries
        assert config.locks.timeout == 30.0

    def test_recovery_flags(self, isolated):
        env = {"TASKTAGS_SELF_HEALING_ENABLED": "off", "TASKTAGS_MAX_BACKUPS": "0"}
        with patch.dict(os.environ, env):
            config = EngineConfig.from_env()
        assert config.recovery.self_healing_enabled is False
        assert config.recovery.max_backups == 0

    def test_paths_from_env(self, isolated):
        env = {"TASKTAGS_PROJECT_ROOT": str(isolated), "TASKTAGS_TASKS_FILE": "t.json"}
        with patch.dict(os.environ, env):
            config = EngineConfig.from_env()
        assert config.get_tasks_path() == isolated / "t.json"


class TestStartupValidation:
    def test_invalid_default_tag_falls_back(self, isolated):
        with patch.dict(os.environ, {"TASKTAGS_DEFAULT_TAG": "not valid"}):
            config = EngineConfig.from_env()
        assert config.default_tag == "master"
        assert any("default_tag" in w for w in config.startup_warnings)

    def test_poll_interval_above_timeout_warns(self, isolated):
        env = {"TASKTAGS_LOCK_TIMEOUT": "1", "TASKTAGS_LOCK_POLL_INTERVAL": "5"}
        with patch.dict(os.environ, env):
            config = EngineConfig.from_env()
        assert any("poll_interval" in w for w in config.startup_warnings)


class TestDomainSettings:
    def test_recovery_from_toml_dict_parses_strings(self):
        settings = RecoverySettings.from_toml_dict({"enabled": "no", "max_backups": "3"})
        assert settings.enabled is False
        assert settings.max_backups == 3
