"""EngineConfig loading and validation logic.

Provides ``_EngineConfigLoader``, a mixin class whose methods are inherited by
``EngineConfig`` (defined in ``settings.py``). Splitting loading/validation
logic into its own module keeps ``settings.py`` focused on field definitions
and simple accessor methods.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import TYPE_CHECKING, Any, List, Optional, cast

if TYPE_CHECKING:
    from tasktags.config.settings import EngineConfig

try:
    import tomllib
except ImportError:
    import tomli as tomllib  # Python < 3.11 fallback

from tasktags.config.domains import (
    BreakerSettings,
    LockSettings,
    RecoverySettings,
    ResilienceSettings,
    RetrySettings,
)
from tasktags.config.parsing import (
    _normalize_log_level,
    _parse_bool,
    _try_parse_bool,
    _try_parse_float,
    _try_parse_int,
)

logger = logging.getLogger(__name__)

_ENV_PREFIX = "TASKTAGS_"
_BREAKER_ENV_PATTERN = re.compile(r"^TASKTAGS_BREAKER_([A-Z0-9_]+)_(THRESHOLD|RECOVERY_TIMEOUT)$")


class _EngineConfigLoader:
    """Mixin providing config-loading methods for ``EngineConfig``.

    These methods are inherited by the ``EngineConfig`` dataclass defined in
    ``settings.py``. At runtime ``self`` is always an ``EngineConfig`` instance.
    """

    if TYPE_CHECKING:
        project_root: Path
        tasks_file: Optional[Path]
        state_file: Optional[Path]
        default_tag: str
        log_level: str
        structured_logging: bool
        locks: LockSettings
        resilience: ResilienceSettings
        recovery: RecoverySettings
        startup_warnings: List[str]

        def _add_startup_warning(self, message: str) -> None: ...

    @classmethod
    def from_env(cls, config_file: Optional[str] = None) -> "EngineConfig":
        """
        Create configuration from environment variables and optional TOML file.

        Priority (highest to lowest):
        1. Environment variables
        2. Project TOML config (./tasktags.toml or ./.tasktags.toml)
        3. User TOML config (~/.tasktags.toml)
        4. XDG config (~/.config/tasktags/config.toml)
        5. Default values
        """
        config = cls()

        toml_path = config_file or os.environ.get("TASKTAGS_CONFIG_FILE")
        if toml_path:
            config._load_toml(Path(toml_path))
        else:
            xdg_config_home = os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config")
            xdg_config = Path(xdg_config_home) / "tasktags" / "config.toml"
            if xdg_config.exists():
                config._load_toml(xdg_config)
                logger.debug(f"Loaded XDG config from {xdg_config}")

            home_config = Path.home() / ".tasktags.toml"
            if home_config.exists():
                config._load_toml(home_config)
                logger.debug(f"Loaded user config from {home_config}")

            project_config = Path("tasktags.toml")
            if project_config.exists():
                config._load_toml(project_config)
                logger.debug(f"Loaded project config from {project_config}")
            else:
                hidden_config = Path(".tasktags.toml")
                if hidden_config.exists():
                    config._load_toml(hidden_config)
                    logger.debug(f"Loaded project config from {hidden_config}")

        config._load_env()
        config._validate_startup_configuration()

        return cast("EngineConfig", config)

    def _load_toml(self, path: Path) -> None:
        """Load configuration from TOML file."""
        if not path.exists():
            logger.warning(f"Config file not found: {path}")
            return

        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            logger.error(f"Error loading config file {path}: {e}")
            return

        if "workspace" in data:
            ws = data["workspace"]
            if "project_root" in ws:
                self.project_root = Path(ws["project_root"])
            if "tasks_file" in ws:
                self.tasks_file = Path(ws["tasks_file"])
            if "state_file" in ws:
                self.state_file = Path(ws["state_file"])
            if "default_tag" in ws:
                self.default_tag = str(ws["default_tag"])

        if "logging" in data:
            log = data["logging"]
            if "level" in log:
                self.log_level = _normalize_log_level(str(log["level"]))
            if "structured" in log:
                self.structured_logging = _parse_bool(log["structured"])

        if "locks" in data:
            self.locks = LockSettings.from_toml_dict(data["locks"])

        if "retry" in data:
            self.resilience.retry = RetrySettings.from_toml_dict(data["retry"])

        # [breakers.<name>] tables extend or override the built-in table
        breakers = data.get("breakers", {})
        if isinstance(breakers, dict):
            for name, table in breakers.items():
                if not isinstance(table, dict):
                    self._add_startup_warning(f"Ignoring [breakers.{name}]: expected a table")
                    continue
                self.resilience.breakers[name] = BreakerSettings.from_toml_dict(table)

        if "recovery" in data:
            self.recovery = RecoverySettings.from_toml_dict(data["recovery"])

    def _load_env(self) -> None:
        """Load configuration from environment variables."""
        if root := os.environ.get("TASKTAGS_PROJECT_ROOT"):
            self.project_root = Path(root)
        if tasks_file := os.environ.get("TASKTAGS_TASKS_FILE"):
            self.tasks_file = Path(tasks_file)
        if state_file := os.environ.get("TASKTAGS_STATE_FILE"):
            self.state_file = Path(state_file)
        if default_tag := os.environ.get("TASKTAGS_DEFAULT_TAG"):
            self.default_tag = default_tag.strip()

        if level := os.environ.get("TASKTAGS_LOG_LEVEL"):
            self.log_level = _normalize_log_level(level)
        if structured := os.environ.get("TASKTAGS_STRUCTURED_LOGGING"):
            parsed = _try_parse_bool(structured)
            if parsed is not None:
                self.structured_logging = parsed

        # Locks
        if lock_timeout := os.environ.get("TASKTAGS_LOCK_TIMEOUT"):
            value = _try_parse_float(lock_timeout, name="TASKTAGS_LOCK_TIMEOUT")
            if value is not None:
                self.locks.timeout = value
        if poll := os.environ.get("TASKTAGS_LOCK_POLL_INTERVAL"):
            value = _try_parse_float(poll, name="TASKTAGS_LOCK_POLL_INTERVAL")
            if value is not None:
                self.locks.poll_interval = value

        # Retry
        retry = self.resilience.retry
        if max_retries := os.environ.get("TASKTAGS_MAX_RETRIES"):
            parsed_int = _try_parse_int(max_retries, name="TASKTAGS_MAX_RETRIES")
            if parsed_int is not None:
                retry.max_retries = parsed_int
        if base_delay := os.environ.get("TASKTAGS_RETRY_BASE_DELAY"):
            value = _try_parse_float(base_delay, name="TASKTAGS_RETRY_BASE_DELAY")
            if value is not None:
                retry.base_delay = value
        if max_delay := os.environ.get("TASKTAGS_RETRY_MAX_DELAY"):
            value = _try_parse_float(max_delay, name="TASKTAGS_RETRY_MAX_DELAY")
            if value is not None:
                retry.max_delay = value
        if jitter := os.environ.get("TASKTAGS_RETRY_JITTER"):
            parsed = _try_parse_bool(jitter)
            if parsed is not None:
                retry.jitter = parsed

        # Breakers: TASKTAGS_BREAKER_FILE_SYSTEM_THRESHOLD=3
        for key, raw in os.environ.items():
            match = _BREAKER_ENV_PATTERN.match(key)
            if not match:
                continue
            name = match.group(1).lower().replace("_", "-")
            breaker = self.resilience.breakers.setdefault(name, BreakerSettings())
            if match.group(2) == "THRESHOLD":
                parsed_int = _try_parse_int(raw, name=key, minimum=1)
                if parsed_int is not None:
                    breaker.failure_threshold = parsed_int
            else:
                value = _try_parse_float(raw, name=key)
                if value is not None:
                    breaker.recovery_timeout = value

        # Recovery
        recovery = self.recovery
        for env_name, attr in (
            ("TASKTAGS_RECOVERY_ENABLED", "enabled"),
            ("TASKTAGS_BACKUP_BEFORE_REPAIR", "backup_before_repair"),
            ("TASKTAGS_RECREATE_UNREADABLE", "recreate_unreadable"),
            ("TASKTAGS_SELF_HEALING_ENABLED", "self_healing_enabled"),
        ):
            raw_value = os.environ.get(env_name)
            if raw_value:
                parsed = _try_parse_bool(raw_value)
                if parsed is not None:
                    setattr(recovery, attr, parsed)
        if interval := os.environ.get("TASKTAGS_SELF_HEALING_INTERVAL"):
            value = _try_parse_float(interval, name="TASKTAGS_SELF_HEALING_INTERVAL")
            if value is not None:
                recovery.self_healing_interval = value
        if max_backups := os.environ.get("TASKTAGS_MAX_BACKUPS"):
            parsed_int = _try_parse_int(max_backups, name="TASKTAGS_MAX_BACKUPS")
            if parsed_int is not None:
                recovery.max_backups = parsed_int

    def _validate_startup_configuration(self) -> None:
        """Collect warnings for settings that will not behave as intended."""
        from tasktags.core.tags import validate_tag_name

        if self.locks.poll_interval <= 0:
            self._add_startup_warning("locks.poll_interval must be positive; using 1.0")
            self.locks.poll_interval = 1.0
        if self.locks.poll_interval > self.locks.timeout:
            self._add_startup_warning(
                f"locks.poll_interval ({self.locks.poll_interval}s) exceeds locks.timeout "
                f"({self.locks.timeout}s); waiters will poll at most once"
            )

        retry = self.resilience.retry
        if retry.base_delay > retry.max_delay:
            self._add_startup_warning(
                f"retry.base_delay ({retry.base_delay}s) exceeds retry.max_delay ({retry.max_delay}s)"
            )

        for name, breaker in self.resilience.breakers.items():
            if breaker.failure_threshold < 1:
                self._add_startup_warning(f"breaker '{name}' failure_threshold must be >= 1; using 1")
                breaker.failure_threshold = 1

        name_check = validate_tag_name(self.default_tag)
        if not name_check.valid:
            self._add_startup_warning(
                f"default_tag '{self.default_tag}' is invalid ({name_check.error}); using 'master'"
            )
            self.default_tag = "master"

        for warning in self.startup_warnings:
            logger.warning(warning)

    def describe(self) -> dict[str, Any]:
        """Summarize the effective configuration for diagnostics."""
        config = cast("EngineConfig", self)
        return {
            "tasks_path": str(config.get_tasks_path()),
            "default_tag": self.default_tag,
            "lock_timeout": self.locks.timeout,
            "max_retries": self.resilience.retry.max_retries,
            "breakers": sorted(self.resilience.breakers),
            "recovery_enabled": self.recovery.enabled,
            "self_healing_interval": self.recovery.self_healing_interval,
        }
