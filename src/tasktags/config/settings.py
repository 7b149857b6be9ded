"""EngineConfig dataclass and global configuration state.

This module defines the ``EngineConfig`` class (field declarations and simple
accessor methods) and the global ``get_config`` / ``set_config`` helpers.
Loading and validation logic lives in the ``_EngineConfigLoader`` mixin
(``loader.py``) which ``EngineConfig`` inherits from.
"""

import logging
from dataclasses import dataclass, field
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_package_version
from pathlib import Path
from typing import List, Optional

from tasktags.config.domains import (
    LockSettings,
    RecoverySettings,
    ResilienceSettings,
)
from tasktags.config.loader import _EngineConfigLoader

DEFAULT_TASKS_FILE = Path(".taskmaster") / "tasks" / "tasks.json"
DEFAULT_STATE_FILE = Path(".taskmaster") / "state.json"
DEFAULT_TAG = "master"


def _get_version() -> str:
    """Get package version from metadata (single source of truth: pyproject.toml)."""
    try:
        return get_package_version("tasktags")
    except PackageNotFoundError:
        return "0.3.0"


_PACKAGE_VERSION = _get_version()


@dataclass
class EngineConfig(_EngineConfigLoader):
    """Engine configuration with support for env vars and TOML overrides."""

    # Workspace configuration
    project_root: Path = field(default_factory=lambda: Path("."))
    tasks_file: Optional[Path] = None  # default: <project_root>/.taskmaster/tasks/tasks.json
    state_file: Optional[Path] = None
    default_tag: str = DEFAULT_TAG

    # Logging configuration
    log_level: str = "INFO"
    structured_logging: bool = True

    engine_version: str = field(default_factory=lambda: _PACKAGE_VERSION)

    locks: LockSettings = field(default_factory=LockSettings)
    resilience: ResilienceSettings = field(default_factory=ResilienceSettings)
    recovery: RecoverySettings = field(default_factory=RecoverySettings)

    startup_warnings: List[str] = field(default_factory=list, repr=False)

    def _add_startup_warning(self, message: str) -> None:
        if message and message not in self.startup_warnings:
            self.startup_warnings.append(message)

    def get_tasks_path(self) -> Path:
        """Resolve the tasks document path.

        An explicit ``tasks_file`` wins; relative paths are taken against
        ``project_root``.
        """
        if self.tasks_file is None:
            return (self.project_root / DEFAULT_TASKS_FILE).expanduser()
        tasks_file = self.tasks_file.expanduser()
        if tasks_file.is_absolute():
            return tasks_file
        return self.project_root / tasks_file

    def get_state_path(self) -> Path:
        if self.state_file is not None:
            return self.state_file.expanduser()
        return (self.project_root / DEFAULT_STATE_FILE).expanduser()

    def setup_logging(self) -> None:
        """Configure logging based on settings."""
        level = getattr(logging, self.log_level, logging.INFO)

        if self.structured_logging:
            # JSON-style structured logging
            formatter = logging.Formatter(
                '{"timestamp":"%(asctime)s","level":"%(levelname)s","logger":"%(name)s","message":"%(message)s"}'
            )
        else:
            formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

        handler = logging.StreamHandler()
        handler.setFormatter(formatter)

        root_logger = logging.getLogger("tasktags")
        root_logger.setLevel(level)
        root_logger.addHandler(handler)


# Global configuration instance
_config: Optional[EngineConfig] = None


def get_config() -> EngineConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = EngineConfig.from_env()
    return _config


def set_config(config: EngineConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
