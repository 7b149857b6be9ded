"""Domain-specific configuration dataclasses.

Small, focused configuration classes for the engine's infrastructure
concerns: tag locking, retry policy, circuit breakers, and store recovery.
"""

from dataclasses import dataclass, field
from typing import Any, Dict

from tasktags.config.parsing import _parse_bool


@dataclass
class LockSettings:
    """Per-tag advisory lock behavior.

    Attributes:
        timeout: Seconds a caller waits for a lock, and the age after which
            a held lock is considered stale and may be reclaimed
        poll_interval: Seconds between acquisition attempts while waiting
    """

    timeout: float = 30.0
    poll_interval: float = 1.0

    @classmethod
    def from_toml_dict(cls, data: Dict[str, Any]) -> "LockSettings":
        return cls(
            timeout=float(data.get("timeout", 30.0)),
            poll_interval=float(data.get("poll_interval", 1.0)),
        )


@dataclass
class RetrySettings:
    """Exponential backoff settings for protected operations.

    Attributes:
        max_retries: Retries after the first attempt
        base_delay: Delay before the first retry (seconds)
        max_delay: Upper bound for any single delay (seconds)
        backoff_multiplier: Growth factor per attempt
        jitter: Scale each delay by a random factor in [0.5, 1.0]
    """

    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    backoff_multiplier: float = 2.0
    jitter: bool = True

    @classmethod
    def from_toml_dict(cls, data: Dict[str, Any]) -> "RetrySettings":
        return cls(
            max_retries=int(data.get("max_retries", 3)),
            base_delay=float(data.get("base_delay", 1.0)),
            max_delay=float(data.get("max_delay", 30.0)),
            backoff_multiplier=float(data.get("backoff_multiplier", 2.0)),
            jitter=_parse_bool(data.get("jitter", True)),
        )


@dataclass
class BreakerSettings:
    """Thresholds for one named circuit breaker."""

    failure_threshold: int = 5
    recovery_timeout: float = 30.0

    @classmethod
    def from_toml_dict(cls, data: Dict[str, Any]) -> "BreakerSettings":
        return cls(
            failure_threshold=int(data.get("failure_threshold", 5)),
            recovery_timeout=float(data.get("recovery_timeout", 30.0)),
        )


def _default_breakers() -> Dict[str, BreakerSettings]:
    return {
        "file-system": BreakerSettings(failure_threshold=3, recovery_timeout=10.0),
        "tag-operations": BreakerSettings(failure_threshold=5, recovery_timeout=15.0),
        "task-operations": BreakerSettings(failure_threshold=5, recovery_timeout=20.0),
    }


@dataclass
class RecoverySettings:
    """Self-healing and backup behavior for the task store.

    Attributes:
        enabled: Hand corrupted documents to the auditor instead of failing
        create_missing_tags: Allow recovery to create absent partitions
        repair_corrupted_tags: Allow recovery to repair malformed partitions
        backup_before_repair: Copy the document aside before any repair write
        recreate_unreadable: Let the periodic auditor replace unparseable files
        max_backups: Backups retained per document (0 = unlimited)
        self_healing_enabled: Run the periodic auditor while the engine is up
        self_healing_interval: Seconds between auditor passes
    """

    enabled: bool = True
    create_missing_tags: bool = True
    repair_corrupted_tags: bool = True
    backup_before_repair: bool = True
    recreate_unreadable: bool = False
    max_backups: int = 10
    self_healing_enabled: bool = True
    self_healing_interval: float = 60.0

    @classmethod
    def from_toml_dict(cls, data: Dict[str, Any]) -> "RecoverySettings":
        return cls(
            enabled=_parse_bool(data.get("enabled", True)),
            create_missing_tags=_parse_bool(data.get("create_missing_tags", True)),
            repair_corrupted_tags=_parse_bool(data.get("repair_corrupted_tags", True)),
            backup_before_repair=_parse_bool(data.get("backup_before_repair", True)),
            recreate_unreadable=_parse_bool(data.get("recreate_unreadable", False)),
            max_backups=int(data.get("max_backups", 10)),
            self_healing_enabled=_parse_bool(data.get("self_healing_enabled", True)),
            self_healing_interval=float(data.get("self_healing_interval", 60.0)),
        )


@dataclass
class ResilienceSettings:
    """Retry policy plus the named breaker table."""

    retry: RetrySettings = field(default_factory=RetrySettings)
    breakers: Dict[str, BreakerSettings] = field(default_factory=_default_breakers)
