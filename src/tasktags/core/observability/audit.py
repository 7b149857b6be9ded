"""Audit logging for store mutations and recovery events.

Provides structured audit logging with automatic correlation ID and
operation name population from request context.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from tasktags.core.context import get_correlation_id, get_operation_name

logger = logging.getLogger(__name__)


class AuditEventType(Enum):
    """Types of audit events emitted by the engine."""

    MOVE_COMMITTED = "move_committed"
    LOCK_RECLAIMED = "lock_reclaimed"
    LOCK_FORCE_RELEASED = "lock_force_released"
    CIRCUIT_OPENED = "circuit_opened"
    CIRCUIT_CLOSED = "circuit_closed"
    RETRY_EXHAUSTED = "retry_exhausted"
    STORE_BACKUP = "store_backup"
    STORE_REPAIRED = "store_repaired"
    TAG_RECOVERED = "tag_recovered"
    OPERATION = "operation"


@dataclass
class AuditEvent:
    """Structured audit event."""

    event_type: AuditEventType
    details: Dict[str, Any] = field(default_factory=dict)
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    correlation_id: Optional[str] = None
    operation: Optional[str] = None

    def __post_init__(self) -> None:
        """Auto-populate correlation_id and operation from context if not set."""
        if self.correlation_id is None:
            self.correlation_id = get_correlation_id() or None
        if self.operation is None:
            self.operation = get_operation_name() or None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result = {
            "event_type": self.event_type.value,
            "timestamp": self.timestamp,
            "details": self.details,
        }
        if self.correlation_id:
            result["correlation_id"] = self.correlation_id
        if self.operation:
            result["operation"] = self.operation
        return result


class AuditLogger:
    """
    Structured audit logging for engine events.

    Audit logs are written to a separate logger for easy filtering.
    """

    def __init__(self):
        self._logger = logging.getLogger(f"{__name__}.audit")

    def log(self, event: AuditEvent) -> None:
        """Log an audit event."""
        self._logger.info(f"AUDIT: {event.event_type.value}", extra={"audit": event.to_dict()})

    def move_committed(self, tag: str, moves: int, **details: Any) -> None:
        """Log a persisted move."""
        self.log(
            AuditEvent(
                event_type=AuditEventType.MOVE_COMMITTED,
                details={"tag": tag, "moves": moves, **details},
            )
        )

    def store_repaired(self, path: str, recovered: int, **details: Any) -> None:
        """Log a self-healing repair write."""
        self.log(
            AuditEvent(
                event_type=AuditEventType.STORE_REPAIRED,
                details={"path": path, "recovered": recovered, **details},
            )
        )


# Global audit logger
_audit = AuditLogger()


def get_audit_logger() -> AuditLogger:
    """Get the global audit logger."""
    return _audit


def audit_log(event_type: str, **details: Any) -> None:
    """
    Convenience function for audit logging.

    Args:
        event_type: Type of event (move_committed, lock_reclaimed, circuit_opened,
                    circuit_closed, retry_exhausted, store_backup, store_repaired, ...)
        **details: Additional details to include in the audit log
    """
    try:
        event_enum = AuditEventType(event_type)
    except ValueError:
        event_enum = AuditEventType.OPERATION
        details["original_event_type"] = event_type

    _audit.log(AuditEvent(event_type=event_enum, details=details))
