"""
Observability utilities for tasktags.

Module loggers follow ``logging.getLogger(__name__)``; audit events go to a
dedicated ``tasktags.core.observability.audit.audit`` logger so they can be
routed separately:

    from tasktags.core.observability import audit_log

    audit_log("lock_reclaimed", tag="master", held_for=42.0)
"""

from tasktags.core.observability.audit import (
    AuditEvent,
    AuditEventType,
    AuditLogger,
    audit_log,
    get_audit_logger,
)

__all__ = [
    "AuditEvent",
    "AuditEventType",
    "AuditLogger",
    "audit_log",
    "get_audit_logger",
]
