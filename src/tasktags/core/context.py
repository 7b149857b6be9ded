"""Request-scoped context for correlation ids.

Entry points establish a correlation id so log lines, audit events and
error responses produced during one operation can be tied together.

Example:
    with sync_request_context(correlation_id=generate_correlation_id("move")):
        ...
"""

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

from ulid import ULID

_correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")
_operation_var: ContextVar[str] = ContextVar("operation", default="")


def generate_correlation_id(prefix: str = "op") -> str:
    """Create a new sortable correlation id such as ``op_01HX...``."""
    return f"{prefix}_{ULID()}"


def get_correlation_id() -> str:
    return _correlation_id_var.get()


def get_operation_name() -> str:
    return _operation_var.get()


@contextmanager
def sync_request_context(
    correlation_id: Optional[str] = None,
    operation: Optional[str] = None,
) -> Iterator[str]:
    """Bind a correlation id (and optional operation name) for the block.

    Yields the effective correlation id. Nested contexts keep the outer id
    unless a new one is passed explicitly.
    """
    effective = correlation_id or get_correlation_id() or generate_correlation_id()
    id_token = _correlation_id_var.set(effective)
    op_token = _operation_var.set(operation) if operation else None
    try:
        yield effective
    finally:
        if op_token is not None:
            _operation_var.reset(op_token)
        _correlation_id_var.reset(id_token)
