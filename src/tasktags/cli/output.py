"""JSON envelope output for CLI commands."""

import json
import sys
from dataclasses import asdict
from typing import Any, Mapping, NoReturn, Optional, Sequence

import click

from tasktags.core.errors import error_to_response
from tasktags.core.responses import error_response, success_response


def _echo(payload: Mapping[str, Any]) -> None:
    click.echo(json.dumps(payload, indent=2, default=str))


def emit_success(
    data: Mapping[str, Any],
    *,
    warnings: Optional[Sequence[str]] = None,
) -> None:
    response = success_response(data, warnings=warnings)
    _echo(asdict(response))


def emit_error(
    message: str,
    *,
    code: str = "INTERNAL_ERROR",
    error_type: str = "internal",
    remediation: Optional[str] = None,
    details: Optional[Mapping[str, Any]] = None,
) -> NoReturn:
    response = error_response(
        message,
        error_code=code,
        error_type=error_type,
        remediation=remediation,
        details=details,
    )
    _echo(asdict(response))
    sys.exit(1)


def emit_exception(exc: Exception) -> NoReturn:
    """Emit a mapped engine error, or re-raise anything unmapped."""
    payload = error_to_response(exc)
    if payload is None:
        raise exc
    _echo(payload)
    sys.exit(1)
