"""CLI logging and the command wrapper that maps engine errors to envelopes."""

import functools
import logging
from typing import Any, Callable, TypeVar

from tasktags.cli.output import emit_exception
from tasktags.core.context import generate_correlation_id, sync_request_context
from tasktags.core.errors import TaskStoreError

F = TypeVar("F", bound=Callable[..., Any])


def get_cli_logger() -> logging.Logger:
    return logging.getLogger("tasktags.cli")


def cli_command(name: str) -> Callable[[F], F]:
    """Run the command under a correlation id and emit engine errors as JSON."""

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            with sync_request_context(generate_correlation_id("cli"), operation=name):
                try:
                    return func(*args, **kwargs)
                except TaskStoreError as exc:
                    get_cli_logger().debug("Command %s failed: %s", name, exc)
                    emit_exception(exc)

        return wrapper  # type: ignore[return-value]

    return decorator
