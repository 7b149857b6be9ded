"""Per-invocation CLI state stored on the click context."""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import click

from tasktags.config import EngineConfig
from tasktags.core.engine import EngineContext


@dataclass
class CLIContext:
    """Options from the root group, resolved into an engine configuration."""

    config: EngineConfig
    _engine: Optional[EngineContext] = None

    @property
    def tasks_path(self) -> Path:
        return self.config.get_tasks_path()

    @property
    def engine(self) -> EngineContext:
        if self._engine is None:
            self._engine = EngineContext(self.config)
        return self._engine


def set_context(ctx: click.Context, cli_ctx: CLIContext) -> None:
    ctx.obj = cli_ctx


def get_context(ctx: click.Context) -> CLIContext:
    cli_ctx = ctx.find_object(CLIContext)
    if cli_ctx is None:
        raise click.UsageError("CLI context is not initialized")
    return cli_ctx
