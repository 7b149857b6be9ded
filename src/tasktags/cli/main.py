"""Root ``tasktags`` command group."""

from pathlib import Path
from typing import Optional

import click

from tasktags.cli.commands import (
    check_move_cmd,
    heal_cmd,
    move_cmd,
    move_tags_cmd,
    status_cmd,
    validate_tags_cmd,
)
from tasktags.cli.registry import CLIContext, set_context
from tasktags.config import EngineConfig


@click.group()
@click.option(
    "--project-root",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Project directory holding .taskmaster/ (default: current directory).",
)
@click.option(
    "--tasks-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to tasks.json (overrides the project default).",
)
@click.option(
    "--config",
    "config_file",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="TOML configuration file.",
)
@click.option("--verbose", "-v", is_flag=True, help="Log to stderr at DEBUG level.")
@click.version_option(package_name="tasktags")
@click.pass_context
def cli(
    ctx: click.Context,
    project_root: Optional[Path],
    tasks_file: Optional[Path],
    config_file: Optional[str],
    verbose: bool,
) -> None:
    """Move tasks and subtasks within and across tags of a tasks.json file."""
    config = EngineConfig.from_env(config_file)
    if project_root is not None:
        config.project_root = project_root
    if tasks_file is not None:
        config.tasks_file = tasks_file
    # One-shot commands never run the periodic auditor.
    config.recovery.self_healing_enabled = False

    if verbose:
        config.log_level = "DEBUG"
        config.setup_logging()

    set_context(ctx, CLIContext(config=config))


cli.add_command(move_cmd)
cli.add_command(move_tags_cmd)
cli.add_command(check_move_cmd)
cli.add_command(heal_cmd)
cli.add_command(validate_tags_cmd)
cli.add_command(status_cmd)


if __name__ == "__main__":
    cli()
