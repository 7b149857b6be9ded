"""Move commands: within a tag, across tags, and a dry conflict check."""

import asyncio
from typing import Optional

import click

from tasktags.cli.logging import cli_command, get_cli_logger
from tasktags.cli.output import emit_error, emit_success
from tasktags.cli.registry import get_context

logger = get_cli_logger()


@click.command("move")
@click.option("--from", "source", required=True, help="Source ID(s): 5, 5.2, or a comma-separated list.")
@click.option("--to", "destination", required=True, help="Destination ID(s), one per source.")
@click.option("--tag", default=None, help="Tag to move within (default: current tag from state.json).")
@click.pass_context
@cli_command("move")
def move_cmd(ctx: click.Context, source: str, destination: str, tag: Optional[str]) -> None:
    """Move a task or subtask to a new ID inside one tag.

    \b
    Examples:
        tasktags move --from 5 --to 7
        tasktags move --from 5 --to 3.2 --tag backlog
        tasktags move --from 1.1,1.2 --to 4,5
    """
    engine = get_context(ctx).engine
    result = asyncio.run(engine.move_task(source, destination, tag=tag))
    emit_success(result)


@click.command("move-tags")
@click.argument("ids")
@click.option("--from-tag", required=True, help="Tag the tasks currently belong to.")
@click.option("--to-tag", required=True, help="Tag to move the tasks to (created if absent).")
@click.option("--with-dependencies", is_flag=True, help="Move dependent and depended-on tasks together.")
@click.option("--ignore-dependencies", is_flag=True, help="Break dependencies that would cross tags.")
@click.option("--force", is_flag=True, help="Normalize malformed tags and skip target name checks.")
@click.pass_context
@cli_command("move-tags")
def move_tags_cmd(
    ctx: click.Context,
    ids: str,
    from_tag: str,
    to_tag: str,
    with_dependencies: bool,
    ignore_dependencies: bool,
    force: bool,
) -> None:
    """Move top-level tasks IDS (comma-separated) to another tag."""
    if with_dependencies and ignore_dependencies:
        emit_error(
            "--with-dependencies and --ignore-dependencies cannot be combined",
            code="INVALID_OPTIONS",
            error_type="validation",
            remediation="Pass at most one dependency option",
        )

    engine = get_context(ctx).engine
    result = asyncio.run(
        engine.move_tasks_between_tags(
            ids,
            from_tag,
            to_tag,
            with_dependencies=with_dependencies,
            ignore_dependencies=ignore_dependencies,
            force=force,
        )
    )
    emit_success(result)


@click.command("check-move")
@click.argument("task_id")
@click.option("--from-tag", required=True)
@click.option("--to-tag", required=True)
@click.pass_context
@cli_command("check-move")
def check_move_cmd(ctx: click.Context, task_id: str, from_tag: str, to_tag: str) -> None:
    """Report cross-tag conflicts for TASK_ID without moving anything."""
    engine = get_context(ctx).engine
    report = engine.check_cross_tag_move(task_id, from_tag, to_tag)
    logger.debug("check-move %s: %d conflicts", task_id, len(report["conflicts"]))
    emit_success(report)
