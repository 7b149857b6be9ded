"""Store maintenance commands."""

import click

from tasktags.cli.logging import cli_command
from tasktags.cli.output import emit_error, emit_success
from tasktags.cli.registry import get_context


@click.command("heal")
@click.option(
    "--recreate-unreadable",
    is_flag=True,
    help="Back up and recreate a tasks file that cannot be parsed.",
)
@click.pass_context
@cli_command("heal")
def heal_cmd(ctx: click.Context, recreate_unreadable: bool) -> None:
    """Run one self-healing pass over the tasks file."""
    engine = get_context(ctx).engine
    report = engine.heal(recreate_unreadable=recreate_unreadable or None)
    if report.errors:
        emit_error(
            f"Self-healing could not repair {engine.store.path}",
            code="STORE_CORRUPTED",
            error_type="internal",
            remediation="Re-run with --recreate-unreadable to back up and recreate the file",
            details=report.to_dict(),
        )
    emit_success(report.to_dict())


@click.command("validate-tags")
@click.pass_context
@cli_command("validate-tags")
def validate_tags_cmd(ctx: click.Context) -> None:
    """Validate every tag's name and structure."""
    result = get_context(ctx).engine.validate_tags()
    if result["error"]:
        emit_error(
            result["error"],
            code="STORE_CORRUPTED",
            error_type="internal",
            remediation="Run `tasktags heal` to recreate or repair the tasks file",
        )
    emit_success(result)


@click.command("status")
@click.pass_context
@cli_command("status")
def status_cmd(ctx: click.Context) -> None:
    """Show tasks file, tags, locks, breakers and auditor state."""
    emit_success(get_context(ctx).engine.status())
