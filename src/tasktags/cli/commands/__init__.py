"""CLI commands, grouped by concern."""

from tasktags.cli.commands.maintenance import heal_cmd, status_cmd, validate_tags_cmd
from tasktags.cli.commands.move import check_move_cmd, move_cmd, move_tags_cmd

__all__ = [
    "check_move_cmd",
    "heal_cmd",
    "move_cmd",
    "move_tags_cmd",
    "status_cmd",
    "validate_tags_cmd",
]
