"""Task and subtask moves, within a tag and across tags."""

from tasktags.core.task.cross_tag import MoveOptions, move_tasks_between_tags
from tasktags.core.task.moves import (
    move_batch_within_tag,
    move_tasks,
    move_within_tag,
    promote_dependencies,
    reparent_dependencies,
)

__all__ = [
    "MoveOptions",
    "move_tasks_between_tags",
    "move_batch_within_tag",
    "move_tasks",
    "move_within_tag",
    "promote_dependencies",
    "reparent_dependencies",
]
