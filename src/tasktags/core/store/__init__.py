"""Tagged task store: document I/O, backups, schema models and helpers."""

from tasktags.core.store._constants import DEFAULT_MAX_BACKUPS, MASTER_TAG, TASK_STATUSES
from tasktags.core.store.io import (
    backup_document,
    list_backups,
    load_document,
    now_iso,
    save_document,
)
from tasktags.core.store.models import (
    SubtaskModel,
    TagMetadata,
    TagPartitionModel,
    TaskModel,
    partition_issues,
)
from tasktags.core.store.store import TaskStore
from tasktags.core.store.tagged import (
    build_task_index,
    ensure_partition,
    get_all_tasks_with_tags,
    get_partition,
    new_document,
    new_partition,
)

__all__ = [
    "DEFAULT_MAX_BACKUPS",
    "MASTER_TAG",
    "TASK_STATUSES",
    "backup_document",
    "list_backups",
    "load_document",
    "now_iso",
    "save_document",
    "SubtaskModel",
    "TagMetadata",
    "TagPartitionModel",
    "TaskModel",
    "partition_issues",
    "TaskStore",
    "build_task_index",
    "ensure_partition",
    "get_all_tasks_with_tags",
    "get_partition",
    "new_document",
    "new_partition",
]
