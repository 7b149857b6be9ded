"""
Shared constants for task store operations.

Import from here rather than defining inline to avoid duplication.
"""

MASTER_TAG = "master"

# Valid task and subtask statuses
TASK_STATUSES = ("pending", "in-progress", "done", "cancelled", "deferred", "blocked")

DEFAULT_PRIORITY = "medium"

# Required fields of every tag partition
PARTITION_FIELDS = ("tasks", "metadata")

# Default retention policy for versioned backups
DEFAULT_MAX_BACKUPS = 10

# Seconds to wait for the cross-process file lock around a write
FILE_LOCK_TIMEOUT = 10

# Description written into partitions created by recovery or cross-tag moves
TAG_DESCRIPTION_TEMPLATE = "Tasks for {tag} context"
