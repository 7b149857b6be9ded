"""File-backed tagged task store."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional

from tasktags.core.store._constants import DEFAULT_MAX_BACKUPS
from tasktags.core.store.io import backup_document, backups_dir_for, list_backups, load_document, save_document

logger = logging.getLogger(__name__)


class TaskStore:
    """Read-snapshot / write-whole-document access to one tasks.json.

    Every ``read_snapshot`` parses the file anew, so callers may mutate the
    returned dict freely and persist it with a single ``write``.
    """

    def __init__(self, path: Path, max_backups: int = DEFAULT_MAX_BACKUPS):
        self.path = Path(path)
        self.max_backups = max_backups

    def __repr__(self) -> str:
        return f"TaskStore(path={str(self.path)!r})"

    def exists(self) -> bool:
        return self.path.exists()

    def read_snapshot(self) -> Optional[Dict[str, Any]]:
        """Return a private copy of the document, or None if the file is absent.

        Raises:
            StoreCorruptedError: The file cannot be parsed.
        """
        return load_document(self.path)

    def write(self, document: Dict[str, Any]) -> None:
        save_document(self.path, document)

    def backup(self) -> Optional[Path]:
        return backup_document(self.path, self.max_backups)

    def list_backups(self) -> list[Path]:
        return list_backups(backups_dir_for(self.path))
