"""
Whole-document I/O for the tagged task store.

Reads return a fresh dict; writes replace the file atomically (temp file +
fsync + rename) under a cross-process file lock, so readers never observe a
partially written document.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from filelock import FileLock, Timeout

from tasktags.core.errors.storage import StoreCorruptedError, StoreWriteError
from tasktags.core.store._constants import (
    DEFAULT_MAX_BACKUPS,
    FILE_LOCK_TIMEOUT,
    MASTER_TAG,
)

logger = logging.getLogger(__name__)


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _lock_path(path: Path) -> Path:
    return path.with_name(f".{path.name}.lock")


def _migrate_legacy_format(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Migrate the legacy single-list layout into a ``master`` partition.

    Legacy documents look like ``{"tasks": [...], "metadata": {...}}``. Left
    alone, the key ``tasks`` would be read as a tag whose value is a list.

    Args:
        data: Parsed document

    Returns:
        The tagged document (a new dict when migration happened)
    """
    if MASTER_TAG in data or not isinstance(data.get("tasks"), list):
        return data

    metadata = data.get("metadata")
    if not isinstance(metadata, dict):
        metadata = {}
    timestamp = now_iso()
    metadata.setdefault("created", timestamp)
    metadata.setdefault("updated", timestamp)
    metadata.setdefault("description", "Tasks for master context")

    logger.info("Migrating legacy tasks document to tagged format (%d tasks)", len(data["tasks"]))
    return {MASTER_TAG: {"tasks": data["tasks"], "metadata": metadata}}


# ---------------------------------------------------------------------------
# Load / save
# ---------------------------------------------------------------------------


def load_document(path: Path) -> Optional[Dict[str, Any]]:
    """
    Load the tagged tasks document.

    Args:
        path: Path to tasks.json

    Returns:
        The document, or None if the file does not exist

    Raises:
        StoreCorruptedError: The file is not valid JSON or not a JSON object
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        return None
    except json.JSONDecodeError as e:
        raise StoreCorruptedError(str(path), f"invalid JSON ({e.msg} at line {e.lineno})") from e
    except UnicodeDecodeError as e:
        raise StoreCorruptedError(str(path), "file is not valid UTF-8") from e

    if not isinstance(data, dict):
        raise StoreCorruptedError(str(path), f"expected a JSON object, got {type(data).__name__}")

    return _migrate_legacy_format(data)


def save_document(path: Path, document: Dict[str, Any]) -> None:
    """
    Write the whole document atomically.

    Args:
        path: Path to tasks.json
        document: Tagged document to persist

    Raises:
        StoreWriteError: The cross-process file lock could not be acquired
        OSError: The write itself failed (left for the caller's retry policy)
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    try:
        with FileLock(_lock_path(path), timeout=FILE_LOCK_TIMEOUT):
            fd, temp_path = tempfile.mkstemp(
                dir=path.parent,
                prefix=f".{path.name}.",
                suffix=".tmp",
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(document, f, indent=2, ensure_ascii=False)
                    f.write("\n")
                    f.flush()
                    os.fsync(f.fileno())

                os.replace(temp_path, path)
                logger.debug("Saved tasks document to %s", path)

            except Exception:
                try:
                    os.unlink(temp_path)
                except OSError:
                    pass
                raise
    except Timeout as e:
        raise StoreWriteError(str(path), f"file lock not acquired within {FILE_LOCK_TIMEOUT}s") from e


# ---------------------------------------------------------------------------
# Backup / retention
# ---------------------------------------------------------------------------


def backups_dir_for(path: Path) -> Path:
    return path.parent / ".backups" / path.stem


def backup_document(path: Path, max_backups: int = DEFAULT_MAX_BACKUPS) -> Optional[Path]:
    """
    Create a versioned backup of the tasks document.

    Copies the file byte-for-byte, so unreadable documents can be backed up
    before they are replaced.

    Directory structure:
        .backups/
          └── tasks/
              ├── 2025-12-26T18-20-13.456789.json   # Timestamped backups (μs precision)
              ├── 2025-12-26T18-30-45.123456.json
              └── latest.json                       # Copy of most recent

    Args:
        path: Path to tasks.json
        max_backups: Maximum number of versioned backups to retain (default: 10).
                     Set to 0 for unlimited backups.

    Returns:
        Path to backup file if created, None otherwise
    """
    if not path.exists():
        return None

    backups_dir = backups_dir_for(path)

    now = datetime.now(timezone.utc)
    timestamp = now.strftime("%Y-%m-%dT%H-%M-%S")
    micros = now.strftime("%f")
    backup_file = backups_dir / f"{timestamp}.{micros}.json"

    try:
        backups_dir.mkdir(parents=True, exist_ok=True)
        shutil.copy2(path, backup_file)

        latest_file = backups_dir / "latest.json"
        shutil.copy2(backup_file, latest_file)

        if max_backups > 0:
            _apply_backup_retention(backups_dir, max_backups)

        logger.info("Backed up %s to %s", path, backup_file)
        return backup_file
    except (IOError, OSError) as e:
        logger.warning("Failed to back up %s: %s", path, e)
        return None


def _apply_backup_retention(backups_dir: Path, max_backups: int) -> int:
    """
    Apply retention policy by removing oldest backups exceeding the limit.

    Args:
        backups_dir: Path to the document's backup directory
        max_backups: Maximum number of backups to retain

    Returns:
        Number of backups deleted
    """
    backup_files = list_backups(backups_dir)

    deleted_count = 0
    while len(backup_files) > max_backups:
        oldest = backup_files.pop(0)
        try:
            oldest.unlink()
            deleted_count += 1
        except (IOError, OSError):
            pass  # Best effort deletion

    return deleted_count


def list_backups(backups_dir: Path) -> List[Path]:
    """Timestamped backups in a backup directory, oldest first."""
    if not backups_dir.is_dir():
        return []
    return sorted(
        [f for f in backups_dir.glob("*.json") if f.name != "latest.json" and f.is_file()],
        key=lambda p: p.name,
    )
