"""
Tag name rules, partition validation, and targeted tag recovery.

``validate_tag_name`` and ``validate_tag_structure`` are pure checks.
``TagValidator`` ties them to a ``TaskStore`` and repairs individual tags
under that tag's lock.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from tasktags.config.domains import RecoverySettings
from tasktags.core.errors.storage import StoreCorruptedError, StoreWriteError
from tasktags.core.errors.tags import InvalidTagNameError
from tasktags.core.locks import TagLockManager
from tasktags.core.observability import audit_log
from tasktags.core.store._constants import MASTER_TAG
from tasktags.core.store.models import describe_partition, partition_issues
from tasktags.core.store.store import TaskStore
from tasktags.core.store.tagged import (
    new_document,
    new_partition,
    normalize_partition,
    partition_shape_issues,
    tag_names,
)

logger = logging.getLogger(__name__)

TAG_NAME_PATTERN = re.compile(r"^[A-Za-z0-9]([A-Za-z0-9_-]*[A-Za-z0-9])?$")
MAX_TAG_NAME_LENGTH = 50
RESERVED_TAG_NAMES = frozenset({"", "undefined", "null", "true", "false"})

RECREATE_TASKS_FILE = "recreate_tasks_file"
CREATE_MISSING_TAG = "create_missing_tag"
REPAIR_TAG_STRUCTURE = "repair_tag_structure"
RECOVERY_ACTIONS = (RECREATE_TASKS_FILE, CREATE_MISSING_TAG, REPAIR_TAG_STRUCTURE)


@dataclass
class CheckResult:
    valid: bool
    issues: List[str] = field(default_factory=list)

    @property
    def error(self) -> Optional[str]:
        return "; ".join(self.issues) if self.issues else None


def validate_tag_name(name: Any) -> CheckResult:
    """Check a tag name against the naming rules.

    >>> validate_tag_name("feature-x").valid
    True
    >>> validate_tag_name("-bad").valid
    False
    """
    if not isinstance(name, str) or not name:
        return CheckResult(False, ["Tag name must be a non-empty string"])

    issues = []
    if len(name) > MAX_TAG_NAME_LENGTH:
        issues.append(f"Tag name cannot exceed {MAX_TAG_NAME_LENGTH} characters")
    if name.lower() in RESERVED_TAG_NAMES:
        issues.append(f"'{name}' is a reserved tag name")
    if not TAG_NAME_PATTERN.match(name):
        issues.append("Tag name can only contain alphanumeric characters, hyphens, and underscores")
    return CheckResult(not issues, issues)


def validate_tag_structure(data: Any, name: str) -> CheckResult:
    """Shape checks first; schema checks only once the shape is sound."""
    shape = partition_shape_issues(data)
    if shape:
        return CheckResult(False, [f"Tag '{name}' {issue}" for issue in shape])
    schema = partition_issues(data)
    return CheckResult(not schema, [f"Tag '{name}' {issue}" for issue in schema])


def repair_partition(document: Dict[str, Any], tag: str) -> List[str]:
    """Fix the shape of one partition in place. Returns the repairs made."""
    actions = []
    partition = document.get(tag)
    if not isinstance(partition, dict):
        document[tag] = new_partition(tag)
        return [f"replaced non-object tag '{tag}'"]

    if not isinstance(partition.get("tasks"), list):
        actions.append(f"reset tasks of tag '{tag}'")
    metadata = partition.get("metadata")
    if not isinstance(metadata, dict):
        actions.append(f"reset metadata of tag '{tag}'")
    else:
        for key in ("created", "updated"):
            if not metadata.get(key):
                actions.append(f"filled metadata.{key} of tag '{tag}'")
                metadata.pop(key, None)
    normalize_partition(partition, tag)
    return actions


@dataclass
class TagValidation:
    valid: bool
    exists: bool
    issues: List[str] = field(default_factory=list)
    can_recover: bool = False
    recovery_action: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "exists": self.exists,
            "issues": self.issues,
            "can_recover": self.can_recover,
            "recovery_action": self.recovery_action,
        }


class TagValidator:
    """Validate tags in a store and repair them one at a time.

    Args:
        store: The tasks document.
        locks: Lock manager shared with move operations.
        recovery: Which repairs are permitted.
        state_path: ``state.json`` holding ``currentTag``.
        default_tag: Fallback when nothing else names a tag.
    """

    def __init__(
        self,
        store: TaskStore,
        locks: TagLockManager,
        *,
        recovery: Optional[RecoverySettings] = None,
        state_path: Optional[Path] = None,
        default_tag: str = MASTER_TAG,
    ):
        self.store = store
        self.locks = locks
        self.recovery = recovery or RecoverySettings()
        self.state_path = state_path
        self.default_tag = default_tag

    def _load(self) -> tuple[Optional[Dict[str, Any]], Optional[str]]:
        try:
            document = self.store.read_snapshot()
        except StoreCorruptedError as exc:
            return None, exc.message
        if document is None:
            return None, "Tasks file does not exist"
        return document, None

    def validate_tag(self, name: str) -> TagValidation:
        name_check = validate_tag_name(name)
        if not name_check.valid:
            return TagValidation(valid=False, exists=False, issues=name_check.issues)

        document, load_error = self._load()
        if document is None:
            return TagValidation(
                valid=False,
                exists=False,
                issues=[load_error or "Tasks file is unreadable"],
                can_recover=self.recovery.enabled,
                recovery_action=RECREATE_TASKS_FILE,
            )

        if name not in document:
            return TagValidation(
                valid=False,
                exists=False,
                issues=[f"Tag '{name}' does not exist"],
                can_recover=self.recovery.create_missing_tags,
                recovery_action=CREATE_MISSING_TAG,
            )

        structure = validate_tag_structure(document[name], name)
        if structure.valid:
            return TagValidation(valid=True, exists=True)
        repairable = bool(partition_shape_issues(document[name]))
        return TagValidation(
            valid=False,
            exists=True,
            issues=structure.issues,
            can_recover=repairable and self.recovery.repair_corrupted_tags,
            recovery_action=REPAIR_TAG_STRUCTURE if repairable else None,
        )

    def validate_all_tags(self) -> Dict[str, Any]:
        document, load_error = self._load()
        if document is None:
            return {"valid": False, "error": load_error, "tags": {}}

        tags = {}
        for name, data in document.items():
            name_check = validate_tag_name(name)
            structure = validate_tag_structure(data, name)
            entry = {
                "name_valid": name_check.valid,
                "structure_valid": structure.valid,
                "issues": name_check.issues + structure.issues,
                "can_recover": bool(partition_shape_issues(data)) and self.recovery.repair_corrupted_tags,
            }
            entry.update(describe_partition(data))
            tags[name] = entry
        return {
            "valid": all(t["name_valid"] and t["structure_valid"] for t in tags.values()),
            "error": None,
            "tags": tags,
        }

    async def recover_tag(self, name: str, action: Optional[str] = None) -> Dict[str, Any]:
        """Apply ``action`` (or the one ``validate_tag`` suggests) under the tag lock.

        Raises:
            ValueError: Unknown action.
            StoreCorruptedError: A partition-level repair needs a readable file.
            StoreWriteError: The backup taken before the repair failed.
        """
        if action is None:
            action = self.validate_tag(name).recovery_action
            if action is None:
                return {"tag": name, "action": None, "recovered": False}
        if action not in RECOVERY_ACTIONS:
            raise ValueError(f"Unknown recovery action: {action}")

        async with self.locks.lock(name, f"recover_{action}"):
            backup = None
            if self.store.exists() and (action == RECREATE_TASKS_FILE or self.recovery.backup_before_repair):
                backup = self.store.backup()
                if backup is None:
                    raise StoreWriteError(str(self.store.path), "backup before repair failed; nothing written")

            if action == RECREATE_TASKS_FILE:
                document = new_document()
                repairs = ["recreated tasks file"]
            else:
                document = self.store.read_snapshot()
                if document is None:
                    raise StoreCorruptedError(str(self.store.path), "file does not exist")
                if action == CREATE_MISSING_TAG:
                    document[name] = new_partition(name)
                    repairs = [f"created tag '{name}'"]
                else:
                    repairs = repair_partition(document, name)

            self.store.write(document)

        logger.info("Recovered tag %s via %s", name, action)
        audit_log(
            "tag_recovered",
            tag=name,
            action=action,
            repairs=repairs,
            backup=str(backup) if backup else None,
        )
        return {
            "tag": name,
            "action": action,
            "recovered": True,
            "repairs": repairs,
            "backup": str(backup) if backup else None,
        }

    async def ensure_tag_exists(self, name: str) -> TagValidation:
        """Validate ``name`` and recover it when permitted.

        Raises:
            InvalidTagNameError: The name breaks the naming rules.
        """
        validation = self.validate_tag(name)
        if validation.valid:
            return validation
        name_check = validate_tag_name(name)
        if not name_check.valid:
            raise InvalidTagNameError(name, name_check.error or "invalid name")
        if validation.can_recover and validation.recovery_action:
            await self.recover_tag(name, validation.recovery_action)
            return self.validate_tag(name)
        return validation

    def get_current_tag(self) -> Optional[str]:
        """``currentTag`` from the state file, or None when unset or unreadable."""
        if self.state_path is None or not self.state_path.exists():
            return None
        try:
            state = json.loads(self.state_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable state file %s: %s", self.state_path, exc)
            return None
        current = state.get("currentTag") if isinstance(state, dict) else None
        return current if isinstance(current, str) and current else None

    def resolve_effective_tag(self, explicit: Optional[str] = None) -> str:
        """Explicit tag, else the current tag from state, else the default."""
        if explicit:
            name_check = validate_tag_name(explicit)
            if not name_check.valid:
                raise InvalidTagNameError(explicit, name_check.error or "invalid name")
            return explicit
        return self.get_current_tag() or self.default_tag

    def list_tags(self) -> List[str]:
        document, _ = self._load()
        return tag_names(document) if document else []
