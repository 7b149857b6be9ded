"""
Periodic self-healing for the tasks document.

The auditor makes the smallest repair that restores a usable document:

- creates a missing file with an empty ``master`` tag
- re-adds ``master`` when absent
- replaces non-object tags and resets malformed ``tasks``/``metadata``
- fills missing ``created``/``updated`` timestamps

It backs the file up before any repair write; when that backup fails the
repair is skipped and reported in ``errors``. Unparseable files are only
reported unless ``recreate_unreadable`` is set.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from tasktags.config.domains import RecoverySettings
from tasktags.core.errors.storage import StoreCorruptedError
from tasktags.core.observability import audit_log, get_audit_logger
from tasktags.core.store._constants import MASTER_TAG
from tasktags.core.store.store import TaskStore
from tasktags.core.store.tagged import new_document, new_partition
from tasktags.core.tags import repair_partition

logger = logging.getLogger(__name__)

MAX_TRACKED_ISSUES = 50


@dataclass
class HealingReport:
    """Outcome of one auditor pass."""

    recovered: int = 0
    errors: List[str] = field(default_factory=list)
    actions: List[str] = field(default_factory=list)
    backup: Optional[str] = None

    @property
    def healthy(self) -> bool:
        return not self.errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            "recovered": self.recovered,
            "errors": self.errors,
            "actions": self.actions,
            "backup": self.backup,
        }


class SelfHealingAuditor:
    """Repairs the tasks document on demand or on a timer.

    Args:
        store: The document to audit.
        recovery: Permitted repairs and timer settings.
        poll_interval: Seconds between passes; defaults to
            ``recovery.self_healing_interval``.
    """

    def __init__(
        self,
        store: TaskStore,
        *,
        recovery: Optional[RecoverySettings] = None,
        poll_interval: Optional[float] = None,
    ):
        self.store = store
        self.recovery = recovery or RecoverySettings()
        self.poll_interval = poll_interval if poll_interval is not None else self.recovery.self_healing_interval
        self.pass_count = 0
        self.last_report: Optional[HealingReport] = None
        self.issues: List[str] = []

        self._stop_event = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def _track(self, report: HealingReport) -> None:
        self.pass_count += 1
        self.last_report = report
        self.issues.extend(report.errors)
        del self.issues[:-MAX_TRACKED_ISSUES]

    def _backup(self, report: HealingReport) -> bool:
        """Back up before a repair write. False means the write must not happen."""
        if not self.recovery.backup_before_repair or not self.store.exists():
            return True
        try:
            backup = self.store.backup()
        except OSError as exc:
            logger.error("Backup of %s failed: %s", self.store.path, exc)
            backup = None
        if backup is None:
            report.errors.append(f"Backup of {self.store.path} failed; skipped: {'; '.join(report.actions)}")
            report.actions = []
            return False
        report.backup = str(backup)
        return True

    def recover_corrupted_tags(self, *, recreate_unreadable: Optional[bool] = None) -> HealingReport:
        """Run one audit pass and write any repairs.

        Args:
            recreate_unreadable: Override ``recovery.recreate_unreadable``
                for this pass.
        """
        recreate = self.recovery.recreate_unreadable if recreate_unreadable is None else recreate_unreadable
        report = HealingReport()

        try:
            document = self.store.read_snapshot()
        except StoreCorruptedError as exc:
            if not recreate:
                logger.error("Tasks file unreadable, leaving it untouched: %s", exc.message)
                report.errors.append(exc.message)
                self._track(report)
                return report
            report.actions.append("recreated unreadable tasks file")
            if not self._backup(report):
                self._track(report)
                return report
            self.store.write(new_document())
            report.recovered = 1
            self._finish(report)
            return report

        if document is None:
            self.store.write(new_document())
            report.actions.append("created tasks file")
            report.recovered = 1
            self._finish(report)
            return report

        if MASTER_TAG not in document and self.recovery.create_missing_tags:
            document[MASTER_TAG] = new_partition(MASTER_TAG)
            report.actions.append(f"created missing tag '{MASTER_TAG}'")

        if self.recovery.repair_corrupted_tags:
            for tag in list(document):
                report.actions.extend(repair_partition(document, tag))

        if not report.actions or not self._backup(report):
            self._track(report)
            return report

        self.store.write(document)
        report.recovered = len(report.actions)
        self._finish(report)
        return report

    def _finish(self, report: HealingReport) -> None:
        logger.warning("Self-healing repaired %s: %s", self.store.path, "; ".join(report.actions))
        get_audit_logger().store_repaired(
            str(self.store.path),
            report.recovered,
            actions=report.actions,
            backup=report.backup,
        )
        if report.backup:
            audit_log("store_backup", path=str(self.store.path), backup=report.backup)
        self._track(report)

    async def _run_pass(self) -> None:
        self.recover_corrupted_tags()

    async def _poll_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                await self._run_pass()
            except Exception:
                logger.exception("Self-healing pass failed")

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.poll_interval)
            except asyncio.TimeoutError:
                continue

    async def start(self) -> None:
        if self.is_running:
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self._poll_loop())
        logger.debug("Self-healing auditor started (interval %.1fs)", self.poll_interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._stop_event.set()
        try:
            await self._task
        finally:
            self._task = None
        logger.debug("Self-healing auditor stopped")
