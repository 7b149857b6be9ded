"""
Engine entry points.

``EngineContext`` owns the collaborators a mutation needs (store, tag locks,
breakers and retry, auditor, tag validator) and runs every move as one
read-modify-write under the affected tags' locks:

    async with EngineContext(config) as engine:
        await engine.move_task("5", "7", tag="backlog")
        await engine.move_tasks_between_tags([1, 2], "backlog", "in-progress", with_dependencies=True)

Locks are taken outside the retry loop; each retry attempt re-reads the
document so a failed attempt never leaves partial state behind.
"""

from __future__ import annotations

import inspect
import logging
import random
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Union

from tasktags.config import EngineConfig, get_config
from tasktags.core.context import generate_correlation_id, sync_request_context
from tasktags.core.dependencies import can_move_with_dependencies
from tasktags.core.errors.storage import StoreCorruptedError
from tasktags.core.healing import HealingReport, SelfHealingAuditor
from tasktags.core.locks import TagLockManager
from tasktags.core.observability import get_audit_logger
from tasktags.core.resilience import BreakerRegistry
from tasktags.core.store.store import TaskStore
from tasktags.core.store.tagged import build_task_index
from tasktags.core.tags import TagValidator
from tasktags.core.task.cross_tag import MoveOptions, move_tasks_between_tags
from tasktags.core.task.moves import move_tasks

logger = logging.getLogger(__name__)

Regenerate = Callable[[Path, str], Union[None, Awaitable[None]]]
Mutation = Callable[[Dict[str, Any]], Dict[str, Any]]

TASK_OPERATIONS = "task-operations"
TAG_OPERATIONS = "tag-operations"


class EngineContext:
    """Everything a move needs, passed explicitly instead of held in globals.

    Args:
        config: Engine configuration; defaults to ``get_config()``.
        store: Override the store built from ``config``.
        regenerate: Called as ``regenerate(tasks_path, tag)`` once per
            affected tag after a successful move with ``generate_files``.
        clock, sleep, rng: Injected into locks, breakers and retry for
            deterministic tests.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        *,
        store: Optional[TaskStore] = None,
        regenerate: Optional[Regenerate] = None,
        clock: Optional[Callable[[], float]] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
        rng: Optional[random.Random] = None,
    ):
        self.config = config or get_config()
        self.store = store or TaskStore(self.config.get_tasks_path(), self.config.recovery.max_backups)
        self.locks = TagLockManager(
            self.config.locks.timeout,
            self.config.locks.poll_interval,
            clock=clock,
            sleep=sleep,
        )
        self.breakers = BreakerRegistry(self.config.resilience, clock=clock, sleep=sleep, rng=rng)
        self.auditor = SelfHealingAuditor(self.store, recovery=self.config.recovery)
        self.tags = TagValidator(
            self.store,
            self.locks,
            recovery=self.config.recovery,
            state_path=self.config.get_state_path(),
            default_tag=self.config.default_tag,
        )
        self.regenerate = regenerate

    async def __aenter__(self) -> "EngineContext":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.stop()

    async def start(self) -> None:
        if self.config.recovery.self_healing_enabled:
            await self.auditor.start()

    async def stop(self) -> None:
        await self.auditor.stop()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _read_document(self) -> Dict[str, Any]:
        try:
            document = self.store.read_snapshot()
        except StoreCorruptedError as exc:
            if not self.config.recovery.enabled:
                raise
            logger.warning("Recovering corrupted tasks file before mutation: %s", exc.message)
            report = self.auditor.recover_corrupted_tags(recreate_unreadable=True)
            if report.errors:
                raise
            document = self.store.read_snapshot()

        if document is None and self.config.recovery.enabled:
            self.auditor.recover_corrupted_tags()
            document = self.store.read_snapshot()
        return document if document is not None else {}

    async def _mutate(self, breaker: str, operation: str, mutation: Mutation) -> Dict[str, Any]:
        def run() -> Dict[str, Any]:
            document = self._read_document()
            result = mutation(document)
            self.store.write(document)
            return result

        return await self.breakers.protect(breaker, run, operation_name=operation)

    async def _regenerate(self, tags: Iterable[str]) -> List[str]:
        warnings = []
        if self.regenerate is None:
            return warnings
        tasks_path = self.store.path
        for tag in tags:
            try:
                outcome = self.regenerate(tasks_path, tag)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception as exc:
                logger.exception("Task file regeneration failed for tag %s", tag)
                warnings.append(f"File regeneration failed for tag '{tag}': {exc}")
        return warnings

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def move_task(
        self,
        source_id: Any,
        destination_id: Any,
        *,
        tag: Optional[str] = None,
        generate_files: bool = False,
    ) -> Dict[str, Any]:
        """Move one entity, or a comma-separated batch, within a tag.

        The whole batch is one write and at most one regeneration call.
        """
        effective_tag = self.tags.resolve_effective_tag(tag)
        with sync_request_context(generate_correlation_id("move"), operation="move_task") as correlation_id:
            async with self.locks.lock(effective_tag, "move_task"):
                result = await self._mutate(
                    TASK_OPERATIONS,
                    "move_task",
                    lambda document: move_tasks(document, effective_tag, source_id, destination_id),
                )

            moves = len(result.get("moves", [])) or 1
            get_audit_logger().move_committed(effective_tag, moves, source=str(source_id), destination=str(destination_id))

            result["tag"] = effective_tag
            result["correlation_id"] = correlation_id
            if generate_files:
                warnings = await self._regenerate([effective_tag])
                if warnings:
                    result["warnings"] = warnings
            return result

    async def move_tasks_between_tags(
        self,
        source_ids: Any,
        source_tag: str,
        target_tag: str,
        *,
        with_dependencies: bool = False,
        ignore_dependencies: bool = False,
        force: bool = False,
        generate_files: bool = False,
    ) -> Dict[str, Any]:
        """Move top-level tasks to another tag, locking both tags in sorted order."""
        options = MoveOptions(
            with_dependencies=with_dependencies,
            ignore_dependencies=ignore_dependencies,
            force=force,
        )
        with sync_request_context(generate_correlation_id("move"), operation="move_tasks_between_tags") as correlation_id:
            async with self.locks.lock_tags([source_tag, target_tag], "move_tasks_between_tags"):
                result = await self._mutate(
                    TAG_OPERATIONS,
                    "move_tasks_between_tags",
                    lambda document: move_tasks_between_tags(document, source_ids, source_tag, target_tag, options),
                )

            get_audit_logger().move_committed(
                source_tag,
                len(result["moved_tasks"]),
                target_tag=target_tag,
                task_ids=[item["id"] for item in result["moved_tasks"]],
            )

            result["correlation_id"] = correlation_id
            if generate_files:
                warnings = await self._regenerate([source_tag, target_tag])
                if warnings:
                    result["warnings"] = warnings
            return result

    def check_cross_tag_move(self, task_id: Any, source_tag: str, target_tag: str) -> Dict[str, Any]:
        """Report conflicts for moving one task without changing anything."""
        index = build_task_index(self._read_document())
        report = can_move_with_dependencies(task_id, source_tag, target_tag, index)
        report["conflicts"] = [conflict.to_dict() for conflict in report["conflicts"]]
        return report

    def heal(self, *, recreate_unreadable: Optional[bool] = None) -> HealingReport:
        return self.auditor.recover_corrupted_tags(recreate_unreadable=recreate_unreadable)

    def validate_tags(self) -> Dict[str, Any]:
        return self.tags.validate_all_tags()

    def status(self) -> Dict[str, Any]:
        last_report = self.auditor.last_report
        return {
            "tasks_file": str(self.store.path),
            "tasks_file_exists": self.store.exists(),
            "tags": self.tags.list_tags(),
            "locks": self.locks.get_all_locks(),
            "breakers": self.breakers.get_status(),
            "auditor": {
                "running": self.auditor.is_running,
                "passes": self.auditor.pass_count,
                "last_report": last_report.to_dict() if last_report else None,
                "recent_issues": list(self.auditor.issues),
            },
        }
