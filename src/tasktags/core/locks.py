"""
Per-tag advisory locks for a single process.

Locks are plain records in a dict; there is no OS-level locking here (whole
document writes are protected separately by ``filelock``). Acquisition
polls at a fixed interval and reclaims locks older than the stale threshold.

Example:
    manager = TagLockManager(timeout=30.0)

    async with manager.lock("backlog", "move_task"):
        ...

    async with manager.lock_tags(["backlog", "in-progress"], "move_tasks_between_tags"):
        ...
"""

from __future__ import annotations

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Iterable, List, Optional

from ulid import ULID

from tasktags.core.errors.storage import LockTimeoutError
from tasktags.core.observability import audit_log

logger = logging.getLogger(__name__)

Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]


@dataclass
class TagLock:
    """A held lock on one tag."""

    tag: str
    lock_id: str
    operation: str
    acquired_at: float

    def age(self, now: float) -> float:
        return now - self.acquired_at

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tag": self.tag,
            "lock_id": self.lock_id,
            "operation": self.operation,
            "acquired_at": self.acquired_at,
        }


class TagLockManager:
    """Advisory mutual exclusion keyed by tag name.

    Args:
        timeout: Default for ``acquire_lock``'s ``timeout``.
        poll_interval: Seconds between acquisition attempts.
        clock: Monotonic time source (injectable for tests).
        sleep: Async sleep (injectable for tests).
    """

    def __init__(
        self,
        timeout: float = 30.0,
        poll_interval: float = 1.0,
        *,
        clock: Optional[Clock] = None,
        sleep: Optional[Sleep] = None,
    ):
        self.timeout = timeout
        self.poll_interval = poll_interval
        self._clock = clock or time.monotonic
        self._sleep = sleep or asyncio.sleep
        self._locks: Dict[str, TagLock] = {}

    def _try_take(self, tag: str, operation: str, stale_after: float) -> Optional[TagLock]:
        now = self._clock()
        held = self._locks.get(tag)
        if held is not None:
            if held.age(now) <= stale_after:
                return None
            logger.warning(
                "Reclaiming stale lock on tag %s held by %s for %.1fs",
                tag,
                held.operation,
                held.age(now),
            )
            audit_log(
                "lock_reclaimed",
                tag=tag,
                stale_lock_id=held.lock_id,
                stale_operation=held.operation,
                age_seconds=round(held.age(now), 3),
                reclaimed_by=operation,
            )

        lock = TagLock(tag=tag, lock_id=f"lock_{ULID()}", operation=operation, acquired_at=now)
        self._locks[tag] = lock
        return lock

    async def acquire_lock(self, tag: str, operation: str, timeout: Optional[float] = None) -> str:
        """Acquire the lock on ``tag`` and return its lock id.

        ``timeout`` bounds the wait and is also the age past which the
        current holder is treated as stale and reclaimed.

        Raises:
            LockTimeoutError: The lock stayed held (and not stale) for
                ``timeout`` seconds.
        """
        wait_limit = self.timeout if timeout is None else timeout
        started = self._clock()

        while True:
            lock = self._try_take(tag, operation, wait_limit)
            if lock is not None:
                logger.debug("Acquired lock %s on tag %s for %s", lock.lock_id, tag, operation)
                return lock.lock_id

            if self._clock() - started >= wait_limit:
                holder = self._locks.get(tag)
                raise LockTimeoutError(
                    tag,
                    wait_limit,
                    operation=operation,
                    holder=holder.to_dict() if holder else None,
                )
            await self._sleep(self.poll_interval)

    def release_lock(self, tag: str, lock_id: str) -> bool:
        """Release ``tag`` if ``lock_id`` is the current holder."""
        held = self._locks.get(tag)
        if held is None or held.lock_id != lock_id:
            logger.debug("Ignoring release of %s on tag %s: not the holder", lock_id, tag)
            return False
        del self._locks[tag]
        return True

    def force_release(self, tag: str) -> bool:
        """Drop any lock on ``tag`` regardless of holder."""
        held = self._locks.pop(tag, None)
        if held is None:
            return False
        logger.warning("Force-released lock %s on tag %s", held.lock_id, tag)
        audit_log("lock_force_released", tag=tag, lock_id=held.lock_id, operation=held.operation)
        return True

    def is_locked(self, tag: str) -> bool:
        return tag in self._locks

    def get_lock_info(self, tag: str) -> Optional[Dict[str, Any]]:
        held = self._locks.get(tag)
        if held is None:
            return None
        info = held.to_dict()
        info["age"] = held.age(self._clock())
        return info

    def get_all_locks(self) -> List[Dict[str, Any]]:
        return [info for info in (self.get_lock_info(tag) for tag in sorted(self._locks)) if info]

    @property
    def lock_count(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def lock(self, tag: str, operation: str, timeout: Optional[float] = None) -> AsyncIterator[str]:
        """Hold the lock on ``tag`` for the duration of the block."""
        lock_id = await self.acquire_lock(tag, operation, timeout)
        try:
            yield lock_id
        finally:
            self.release_lock(tag, lock_id)

    @asynccontextmanager
    async def lock_tags(
        self,
        tags: Iterable[str],
        operation: str,
        timeout: Optional[float] = None,
    ) -> AsyncIterator[Dict[str, str]]:
        """Hold several tag locks, acquired in sorted order.

        Yields a mapping of tag -> lock id. Locks already taken are released
        if a later acquisition fails.
        """
        held: Dict[str, str] = {}
        try:
            for tag in sorted(set(tags)):
                held[tag] = await self.acquire_lock(tag, operation, timeout)
            yield held
        finally:
            for tag, lock_id in reversed(list(held.items())):
                self.release_lock(tag, lock_id)
