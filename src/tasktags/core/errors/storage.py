"""Storage and concurrency error classes."""

from typing import Any, Dict, Optional

from tasktags.core.errors.common import TaskStoreError


class LockTimeoutError(TaskStoreError):
    """A tag lock could not be acquired before the caller's timeout.

    Safe to retry later.
    """

    code = "LOCK_TIMEOUT"
    retryable = True
    client_error = False

    def __init__(
        self,
        tag: str,
        timeout: float,
        operation: Optional[str] = None,
        holder: Optional[Dict[str, Any]] = None,
    ):
        self.tag = tag
        self.timeout = timeout
        self.operation = operation
        self.holder = holder
        super().__init__(f'Failed to acquire lock for tag "{tag}" within {timeout}s')

    def to_details(self) -> Dict[str, Any]:
        return {
            "tag": self.tag,
            "timeout": self.timeout,
            "operation": self.operation,
            "holder": self.holder,
        }


class StoreCorruptedError(TaskStoreError):
    """The tasks document exists but cannot be parsed or has the wrong shape."""

    code = "STORE_CORRUPTED"
    client_error = False

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Tasks file {path} is corrupted: {reason}")

    def to_details(self) -> Dict[str, Any]:
        return {"path": self.path, "reason": self.reason}


class StoreWriteError(TaskStoreError):
    """The whole-document write did not complete."""

    code = "STORE_WRITE_FAILED"
    retryable = True
    client_error = False

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to write tasks file {path}: {reason}")

    def to_details(self) -> Dict[str, Any]:
        return {"path": self.path, "reason": self.reason}
