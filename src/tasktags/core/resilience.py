"""
Circuit breakers and retry with exponential backoff.

Example:
    registry = BreakerRegistry()
    document = await registry.protect("file-system", lambda: store.read_snapshot())

``protect`` runs the operation through the named breaker and retries
retryable failures. A breaker that is open raises ``CircuitOpenError``, which
is itself retryable, so each retry against an open breaker consumes one
attempt and one backoff delay without doing work.
"""

from __future__ import annotations

import asyncio
import errno
import inspect
import logging
import random
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar, Union

from tasktags.config.domains import BreakerSettings, ResilienceSettings, RetrySettings
from tasktags.core.errors.common import TaskStoreError
from tasktags.core.errors.resilience import CircuitOpenError, MaxRetriesExceededError
from tasktags.core.observability import audit_log

logger = logging.getLogger(__name__)

T = TypeVar("T")
Operation = Callable[[], Union[Awaitable[T], T]]
Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]

NON_RETRYABLE_CODES = frozenset(
    {
        "VALIDATION_ERROR",
        "AUTHENTICATION_ERROR",
        "AUTHORIZATION_ERROR",
        "EACCES",
        "EPERM",
        "ENOTDIR",
        "EISDIR",
    }
)
NON_RETRYABLE_MESSAGE_MARKERS = ("validation", "unauthorized", "forbidden")
RETRYABLE_CLIENT_STATUSES = frozenset({408, 429})


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


async def _call(operation: Operation) -> Any:
    result = operation()
    if inspect.isawaitable(result):
        result = await result
    return result


def is_client_error(exc: BaseException) -> bool:
    """Errors caused by the caller's input; these never count against a breaker."""
    return isinstance(exc, TaskStoreError) and exc.client_error


def is_non_retryable(exc: BaseException) -> bool:
    """Whether retrying ``exc`` cannot help.

    Engine errors declare this themselves. Other exceptions are classified by
    error code, errno, HTTP-style status, and message keywords.
    """
    if isinstance(exc, TaskStoreError):
        return not exc.retryable

    if isinstance(exc, (PermissionError, NotADirectoryError, IsADirectoryError)):
        return True

    code = getattr(exc, "code", None)
    if isinstance(code, str) and code in NON_RETRYABLE_CODES:
        return True
    err_no = getattr(exc, "errno", None)
    if isinstance(err_no, int) and errno.errorcode.get(err_no) in NON_RETRYABLE_CODES:
        return True

    status = getattr(exc, "status", None) or getattr(exc, "status_code", None)
    if isinstance(status, int) and 400 <= status < 500 and status not in RETRYABLE_CLIENT_STATUSES:
        return True

    message = str(exc).lower()
    return any(marker in message for marker in NON_RETRYABLE_MESSAGE_MARKERS)


class CircuitBreaker:
    """
    Fails fast after repeated failures, then probes for recovery.

    CLOSED counts consecutive non-client failures and trips to OPEN at
    ``failure_threshold``. OPEN rejects every call until
    ``recovery_timeout`` has elapsed, then HALF_OPEN admits one trial call:
    success closes the breaker, failure re-opens it.
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        recovery_timeout: float = 30.0,
        *,
        clock: Optional[Clock] = None,
    ):
        self.name = name
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self._clock = clock or time.monotonic

        self.state = CircuitState.CLOSED
        self.failure_count = 0
        self.success_count = 0
        self.last_failure_time: Optional[float] = None
        self.next_attempt_time: Optional[float] = None
        self._trial_in_flight = False

        self.total_requests = 0
        self.rejected_requests = 0
        self.failed_requests = 0

    def _open_error(self, retry_after: float) -> CircuitOpenError:
        return CircuitOpenError(
            f"Circuit breaker '{self.name}' is open; retry in {retry_after:.1f}s",
            breaker_name=self.name,
            state=self.state,
            retry_after=retry_after,
            next_attempt_time=self.next_attempt_time,
        )

    def can_execute(self) -> bool:
        """Whether a call would be admitted now. Moves OPEN to HALF_OPEN when due."""
        if self.state is CircuitState.OPEN:
            if self.next_attempt_time is not None and self._clock() >= self.next_attempt_time:
                self.state = CircuitState.HALF_OPEN
                self._trial_in_flight = False
                logger.info("Circuit breaker %s half-open, admitting one trial call", self.name)
            else:
                return False
        if self.state is CircuitState.HALF_OPEN:
            return not self._trial_in_flight
        return True

    async def execute(self, operation: Operation) -> Any:
        """Run ``operation`` under the breaker.

        Raises:
            CircuitOpenError: The breaker is open, or a half-open trial is
                already running.
        """
        self.total_requests += 1
        if not self.can_execute():
            self.rejected_requests += 1
            if self.next_attempt_time is None:
                retry_after = 0.0
            else:
                retry_after = max(0.0, self.next_attempt_time - self._clock())
            raise self._open_error(retry_after)

        is_trial = self.state is CircuitState.HALF_OPEN
        if is_trial:
            self._trial_in_flight = True
        try:
            result = await _call(operation)
        except Exception as exc:
            if is_client_error(exc):
                if is_trial:
                    self._trial_in_flight = False
                raise
            self.record_failure(exc)
            raise
        self.record_success()
        return result

    def record_success(self) -> None:
        self.success_count += 1
        if self.state is CircuitState.HALF_OPEN:
            logger.info("Circuit breaker %s trial succeeded, closing", self.name)
            self.reset()
            audit_log("circuit_closed", breaker=self.name)
        else:
            self.failure_count = 0

    def record_failure(self, exc: Optional[BaseException] = None) -> None:
        self.failed_requests += 1
        self.failure_count += 1
        self.last_failure_time = self._clock()
        logger.warning(
            "Circuit breaker %s failure #%d: %s",
            self.name,
            self.failure_count,
            exc,
        )
        if self.state is CircuitState.HALF_OPEN or self.failure_count >= self.failure_threshold:
            self.trip()

    def trip(self) -> None:
        self.state = CircuitState.OPEN
        self.next_attempt_time = self._clock() + self.recovery_timeout
        self._trial_in_flight = False
        logger.warning(
            "Circuit breaker %s opened after %d failures; failing fast for %.1fs",
            self.name,
            self.failure_count,
            self.recovery_timeout,
        )
        audit_log(
            "circuit_opened",
            breaker=self.name,
            failure_count=self.failure_count,
            recovery_timeout=self.recovery_timeout,
        )

    def reset(self) -> None:
        self.state = CircuitState.CLOSED
        self.failure_count = 0
        self.last_failure_time = None
        self.next_attempt_time = None
        self._trial_in_flight = False

    def get_status(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "state": self.state.value,
            "failure_count": self.failure_count,
            "success_count": self.success_count,
            "failure_threshold": self.failure_threshold,
            "recovery_timeout": self.recovery_timeout,
            "last_failure_time": self.last_failure_time,
            "next_attempt_time": self.next_attempt_time,
            "total_requests": self.total_requests,
            "rejected_requests": self.rejected_requests,
            "failed_requests": self.failed_requests,
        }


@dataclass
class RetryState:
    """Progress of one ``execute_with_retry`` call."""

    attempt: int = 0
    next_delay: Optional[float] = None
    last_error: Optional[BaseException] = None


class RetryManager:
    """Retries retryable failures with exponential backoff and jitter.

    Args:
        settings: Attempt count and delay curve.
        rng: Injectable Random instance for deterministic testing.
        sleep: Injectable async sleep for time control in tests.
    """

    def __init__(
        self,
        settings: Optional[RetrySettings] = None,
        *,
        rng: Optional[random.Random] = None,
        sleep: Optional[Sleep] = None,
    ):
        self.settings = settings or RetrySettings()
        self._rng = rng or random.Random()
        self._sleep = sleep or asyncio.sleep

    @property
    def max_retries(self) -> int:
        return self.settings.max_retries

    def calculate_delay(self, attempt: int) -> float:
        """Delay before retry number ``attempt + 1`` (``attempt`` is 0-based)."""
        s = self.settings
        delay = min(s.base_delay * (s.backoff_multiplier**attempt), s.max_delay)
        if s.jitter:
            delay *= 0.5 + self._rng.random() * 0.5
        return delay

    async def execute_with_retry(self, operation: Operation, operation_name: str = "operation") -> Any:
        """
        Run ``operation`` until it succeeds or retries run out.

        Non-retryable errors propagate immediately and unchanged.

        Raises:
            MaxRetriesExceededError: Every attempt failed with a retryable
                error; ``last_error`` holds the final one.
        """
        state = RetryState()
        for attempt in range(self.max_retries + 1):
            state.attempt = attempt
            try:
                result = await _call(operation)
            except Exception as exc:
                state.last_error = exc
                if is_non_retryable(exc):
                    logger.debug("Not retrying %s: %s", operation_name, exc)
                    raise
                if attempt == self.max_retries:
                    break
                state.next_delay = self.calculate_delay(attempt)
                logger.warning(
                    "Retry %d/%d for %s after %.2fs: %s",
                    attempt + 1,
                    self.max_retries,
                    operation_name,
                    state.next_delay,
                    exc,
                )
                await self._sleep(state.next_delay)
                continue

            if attempt > 0:
                logger.info("%s succeeded on attempt %d", operation_name, attempt + 1)
            return result

        attempts = self.max_retries + 1
        audit_log(
            "retry_exhausted",
            operation_name=operation_name,
            attempts=attempts,
            last_error=str(state.last_error),
        )
        if state.last_error is None:
            raise RuntimeError("execute_with_retry: unexpected state")
        raise MaxRetriesExceededError(operation_name, attempts, state.last_error) from state.last_error


class BreakerRegistry:
    """Named circuit breakers sharing one retry policy.

    Breakers are created on first use from the configured table; names not
    in the table get ``BreakerSettings()`` defaults.
    """

    def __init__(
        self,
        settings: Optional[ResilienceSettings] = None,
        *,
        clock: Optional[Clock] = None,
        sleep: Optional[Sleep] = None,
        rng: Optional[random.Random] = None,
    ):
        self.settings = settings or ResilienceSettings()
        self._clock = clock
        self._breakers: Dict[str, CircuitBreaker] = {}
        self.retry = RetryManager(self.settings.retry, rng=rng, sleep=sleep)

    def get_breaker(self, name: str) -> CircuitBreaker:
        breaker = self._breakers.get(name)
        if breaker is None:
            config = self.settings.breakers.get(name) or BreakerSettings()
            breaker = CircuitBreaker(
                name,
                failure_threshold=config.failure_threshold,
                recovery_timeout=config.recovery_timeout,
                clock=self._clock,
            )
            self._breakers[name] = breaker
        return breaker

    def get_status(self) -> Dict[str, Dict[str, Any]]:
        return {name: breaker.get_status() for name, breaker in sorted(self._breakers.items())}

    def reset_all(self) -> None:
        for breaker in self._breakers.values():
            breaker.reset()

    async def protect(
        self,
        name: str,
        operation: Operation,
        *,
        enable_retry: bool = True,
        operation_name: Optional[str] = None,
    ) -> Any:
        """Run ``operation`` through breaker ``name``, retrying when enabled."""
        breaker = self.get_breaker(name)

        async def attempt() -> Any:
            return await breaker.execute(operation)

        if not enable_retry:
            return await attempt()
        return await self.retry.execute_with_retry(attempt, operation_name or name)
