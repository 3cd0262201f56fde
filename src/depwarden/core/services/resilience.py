from __future__ import annotations

import random
import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, TypeVar

from ..domain.exceptions import CircuitOpenError, RetryExhaustedError, is_retryable
from ..ports import LoggerPort


T = TypeVar("T")


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass(frozen=True)
class RetryConfig:
    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    jitter_ratio: float = 0.1


@dataclass(frozen=True)
class CircuitBreakerState:
    key: str
    state: CircuitState
    failure_count: int
    last_failure_at: Optional[float]


def backoff_delay(attempt: int, config: RetryConfig, rand: Callable[[], float] = random.random) -> float:
    """Delay before attempt number `attempt` (attempt >= 2).

    min(max_delay, base_delay * 2^(attempt-2)) plus jitter in [0, jitter_ratio * that].
    """
    exponential = min(config.max_delay, config.base_delay * (2 ** (attempt - 2)))
    return exponential + rand() * config.jitter_ratio * exponential


class CircuitBreaker:
    """Per-endpoint breaker. All transitions happen under one lock.

    Open -> HalfOpen is evaluated lazily on the next call attempt, and HalfOpen
    admits exactly one trial call.
    """

    def __init__(
        self,
        key: str,
        *,
        failure_threshold: int = 5,
        recovery_timeout: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
        logger: Optional[LoggerPort] = None,
    ) -> None:
        self.key = key
        self._failure_threshold = failure_threshold
        self._recovery_timeout = recovery_timeout
        self._clock = clock
        self._logger = logger
        self._lock = threading.Lock()
        self._state = CircuitState.CLOSED
        self._failures = 0
        self._last_failure_at: Optional[float] = None
        self._trial_in_flight = False

    @property
    def state(self) -> CircuitState:
        with self._lock:
            return self._state

    def snapshot(self) -> CircuitBreakerState:
        with self._lock:
            return CircuitBreakerState(
                key=self.key,
                state=self._state,
                failure_count=self._failures,
                last_failure_at=self._last_failure_at,
            )

    def before_call(self) -> None:
        """Admit or reject a call. Raises CircuitOpenError when rejected."""
        with self._lock:
            if self._state is CircuitState.CLOSED:
                return
            if self._state is CircuitState.OPEN:
                elapsed = self._clock() - (self._last_failure_at or 0.0)
                if elapsed < self._recovery_timeout:
                    raise CircuitOpenError(self.key, self._recovery_timeout - elapsed)
                self._state = CircuitState.HALF_OPEN
                self._trial_in_flight = False
                self._log("circuit_half_open")
            if self._trial_in_flight:
                raise CircuitOpenError(self.key, 0.0)
            self._trial_in_flight = True

    def record_success(self) -> None:
        with self._lock:
            was_closed = self._state is CircuitState.CLOSED
            self._failures = 0
            self._state = CircuitState.CLOSED
            self._trial_in_flight = False
        if not was_closed:
            self._log("circuit_closed")

    def release_trial(self) -> None:
        """Free the half-open trial slot without judging the endpoint."""
        with self._lock:
            self._trial_in_flight = False

    def record_failure(self) -> None:
        opened = False
        with self._lock:
            self._failures += 1
            self._last_failure_at = self._clock()
            self._trial_in_flight = False
            if self._state is CircuitState.HALF_OPEN or self._failures >= self._failure_threshold:
                opened = self._state is not CircuitState.OPEN
                self._state = CircuitState.OPEN
            failures = self._failures
        if opened:
            self._log("circuit_opened", failure_count=failures)

    def _log(self, event: str, **kwargs) -> None:
        if self._logger is not None:
            self._logger.warning(event, breaker_key=self.key, **kwargs)


class CircuitBreakerRegistry:
    """Keyed breaker state shared by every caller of the same endpoint."""

    def __init__(
        self,
        *,
        failure_threshold: int = 5,
        recovery_timeout: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
        logger: Optional[LoggerPort] = None,
    ) -> None:
        self._failure_threshold = failure_threshold
        self._recovery_timeout = recovery_timeout
        self._clock = clock
        self._logger = logger
        self._lock = threading.Lock()
        self._breakers: dict[str, CircuitBreaker] = {}

    def get(self, key: str) -> CircuitBreaker:
        with self._lock:
            breaker = self._breakers.get(key)
            if breaker is None:
                breaker = CircuitBreaker(
                    key,
                    failure_threshold=self._failure_threshold,
                    recovery_timeout=self._recovery_timeout,
                    clock=self._clock,
                    logger=self._logger,
                )
                self._breakers[key] = breaker
            return breaker

    def states(self) -> list[CircuitBreakerState]:
        with self._lock:
            breakers = list(self._breakers.values())
        return [b.snapshot() for b in sorted(breakers, key=lambda b: b.key)]


class RequestDeduplicator:
    """Collapses concurrent calls sharing a key into one execution.

    The first caller runs the operation; callers arriving while it is in flight
    block on the same Future and receive its result or exception. The key is
    released as soon as the call settles.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._in_flight: dict[str, Future] = {}

    def in_flight(self, key: str) -> bool:
        with self._lock:
            return key in self._in_flight

    def run(self, key: str, operation: Callable[[], T]) -> T:
        with self._lock:
            future = self._in_flight.get(key)
            leader = future is None
            if leader:
                future = Future()
                future.set_running_or_notify_cancel()
                self._in_flight[key] = future

        if not leader:
            return future.result()

        try:
            result = operation()
        except BaseException as exc:
            self._release(key)
            future.set_exception(exc)
            raise
        self._release(key)
        future.set_result(result)
        return result

    def _release(self, key: str) -> None:
        with self._lock:
            self._in_flight.pop(key, None)


class ResilienceLayer:
    """Retry with exponential backoff, per-key circuit breaking and deduplication.

    Generic over the wrapped operation; knows nothing about what it calls.
    """

    def __init__(
        self,
        *,
        retry: Optional[RetryConfig] = None,
        failure_threshold: int = 5,
        recovery_timeout: float = 60.0,
        logger: Optional[LoggerPort] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        rand: Callable[[], float] = random.random,
    ) -> None:
        self._retry = retry or RetryConfig()
        self._logger = logger
        self._sleep = sleep
        self._rand = rand
        self.breakers = CircuitBreakerRegistry(
            failure_threshold=failure_threshold,
            recovery_timeout=recovery_timeout,
            clock=clock,
            logger=logger,
        )
        self.deduplicator = RequestDeduplicator()

    @property
    def retry_config(self) -> RetryConfig:
        return self._retry

    def execute(
        self,
        operation: Callable[[], T],
        *,
        key: str,
        retry: Optional[RetryConfig] = None,
        dedup_key: Optional[str] = None,
    ) -> T:
        """Run `operation` guarded by the breaker for `key`, retrying transient failures.

        Args:
            operation: Zero-argument callable performing the external call
            key: Circuit breaker key (logical service endpoint)
            retry: Overrides the layer's default retry settings
            dedup_key: When set, concurrent calls with the same key share one execution

        Raises:
            CircuitOpenError: Breaker rejected an attempt; no further retries
            RetryExhaustedError: Every attempt failed with a retryable error
            Exception: The first non-retryable error, unchanged
        """
        if dedup_key is not None:
            return self.deduplicator.run(dedup_key, lambda: self._with_retry(operation, key, retry or self._retry))
        return self._with_retry(operation, key, retry or self._retry)

    def deduplicate(self, dedup_key: str, operation: Callable[[], T]) -> T:
        return self.deduplicator.run(dedup_key, operation)

    def _with_retry(self, operation: Callable[[], T], key: str, config: RetryConfig) -> T:
        breaker = self.breakers.get(key)
        last_error: Optional[BaseException] = None

        for attempt in range(1, config.max_attempts + 1):
            if attempt > 1:
                delay = backoff_delay(attempt, config, self._rand)
                retry_after = getattr(last_error, "retry_after", None)
                if retry_after:
                    delay = max(delay, min(float(retry_after), config.max_delay))
                self._log_retry(key, attempt, delay, last_error)
                self._sleep(delay)

            breaker.before_call()
            try:
                result = operation()
            except Exception as exc:
                if not is_retryable(exc):
                    # The service answered; the request itself is wrong.
                    breaker.record_success()
                    raise
                breaker.record_failure()
                last_error = exc
                continue
            except BaseException:
                breaker.release_trial()
                raise
            breaker.record_success()
            return result

        assert last_error is not None
        raise RetryExhaustedError(config.max_attempts, last_error) from last_error

    def _log_retry(self, key: str, attempt: int, delay: float, error: Optional[BaseException]) -> None:
        if self._logger is not None:
            self._logger.warning(
                "retry_scheduled",
                breaker_key=key,
                attempt=attempt,
                delay_seconds=round(delay, 3),
                error=str(error),
            )
