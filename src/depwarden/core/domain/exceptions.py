"""Domain exceptions for depwarden."""

from __future__ import annotations

from typing import Iterable, Optional


class DepwardenError(Exception):
    """Base class for all errors raised by depwarden."""


class ConfigValidationError(DepwardenError):
    """Raised when a policy update violates configuration invariants.

    Never persisted; the caller receives the full list of errors.
    """

    def __init__(self, errors: Iterable[str], warnings: Iterable[str] = ()) -> None:
        self.errors = tuple(errors)
        self.warnings = tuple(warnings)
        super().__init__("; ".join(self.errors) or "Invalid configuration")


class DataError(DepwardenError):
    """Terminal data problem. Retrying cannot fix it."""


class InvalidRepositoryUrlError(DataError):
    def __init__(self, url: str) -> None:
        self.url = url
        super().__init__(f"Invalid repository URL format: {url!r}")


class AlertNotFoundError(DataError):
    def __init__(self, alert_id: int) -> None:
        self.alert_id = alert_id
        super().__init__(f"Alert not found: {alert_id}")


class InvalidStateTransitionError(DataError):
    def __init__(self, alert_id: int, current: str, target: str) -> None:
        self.alert_id = alert_id
        self.current = current
        self.target = target
        super().__init__(f"Alert {alert_id} cannot move from {current} to {target}")


class HostingAPIError(DepwardenError):
    """The hosting API answered with an error that retrying will not fix."""

    def __init__(self, message: str, *, status: Optional[int] = None, operation: str = "") -> None:
        self.status = status
        self.operation = operation
        super().__init__(message)


class TransientAPIError(HostingAPIError):
    """Network failure, timeout, 5xx, 408 or 429."""

    def __init__(
        self,
        message: str,
        *,
        status: Optional[int] = None,
        operation: str = "",
        retry_after: Optional[float] = None,
    ) -> None:
        self.retry_after = retry_after
        super().__init__(message, status=status, operation=operation)


class ManifestError(DepwardenError):
    """The dependency manifest is missing or cannot be edited safely."""


class CircuitOpenError(DepwardenError):
    def __init__(self, key: str, retry_in: float) -> None:
        self.key = key
        self.retry_in = retry_in
        super().__init__(f"Circuit breaker open for {key} (retry in {retry_in:.1f}s)")


class RetryExhaustedError(DepwardenError):
    def __init__(self, attempts: int, last_error: BaseException) -> None:
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Operation failed after {attempts} attempts: {last_error}")


RETRYABLE_STATUSES = frozenset({408, 429})


def is_retryable_status(status: int) -> bool:
    return status >= 500 or status in RETRYABLE_STATUSES


def is_retryable(exc: BaseException) -> bool:
    """Classify an exception for the retry loop."""
    if isinstance(exc, TransientAPIError):
        return True
    if isinstance(exc, DepwardenError):
        return False
    return isinstance(exc, (ConnectionError, TimeoutError))
