from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Callable

from ..domain.exceptions import AlertNotFoundError, InvalidStateTransitionError
from ..domain.models import PullRequestRef, RemediationStatus, VulnerabilityAlert
from ..ports import AlertStorePort, LoggerPort


ALLOWED_TRANSITIONS: dict[RemediationStatus, frozenset[RemediationStatus]] = {
    RemediationStatus.PENDING: frozenset({RemediationStatus.PR_CREATED, RemediationStatus.FAILED}),
    RemediationStatus.FAILED: frozenset({RemediationStatus.PENDING}),
    RemediationStatus.PR_CREATED: frozenset(),
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AlertStateTracker:
    """Owns every write to an alert's remediation fields.

    pending -> pr_created | failed, and failed -> pending only on an explicit
    retry request. pr_created is final.
    """

    def __init__(
        self,
        *,
        alert_store: AlertStorePort,
        logger: LoggerPort,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = alert_store
        self._logger = logger
        self._clock = clock

    def load(self, alert_id: int) -> VulnerabilityAlert:
        alert = self._store.get_by_id(alert_id)
        if alert is None:
            raise AlertNotFoundError(alert_id)
        return alert

    def mark_pr_created(self, alert_id: int, pr: PullRequestRef) -> VulnerabilityAlert:
        self._check(alert_id, RemediationStatus.PR_CREATED)
        alert = self._store.update(
            alert_id,
            remediation_status=RemediationStatus.PR_CREATED,
            remediation_error=None,
            pr_url=pr.url,
            pr_number=pr.number,
            remediated_at=self._clock(),
        )
        self._logger.info("alert_pr_created", alert_id=alert_id, pr_url=pr.url, pr_number=pr.number)
        return alert

    def mark_failed(self, alert_id: int, error: str) -> VulnerabilityAlert:
        self._check(alert_id, RemediationStatus.FAILED)
        alert = self._store.update(
            alert_id,
            remediation_status=RemediationStatus.FAILED,
            remediation_error=error,
        )
        self._logger.info("alert_failed", alert_id=alert_id, error=error)
        return alert

    def request_retry(self, alert_id: int) -> VulnerabilityAlert:
        """Move a failed alert back to pending so a new attempt may run."""
        self._check(alert_id, RemediationStatus.PENDING)
        alert = self._store.update(
            alert_id,
            remediation_status=RemediationStatus.PENDING,
            remediation_error=None,
        )
        self._logger.info("alert_retry_requested", alert_id=alert_id)
        return alert

    def count_prs_created_on(self, repository_id: int, day: date) -> int:
        """Number of the repository's alerts that got a PR on `day` (UTC)."""
        count = 0
        for alert in self._store.list_by_repository(repository_id):
            if alert.remediation_status is not RemediationStatus.PR_CREATED or alert.remediated_at is None:
                continue
            stamp = alert.remediated_at
            if stamp.tzinfo is not None:
                stamp = stamp.astimezone(timezone.utc)
            if stamp.date() == day:
                count += 1
        return count

    def _check(self, alert_id: int, target: RemediationStatus) -> None:
        current = self.load(alert_id).remediation_status
        if target not in ALLOWED_TRANSITIONS[current]:
            raise InvalidStateTransitionError(alert_id, current.value, target.value)
