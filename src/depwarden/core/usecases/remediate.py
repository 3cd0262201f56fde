from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional

from ..domain.exceptions import DepwardenError
from ..domain.models import (
    EligibilityDecision,
    RemediationEvent,
    RemediationOutcome,
    RemediationStatus,
    RepositoryAutoFixConfig,
    VulnerabilityAlert,
)
from ..ports import LoggerPort, NotifierPort
from ..services import AlertStateTracker, PolicyResolver, RemediationExecutor, ResilienceLayer


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RemediateUseCase:
    """Entry point for remediation attempts.

    Applies the eligibility gate, runs the executor and notifies. Concurrent
    requests for the same alert share a single attempt.
    """

    def __init__(
        self,
        *,
        executor: RemediationExecutor,
        policy: PolicyResolver,
        tracker: AlertStateTracker,
        resilience: ResilienceLayer,
        notifier: NotifierPort,
        logger: LoggerPort,
        max_workers: int = 4,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._executor = executor
        self._policy = policy
        self._tracker = tracker
        self._resilience = resilience
        self._notifier = notifier
        self._logger = logger
        self._max_workers = max_workers
        self._clock = clock
        self._pool: Optional[ThreadPoolExecutor] = None
        self._pool_lock = threading.Lock()
        self._quota_lock = threading.Lock()
        self._in_flight: dict[int, int] = {}

    def execute(
        self,
        alert_id: int,
        *,
        force: bool = False,
        retry: bool = False,
        respect_schedule: bool = False,
    ) -> RemediationOutcome:
        """Run one attempt inline.

        Args:
            alert_id: Alert Store id
            force: Skip the eligibility gate (manual trigger)
            retry: Re-enter pending when the alert previously failed
            respect_schedule: Deny outside the configured schedule window

        Returns:
            Structured outcome; never raises for remediation failures
        """
        return self._resilience.deduplicate(
            f"alert:{alert_id}",
            lambda: self._attempt(alert_id, force=force, retry=retry, respect_schedule=respect_schedule),
        )

    def submit(self, alert_id: int, **options: bool) -> Future[RemediationOutcome]:
        """Schedule an attempt on the worker pool and return its handle."""
        return self._worker_pool().submit(self.execute, alert_id, **options)

    def execute_many(self, alert_ids: Iterable[int], **options: bool) -> list[RemediationOutcome]:
        """Run attempts concurrently; outcomes come back in input order."""
        futures = [self.submit(alert_id, **options) for alert_id in alert_ids]
        return [future.result() for future in futures]

    def close(self) -> None:
        with self._pool_lock:
            pool, self._pool = self._pool, None
        if pool is not None:
            pool.shutdown(wait=True)

    def _worker_pool(self) -> ThreadPoolExecutor:
        with self._pool_lock:
            if self._pool is None:
                self._pool = ThreadPoolExecutor(
                    max_workers=self._max_workers,
                    thread_name_prefix="depwarden-remediate",
                )
            return self._pool

    def _attempt(
        self,
        alert_id: int,
        *,
        force: bool,
        retry: bool,
        respect_schedule: bool,
    ) -> RemediationOutcome:
        reserved: Optional[int] = None
        try:
            alert = self._tracker.load(alert_id)
            if retry and alert.remediation_status is RemediationStatus.FAILED:
                alert = self._tracker.request_retry(alert_id)
            config = self._policy.resolve(alert.repository_id, alert.dependency_name)

            # Settled alerts are reported as they are, without side effects.
            if alert.remediation_status is not RemediationStatus.PENDING:
                return self._executor.execute(alert_id, branch_prefix=config.branch_prefix)

            if not force:
                decision = self._admit(alert, config, respect_schedule=respect_schedule)
                if not decision.allowed:
                    self._logger.info("remediation_skipped", alert_id=alert_id, reasons=list(decision.reasons))
                    return RemediationOutcome(
                        alert_id=alert_id,
                        success=False,
                        skipped=True,
                        error="; ".join(decision.reasons),
                    )
                reserved = alert.repository_id
        except Exception as exc:
            message = str(exc) or exc.__class__.__name__
            if isinstance(exc, DepwardenError):
                self._logger.warning("remediation_failed", alert_id=alert_id, error=message)
            else:
                self._logger.exception("remediation_failed", alert_id=alert_id, error=message)
            return RemediationOutcome(alert_id=alert_id, success=False, error=message)

        try:
            outcome = self._executor.execute(alert_id, branch_prefix=config.branch_prefix)
        finally:
            if reserved is not None:
                self._release(reserved)
        self._notify(outcome, config)
        return outcome

    def _admit(
        self,
        alert: VulnerabilityAlert,
        config: RepositoryAutoFixConfig,
        *,
        respect_schedule: bool,
    ) -> EligibilityDecision:
        # Attempts in flight hold a slot of the daily quota until they finish.
        with self._quota_lock:
            now = self._clock()
            in_flight = self._in_flight.get(alert.repository_id, 0)
            decision = self._policy.evaluate(
                alert,
                config,
                prs_today=self._tracker.count_prs_created_on(alert.repository_id, now.date()) + in_flight,
                now=now,
                respect_schedule=respect_schedule,
            )
            if decision.allowed:
                self._in_flight[alert.repository_id] = in_flight + 1
            return decision

    def _release(self, repository_id: int) -> None:
        with self._quota_lock:
            remaining = self._in_flight.get(repository_id, 0) - 1
            if remaining > 0:
                self._in_flight[repository_id] = remaining
            else:
                self._in_flight.pop(repository_id, None)

    def _notify(self, outcome: RemediationOutcome, config: RepositoryAutoFixConfig) -> None:
        events: list[RemediationEvent] = []
        settings = config.notifications
        if outcome.success:
            if settings.on_success:
                events.append(RemediationEvent(alert_id=outcome.alert_id, outcome="pr_created", pr_url=outcome.pr_url))
            if settings.on_review and config.requires_review:
                events.append(
                    RemediationEvent(alert_id=outcome.alert_id, outcome="review_required", pr_url=outcome.pr_url)
                )
        elif settings.on_failure:
            events.append(RemediationEvent(alert_id=outcome.alert_id, outcome="failed", error=outcome.error))

        for event in events:
            try:
                self._notifier.notify(event)
            except Exception:
                self._logger.exception("notification_failed", alert_id=event.alert_id, outcome=event.outcome)
