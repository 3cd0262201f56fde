from __future__ import annotations

import time
from typing import Callable, Optional, TypeVar

from ..domain.exceptions import AlertNotFoundError, DepwardenError
from ..domain.models import (
    AdvisoryNoteEdit,
    FileEdit,
    FileSnapshot,
    RemediationOutcome,
    RemediationStatus,
    RepositoryCoordinates,
    VulnerabilityAlert,
)
from ..domain.pull_request import build_branch_name
from ..domain.repository import parse_repository_url
from ..ports import HostingPort, LoggerPort
from .alert_tracker import AlertStateTracker
from .fix_planner import FixPlanner
from .resilience import ResilienceLayer


T = TypeVar("T")


class BranchSnapshot:
    """Read-only view of one branch, served through the resilience layer."""

    def __init__(
        self,
        *,
        hosting: HostingPort,
        resilience: ResilienceLayer,
        repository: RepositoryCoordinates,
        ref: str,
    ) -> None:
        self._hosting = hosting
        self._resilience = resilience
        self._repository = repository
        self._ref = ref

    def read_file(self, path: str) -> Optional[FileSnapshot]:
        return self._resilience.execute(
            lambda: self._hosting.get_file(self._repository.owner, self._repository.name, path, self._ref),
            key=f"{self._hosting.host}:get_file",
        )


class RemediationExecutor:
    """Runs one remediation attempt end to end.

    Steps run strictly in order and every hosting call is wrapped on its own by
    the resilience layer. Any terminal failure is recorded on the alert and
    returned as an outcome. A branch or commits created before the failure are
    left in place.
    """

    def __init__(
        self,
        *,
        hosting: HostingPort,
        resilience: ResilienceLayer,
        planner: FixPlanner,
        tracker: AlertStateTracker,
        logger: LoggerPort,
        clock: Callable[[], int] = time.time_ns,
    ) -> None:
        self._hosting = hosting
        self._resilience = resilience
        self._planner = planner
        self._tracker = tracker
        self._logger = logger
        self._clock = clock

    def execute(
        self,
        alert_id: int,
        *,
        repository_url: Optional[str] = None,
        branch_prefix: str = "security-fix",
    ) -> RemediationOutcome:
        """Remediate one alert. Never raises.

        Args:
            alert_id: Alert Store id
            repository_url: Overrides the URL stored on the alert
            branch_prefix: Prefix of the fix branch name

        Returns:
            Outcome with PR details on success, the error message otherwise
        """
        branch_name: Optional[str] = None
        alert: Optional[VulnerabilityAlert] = None
        try:
            # 1-2) Data checks; never retried
            alert = self._tracker.load(alert_id)
            settled = self._settled_outcome(alert)
            if settled is not None:
                return settled
            repository = parse_repository_url(repository_url or alert.repository_url)

            self._logger.info(
                "remediation_started",
                alert_id=alert_id,
                repository=repository.slug,
                dependency=alert.dependency_name,
                severity=alert.severity.value,
            )

            # 3) Branch name
            branch_name = build_branch_name(branch_prefix, alert.dependency_name, self._clock())

            # 4) Default branch and its head
            default_branch = self._call(
                "get_repository",
                lambda: self._hosting.get_default_branch(repository.owner, repository.name),
            )
            head_sha = self._call(
                "get_ref",
                lambda: self._hosting.get_ref_sha(repository.owner, repository.name, f"heads/{default_branch}"),
            )

            # 5) New branch
            self._call(
                "create_ref",
                lambda: self._hosting.create_ref(
                    repository.owner, repository.name, f"refs/heads/{branch_name}", head_sha
                ),
            )
            self._logger.info(
                "branch_created",
                alert_id=alert_id,
                branch=branch_name,
                base=default_branch,
                sha=head_sha,
            )

            # 6) Plan against the new branch and write every edit
            snapshot = BranchSnapshot(
                hosting=self._hosting,
                resilience=self._resilience,
                repository=repository,
                ref=branch_name,
            )
            plan = self._planner.plan(alert, snapshot)
            for edit in plan.edits:
                self._write(repository, branch_name, edit, snapshot)
                self._logger.info(
                    "file_written",
                    alert_id=alert_id,
                    path=edit.path,
                    advisory=isinstance(edit, AdvisoryNoteEdit),
                )

            # 7) Pull request
            pr = self._call(
                "create_pull_request",
                lambda: self._hosting.create_pull_request(
                    repository.owner,
                    repository.name,
                    title=plan.title,
                    head=branch_name,
                    base=default_branch,
                    body=plan.description,
                ),
            )
            self._logger.info(
                "pull_request_opened",
                alert_id=alert_id,
                pr_url=pr.url,
                pr_number=pr.number,
                degraded=plan.degraded,
            )

            # 8) Persist success
            self._tracker.mark_pr_created(alert_id, pr)
            return RemediationOutcome(
                alert_id=alert_id,
                success=True,
                branch_name=branch_name,
                pr_url=pr.url,
                pr_number=pr.number,
                warnings=plan.warnings,
            )

        except Exception as exc:
            return self._fail(alert_id, exc, branch_name=branch_name, alert_known=alert is not None)

    def _settled_outcome(self, alert: VulnerabilityAlert) -> Optional[RemediationOutcome]:
        if alert.remediation_status is RemediationStatus.PR_CREATED:
            return RemediationOutcome(
                alert_id=alert.id,
                success=True,
                pr_url=alert.pr_url,
                pr_number=alert.pr_number,
            )
        if alert.remediation_status is RemediationStatus.FAILED:
            return RemediationOutcome(
                alert_id=alert.id,
                success=False,
                error=f"Alert already failed: {alert.remediation_error or 'unknown error'}; request a retry",
            )
        return None

    def _call(self, operation: str, fn: Callable[[], T]) -> T:
        return self._resilience.execute(fn, key=f"{self._hosting.host}:{operation}")

    def _write(
        self,
        repository: RepositoryCoordinates,
        branch: str,
        edit: FileEdit,
        snapshot: BranchSnapshot,
    ) -> None:
        # Structured edits are compare-and-swap against the revision they were planned from.
        # A note left on the base branch by an earlier fix is overwritten at its current revision.
        if isinstance(edit, AdvisoryNoteEdit):
            existing = snapshot.read_file(edit.path)
            sha = existing.revision if existing is not None else None
        else:
            sha = edit.base_revision
        self._call(
            "put_file",
            lambda: self._hosting.put_file(
                repository.owner,
                repository.name,
                path=edit.path,
                content=edit.content,
                message=edit.message,
                branch=branch,
                sha=sha,
            ),
        )

    def _fail(
        self,
        alert_id: int,
        exc: Exception,
        *,
        branch_name: Optional[str],
        alert_known: bool,
    ) -> RemediationOutcome:
        message = str(exc) or exc.__class__.__name__
        log = self._logger.warning if isinstance(exc, DepwardenError) else self._logger.exception
        log(
            "remediation_failed",
            alert_id=alert_id,
            error=message,
            error_type=exc.__class__.__name__,
            branch=branch_name,
        )
        if alert_known and not isinstance(exc, AlertNotFoundError):
            try:
                self._tracker.mark_failed(alert_id, message)
            except Exception:
                self._logger.exception("alert_status_update_failed", alert_id=alert_id)
        return RemediationOutcome(
            alert_id=alert_id,
            success=False,
            branch_name=branch_name,
            error=message,
        )
