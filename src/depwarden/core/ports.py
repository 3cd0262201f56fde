from __future__ import annotations

from typing import Any, Optional, Protocol

from .domain.models import (
    FileSnapshot,
    PullRequestRef,
    RemediationEvent,
    RuleRecord,
    VulnerabilityAlert,
)


class AlertStorePort(Protocol):
    """Port for the persisted alert records.

    The store owns its own consistency: every update is a single-record
    read-modify-write.
    """

    def get_by_id(self, alert_id: int) -> Optional[VulnerabilityAlert]:
        """Return the alert, or None if no record has this id."""
        ...

    def update(self, alert_id: int, **fields: Any) -> VulnerabilityAlert:
        """Apply field changes and return the updated alert.

        Raises:
            AlertNotFoundError: If no record has this id
        """
        ...

    def list_by_repository(self, repository_id: int) -> list[VulnerabilityAlert]:
        ...

    def list_all(self) -> list[VulnerabilityAlert]:
        ...


class ConfigStorePort(Protocol):
    """Port for auto-fix rule records keyed by repository id."""

    def list_rules(self, repository_id: int) -> list[RuleRecord]:
        ...

    def upsert_repository_rule(self, record: RuleRecord) -> RuleRecord:
        """Create or replace the repository-level (non package-specific) rule."""
        ...

    def add_rule(self, record: RuleRecord) -> RuleRecord:
        ...


class HostingPort(Protocol):
    """Port for the version-control hosting API.

    Implementations raise TransientAPIError for faults worth retrying and
    HostingAPIError for everything else.
    """

    host: str

    def get_default_branch(self, owner: str, repo: str) -> str:
        ...

    def get_ref_sha(self, owner: str, repo: str, ref: str) -> str:
        """Head commit SHA of a ref such as "heads/main"."""
        ...

    def create_ref(self, owner: str, repo: str, ref: str, sha: str) -> None:
        ...

    def get_file(self, owner: str, repo: str, path: str, ref: str) -> Optional[FileSnapshot]:
        """Return file content and revision marker, or None if the file does not exist."""
        ...

    def put_file(
        self,
        owner: str,
        repo: str,
        *,
        path: str,
        content: bytes,
        message: str,
        branch: str,
        sha: Optional[str] = None,
    ) -> str:
        """Create or update a file; with sha set, the write fails if the file changed."""
        ...

    def create_pull_request(
        self,
        owner: str,
        repo: str,
        *,
        title: str,
        head: str,
        base: str,
        body: str,
    ) -> PullRequestRef:
        ...


class RepositorySnapshotPort(Protocol):
    """Read access to one branch of one repository, as seen by the Fix Planner."""

    def read_file(self, path: str) -> Optional[FileSnapshot]:
        """Return the file, None if absent; raise if it could not be read."""
        ...


class NotifierPort(Protocol):
    """Fire-and-forget delivery of remediation events."""

    def notify(self, event: RemediationEvent) -> None:
        ...


class LoggerPort(Protocol):
    """Port for structured logging.

    Keyword arguments become fields of the structured record.
    """

    def debug(self, message: str, **kwargs: Any) -> None:
        ...

    def info(self, message: str, **kwargs: Any) -> None:
        ...

    def warning(self, message: str, **kwargs: Any) -> None:
        ...

    def error(self, message: str, exc_info: bool = False, **kwargs: Any) -> None:
        ...

    def exception(self, message: str, **kwargs: Any) -> None:
        ...
