from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Union


class Severity(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class AlertKind(str, Enum):
    SECURITY = "security"
    LICENSE = "license"


class RemediationStatus(str, Enum):
    PENDING = "pending"
    PR_CREATED = "pr_created"
    FAILED = "failed"


class Weekday(str, Enum):
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @classmethod
    def from_datetime(cls, moment: datetime) -> "Weekday":
        return list(cls)[moment.weekday()]


class VersionChange(str, Enum):
    """Size of a version bump, ordered from smallest to largest."""
    NONE = "none"
    PATCH = "patch"
    MINOR = "minor"
    MAJOR = "major"

    @property
    def rank(self) -> int:
        return list(VersionChange).index(self)


@dataclass(frozen=True)
class RepositoryCoordinates:
    """Owner/name pair addressing a repository on the hosting service."""
    owner: str
    name: str

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.name}"


@dataclass(frozen=True)
class PullRequestRef:
    url: str
    number: int


@dataclass(frozen=True)
class VulnerabilityAlert:
    """A detected vulnerability or license-change record for one dependency.

    Produced by the scanner; only the remediation fields are ever mutated here,
    and only through the AlertStateTracker.
    """
    id: int
    repository_id: int
    repository_url: str
    dependency_name: str
    alert_type: AlertKind
    severity: Severity
    description: str | None = None
    fixed_version: str | None = None
    current_version: str | None = None

    remediation_status: RemediationStatus = RemediationStatus.PENDING
    remediation_error: str | None = None
    pr_url: str | None = None
    pr_number: int | None = None
    remediated_at: datetime | None = None

    @property
    def pull_request(self) -> PullRequestRef | None:
        if self.pr_url is None or self.pr_number is None:
            return None
        return PullRequestRef(url=self.pr_url, number=self.pr_number)


@dataclass(frozen=True)
class NotificationSettings:
    on_success: bool = True
    on_failure: bool = True
    on_review: bool = True


DEFAULT_SCHEDULE_DAYS = frozenset(
    {Weekday.MONDAY, Weekday.TUESDAY, Weekday.WEDNESDAY, Weekday.THURSDAY, Weekday.FRIDAY}
)


@dataclass(frozen=True)
class ScheduleSettings:
    """Hours (0-23, UTC) and weekdays in which scheduled runs may open PRs."""
    enabled: bool = True
    hours: frozenset[int] = frozenset({9, 14})
    days: frozenset[Weekday] = DEFAULT_SCHEDULE_DAYS

    def permits(self, moment: datetime) -> bool:
        if not self.enabled:
            return True
        return moment.hour in self.hours and Weekday.from_datetime(moment) in self.days


DEFAULT_SEVERITIES = frozenset({Severity.CRITICAL, Severity.HIGH})
DEFAULT_EXCLUDED_PACKAGES = frozenset({"webpack", "babel-core", "typescript"})


@dataclass(frozen=True)
class RepositoryAutoFixConfig:
    """Effective auto-fix policy for one repository (optionally one package)."""
    repository_id: int
    enabled: bool = True
    allowed_severities: frozenset[Severity] = DEFAULT_SEVERITIES
    auto_merge: bool = False
    requires_review: bool = True
    max_daily_prs: int = 5
    test_required: bool = True
    allowed_packages: frozenset[str] = frozenset()
    excluded_packages: frozenset[str] = DEFAULT_EXCLUDED_PACKAGES
    branch_prefix: str = "security-fix"
    notifications: NotificationSettings = field(default_factory=NotificationSettings)
    schedule: ScheduleSettings = field(default_factory=ScheduleSettings)
    max_version_change: VersionChange | None = None


@dataclass(frozen=True)
class PolicyUpdate:
    """Partial configuration; fields left as None keep their current value."""
    enabled: bool | None = None
    allowed_severities: frozenset[Severity] | None = None
    auto_merge: bool | None = None
    requires_review: bool | None = None
    max_daily_prs: int | None = None
    test_required: bool | None = None
    allowed_packages: frozenset[str] | None = None
    excluded_packages: frozenset[str] | None = None
    branch_prefix: str | None = None
    schedule_hours: frozenset[int] | None = None
    schedule_days: frozenset[Weekday] | None = None
    notifications: NotificationSettings | None = None


@dataclass(frozen=True)
class PackageRule:
    """Package-scoped override layered on top of the repository config."""
    package_name: str
    enabled: bool = True
    allowed_severities: frozenset[Severity] = DEFAULT_SEVERITIES
    auto_merge: bool = False
    requires_review: bool = True
    test_required: bool = True
    max_version_change: VersionChange = VersionChange.MINOR


@dataclass(frozen=True)
class RuleRecord:
    """Config Store row. Repository-level rules have package_specific=False."""
    repository_id: int
    enabled: bool
    severities: tuple[Severity, ...]
    auto_merge: bool
    requires_review: bool
    max_daily_prs: int
    test_required: bool
    allowed_packages: tuple[str, ...] = ()
    excluded_packages: tuple[str, ...] = ()
    branch_prefix: str = "security-fix"
    schedule_enabled: bool = True
    schedule_hours: tuple[int, ...] = (9, 14)
    schedule_days: tuple[Weekday, ...] = (
        Weekday.MONDAY, Weekday.TUESDAY, Weekday.WEDNESDAY, Weekday.THURSDAY, Weekday.FRIDAY,
    )
    notify_on_success: bool = True
    notify_on_failure: bool = True
    notify_on_review: bool = True
    package_specific: bool = False
    max_version_change: VersionChange | None = None
    id: int | None = None


@dataclass(frozen=True)
class ValidationReport:
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()

    @property
    def is_valid(self) -> bool:
        return not self.errors


@dataclass(frozen=True)
class BulkUpdateResult:
    successful: int
    failed: int
    errors: tuple[str, ...] = ()


@dataclass(frozen=True)
class PolicyUpdateResult:
    config: RepositoryAutoFixConfig
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class EligibilityDecision:
    allowed: bool
    reasons: tuple[str, ...] = ()
    breaking_change: bool = False


@dataclass(frozen=True)
class FileSnapshot:
    """File content on a branch together with its revision marker (blob SHA)."""
    path: str
    content: bytes
    revision: str


@dataclass(frozen=True)
class StructuredEdit:
    """Rewrite of a file we understood; base_revision makes the write a compare-and-swap."""
    path: str
    content: bytes
    base_revision: str | None
    message: str


@dataclass(frozen=True)
class AdvisoryNoteEdit:
    """Free-text note for the reviewer, created unconditionally."""
    path: str
    content: bytes
    message: str


FileEdit = Union[StructuredEdit, AdvisoryNoteEdit]


@dataclass(frozen=True)
class FixPlan:
    dependency_name: str
    from_version: str | None
    to_version: str
    edits: tuple[FileEdit, ...]
    title: str
    description: str
    breaking_change: bool = False
    degraded: bool = False
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class RemediationOutcome:
    """Structured result of one remediation attempt; never an exception."""
    alert_id: int
    success: bool
    branch_name: str | None = None
    pr_url: str | None = None
    pr_number: int | None = None
    error: str | None = None
    skipped: bool = False
    warnings: tuple[str, ...] = ()

    @property
    def status(self) -> str:
        if self.skipped:
            return "skipped"
        return RemediationStatus.PR_CREATED.value if self.success else RemediationStatus.FAILED.value


@dataclass(frozen=True)
class RemediationEvent:
    """Payload handed to the Notifier."""
    alert_id: int
    outcome: str
    pr_url: str | None = None
    error: str | None = None
