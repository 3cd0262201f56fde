from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Iterable, Optional

from ..domain.exceptions import ConfigValidationError
from ..domain.models import (
    BulkUpdateResult,
    EligibilityDecision,
    NotificationSettings,
    PackageRule,
    PolicyUpdate,
    RepositoryAutoFixConfig,
    RuleRecord,
    ScheduleSettings,
    Severity,
    ValidationReport,
    VersionChange,
    VulnerabilityAlert,
    Weekday,
)
from ..domain.versions import classify_change, is_breaking_change, resolve_target_version
from ..ports import ConfigStorePort, LoggerPort


MIN_DAILY_PRS = 1
MAX_DAILY_PRS = 50


def default_config(repository_id: int) -> RepositoryAutoFixConfig:
    """Built-in defaults used when a repository has no stored rule."""
    return RepositoryAutoFixConfig(repository_id=repository_id)


def config_from_record(record: RuleRecord) -> RepositoryAutoFixConfig:
    return RepositoryAutoFixConfig(
        repository_id=record.repository_id,
        enabled=record.enabled,
        allowed_severities=frozenset(record.severities),
        auto_merge=record.auto_merge,
        requires_review=record.requires_review,
        max_daily_prs=record.max_daily_prs,
        test_required=record.test_required,
        allowed_packages=frozenset(record.allowed_packages),
        excluded_packages=frozenset(record.excluded_packages),
        branch_prefix=record.branch_prefix,
        notifications=NotificationSettings(
            on_success=record.notify_on_success,
            on_failure=record.notify_on_failure,
            on_review=record.notify_on_review,
        ),
        schedule=ScheduleSettings(
            enabled=record.schedule_enabled,
            hours=frozenset(record.schedule_hours),
            days=frozenset(record.schedule_days),
        ),
    )


def record_from_config(config: RepositoryAutoFixConfig) -> RuleRecord:
    return RuleRecord(
        repository_id=config.repository_id,
        enabled=config.enabled,
        severities=_ordered_severities(config.allowed_severities),
        auto_merge=config.auto_merge,
        requires_review=config.requires_review,
        max_daily_prs=config.max_daily_prs,
        test_required=config.test_required,
        allowed_packages=tuple(sorted(config.allowed_packages)),
        excluded_packages=tuple(sorted(config.excluded_packages)),
        branch_prefix=config.branch_prefix,
        schedule_enabled=config.schedule.enabled,
        schedule_hours=tuple(sorted(config.schedule.hours)),
        schedule_days=tuple(d for d in Weekday if d in config.schedule.days),
        notify_on_success=config.notifications.on_success,
        notify_on_failure=config.notifications.on_failure,
        notify_on_review=config.notifications.on_review,
    )


def _ordered_severities(severities: Iterable[Severity]) -> tuple[Severity, ...]:
    chosen = set(severities)
    return tuple(s for s in Severity if s in chosen)


def apply_update(config: RepositoryAutoFixConfig, update: PolicyUpdate) -> RepositoryAutoFixConfig:
    """Overlay the non-None fields of `update` onto `config`."""
    changes: dict[str, object] = {}
    for name in (
        "enabled",
        "allowed_severities",
        "auto_merge",
        "requires_review",
        "max_daily_prs",
        "test_required",
        "allowed_packages",
        "excluded_packages",
        "branch_prefix",
        "notifications",
    ):
        value = getattr(update, name)
        if value is not None:
            changes[name] = value

    schedule = config.schedule
    if update.schedule_hours is not None:
        schedule = replace(schedule, hours=frozenset(update.schedule_hours))
    if update.schedule_days is not None:
        schedule = replace(schedule, days=frozenset(update.schedule_days))
    changes["schedule"] = schedule

    return replace(config, **changes)


class PolicyResolver:
    """Loads, merges, validates and evaluates per-repository auto-fix policy.

    Resolution order: package-specific rule > repository rule > built-in defaults.
    """

    def __init__(self, *, config_store: ConfigStorePort, logger: LoggerPort) -> None:
        self._store = config_store
        self._logger = logger

    def resolve(self, repository_id: int, package: Optional[str] = None) -> RepositoryAutoFixConfig:
        """Return the effective policy for a repository, optionally for one package."""
        records = self._store.list_rules(repository_id)
        base = next((r for r in records if not r.package_specific), None)
        config = config_from_record(base) if base is not None else default_config(repository_id)

        if package is None:
            return config
        rule = self._package_record(records, package)
        if rule is None:
            return config
        return self._merge_package_rule(config, rule, package)

    def package_rule(self, repository_id: int, package: str) -> Optional[PackageRule]:
        record = self._package_record(self._store.list_rules(repository_id), package)
        if record is None:
            return None
        return PackageRule(
            package_name=package,
            enabled=record.enabled,
            allowed_severities=frozenset(record.severities),
            auto_merge=record.auto_merge,
            requires_review=record.requires_review,
            test_required=record.test_required,
            max_version_change=record.max_version_change or VersionChange.MINOR,
        )

    def validate(self, config: RepositoryAutoFixConfig) -> ValidationReport:
        """Check invariants. Errors block persistence; warnings are advisory."""
        errors: list[str] = []
        warnings: list[str] = []

        if not MIN_DAILY_PRS <= config.max_daily_prs <= MAX_DAILY_PRS:
            errors.append(f"Max daily PRs must be between {MIN_DAILY_PRS} and {MAX_DAILY_PRS}")

        if not config.allowed_severities:
            errors.append("At least one severity level must be allowed")

        overlap = sorted(config.allowed_packages & config.excluded_packages)
        if overlap:
            errors.append(f"Packages cannot be both allowed and excluded: {', '.join(overlap)}")

        bad_hours = sorted(h for h in config.schedule.hours if not 0 <= h <= 23)
        if bad_hours:
            errors.append(f"Schedule hours must be between 0 and 23: {', '.join(map(str, bad_hours))}")

        if not config.branch_prefix.strip():
            errors.append("Branch prefix must not be empty")

        if config.auto_merge and not config.test_required:
            warnings.append("Auto-merge without required testing is not recommended")

        if not config.requires_review and Severity.CRITICAL in config.allowed_severities:
            warnings.append("Critical vulnerabilities should require manual review")

        return ValidationReport(errors=tuple(errors), warnings=tuple(warnings))

    def update(self, repository_id: int, update: PolicyUpdate) -> RepositoryAutoFixConfig:
        """Validate and persist a partial update of the repository-level rule.

        Raises:
            ConfigValidationError: If the merged config breaks an invariant; nothing is stored
        """
        current = self.resolve(repository_id)
        candidate = apply_update(current, update)
        report = self.validate(candidate)
        if not report.is_valid:
            self._logger.warning(
                "policy_rejected",
                repository_id=repository_id,
                errors=list(report.errors),
            )
            raise ConfigValidationError(report.errors, report.warnings)

        self._store.upsert_repository_rule(record_from_config(candidate))
        self._logger.info(
            "policy_updated",
            repository_id=repository_id,
            warnings=list(report.warnings),
        )
        return self.resolve(repository_id)

    def bulk_update(self, updates: Iterable[tuple[int, PolicyUpdate]]) -> BulkUpdateResult:
        """Apply independent updates; one failing repository never blocks the rest."""
        successful = 0
        failed = 0
        errors: list[str] = []
        for repository_id, update in updates:
            try:
                self.update(repository_id, update)
            except Exception as exc:
                failed += 1
                errors.append(f"Repository {repository_id}: {exc}")
                self._logger.error("policy_bulk_update_failed", repository_id=repository_id, error=str(exc))
            else:
                successful += 1
        return BulkUpdateResult(successful=successful, failed=failed, errors=tuple(errors))

    def create_package_rule(self, repository_id: int, rule: PackageRule) -> None:
        if not rule.allowed_severities:
            raise ConfigValidationError(["At least one severity level must be allowed"])
        base = self.resolve(repository_id)
        record = RuleRecord(
            repository_id=repository_id,
            enabled=rule.enabled,
            severities=_ordered_severities(rule.allowed_severities),
            auto_merge=rule.auto_merge,
            requires_review=rule.requires_review,
            max_daily_prs=base.max_daily_prs,
            test_required=rule.test_required,
            allowed_packages=(rule.package_name,),
            branch_prefix=base.branch_prefix,
            package_specific=True,
            max_version_change=rule.max_version_change,
        )
        self._store.add_rule(record)
        self._logger.info(
            "package_rule_created",
            repository_id=repository_id,
            package=rule.package_name,
            max_version_change=rule.max_version_change.value,
        )

    def evaluate(
        self,
        alert: VulnerabilityAlert,
        config: RepositoryAutoFixConfig,
        *,
        prs_today: int,
        now: datetime,
        respect_schedule: bool = False,
    ) -> EligibilityDecision:
        """Decide whether the alert may be fixed automatically under `config`."""
        reasons: list[str] = []
        package = alert.dependency_name
        target = resolve_target_version(alert)

        if not config.enabled:
            reasons.append("Auto-fix is disabled for this repository")
        if alert.severity not in config.allowed_severities:
            reasons.append(f"Severity {alert.severity.value} is not allowed for auto-fix")
        if package in config.excluded_packages:
            reasons.append(f"Package {package} is excluded from auto-fix")
        if config.allowed_packages and package not in config.allowed_packages:
            reasons.append(f"Package {package} is not in the allowed package list")
        if prs_today >= config.max_daily_prs:
            reasons.append(f"Daily PR limit reached ({prs_today}/{config.max_daily_prs})")
        if respect_schedule and not config.schedule.permits(now):
            reasons.append("Outside the configured auto-fix schedule")

        if config.max_version_change is not None:
            change = classify_change(alert.current_version, target)
            if change is not None and change.rank > config.max_version_change.rank:
                reasons.append(
                    f"Version change {change.value} exceeds allowed {config.max_version_change.value}"
                )

        return EligibilityDecision(
            allowed=not reasons,
            reasons=tuple(reasons),
            breaking_change=is_breaking_change(alert.current_version, target),
        )

    @staticmethod
    def _package_record(records: list[RuleRecord], package: str) -> Optional[RuleRecord]:
        for record in records:
            if record.package_specific and package in record.allowed_packages:
                return record
        return None

    @staticmethod
    def _merge_package_rule(
        config: RepositoryAutoFixConfig, rule: RuleRecord, package: str
    ) -> RepositoryAutoFixConfig:
        allowed = config.allowed_packages
        if allowed:
            allowed = allowed | {package}
        return replace(
            config,
            enabled=rule.enabled,
            allowed_severities=frozenset(rule.severities),
            auto_merge=rule.auto_merge,
            requires_review=rule.requires_review,
            test_required=rule.test_required,
            allowed_packages=allowed,
            excluded_packages=config.excluded_packages - {package},
            max_version_change=rule.max_version_change,
        )
