"""CLI output formatting utilities for human-readable display."""

from __future__ import annotations

from ..core.domain.models import (
    RemediationOutcome,
    RepositoryAutoFixConfig,
    ValidationReport,
    VulnerabilityAlert,
)


def format_remediation_outcome(outcome: RemediationOutcome) -> str:
    """Format a remediation outcome for human-readable CLI output."""
    lines = []
    lines.append("=" * 80)
    lines.append("REMEDIATION RESULT")
    lines.append("=" * 80)

    lines.append(f"\nAlert ID: {outcome.alert_id}")
    lines.append(f"Status: {outcome.status.upper()}")

    if outcome.branch_name:
        lines.append(f"Branch: {outcome.branch_name}")
    if outcome.pr_url:
        lines.append(f"Pull Request: #{outcome.pr_number} {outcome.pr_url}")
    if outcome.error:
        label = "Reason" if outcome.skipped else "Error"
        lines.append(f"\n{label}:\n{outcome.error}")
    if outcome.warnings:
        lines.append("\nWarnings:")
        for i, warning in enumerate(outcome.warnings, 1):
            lines.append(f"  {i}. {warning}")

    lines.append("\n" + "=" * 80)
    return "\n".join(lines)


def format_alert_list(alerts: list[VulnerabilityAlert]) -> str:
    """Format alerts as a fixed-width table."""
    if not alerts:
        return "No alerts found."

    lines = []
    lines.append(f"Found {len(alerts)} alerts:")
    lines.append("")
    lines.append("-" * 100)
    lines.append(
        f"{'ID':>6} {'Repo':>6} {'Dependency':<30} {'Severity':<10} {'Status':<12} {'PR':<30}"
    )
    lines.append("-" * 100)

    for a in alerts:
        dependency = a.dependency_name
        if len(dependency) > 30:
            dependency = dependency[:27] + "..."
        pr = f"#{a.pr_number}" if a.pr_number is not None else "-"
        lines.append(
            f"{a.id:>6} {a.repository_id:>6} {dependency:<30} {a.severity.value:<10} "
            f"{a.remediation_status.value:<12} {pr:<30}"
        )

    lines.append("-" * 100)
    return "\n".join(lines)


def format_policy(config: RepositoryAutoFixConfig, package: str | None = None) -> str:
    """Format an effective policy for display."""
    scope = f"repository {config.repository_id}"
    if package:
        scope += f", package {package}"

    def _names(values) -> str:
        return ", ".join(sorted(str(getattr(v, "value", v)) for v in values)) or "(none)"

    lines = [
        f"Auto-fix policy for {scope}",
        "",
        f"  Enabled:            {'yes' if config.enabled else 'no'}",
        f"  Severities:         {_names(config.allowed_severities)}",
        f"  Auto-merge:         {'yes' if config.auto_merge else 'no'}",
        f"  Requires review:    {'yes' if config.requires_review else 'no'}",
        f"  Tests required:     {'yes' if config.test_required else 'no'}",
        f"  Max daily PRs:      {config.max_daily_prs}",
        f"  Allowed packages:   {_names(config.allowed_packages)}",
        f"  Excluded packages:  {_names(config.excluded_packages)}",
        f"  Branch prefix:      {config.branch_prefix}",
        f"  Schedule:           {'on' if config.schedule.enabled else 'off'}"
        f" (hours {', '.join(map(str, sorted(config.schedule.hours)))}; days {_names(config.schedule.days)})",
    ]
    if config.max_version_change is not None:
        lines.append(f"  Max version change: {config.max_version_change.value}")
    return "\n".join(lines)


def format_validation_report(report: ValidationReport) -> str:
    if report.is_valid and not report.warnings:
        return "Configuration is valid."

    lines = ["Configuration is valid." if report.is_valid else "Configuration is invalid."]
    for error in report.errors:
        lines.append(f"  error: {error}")
    for warning in report.warnings:
        lines.append(f"  warning: {warning}")
    return "\n".join(lines)
