from __future__ import annotations

import json
from typing import Optional

import typer
from dotenv import load_dotenv

from .config import AppConfig
from .container import Container
from .cli_formatter import (
    format_alert_list,
    format_policy,
    format_remediation_outcome,
    format_validation_report,
)
from ..core.domain.exceptions import ConfigValidationError
from ..core.domain.models import (
    DEFAULT_SEVERITIES,
    PackageRule,
    PolicyUpdate,
    RemediationOutcome,
    RemediationStatus,
    Severity,
    VersionChange,
    Weekday,
)
from ..shared.to_jsonable import to_jsonable

load_dotenv()

app = typer.Typer(add_completion=False, no_args_is_help=True)
policy_app = typer.Typer(add_completion=False, no_args_is_help=True, help="Inspect and change auto-fix policy.")
app.add_typer(policy_app, name="policy")


def _load_config(*, console_output: bool = False, log_level: str | None = None) -> AppConfig:
    config = AppConfig()
    logging_updates: dict[str, object] = {}
    if console_output:
        logging_updates["console_output"] = True
    if log_level:
        logging_updates["level"] = log_level.upper()
    if logging_updates:
        config = config.model_copy(update={"logging": config.logging.model_copy(update=logging_updates)})
    return config


def _create_container(config: AppConfig) -> Container:
    container = Container()
    container.config.from_pydantic(config)
    container.init_resources()
    return container


def _require_token(config: AppConfig) -> None:
    if not config.github.token:
        typer.echo("Error: GitHub token required via DEPWARDEN_GITHUB__TOKEN", err=True)
        raise typer.Exit(code=2)


def _outcome_dict(outcome: RemediationOutcome) -> dict[str, object]:
    data = to_jsonable(outcome)
    data["status"] = outcome.status
    return data


def _echo_json(payload: object) -> None:
    typer.echo(json.dumps(to_jsonable(payload), ensure_ascii=False, indent=2))


@app.command()
def remediate(
    alert_id: int = typer.Argument(..., help="Alert id in the alert store"),
    force: bool = typer.Option(False, "--force", help="Skip the eligibility gate"),
    retry: bool = typer.Option(False, "--retry", help="Retry an alert whose last attempt failed"),
    log_level: str = typer.Option("INFO", "--log-level", help="Log level", case_sensitive=False),
    json_output: bool = typer.Option(False, "--json", help="Output result as JSON"),
):
    """Open a fix pull request for one alert."""
    config = _load_config(console_output=not json_output, log_level=log_level)
    _require_token(config)

    container = _create_container(config)
    uc = container.remediate_uc()
    try:
        outcome = uc.execute(alert_id, force=force, retry=retry)
    finally:
        uc.close()
        container.hosting().close()
        container.shutdown_resources()

    if json_output:
        typer.echo(json.dumps(_outcome_dict(outcome), ensure_ascii=False, indent=2))
    else:
        typer.echo(format_remediation_outcome(outcome))

    if not outcome.success and not outcome.skipped:
        raise typer.Exit(code=1)


@app.command()
def batch(
    repo: Optional[int] = typer.Option(None, "--repo", "-r", help="Only alerts of this repository"),
    ignore_schedule: bool = typer.Option(False, "--ignore-schedule", help="Run outside the configured schedule"),
    json_output: bool = typer.Option(False, "--json", help="Output results as JSON"),
):
    """Remediate every pending alert concurrently, honouring each repository's policy."""
    config = _load_config()
    _require_token(config)

    container = _create_container(config)
    uc = container.remediate_uc()
    try:
        pending = container.list_alerts_uc().execute(repository_id=repo, status=RemediationStatus.PENDING)
        if not pending:
            typer.echo("No pending alerts to remediate.")
            return
        if not json_output:
            typer.echo(f"Found {len(pending)} pending alerts. Starting batch remediation...")
        outcomes = uc.execute_many([a.id for a in pending], respect_schedule=not ignore_schedule)
    finally:
        uc.close()
        container.hosting().close()
        container.shutdown_resources()

    if json_output:
        typer.echo(json.dumps([_outcome_dict(o) for o in outcomes], ensure_ascii=False, indent=2))
    else:
        for outcome in outcomes:
            detail = outcome.pr_url or outcome.error or ""
            typer.echo(f"[{outcome.alert_id}] {outcome.status} {detail}".rstrip())

    created = sum(1 for o in outcomes if o.success)
    skipped = sum(1 for o in outcomes if o.skipped)
    failed = len(outcomes) - created - skipped
    if not json_output:
        typer.echo(f"\nBatch complete: {created} PRs created, {skipped} skipped, {failed} failed.")
    if failed:
        raise typer.Exit(code=1)


@app.command()
def alerts(
    repo: Optional[int] = typer.Option(None, "--repo", "-r", help="Only alerts of this repository"),
    status: Optional[RemediationStatus] = typer.Option(None, "--status", "-s", help="Filter by remediation status"),
    json_output: bool = typer.Option(False, "--json", help="Output result as JSON"),
):
    """List alerts and their remediation status."""
    container = _create_container(_load_config())
    try:
        items = container.list_alerts_uc().execute(repository_id=repo, status=status)
    finally:
        container.shutdown_resources()

    if json_output:
        _echo_json({"count": len(items), "alerts": items})
    else:
        typer.echo(format_alert_list(items))


@policy_app.command("show")
def policy_show(
    repository_id: int = typer.Argument(..., help="Repository id"),
    package: Optional[str] = typer.Option(None, "--package", "-p", help="Resolve for one package"),
    json_output: bool = typer.Option(False, "--json", help="Output result as JSON"),
):
    """Show the effective policy of a repository."""
    container = _create_container(_load_config())
    try:
        config = container.resolve_policy_uc().execute(repository_id, package)
    finally:
        container.shutdown_resources()

    if json_output:
        _echo_json(config)
    else:
        typer.echo(format_policy(config, package))


@policy_app.command("set")
def policy_set(
    repository_id: int = typer.Argument(..., help="Repository id"),
    enabled: Optional[bool] = typer.Option(None, "--enabled/--disabled", help="Turn auto-fix on or off"),
    severity: Optional[list[Severity]] = typer.Option(
        None, "--severity", case_sensitive=False, help="Allowed severity (repeatable)"
    ),
    max_daily_prs: Optional[int] = typer.Option(None, "--max-daily-prs", help="Daily PR limit (1-50)"),
    allow: Optional[list[str]] = typer.Option(None, "--allow", help="Allowed package (repeatable)"),
    exclude: Optional[list[str]] = typer.Option(None, "--exclude", help="Excluded package (repeatable)"),
    auto_merge: Optional[bool] = typer.Option(None, "--auto-merge/--no-auto-merge"),
    requires_review: Optional[bool] = typer.Option(None, "--requires-review/--no-requires-review"),
    test_required: Optional[bool] = typer.Option(None, "--test-required/--no-test-required"),
    branch_prefix: Optional[str] = typer.Option(None, "--branch-prefix", help="Fix branch prefix"),
    hour: Optional[list[int]] = typer.Option(None, "--hour", help="Schedule hour 0-23, UTC (repeatable)"),
    day: Optional[list[Weekday]] = typer.Option(None, "--day", case_sensitive=False, help="Schedule day (repeatable)"),
    json_output: bool = typer.Option(False, "--json", help="Output result as JSON"),
):
    """Validate and store a partial policy update."""
    update = PolicyUpdate(
        enabled=enabled,
        allowed_severities=frozenset(severity) if severity else None,
        auto_merge=auto_merge,
        requires_review=requires_review,
        max_daily_prs=max_daily_prs,
        test_required=test_required,
        allowed_packages=frozenset(allow) if allow else None,
        excluded_packages=frozenset(exclude) if exclude else None,
        branch_prefix=branch_prefix,
        schedule_hours=frozenset(hour) if hour else None,
        schedule_days=frozenset(day) if day else None,
    )

    container = _create_container(_load_config())
    try:
        result = container.update_policy_uc().execute(repository_id, update)
    except ConfigValidationError as e:
        for error in e.errors:
            typer.echo(f"Error: {error}", err=True)
        raise typer.Exit(code=1)
    finally:
        container.shutdown_resources()

    if json_output:
        _echo_json({"config": result.config, "warnings": result.warnings})
        return
    typer.echo(format_policy(result.config))
    for warning in result.warnings:
        typer.echo(f"Warning: {warning}", err=True)


@policy_app.command("add-rule")
def policy_add_rule(
    repository_id: int = typer.Argument(..., help="Repository id"),
    package: str = typer.Argument(..., help="Package the rule applies to"),
    severity: Optional[list[Severity]] = typer.Option(
        None, "--severity", case_sensitive=False, help="Allowed severity (repeatable)"
    ),
    max_version_change: VersionChange = typer.Option(
        VersionChange.MINOR, "--max-version-change", case_sensitive=False, help="Largest allowed bump"
    ),
    auto_merge: bool = typer.Option(False, "--auto-merge/--no-auto-merge"),
    requires_review: bool = typer.Option(True, "--requires-review/--no-requires-review"),
    test_required: bool = typer.Option(True, "--test-required/--no-test-required"),
):
    """Add a package-specific rule on top of the repository policy."""
    rule = PackageRule(
        package_name=package,
        allowed_severities=frozenset(severity) if severity else DEFAULT_SEVERITIES,
        auto_merge=auto_merge,
        requires_review=requires_review,
        test_required=test_required,
        max_version_change=max_version_change,
    )

    container = _create_container(_load_config())
    try:
        config = container.create_package_rule_uc().execute(repository_id, rule)
    except ConfigValidationError as e:
        for error in e.errors:
            typer.echo(f"Error: {error}", err=True)
        raise typer.Exit(code=1)
    finally:
        container.shutdown_resources()

    typer.echo(format_policy(config, package))


@policy_app.command("validate")
def policy_validate(
    repository_id: int = typer.Argument(..., help="Repository id"),
):
    """Validate the stored policy of a repository."""
    container = _create_container(_load_config())
    try:
        report = container.validate_policy_uc().execute(repository_id)
    finally:
        container.shutdown_resources()

    typer.echo(format_validation_report(report))
    if not report.is_valid:
        raise typer.Exit(code=1)
