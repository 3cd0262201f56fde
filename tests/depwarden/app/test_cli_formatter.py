from depwarden.app.cli_formatter import (
    format_alert_list,
    format_policy,
    format_remediation_outcome,
    format_validation_report,
)
from depwarden.core.domain.models import (
    RemediationOutcome,
    RepositoryAutoFixConfig,
    ValidationReport,
    VersionChange,
)

from tests.depwarden.app.conftest import make_alert


def test_format_successful_outcome():
    text = format_remediation_outcome(
        RemediationOutcome(
            alert_id=1,
            success=True,
            branch_name="security-fix-leftpad-1",
            pr_url="https://github.com/acme/shop/pull/3",
            pr_number=3,
            warnings=("Could not check package-lock.json",),
        )
    )

    assert "REMEDIATION RESULT" in text
    assert "Status: PR_CREATED" in text
    assert "Branch: security-fix-leftpad-1" in text
    assert "Pull Request: #3 https://github.com/acme/shop/pull/3" in text
    assert "1. Could not check package-lock.json" in text


def test_format_skipped_outcome_shows_reason():
    text = format_remediation_outcome(
        RemediationOutcome(alert_id=1, success=False, skipped=True, error="Severity low is not allowed for auto-fix")
    )
    assert "Status: SKIPPED" in text
    assert "Reason:\nSeverity low" in text


def test_format_failed_outcome_shows_error():
    text = format_remediation_outcome(RemediationOutcome(alert_id=1, success=False, error="boom"))
    assert "Status: FAILED" in text
    assert "Error:\nboom" in text


def test_format_alert_list():
    assert format_alert_list([]) == "No alerts found."

    long_name = "a-very-long-dependency-name-that-overflows"
    text = format_alert_list([make_alert(1), make_alert(2, dependency_name=long_name, pr_number=4)])

    assert text.startswith("Found 2 alerts:")
    assert "leftpad" in text
    assert long_name[:27] + "..." in text
    assert "#4" in text


def test_format_policy():
    text = format_policy(
        RepositoryAutoFixConfig(repository_id=10, max_version_change=VersionChange.PATCH), "webpack"
    )
    assert text.startswith("Auto-fix policy for repository 10, package webpack")
    assert "Severities:         critical, high" in text
    assert "Max daily PRs:      5" in text
    assert "Excluded packages:  babel-core, typescript, webpack" in text
    assert "hours 9, 14" in text
    assert "Max version change: patch" in text


def test_format_validation_report():
    assert format_validation_report(ValidationReport()) == "Configuration is valid."

    text = format_validation_report(ValidationReport(errors=("bad",), warnings=("hmm",)))
    assert text.splitlines() == ["Configuration is invalid.", "  error: bad", "  warning: hmm"]
