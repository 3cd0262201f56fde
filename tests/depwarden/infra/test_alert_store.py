import json
from datetime import datetime, timezone

import pytest

from depwarden.core.domain.exceptions import AlertNotFoundError
from depwarden.core.domain.models import AlertKind, RemediationStatus, Severity, VulnerabilityAlert
from depwarden.infra.alert_store import JsonAlertStore, alert_from_record, alert_to_record


def make_alert(alert_id=1, repository_id=10, **overrides):
    fields = dict(
        id=alert_id,
        repository_id=repository_id,
        repository_url="https://github.com/acme/shop",
        dependency_name="leftpad",
        alert_type=AlertKind.SECURITY,
        severity=Severity.HIGH,
        fixed_version="1.2.3",
    )
    fields.update(overrides)
    return VulnerabilityAlert(**fields)


def test_missing_file_reads_as_empty(tmp_path):
    store = JsonAlertStore(path=tmp_path / "data" / "alerts.json")
    assert store.list_all() == []
    assert store.get_by_id(1) is None


def test_add_and_get(tmp_path):
    store = JsonAlertStore(path=tmp_path / "alerts.json")
    store.add(make_alert(2))
    store.add(make_alert(1, repository_id=11))

    assert store.get_by_id(2) == make_alert(2)
    assert [a.id for a in store.list_all()] == [1, 2]
    assert [a.id for a in store.list_by_repository(11)] == [1]


def test_update_persists_remediation_fields(tmp_path):
    path = tmp_path / "alerts.json"
    store = JsonAlertStore(path=path)
    store.add(make_alert())
    stamp = datetime(2026, 10, 13, 9, 30, tzinfo=timezone.utc)

    store.update(
        1,
        remediation_status=RemediationStatus.PR_CREATED,
        pr_url="https://github.com/acme/shop/pull/1",
        pr_number=1,
        remediated_at=stamp,
    )

    record = json.loads(path.read_text(encoding="utf-8"))["alerts"][0]
    assert record["remediationStatus"] == "pr_created"
    assert record["prNumber"] == 1
    assert record["remediatedAt"] == "2026-10-13T09:30:00+00:00"

    reloaded = JsonAlertStore(path=path).get_by_id(1)
    assert reloaded.remediated_at == stamp
    assert reloaded.remediation_status is RemediationStatus.PR_CREATED


def test_update_unknown_alert(tmp_path):
    store = JsonAlertStore(path=tmp_path / "alerts.json")
    with pytest.raises(AlertNotFoundError):
        store.update(9, remediation_error="x")


def test_update_rejects_unknown_fields(tmp_path):
    store = JsonAlertStore(path=tmp_path / "alerts.json")
    store.add(make_alert())
    with pytest.raises(ValueError):
        store.update(1, colour="red")


def test_record_defaults_for_scanner_rows():
    alert = alert_from_record(
        {"id": 3, "repositoryId": 10, "dependencyName": "lodash", "severity": "critical"}
    )
    assert alert.remediation_status is RemediationStatus.PENDING
    assert alert.alert_type is AlertKind.SECURITY
    assert alert.repository_url == ""


def test_record_keys_are_camel_case():
    record = alert_to_record(make_alert())
    assert record["repositoryUrl"] == "https://github.com/acme/shop"
    assert record["alertType"] == "security"
    assert record["remediationStatus"] == "pending"
    assert alert_from_record(record) == make_alert()
