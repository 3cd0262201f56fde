from __future__ import annotations

from dataclasses import fields, replace
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from ..core.domain.exceptions import AlertNotFoundError
from ..core.domain.models import AlertKind, RemediationStatus, Severity, VulnerabilityAlert
from .json_document import JsonDocument


# snake_case attribute -> camelCase document key
_FIELD_KEYS = {
    "id": "id",
    "repository_id": "repositoryId",
    "repository_url": "repositoryUrl",
    "dependency_name": "dependencyName",
    "alert_type": "alertType",
    "severity": "severity",
    "description": "description",
    "fixed_version": "fixedVersion",
    "current_version": "currentVersion",
    "remediation_status": "remediationStatus",
    "remediation_error": "remediationError",
    "pr_url": "prUrl",
    "pr_number": "prNumber",
    "remediated_at": "remediatedAt",
}
_ALERT_FIELDS = frozenset(f.name for f in fields(VulnerabilityAlert))


def alert_to_record(alert: VulnerabilityAlert) -> dict[str, Any]:
    record: dict[str, Any] = {}
    for attr, key in _FIELD_KEYS.items():
        value = getattr(alert, attr)
        if isinstance(value, (Severity, AlertKind, RemediationStatus)):
            value = value.value
        elif isinstance(value, datetime):
            value = value.isoformat()
        record[key] = value
    return record


def alert_from_record(record: dict[str, Any]) -> VulnerabilityAlert:
    remediated_at = record.get("remediatedAt")
    return VulnerabilityAlert(
        id=int(record["id"]),
        repository_id=int(record["repositoryId"]),
        repository_url=str(record.get("repositoryUrl") or ""),
        dependency_name=str(record["dependencyName"]),
        alert_type=AlertKind(record.get("alertType", AlertKind.SECURITY.value)),
        severity=Severity(record["severity"]),
        description=record.get("description"),
        fixed_version=record.get("fixedVersion"),
        current_version=record.get("currentVersion"),
        remediation_status=RemediationStatus(record.get("remediationStatus") or RemediationStatus.PENDING.value),
        remediation_error=record.get("remediationError"),
        pr_url=record.get("prUrl"),
        pr_number=record.get("prNumber"),
        remediated_at=datetime.fromisoformat(remediated_at) if remediated_at else None,
    )


class JsonAlertStore:
    """AlertStorePort backed by `alerts.json` ({"alerts": [...]})."""

    def __init__(self, *, path: Path) -> None:
        self._doc = JsonDocument(path, empty=lambda: {"alerts": []})

    def get_by_id(self, alert_id: int) -> Optional[VulnerabilityAlert]:
        for record in self._doc.read()["alerts"]:
            if int(record["id"]) == alert_id:
                return alert_from_record(record)
        return None

    def update(self, alert_id: int, **changes: Any) -> VulnerabilityAlert:
        unknown = set(changes) - _ALERT_FIELDS
        if unknown:
            raise ValueError(f"Unknown alert fields: {', '.join(sorted(unknown))}")

        def apply(data: dict[str, Any]) -> VulnerabilityAlert:
            records = data["alerts"]
            for index, record in enumerate(records):
                if int(record["id"]) == alert_id:
                    updated = replace(alert_from_record(record), **changes)
                    records[index] = alert_to_record(updated)
                    return updated
            raise AlertNotFoundError(alert_id)

        return self._doc.modify(apply)

    def add(self, alert: VulnerabilityAlert) -> VulnerabilityAlert:
        """Insert an alert, replacing any record with the same id."""

        def apply(data: dict[str, Any]) -> VulnerabilityAlert:
            records = [r for r in data["alerts"] if int(r["id"]) != alert.id]
            records.append(alert_to_record(alert))
            data["alerts"] = sorted(records, key=lambda r: int(r["id"]))
            return alert

        return self._doc.modify(apply)

    def list_by_repository(self, repository_id: int) -> list[VulnerabilityAlert]:
        return [a for a in self.list_all() if a.repository_id == repository_id]

    def list_all(self) -> list[VulnerabilityAlert]:
        return [alert_from_record(r) for r in self._doc.read()["alerts"]]
