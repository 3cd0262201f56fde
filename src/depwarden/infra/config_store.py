from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import Any

from ..core.domain.models import RuleRecord, Severity, VersionChange, Weekday
from .json_document import JsonDocument


def rule_to_record(rule: RuleRecord) -> dict[str, Any]:
    return {
        "id": rule.id,
        "repositoryId": rule.repository_id,
        "enabled": rule.enabled,
        "severityLevels": [s.value for s in rule.severities],
        "autoMerge": rule.auto_merge,
        "requiresReview": rule.requires_review,
        "maxDailyPRs": rule.max_daily_prs,
        "testRequired": rule.test_required,
        "allowedPackages": list(rule.allowed_packages),
        "excludedPackages": list(rule.excluded_packages),
        "conditions": {
            "packageSpecific": rule.package_specific,
            "maxVersionChange": rule.max_version_change.value if rule.max_version_change else None,
            "branchPrefix": rule.branch_prefix,
            "schedule": {
                "enabled": rule.schedule_enabled,
                "hours": list(rule.schedule_hours),
                "days": [d.value for d in rule.schedule_days],
            },
            "notifications": {
                "onSuccess": rule.notify_on_success,
                "onFailure": rule.notify_on_failure,
                "onReview": rule.notify_on_review,
            },
        },
    }


def rule_from_record(record: dict[str, Any]) -> RuleRecord:
    conditions = record.get("conditions") or {}
    schedule = conditions.get("schedule") or {}
    notifications = conditions.get("notifications") or {}
    max_change = conditions.get("maxVersionChange")

    kwargs: dict[str, Any] = {}
    if "hours" in schedule:
        kwargs["schedule_hours"] = tuple(int(h) for h in schedule["hours"])
    if "days" in schedule:
        kwargs["schedule_days"] = tuple(Weekday(d) for d in schedule["days"])

    return RuleRecord(
        id=record.get("id"),
        repository_id=int(record["repositoryId"]),
        enabled=bool(record.get("enabled", True)),
        severities=tuple(Severity(s) for s in record.get("severityLevels", [])),
        auto_merge=bool(record.get("autoMerge", False)),
        requires_review=bool(record.get("requiresReview", True)),
        max_daily_prs=int(record.get("maxDailyPRs", 5)),
        test_required=bool(record.get("testRequired", True)),
        allowed_packages=tuple(record.get("allowedPackages", [])),
        excluded_packages=tuple(record.get("excludedPackages", [])),
        branch_prefix=str(conditions.get("branchPrefix") or "security-fix"),
        schedule_enabled=bool(schedule.get("enabled", True)),
        notify_on_success=bool(notifications.get("onSuccess", True)),
        notify_on_failure=bool(notifications.get("onFailure", True)),
        notify_on_review=bool(notifications.get("onReview", True)),
        package_specific=bool(conditions.get("packageSpecific", False)),
        max_version_change=VersionChange(max_change) if max_change else None,
        **kwargs,
    )


class JsonConfigStore:
    """ConfigStorePort backed by `autofix_rules.json` ({"rules": [...]})."""

    def __init__(self, *, path: Path) -> None:
        self._doc = JsonDocument(path, empty=lambda: {"rules": []})

    def list_rules(self, repository_id: int) -> list[RuleRecord]:
        return [
            rule_from_record(r)
            for r in self._doc.read()["rules"]
            if int(r["repositoryId"]) == repository_id
        ]

    def upsert_repository_rule(self, record: RuleRecord) -> RuleRecord:
        def apply(data: dict[str, Any]) -> RuleRecord:
            rules = data["rules"]
            for index, existing in enumerate(rules):
                current = rule_from_record(existing)
                if current.repository_id == record.repository_id and not current.package_specific:
                    stored = replace(record, id=current.id, package_specific=False)
                    rules[index] = rule_to_record(stored)
                    return stored
            stored = replace(record, id=self._next_id(rules), package_specific=False)
            rules.append(rule_to_record(stored))
            return stored

        return self._doc.modify(apply)

    def add_rule(self, record: RuleRecord) -> RuleRecord:
        def apply(data: dict[str, Any]) -> RuleRecord:
            stored = replace(record, id=self._next_id(data["rules"]))
            data["rules"].append(rule_to_record(stored))
            return stored

        return self._doc.modify(apply)

    @staticmethod
    def _next_id(rules: list[dict[str, Any]]) -> int:
        return max((int(r["id"]) for r in rules if r.get("id") is not None), default=0) + 1
