import json

from depwarden.core.domain.models import RuleRecord, Severity, VersionChange, Weekday
from depwarden.infra.config_store import JsonConfigStore, rule_from_record, rule_to_record


def repo_rule(repository_id=10, **overrides):
    fields = dict(
        repository_id=repository_id,
        enabled=True,
        severities=(Severity.CRITICAL, Severity.HIGH),
        auto_merge=False,
        requires_review=True,
        max_daily_prs=5,
        test_required=True,
    )
    fields.update(overrides)
    return RuleRecord(**fields)


def test_empty_store(tmp_path):
    assert JsonConfigStore(path=tmp_path / "rules.json").list_rules(10) == []


def test_upsert_keeps_single_repository_rule(tmp_path):
    store = JsonConfigStore(path=tmp_path / "rules.json")

    first = store.upsert_repository_rule(repo_rule(max_daily_prs=3))
    second = store.upsert_repository_rule(repo_rule(max_daily_prs=7))

    assert first.id == second.id == 1
    [stored] = store.list_rules(10)
    assert stored.max_daily_prs == 7


def test_package_rules_get_new_ids(tmp_path):
    store = JsonConfigStore(path=tmp_path / "rules.json")
    store.upsert_repository_rule(repo_rule())
    added = store.add_rule(
        repo_rule(package_specific=True, allowed_packages=("webpack",), max_version_change=VersionChange.PATCH)
    )

    assert added.id == 2
    rules = store.list_rules(10)
    assert [r.package_specific for r in rules] == [False, True]
    assert rules[1].max_version_change is VersionChange.PATCH
    assert store.list_rules(11) == []


def test_document_layout(tmp_path):
    path = tmp_path / "rules.json"
    store = JsonConfigStore(path=path)
    store.upsert_repository_rule(repo_rule(schedule_hours=(3,), schedule_days=(Weekday.SUNDAY,)))

    [record] = json.loads(path.read_text(encoding="utf-8"))["rules"]
    assert record["repositoryId"] == 10
    assert record["severityLevels"] == ["critical", "high"]
    assert record["maxDailyPRs"] == 5
    assert record["conditions"]["schedule"] == {"enabled": True, "hours": [3], "days": ["sunday"]}
    assert record["conditions"]["notifications"]["onReview"] is True


def test_record_round_trip():
    rule = repo_rule(id=4, excluded_packages=("webpack",), branch_prefix="deps")
    assert rule_from_record(rule_to_record(rule)) == rule


def test_sparse_record_uses_defaults():
    rule = rule_from_record({"repositoryId": 10, "severityLevels": ["low"]})
    assert rule.severities == (Severity.LOW,)
    assert rule.max_daily_prs == 5
    assert rule.schedule_hours == (9, 14)
    assert rule.branch_prefix == "security-fix"
