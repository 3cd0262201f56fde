import json
import logging

from depwarden.infra.logging import HumanReadableFormatter, JSONFormatter, RemediationLogger


def _record(**extra):
    record = logging.LogRecord("depwarden", logging.INFO, __file__, 1, "branch_created", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_flattens_extra_fields():
    line = JSONFormatter().format(_record(alert_id=1, branch="security-fix-leftpad-1", tags={"b", "a"}))
    data = json.loads(line)

    assert data["message"] == "branch_created"
    assert data["level"] == "INFO"
    assert data["logger"] == "depwarden"
    assert data["alert_id"] == 1
    assert data["branch"] == "security-fix-leftpad-1"
    assert data["tags"] == ["a", "b"]
    assert "pathname" not in data


def test_human_formatter_appends_fields():
    text = HumanReadableFormatter().format(_record(alert_id=1))
    assert text.endswith("INFO - branch_created (alert_id=1)")


def test_logger_writes_json_lines(tmp_path):
    logger = RemediationLogger()
    logger.init(logs_dir=tmp_path, logger_name="depwarden.test.jsonl", level="DEBUG")

    logger.info("remediation_started", alert_id=7, repository="acme/shop")
    logger.debug("plan_built", edit_count=2)
    logger.shutdown(logger)

    lines = (tmp_path / "depwarden.jsonl").read_text(encoding="utf-8").splitlines()
    records = [json.loads(line) for line in lines]
    assert [r["message"] for r in records] == ["remediation_started", "plan_built"]
    assert records[0]["repository"] == "acme/shop"
    assert records[1]["edit_count"] == 2


def test_level_filters_records(tmp_path):
    logger = RemediationLogger()
    logger.init(logs_dir=tmp_path, logger_name="depwarden.test.level", level="WARNING")

    logger.info("ignored")
    logger.warning("retry_scheduled", attempt=2)
    logger.shutdown(logger)

    lines = (tmp_path / "depwarden.jsonl").read_text(encoding="utf-8").splitlines()
    assert len(lines) == 1


def test_shutdown_removes_handlers(tmp_path):
    logger = RemediationLogger()
    logger.init(logs_dir=tmp_path, logger_name="depwarden.test.shutdown", console_output=True)
    assert len(logging.getLogger("depwarden.test.shutdown").handlers) == 2

    logger.shutdown(logger)
    assert logging.getLogger("depwarden.test.shutdown").handlers == []
