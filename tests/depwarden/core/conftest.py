"""Shared fakes for core service and use case tests."""
import json
import threading
from dataclasses import replace
from typing import Optional

import pytest

from depwarden.core.domain.exceptions import AlertNotFoundError, HostingAPIError
from depwarden.core.domain.models import (
    AlertKind,
    FileSnapshot,
    PullRequestRef,
    RemediationEvent,
    RuleRecord,
    Severity,
    VulnerabilityAlert,
)
from depwarden.core.services.resilience import ResilienceLayer


def make_alert(**overrides) -> VulnerabilityAlert:
    fields = dict(
        id=1,
        repository_id=10,
        repository_url="https://github.com/acme/shop",
        dependency_name="leftpad",
        alert_type=AlertKind.SECURITY,
        severity=Severity.HIGH,
        description="Prototype pollution in leftpad",
        fixed_version="1.2.3",
        current_version="^1.0.0",
    )
    fields.update(overrides)
    return VulnerabilityAlert(**fields)


def make_resilience(logger=None, **kwargs) -> ResilienceLayer:
    """Resilience layer that never sleeps."""
    return ResilienceLayer(logger=logger, sleep=lambda _: None, rand=lambda: 0.0, **kwargs)


def manifest_snapshot(data: dict, *, indent=2, revision: str = "blob-1") -> FileSnapshot:
    text = json.dumps(data, indent=indent) + "\n"
    return FileSnapshot(path="package.json", content=text.encode("utf-8"), revision=revision)


class FakeLogger:
    """Fake logger recording (level, message, fields)."""
    def __init__(self):
        self.records = []
        self._lock = threading.Lock()

    def _record(self, level, message, kwargs):
        with self._lock:
            self.records.append((level, message, kwargs))

    def debug(self, message: str, **kwargs) -> None:
        self._record("debug", message, kwargs)

    def info(self, message: str, **kwargs) -> None:
        self._record("info", message, kwargs)

    def warning(self, message: str, **kwargs) -> None:
        self._record("warning", message, kwargs)

    def error(self, message: str, exc_info: bool = False, **kwargs) -> None:
        self._record("error", message, kwargs)

    def exception(self, message: str, **kwargs) -> None:
        self._record("exception", message, kwargs)

    def messages(self) -> list[str]:
        return [message for _, message, _ in self.records]


class FakeAlertStore:
    def __init__(self, *alerts: VulnerabilityAlert):
        self.alerts = {a.id: a for a in alerts}
        self.updates = []
        self._lock = threading.Lock()

    def get_by_id(self, alert_id: int) -> Optional[VulnerabilityAlert]:
        return self.alerts.get(alert_id)

    def update(self, alert_id: int, **fields) -> VulnerabilityAlert:
        with self._lock:
            if alert_id not in self.alerts:
                raise AlertNotFoundError(alert_id)
            self.updates.append((alert_id, fields))
            self.alerts[alert_id] = replace(self.alerts[alert_id], **fields)
            return self.alerts[alert_id]

    def list_by_repository(self, repository_id: int) -> list[VulnerabilityAlert]:
        return [a for a in self.alerts.values() if a.repository_id == repository_id]

    def list_all(self) -> list[VulnerabilityAlert]:
        return list(self.alerts.values())


class FakeConfigStore:
    def __init__(self, *rules: RuleRecord):
        self.rules = list(rules)
        self.writes = 0

    def list_rules(self, repository_id: int) -> list[RuleRecord]:
        return [r for r in self.rules if r.repository_id == repository_id]

    def upsert_repository_rule(self, record: RuleRecord) -> RuleRecord:
        self.writes += 1
        self.rules = [
            r for r in self.rules
            if not (r.repository_id == record.repository_id and not r.package_specific)
        ]
        self.rules.append(record)
        return record

    def add_rule(self, record: RuleRecord) -> RuleRecord:
        self.writes += 1
        self.rules.append(record)
        return record


class FakeSnapshot:
    """RepositorySnapshotPort over an in-memory file map."""
    def __init__(self, files=None, errors=None):
        self.files = dict(files or {})
        self.errors = dict(errors or {})
        self.reads = []

    def read_file(self, path: str) -> Optional[FileSnapshot]:
        self.reads.append(path)
        if path in self.errors:
            raise self.errors[path]
        return self.files.get(path)


class FakeHosting:
    """HostingPort fake.

    `failures` maps an operation name to a list of exceptions raised by the
    next calls of that operation, one per call. `create_ref_gate`, when set,
    blocks create_ref until the event is set.
    """
    host = "api.github.test"

    def __init__(self, files=None, failures=None, default_branch="main"):
        self.files = dict(files or {})
        self.failures = {op: list(excs) for op, excs in (failures or {}).items()}
        self.default_branch = default_branch
        self.calls = []
        self.writes = []
        self.refs = []
        self.pull_requests = []
        self.create_ref_gate: Optional[threading.Event] = None
        self.create_ref_entered = threading.Event()
        self.closed = False
        self._lock = threading.Lock()

    def close(self):
        self.closed = True

    def _enter(self, op, *args):
        with self._lock:
            self.calls.append((op, args))
            pending = self.failures.get(op)
            if pending:
                raise pending.pop(0)

    def calls_to(self, op) -> int:
        return sum(1 for name, _ in self.calls if name == op)

    def get_default_branch(self, owner, repo):
        self._enter("get_repository", owner, repo)
        return self.default_branch

    def get_ref_sha(self, owner, repo, ref):
        self._enter("get_ref", owner, repo, ref)
        return "head-sha"

    def create_ref(self, owner, repo, ref, sha):
        self.create_ref_entered.set()
        if self.create_ref_gate is not None:
            self.create_ref_gate.wait(timeout=5)
        self._enter("create_ref", owner, repo, ref, sha)
        self.refs.append(ref)

    def get_file(self, owner, repo, path, ref):
        self._enter("get_file", owner, repo, path, ref)
        return self.files.get(path)

    def put_file(self, owner, repo, *, path, content, message, branch, sha=None):
        self._enter("put_file", owner, repo, path)
        if path in self.files and sha is None:
            raise HostingAPIError(
                f"put_file failed with HTTP 422: \"sha\" wasn't supplied for {path}", status=422, operation="put_file"
            )
        self.writes.append({"path": path, "content": content, "message": message, "branch": branch, "sha": sha})
        return f"sha-{len(self.writes)}"

    def create_pull_request(self, owner, repo, *, title, head, base, body):
        self._enter("create_pull_request", owner, repo)
        number = len(self.pull_requests) + 1
        self.pull_requests.append({"title": title, "head": head, "base": base, "body": body})
        return PullRequestRef(url=f"https://github.com/{owner}/{repo}/pull/{number}", number=number)


class FakeNotifier:
    def __init__(self, fail: bool = False):
        self.events: list[RemediationEvent] = []
        self._fail = fail

    def notify(self, event: RemediationEvent) -> None:
        if self._fail:
            raise RuntimeError("notifier down")
        self.events.append(event)


@pytest.fixture
def logger():
    return FakeLogger()
