"""Shared fixtures for app-level tests."""
import json

import pytest
from dependency_injector import providers

from depwarden.app.config import AppConfig, DirectoryConfig, GitHubConfig
from depwarden.app.container import Container
from depwarden.core.domain.models import AlertKind, Severity, VulnerabilityAlert
from depwarden.infra.alert_store import JsonAlertStore

from tests.depwarden.core.conftest import FakeHosting, manifest_snapshot


MANIFEST = {"name": "shop", "dependencies": {"leftpad": "^1.0.0", "lodash": "^4.17.0"}}


def make_alert(alert_id=1, **overrides) -> VulnerabilityAlert:
    fields = dict(
        id=alert_id,
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


@pytest.fixture
def home(tmp_path, monkeypatch):
    home = tmp_path / "home"
    monkeypatch.setenv("DEPWARDEN_DIRECTORIES__HOME", str(home))
    return home


@pytest.fixture
def test_config(home):
    """Create test configuration with explicit values."""
    return AppConfig(
        directories=DirectoryConfig(home=home),
        github=GitHubConfig(token="test-token"),
    )


@pytest.fixture
def seed_alerts(home):
    def seed(*alerts):
        store = JsonAlertStore(path=home / "data" / "alerts.json")
        for alert in alerts:
            store.add(alert)
        return store

    return seed


@pytest.fixture
def fake_hosting():
    return FakeHosting(files={"package.json": manifest_snapshot(MANIFEST)})


def _create_mocked_container(hosting: FakeHosting) -> Container:
    container = Container()
    container.hosting.override(providers.Object(hosting))
    return container


@pytest.fixture
def mock_container(fake_hosting, monkeypatch):
    """Patch the CLI and facade containers so hosting calls hit FakeHosting."""
    factory = lambda: _create_mocked_container(fake_hosting)
    monkeypatch.setattr("depwarden.app.cli.Container", factory)
    monkeypatch.setattr("depwarden.app.main.Container", factory)
    return fake_hosting


@pytest.fixture
def with_token(monkeypatch):
    monkeypatch.setenv("DEPWARDEN_GITHUB__TOKEN", "test-token")


def read_json_lines(path):
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines() if line.strip()]
