import sys
from pathlib import Path
import pytest
from dotenv import load_dotenv
from helpers import mark_by_dir

load_dotenv()


@pytest.fixture(autouse=True)
def _ensure_src_on_syspath():
    # Add project src/ to sys.path for src-layout imports
    root = Path(__file__).resolve().parents[1]
    src_path = root / "src"
    if str(src_path) not in sys.path:
        sys.path.insert(0, str(src_path))
    yield


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch, tmp_path):
    # Never pick up a developer's real token or data directory
    monkeypatch.delenv("DEPWARDEN_GITHUB__TOKEN", raising=False)
    monkeypatch.setenv("DEPWARDEN_DIRECTORIES__HOME", str(tmp_path / "depwarden-home"))
    yield


TESTS = Path(__file__).parent

def pytest_collection_modifyitems(config, items):
    # Mark tests by directory structure
    mark_by_dir(items, TESTS / "depwarden" / "core", pytest.mark.unit)
    mark_by_dir(items, TESTS / "depwarden" / "infra", pytest.mark.integration)
    mark_by_dir(items, TESTS / "depwarden" / "app", pytest.mark.e2e)
    mark_by_dir(items, TESTS / "depwarden" / "shared", pytest.mark.unit)
