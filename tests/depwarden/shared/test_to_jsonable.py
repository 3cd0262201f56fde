from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum

from pydantic import BaseModel

from depwarden.core.domain.models import RemediationOutcome, Severity
from depwarden.shared.to_jsonable import to_jsonable


class Colour(Enum):
    RED = "red"


@dataclass
class Point:
    x: int
    tags: frozenset


class Settings(BaseModel):
    name: str
    count: int


def test_primitives_pass_through():
    assert to_jsonable(None) is None
    assert to_jsonable(True) is True
    assert to_jsonable(3) == 3
    assert to_jsonable("s") == "s"


def test_enums_use_value():
    assert to_jsonable(Colour.RED) == "red"
    assert to_jsonable(Severity.HIGH) == "high"


def test_dates():
    assert to_jsonable(datetime(2026, 10, 13, 9, 30, tzinfo=timezone.utc)) == "2026-10-13T09:30:00+00:00"
    assert to_jsonable(date(2026, 10, 13)) == "2026-10-13"


def test_bytes():
    assert to_jsonable(b"abc") == "abc"
    assert to_jsonable(b"\xff\x00") == "ff00"


def test_collections():
    assert to_jsonable((1, Severity.LOW)) == [1, "low"]
    assert to_jsonable({"b", "a"}) == ["a", "b"]
    assert to_jsonable({Severity.HIGH: [1]}) == {"high": [1]}


def test_dataclass_fields_only():
    assert to_jsonable(Point(x=1, tags=frozenset({"z", "y"}))) == {"x": 1, "tags": ["y", "z"]}

    data = to_jsonable(RemediationOutcome(alert_id=1, success=True))
    assert data["alert_id"] == 1
    assert "status" not in data


def test_pydantic_model():
    assert to_jsonable(Settings(name="x", count=2)) == {"name": "x", "count": 2}


def test_fallback_is_str():
    class Opaque:
        def __str__(self):
            return "opaque"

    assert to_jsonable(Opaque()) == "opaque"
