"""Tests for domain models and pure domain helpers."""
from datetime import datetime, timezone

import pytest

from depwarden.core.domain.exceptions import (
    AlertNotFoundError,
    CircuitOpenError,
    ConfigValidationError,
    HostingAPIError,
    InvalidRepositoryUrlError,
    TransientAPIError,
    is_retryable,
    is_retryable_status,
)
from depwarden.core.domain.models import (
    RemediationOutcome,
    ScheduleSettings,
    VersionChange,
    Weekday,
)
from depwarden.core.domain.repository import parse_repository_url

from tests.depwarden.core.conftest import make_alert


class TestRepositoryUrl:
    @pytest.mark.parametrize(
        "url",
        [
            "https://github.com/acme/shop",
            "https://github.com/acme/shop.git",
            "https://github.com/acme/shop/",
            "git@github.com:acme/shop.git",
            "acme/shop",
        ],
    )
    def test_accepted_forms(self, url):
        coords = parse_repository_url(url)
        assert coords.owner == "acme"
        assert coords.name == "shop"
        assert coords.slug == "acme/shop"

    @pytest.mark.parametrize(
        "url",
        ["", "https://github.com/acme", "https://github.com/acme/shop/tree/main", "not a url", "acme/sh op"],
    )
    def test_malformed_urls_raise_data_error(self, url):
        with pytest.raises(InvalidRepositoryUrlError):
            parse_repository_url(url)


class TestScheduleSettings:
    def test_weekday_from_datetime(self):
        assert Weekday.from_datetime(datetime(2024, 1, 1)) is Weekday.MONDAY
        assert Weekday.from_datetime(datetime(2024, 1, 7)) is Weekday.SUNDAY

    def test_permits_configured_hour_and_day(self):
        schedule = ScheduleSettings()
        assert schedule.permits(datetime(2024, 1, 1, 9, 30, tzinfo=timezone.utc))
        assert not schedule.permits(datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc))
        assert not schedule.permits(datetime(2024, 1, 6, 9, 0, tzinfo=timezone.utc))

    def test_disabled_schedule_permits_anything(self):
        schedule = ScheduleSettings(enabled=False)
        assert schedule.permits(datetime(2024, 1, 6, 3, 0, tzinfo=timezone.utc))


def test_version_change_rank_is_ordered():
    ranks = [c.rank for c in (VersionChange.NONE, VersionChange.PATCH, VersionChange.MINOR, VersionChange.MAJOR)]
    assert ranks == sorted(ranks)
    assert len(set(ranks)) == 4


def test_alert_pull_request_property():
    assert make_alert().pull_request is None
    alert = make_alert(pr_url="https://github.com/acme/shop/pull/7", pr_number=7)
    assert alert.pull_request.number == 7


def test_outcome_status():
    assert RemediationOutcome(alert_id=1, success=True).status == "pr_created"
    assert RemediationOutcome(alert_id=1, success=False).status == "failed"
    assert RemediationOutcome(alert_id=1, success=False, skipped=True).status == "skipped"


class TestErrorTaxonomy:
    @pytest.mark.parametrize("status", [408, 429, 500, 502, 503])
    def test_retryable_statuses(self, status):
        assert is_retryable_status(status)

    @pytest.mark.parametrize("status", [400, 401, 403, 404, 409, 422])
    def test_non_retryable_statuses(self, status):
        assert not is_retryable_status(status)

    def test_is_retryable_classification(self):
        assert is_retryable(TransientAPIError("boom", status=503))
        assert is_retryable(ConnectionError("reset"))
        assert is_retryable(TimeoutError())
        assert not is_retryable(HostingAPIError("nope", status=422))
        assert not is_retryable(CircuitOpenError("k", 1.0))
        assert not is_retryable(AlertNotFoundError(1))
        assert not is_retryable(ValueError("bad"))

    def test_config_validation_error_message_joins_errors(self):
        exc = ConfigValidationError(["a", "b"], ["w"])
        assert str(exc) == "a; b"
        assert exc.warnings == ("w",)
