"""
Tests for the expiry classifier.

Thresholds: <0 EXPIRED, <30 CRITICAL, <90 WARNING, else HEALTHY,
no date UNKNOWN.
"""

from datetime import date, timedelta

import pytest

from permitbook.app.models.enums import ExpiryTier
from permitbook.app.services.expiry import (
    ExpiryStatus, classify, days_until, expiry_label, tier_for_days, worst_tier, add_days
)

TODAY = date(2026, 3, 15)


@pytest.mark.parametrize("offset, tier", [
    (-365, ExpiryTier.EXPIRED),
    (-1, ExpiryTier.EXPIRED),
    (0, ExpiryTier.CRITICAL),
    (29, ExpiryTier.CRITICAL),
    (30, ExpiryTier.WARNING),
    (89, ExpiryTier.WARNING),
    (90, ExpiryTier.HEALTHY),
    (1000, ExpiryTier.HEALTHY),
])
def test_tier_boundaries(offset, tier):
    status = classify(TODAY + timedelta(days=offset), as_of=TODAY)
    assert status.days_until == offset
    assert status.tier == tier


def test_no_date_is_unknown():
    status = classify(None, as_of=TODAY)
    assert status.days_until is None
    assert status.tier == ExpiryTier.UNKNOWN
    assert status.label == "No date on file"
    assert not status.is_expired


def test_defaults_to_today(frozen_today):
    assert classify(frozen_today).days_until == 0
    assert classify(frozen_today - timedelta(days=1)).tier == ExpiryTier.EXPIRED
    assert days_until(date(2026, 4, 14)) == 30


def test_same_day_calls_agree(frozen_today):
    exp = frozen_today + timedelta(days=12)
    assert classify(exp) == classify(exp)


def test_expired_five_days_ago(frozen_today):
    status = classify(frozen_today - timedelta(days=5))
    assert status.tier == ExpiryTier.EXPIRED
    assert status.is_expired
    assert status.label == "Expired 5d ago"


@pytest.mark.parametrize("days, label", [
    (-1, "Expired 1d ago"),
    (0, "Expires today"),
    (1, "1d left"),
    (45, "45d left"),
])
def test_labels(days, label):
    assert expiry_label(days) == label


def test_thresholds_follow_settings(mocker):
    mocker.patch("permitbook.app.services.expiry.settings.expiry_critical_days", 14)
    assert tier_for_days(20) == ExpiryTier.WARNING
    assert tier_for_days(13) == ExpiryTier.CRITICAL


def test_worst_tier_picks_most_urgent():
    healthy = ExpiryStatus(days_until=200, tier=ExpiryTier.HEALTHY)
    expired = ExpiryStatus(days_until=-3, tier=ExpiryTier.EXPIRED)
    unknown = ExpiryStatus(days_until=None, tier=ExpiryTier.UNKNOWN)

    assert worst_tier(healthy, expired) == ExpiryTier.EXPIRED
    assert worst_tier(healthy, unknown) == ExpiryTier.HEALTHY
    assert worst_tier(healthy, None) == ExpiryTier.HEALTHY
    assert worst_tier() == ExpiryTier.UNKNOWN


def test_add_days_crosses_year_end():
    assert add_days(date(2025, 12, 1), 365) == date(2026, 12, 1)
