"""Inactivity classification thresholds and day arithmetic."""

from datetime import datetime, timedelta, timezone

import pytest

from vaultswitch.common.errors import ConfigurationError
from vaultswitch.services.switch.evaluator import Classification, classify, days_since, evaluate

NOW = datetime(2026, 6, 1, 9, 30, tzinfo=timezone.utc)

SEVERITY = [
    Classification.HEALTHY,
    Classification.WARNING,
    Classification.FINAL_WARNING,
    Classification.EXPIRED,
]


@pytest.mark.parametrize(
    "days,expected",
    [
        (134, Classification.HEALTHY),
        (135, Classification.WARNING),
        (161, Classification.WARNING),
        (162, Classification.FINAL_WARNING),
        (179, Classification.FINAL_WARNING),
        (180, Classification.EXPIRED),
    ],
)
def test_boundaries_for_default_period(days, expected):
    """Thresholds are inclusive at 75%, 90% and 100%."""

    assert classify(days, 180) == expected


def test_classification_is_monotonic():
    """More silence never yields a less severe classification."""

    for period in (1, 7, 30, 45, 180, 365):
        ranks = [SEVERITY.index(classify(days, period)) for days in range(0, 2 * period + 2)]
        assert ranks == sorted(ranks)


def test_non_positive_period_is_rejected():
    """A zero or negative period is a configuration error, not a division error."""

    with pytest.raises(ConfigurationError):
        classify(10, 0)
    with pytest.raises(ConfigurationError):
        evaluate(NOW, NOW, -5)


def test_never_checked_in_is_not_classified():
    """No check-in means the timer never started."""

    assert evaluate(NOW, None, 180) is None


def test_days_since_floors_partial_days():
    """23 hours of silence is still day zero."""

    assert days_since(NOW, NOW - timedelta(hours=23)) == 0
    assert days_since(NOW, NOW - timedelta(days=2, hours=23)) == 2


def test_days_since_clamps_future_check_in():
    """Clock skew must not produce negative elapsed days."""

    assert days_since(NOW, NOW + timedelta(days=3)) == 0


def test_days_since_accepts_naive_store_values():
    """Naive datetimes read back from the store are treated as UTC."""

    naive = (NOW - timedelta(days=10)).replace(tzinfo=None)
    assert days_since(NOW, naive) == 10


def test_assessment_exposes_remaining_days():
    """Remaining days are floored at zero once the period is exceeded."""

    assessment = evaluate(NOW, NOW - timedelta(days=140), 180)
    assert assessment.classification == Classification.WARNING
    assert assessment.days_remaining == 40

    overdue = evaluate(NOW, NOW - timedelta(days=200), 180)
    assert overdue.classification == Classification.EXPIRED
    assert overdue.days_remaining == 0
