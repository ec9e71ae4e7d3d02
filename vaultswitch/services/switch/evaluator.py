"""Inactivity classification.

Pure functions only; the scan, the status endpoint and the tests all share the
same arithmetic so a switch is never classified two different ways.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from vaultswitch.common.clock import as_utc
from vaultswitch.common.errors import ConfigurationError

WARNING_THRESHOLD_PERCENT = 75
FINAL_WARNING_THRESHOLD_PERCENT = 90
TRIGGER_THRESHOLD_PERCENT = 100
DEFAULT_INACTIVITY_PERIOD_DAYS = 180
DEDUP_WINDOW = timedelta(days=7)
TOKEN_VALIDITY = timedelta(days=30)


class Classification(str, Enum):
    HEALTHY = "HEALTHY"
    WARNING = "WARNING"
    FINAL_WARNING = "FINAL_WARNING"
    EXPIRED = "EXPIRED"


@dataclass(frozen=True)
class Assessment:
    days_since: int
    inactivity_period_days: int
    classification: Classification

    @property
    def percent_elapsed(self) -> float:
        return 100 * self.days_since / self.inactivity_period_days

    @property
    def days_remaining(self) -> int:
        return max(0, self.inactivity_period_days - self.days_since)


def days_since(now: datetime, last_check_in: datetime) -> int:
    """Whole days elapsed since the last check-in, floored, never negative."""

    elapsed = as_utc(now) - as_utc(last_check_in)
    return max(0, elapsed // timedelta(days=1))


def classify(days: int, inactivity_period_days: int) -> Classification:
    """Most-severe-first classification with inclusive thresholds.

    Compared in integer arithmetic so 162/180 lands exactly on 90%.
    """

    if inactivity_period_days <= 0:
        raise ConfigurationError(f"inactivity period must be positive, got {inactivity_period_days}")
    scaled = days * 100
    if scaled >= TRIGGER_THRESHOLD_PERCENT * inactivity_period_days:
        return Classification.EXPIRED
    if scaled >= FINAL_WARNING_THRESHOLD_PERCENT * inactivity_period_days:
        return Classification.FINAL_WARNING
    if scaled >= WARNING_THRESHOLD_PERCENT * inactivity_period_days:
        return Classification.WARNING
    return Classification.HEALTHY


def evaluate(now: datetime, last_check_in: datetime | None, inactivity_period_days: int) -> Assessment | None:
    """Classify one switch; `None` means it has never been activated."""

    if inactivity_period_days <= 0:
        raise ConfigurationError(f"inactivity period must be positive, got {inactivity_period_days}")
    if last_check_in is None:
        return None
    days = days_since(now, last_check_in)
    return Assessment(
        days_since=days,
        inactivity_period_days=inactivity_period_days,
        classification=classify(days, inactivity_period_days),
    )
