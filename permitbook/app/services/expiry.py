"""
Expiry classifier.

Pure functions that turn an expiration date into an urgency tier and a
day count. Calendar-day granularity only: the time of day never changes
the answer, so repeated calls on the same day agree.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

from permitbook.app.core.config import settings
from permitbook.app.models.enums import ExpiryTier


@dataclass(frozen=True)
class ExpiryStatus:
    days_until: Optional[int]
    tier: ExpiryTier

    @property
    def label(self) -> str:
        return expiry_label(self.days_until)

    @property
    def is_expired(self) -> bool:
        return self.tier == ExpiryTier.EXPIRED


def today() -> date:
    """Local calendar date. Patched in tests."""
    return date.today()


def days_until(expiration_date: Optional[date], as_of: Optional[date] = None) -> Optional[int]:
    """Whole calendar days from as_of (default: today) to expiration_date."""
    if expiration_date is None:
        return None
    return (expiration_date - (as_of or today())).days


def tier_for_days(days: Optional[int]) -> ExpiryTier:
    # first match wins
    if days is None:
        return ExpiryTier.UNKNOWN
    if days < 0:
        return ExpiryTier.EXPIRED
    if days < settings.expiry_critical_days:
        return ExpiryTier.CRITICAL
    if days < settings.expiry_warning_days:
        return ExpiryTier.WARNING
    return ExpiryTier.HEALTHY


def classify(expiration_date: Optional[date], as_of: Optional[date] = None) -> ExpiryStatus:
    """
    Classify an expiration date.

    Args:
        expiration_date: Date on file, or None when nothing is on file
        as_of: Reference day; defaults to today in local time

    Returns:
        ExpiryStatus with days_until (None when no date) and tier
    """
    days = days_until(expiration_date, as_of)
    return ExpiryStatus(days_until=days, tier=tier_for_days(days))


def expiry_label(days: Optional[int]) -> str:
    """Human label: "Expired 5d ago", "Expires today", "12d left"."""
    if days is None:
        return "No date on file"
    if days < 0:
        return f"Expired {abs(days)}d ago"
    if days == 0:
        return "Expires today"
    return f"{days}d left"


def worst_tier(*statuses: ExpiryStatus) -> ExpiryTier:
    """Most urgent tier among the given statuses (UNKNOWN if none)."""
    tiers = [s.tier for s in statuses if s is not None]
    if not tiers:
        return ExpiryTier.UNKNOWN
    return min(tiers, key=lambda t: t.severity())


def add_days(start: date, days: int) -> date:
    return start + timedelta(days=days)
