"""
Premium and trial entitlement rules.

Everything here is a pure function of the user record and an explicit
``now``; nothing reads the clock and nothing is cached, so the result is
recomputed on every access check.
"""
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Optional

from premium_push.schemas.entitlement import EntitlementResult
from premium_push.schemas.user import Plan, User


DEFAULT_TRIAL_DAYS = 3


def as_utc(moment: datetime) -> datetime:
    """MongoDB hands back naive datetimes that are already UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def add_calendar_days(moment: datetime, days: int, tz: tzinfo = timezone.utc) -> datetime:
    """
    Add ``days`` on the wall clock of ``tz`` and return the resulting instant in UTC.

    The local time of day is kept, so across a DST change the elapsed
    duration is 23 or 25 hours per shifted day rather than a fixed 24.
    """
    local = as_utc(moment).astimezone(tz)
    shifted = local + timedelta(days=days)
    return shifted.astimezone(timezone.utc)


def is_premium(user: User, now: datetime) -> bool:
    if user.plan is not Plan.PREMIUM:
        return False
    if user.expiry_date is None:
        # lifetime grant
        return True
    return as_utc(user.expiry_date) > as_utc(now)


def trial_end(user: User, trial_days: int = DEFAULT_TRIAL_DAYS, tz: tzinfo = timezone.utc) -> Optional[datetime]:
    if user.trial_started_at is None:
        return None
    if user.trial_ended_at is not None:
        return as_utc(user.trial_ended_at)
    return add_calendar_days(user.trial_started_at, trial_days, tz)


def is_trial(user: User, now: datetime, trial_days: int = DEFAULT_TRIAL_DAYS, tz: tzinfo = timezone.utc) -> bool:
    # premium accounts keep their trial history but are never "in trial"
    if user.plan is not Plan.FREE or user.trial_started_at is None:
        return False
    current = as_utc(now)
    start = as_utc(user.trial_started_at)
    end = trial_end(user, trial_days, tz)
    return start <= current < end


def evaluate(user: User, now: datetime, trial_days: int = DEFAULT_TRIAL_DAYS, tz: tzinfo = timezone.utc) -> EntitlementResult:
    premium = is_premium(user, now)
    trial = is_trial(user, now, trial_days, tz)
    return EntitlementResult(is_premium=premium, is_trial=trial, has_access=premium or trial)
