"""
Clinic-local clock helpers.

Closings and agenda views are keyed by the clinic's calendar day, not UTC.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Tuple
from zoneinfo import ZoneInfo

from belle.core.config import settings


def utcnow() -> datetime:
    """Timezone-aware UTC timestamp for audit columns."""
    return datetime.now(timezone.utc)


def clinic_now() -> datetime:
    return datetime.now(ZoneInfo(settings.clinic_timezone)).replace(tzinfo=None)


def clinic_today() -> date:
    return clinic_now().date()


def week_bounds(day: date) -> Tuple[date, date]:
    """Sunday-to-Saturday week containing ``day``."""
    # date.weekday(): Monday=0 ... Sunday=6
    start = day - timedelta(days=(day.weekday() + 1) % 7)
    return start, start + timedelta(days=6)


def month_bounds(day: date) -> Tuple[date, date]:
    start = day.replace(day=1)
    if start.month == 12:
        next_month = start.replace(year=start.year + 1, month=1)
    else:
        next_month = start.replace(month=start.month + 1)
    return start, next_month - timedelta(days=1)


def period_bounds(period: str, day: date) -> Tuple[date, date]:
    if period == "day":
        return day, day
    if period == "week":
        return week_bounds(day)
    if period == "month":
        return month_bounds(day)
    raise ValueError(f"Unknown period: {period}")
