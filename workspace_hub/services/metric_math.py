"""
Pure metric helpers shared by the dashboard screens.

Every function here is a deterministic fold with no I/O. Division by zero,
missing timestamps and non-finite results are handled inline with explicit
fallbacks; nothing in this module raises on bad data.
"""

import math
from datetime import date, datetime, timedelta, timezone

WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


# ── Rates ────────────────────────────────────────────────────────────────

def rate(count, total) -> float:
    """Fraction ``count / total``; 0.0 when total is 0."""
    if not total:
        return 0.0
    return count / total


def percentage(count, total) -> float:
    return rate(count, total) * 100


def rounded_percentage(count, total) -> int:
    """Percentage rounded half-up to an int (11/15 → 73)."""
    return int(math.floor(percentage(count, total) + 0.5))


def month_over_month_change(current, previous):
    """Relative change in percent, or None when no comparison is available.

    previous == 0 → 100 if current > 0 else 0.
    """
    if current is None or previous is None:
        return None
    if isinstance(current, bool) or isinstance(previous, bool):
        return None
    if not isinstance(current, (int, float)) or not isinstance(previous, (int, float)):
        return None
    if math.isnan(current) or math.isnan(previous):
        return None
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    change = (current - previous) / previous * 100
    if not math.isfinite(change):
        return None
    return change


def weekly_progress(this_week, last_week) -> int:
    """Week-over-week change of completed work, clamped to [-100, 100]."""
    if not last_week:
        return 100 if this_week > 0 else 0
    change = (this_week - last_week) / last_week * 100
    return int(max(-100, min(100, round(change))))


# ── Time windows ─────────────────────────────────────────────────────────

def day_buckets(date_from, date_to) -> list[date]:
    """Every calendar date in [date_from, date_to], inclusive.

    Returns an empty list only when the range is inverted or incomplete.
    """
    if date_from is None or date_to is None:
        return []
    start = date_from.date() if isinstance(date_from, datetime) else date_from
    end = date_to.date() if isinstance(date_to, datetime) else date_to
    days = []
    current = start
    while current <= end:
        days.append(current)
        current += timedelta(days=1)
    return days


def _add_months(year, month, delta):
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def month_windows(now, count=6):
    """``(start, end, label)`` for the last ``count`` calendar months, oldest first.

    ``end`` is exclusive (first instant of the following month). Labels look
    like ``"Mar 2026"``.
    """
    now = as_aware(now)
    windows = []
    for offset in range(count - 1, -1, -1):
        y, m = _add_months(now.year, now.month, -offset)
        ny, nm = _add_months(y, m, 1)
        start = datetime(y, m, 1, tzinfo=now.tzinfo)
        end = datetime(ny, nm, 1, tzinfo=now.tzinfo)
        windows.append((start, end, start.strftime("%b %Y")))
    return windows


def week_window(now):
    """Current ISO week: [Monday 00:00, next Monday 00:00)."""
    now = as_aware(now)
    monday = datetime.combine(now.date() - timedelta(days=now.weekday()), datetime.min.time(), tzinfo=now.tzinfo)
    return monday, monday + timedelta(days=7)


def previous_week_window(now):
    start, _ = week_window(now)
    return start - timedelta(days=7), start


def in_window(value, start, end) -> bool:
    """True when ``value`` falls in [start, end). Missing values never match."""
    value = as_aware(value)
    start, end = as_aware(start), as_aware(end)
    if value is None:
        return False
    return start <= value < end


# ── Durations ────────────────────────────────────────────────────────────

def hours_between(start, end):
    """Elapsed hours, or None when either endpoint is missing."""
    start, end = as_aware(start), as_aware(end)
    if start is None or end is None:
        return None
    return (end - start).total_seconds() / 3600


def days_between(start, end):
    hours = hours_between(start, end)
    return None if hours is None else hours / 24


def mean(values, default=0.0) -> float:
    values = [v for v in values if v is not None]
    if not values:
        return default
    return sum(values) / len(values)


def as_aware(value):
    if not isinstance(value, datetime):
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
