"""Shared parsing helpers for query strings and stored timestamps.

parse_date_input:  raises ValueError on bad input (blueprints turn it into 400)
as_utc:            normalises naive datetimes coming back from SQLite
isoformat:         None-safe ISO rendering for JSON payloads
"""
from datetime import date, datetime, time, timezone


def parse_date_input(value, *, end_of_day=False):
    """Parse a query-string date into an aware UTC datetime.

    Supports YYYY-MM-DD, full ISO datetimes and DD.MM.YYYY.
    Returns None for empty input. ``end_of_day`` moves a bare date to
    23:59:59.999999 so a ``to`` bound includes the whole day.
    """
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, date):
        return _combine(value, end_of_day)

    raw = str(value).strip()
    if "T" in raw or " " in raw:
        try:
            return as_utc(datetime.fromisoformat(raw.replace("Z", "+00:00")))
        except ValueError:
            pass
    try:
        return _combine(date.fromisoformat(raw), end_of_day)
    except ValueError:
        try:
            return _combine(datetime.strptime(raw, "%d.%m.%Y").date(), end_of_day)
        except ValueError as exc:
            raise ValueError(
                "Invalid date format. Use YYYY-MM-DD or DD.MM.YYYY."
            ) from exc


def _combine(day, end_of_day):
    return datetime.combine(day, time.max if end_of_day else time.min, tzinfo=timezone.utc)


def as_utc(value):
    """Attach UTC to naive datetimes; convert aware ones. None passes through."""
    if value is None:
        return None
    if not isinstance(value, datetime):
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def isoformat(value):
    return value.isoformat() if value is not None else None


def parse_bool(value, default=False):
    """Interpret ``true/1/yes/on`` query flags."""
    if value is None:
        return default
    return str(value).strip().lower() in ("1", "true", "yes", "on")
