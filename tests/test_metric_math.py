from datetime import date, datetime, timezone

import pytest

from workspace_hub.services import metric_math as mm

UTC = timezone.utc


class TestRates:
    def test_rate_zero_total(self):
        assert mm.rate(0, 0) == 0.0
        assert mm.rate(5, 0) == 0.0

    def test_rounded_percentage_half_up(self):
        assert mm.rounded_percentage(11, 15) == 73
        assert mm.rounded_percentage(1, 8) == 13
        assert mm.rounded_percentage(0, 0) == 0

    @pytest.mark.parametrize("current, previous, expected", [
        (150, 100, 50.0),
        (50, 100, -50.0),
        (5, 0, 100.0),
        (0, 0, 0.0),
        (None, 3, None),
        (3, None, None),
        (float("nan"), 1, None),
        (True, 1, None),
        ("12", 1, None),
    ])
    def test_month_over_month_change(self, current, previous, expected):
        assert mm.month_over_month_change(current, previous) == expected

    @pytest.mark.parametrize("this_week, last_week, expected", [
        (3, 0, 100),
        (0, 0, 0),
        (10, 2, 100),
        (1, 4, -75),
        (0, 4, -100),
        (4, 4, 0),
    ])
    def test_weekly_progress_is_clamped(self, this_week, last_week, expected):
        assert mm.weekly_progress(this_week, last_week) == expected


class TestWindows:
    def test_day_buckets_inclusive(self):
        days = mm.day_buckets(date(2026, 3, 30), date(2026, 4, 2))
        assert days == [date(2026, 3, 30), date(2026, 3, 31), date(2026, 4, 1), date(2026, 4, 2)]

    def test_day_buckets_accepts_datetimes(self):
        days = mm.day_buckets(datetime(2026, 1, 1, 18, tzinfo=UTC), datetime(2026, 1, 2, 1, tzinfo=UTC))
        assert days == [date(2026, 1, 1), date(2026, 1, 2)]

    def test_day_buckets_inverted_or_missing(self):
        assert mm.day_buckets(date(2026, 4, 2), date(2026, 4, 1)) == []
        assert mm.day_buckets(None, date(2026, 4, 1)) == []

    def test_month_windows_cross_year(self):
        windows = mm.month_windows(datetime(2026, 2, 15, tzinfo=UTC), 3)
        assert [label for _, _, label in windows] == ["Dec 2025", "Jan 2026", "Feb 2026"]
        assert windows[0][0] == datetime(2025, 12, 1, tzinfo=UTC)
        assert windows[-1][1] == datetime(2026, 3, 1, tzinfo=UTC)

    def test_week_window_starts_monday(self):
        start, end = mm.week_window(datetime(2026, 10, 14, 15, tzinfo=UTC))
        assert start == datetime(2026, 10, 12, tzinfo=UTC)
        assert end == datetime(2026, 10, 19, tzinfo=UTC)
        prev_start, prev_end = mm.previous_week_window(datetime(2026, 10, 14, 15, tzinfo=UTC))
        assert prev_start == datetime(2026, 10, 5, tzinfo=UTC)
        assert prev_end == start

    def test_in_window(self):
        start = datetime(2026, 10, 1, tzinfo=UTC)
        end = datetime(2026, 11, 1, tzinfo=UTC)
        assert mm.in_window(datetime(2026, 10, 1, tzinfo=UTC), start, end)
        assert not mm.in_window(end, start, end)
        assert not mm.in_window(None, start, end)
        # naive values are read as UTC
        assert mm.in_window(datetime(2026, 10, 5), start, end)
        assert mm.in_window(datetime(2026, 10, 5, tzinfo=UTC), datetime(2026, 10, 1), datetime(2026, 11, 1))


class TestDurations:
    def test_hours_and_days(self):
        a = datetime(2026, 1, 1, tzinfo=UTC)
        b = datetime(2026, 1, 3, tzinfo=UTC)
        assert mm.hours_between(a, b) == 48
        assert mm.days_between(a, b) == 2
        assert mm.hours_between(None, b) is None
        assert mm.days_between(a, None) is None

    def test_mean_skips_missing(self):
        assert mm.mean([]) == 0.0
        assert mm.mean([None, 2, 4]) == 3.0
        assert mm.mean([None], default=None) is None
