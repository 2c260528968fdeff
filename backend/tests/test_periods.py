"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  SalesDesk CRM - Period Resolver Tests                                       ║
║                                                                              ║
║  1. Named periods = fixed day counts ending at now                           ║
║  2. Explicit startDate + endDate win over period                             ║
║  3. Unparsable dates are rejected (400)                                      ║
║  4. Window day expansion used by the attendance report                       ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

from datetime import date, datetime, timedelta, timezone

import pytest

from models.report import CUSTOM_PERIOD, ReportWindow
from services.periods import (
    MAX_DATETIME,
    MAX_RANGE_DAYS,
    next_window,
    normalize_period,
    parse_date_bound,
    parse_datetime,
    resolve_period,
    window_days,
    window_length_days,
)
from services.report_errors import InvalidRequest
from tests.conftest import NOW


class TestNamedPeriods:

    @pytest.mark.parametrize("period,days", [("week", 7), ("month", 30), ("quarter", 90), ("year", 365)])
    def test_period_day_counts(self, period, days):
        window = resolve_period(period, now=NOW)
        assert window.end == NOW
        assert window.end - window.start == timedelta(days=days)
        assert window.period == period

    def test_missing_period_defaults_to_month(self):
        window = resolve_period(None, now=NOW)
        assert window.period == "month"
        assert window.end - window.start == timedelta(days=30)

    def test_unknown_period_defaults_to_month(self):
        assert normalize_period("fortnight") == "month"
        assert normalize_period("WEEK") == "week"

    def test_resolution_is_deterministic(self):
        """Same inputs + same clock -> same window"""
        assert resolve_period("quarter", now=NOW) == resolve_period("quarter", now=NOW)


class TestExplicitRange:

    def test_explicit_range_wins_over_period(self):
        window = resolve_period("week", "2026-09-01", "2026-09-30", now=NOW)
        assert window.period == CUSTOM_PERIOD
        assert window.start == datetime(2026, 9, 1, tzinfo=timezone.utc)
        assert window.end.date() == date(2026, 9, 30)

    def test_date_only_end_covers_whole_day(self):
        window = resolve_period(None, "2026-09-01", "2026-09-30", now=NOW)
        assert (window.end.hour, window.end.minute, window.end.second) == (23, 59, 59)

    def test_full_timestamp_end_is_kept(self):
        window = resolve_period(None, "2026-09-01T08:00:00Z", "2026-09-02T10:30:00Z", now=NOW)
        assert window.end == datetime(2026, 9, 2, 10, 30, tzinfo=timezone.utc)

    def test_single_bound_is_ignored(self):
        window = resolve_period("week", "2026-09-01", None, now=NOW)
        assert window.period == "week"
        assert window.end == NOW

    def test_inverted_range_is_accepted(self):
        window = resolve_period(None, "2026-09-30", "2026-09-01", now=NOW)
        assert window.is_empty
        assert window_days(window) == []

    def test_unparsable_date_rejected(self):
        with pytest.raises(InvalidRequest) as exc:
            resolve_period("month", "not-a-date", "2026-09-01", now=NOW)
        assert exc.value.status_code == 400

    def test_range_wider_than_limit_rejected(self):
        with pytest.raises(InvalidRequest) as exc:
            resolve_period(None, "0001-01-01", "9999-12-31", now=NOW)
        assert exc.value.status_code == 400
        assert str(MAX_RANGE_DAYS) in exc.value.details

    def test_range_at_limit_accepted(self):
        start = datetime(2016, 10, 15, tzinfo=timezone.utc)
        end = start + timedelta(days=MAX_RANGE_DAYS)
        window = resolve_period(None, start.isoformat(), end.isoformat(), now=NOW)
        assert window.end - window.start == timedelta(days=MAX_RANGE_DAYS)


class TestParsing:

    def test_naive_datetime_is_utc(self):
        assert parse_datetime("2026-10-01T10:00:00").tzinfo == timezone.utc

    def test_z_suffix(self):
        assert parse_datetime("2026-10-01T10:00:00Z") == datetime(2026, 10, 1, 10, tzinfo=timezone.utc)

    def test_offset_converted_to_utc(self):
        assert parse_datetime("2026-10-01T12:00:00+02:00") == datetime(2026, 10, 1, 10, tzinfo=timezone.utc)

    def test_empty_values(self):
        assert parse_datetime(None) is None
        assert parse_datetime("") is None

    def test_empty_bound_rejected(self):
        with pytest.raises(InvalidRequest):
            parse_date_bound("")


class TestWindowDays:

    def test_week_has_seven_days_ending_today(self):
        days = window_days(resolve_period("week", now=NOW))
        assert len(days) == 7
        assert days[-1] == NOW.date()
        assert days[0] == NOW.date() - timedelta(days=6)

    def test_single_day_window(self):
        start = datetime(2026, 10, 15, tzinfo=timezone.utc)
        window = ReportWindow(start=start, end=start + timedelta(hours=23), period=CUSTOM_PERIOD)
        assert window_days(window) == [date(2026, 10, 15)]

    def test_length_has_floor_of_one_day(self):
        assert window_length_days(NOW, NOW) == 1
        assert window_length_days(NOW - timedelta(days=7), NOW) == 7

    def test_custom_window_counts_start_day(self):
        """18:00 -> surlendemain 06:00: le jour de départ est un créneau"""
        window = resolve_period(None, "2026-10-13T18:00:00Z", "2026-10-15T06:00:00Z", now=NOW)
        assert window_days(window) == [date(2026, 10, 13), date(2026, 10, 14), date(2026, 10, 15)]

    def test_named_period_skips_partial_first_day(self):
        window = resolve_period("week", now=NOW)
        assert window.start.date() == date(2026, 10, 8)
        assert date(2026, 10, 8) not in window_days(window)

    def test_wide_custom_window(self):
        window = resolve_period(None, "2026-01-01", "2026-12-31", now=NOW)
        days = window_days(window)
        assert len(days) == 365
        assert (days[0], days[-1]) == (date(2026, 1, 1), date(2026, 12, 31))


class TestNextWindow:

    def test_same_length_after_end(self):
        window = resolve_period("month", now=NOW)
        assert next_window(window) == (NOW, NOW + timedelta(days=30))

    def test_clamped_at_calendar_end(self):
        window = ReportWindow(start=MAX_DATETIME - timedelta(days=2), end=MAX_DATETIME, period=CUSTOM_PERIOD)
        assert next_window(window) == (MAX_DATETIME, MAX_DATETIME)

    def test_inverted_window(self):
        window = resolve_period(None, "2026-09-30", "2026-09-01", now=NOW)
        assert next_window(window) == (window.end, window.end)
