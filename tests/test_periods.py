"""
tests/test_periods.py

Pytest unit tests for period classification and snapping.

Coverage
--------
- Span boundaries for every period type
- Snapping per period type
- Time-of-day and timezone noise
- Malformed periods
- Previous-period derivation
- DB boundary text format
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from kpi.periods import (
    CUSTOM,
    DAILY,
    MONTHLY,
    QUARTERLY,
    WEEKLY,
    YEARLY,
    MalformedPeriodError,
    StandardPeriod,
    classify,
    format_boundary,
    previous_period,
    standardize,
    to_utc_day,
)


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


class TestClassify:
    @pytest.mark.parametrize(
        "span, expected",
        [
            (0, DAILY),
            (1, DAILY),
            (2, WEEKLY),
            (7, WEEKLY),
            (8, MONTHLY),
            (31, MONTHLY),
            (32, QUARTERLY),
            (92, QUARTERLY),
            (93, YEARLY),
            (366, YEARLY),
            (367, CUSTOM),
        ],
    )
    def test_span_boundaries(self, span: int, expected: str) -> None:
        start = date(2025, 1, 15)
        assert classify(start, start + timedelta(days=span)) == expected

    def test_standardize_uses_same_buckets(self) -> None:
        start = date(2025, 1, 15)
        assert standardize(start, start + timedelta(days=31)).period_type == MONTHLY
        assert standardize(start, start + timedelta(days=367)).period_type == CUSTOM


# ---------------------------------------------------------------------------
# Snapping
# ---------------------------------------------------------------------------


class TestStandardize:
    def test_monthly_snaps_to_calendar_month(self) -> None:
        period = standardize(date(2025, 3, 11), date(2025, 3, 20))
        assert period == StandardPeriod(
            start=date(2025, 3, 1),
            end=date(2025, 3, 31),
            period_type=MONTHLY,
        )

    def test_monthly_uses_month_of_start(self) -> None:
        period = standardize(date(2025, 1, 15), date(2025, 2, 10))
        assert (period.start, period.end) == (date(2025, 1, 1), date(2025, 1, 31))

    def test_monthly_february_leap_year(self) -> None:
        period = standardize(date(2024, 2, 3), date(2024, 2, 20))
        assert period.end == date(2024, 2, 29)

    def test_daily_is_unchanged(self) -> None:
        period = standardize(date(2025, 3, 11), date(2025, 3, 12))
        assert period == StandardPeriod(date(2025, 3, 11), date(2025, 3, 12), DAILY)

    def test_weekly_snaps_monday_to_sunday(self) -> None:
        # 2025-03-12 is a Wednesday, 2025-03-16 a Sunday.
        period = standardize(date(2025, 3, 12), date(2025, 3, 16))
        assert period == StandardPeriod(date(2025, 3, 10), date(2025, 3, 16), WEEKLY)
        assert period.start.weekday() == 0
        assert period.end.weekday() == 6

    def test_weekly_spanning_two_calendar_weeks(self) -> None:
        period = standardize(date(2025, 3, 12), date(2025, 3, 19))
        assert (period.start, period.end) == (date(2025, 3, 10), date(2025, 3, 23))

    def test_quarterly_snaps_to_quarter_of_start(self) -> None:
        period = standardize(date(2025, 5, 10), date(2025, 7, 1))
        assert period == StandardPeriod(date(2025, 4, 1), date(2025, 6, 30), QUARTERLY)

    def test_yearly_snaps_to_calendar_year(self) -> None:
        period = standardize(date(2025, 2, 1), date(2025, 12, 1))
        assert period == StandardPeriod(date(2025, 1, 1), date(2025, 12, 31), YEARLY)

    def test_custom_is_unchanged(self) -> None:
        period = standardize(date(2024, 1, 10), date(2025, 6, 1))
        assert period == StandardPeriod(date(2024, 1, 10), date(2025, 6, 1), CUSTOM)

    def test_monthly_period_is_stable_when_restandardized(self) -> None:
        period = standardize(date(2025, 3, 11), date(2025, 3, 20))
        assert standardize(period.start, period.end) == period

    def test_days_is_inclusive(self) -> None:
        assert standardize(date(2025, 3, 11), date(2025, 3, 20)).days == 31


# ---------------------------------------------------------------------------
# Time-of-day and timezone noise
# ---------------------------------------------------------------------------


class TestNormalization:
    def test_time_of_day_is_stripped(self) -> None:
        noisy = standardize(
            datetime(2025, 3, 11, 6, 0, 0, 123000),
            datetime(2025, 3, 20, 18, 45, 12),
        )
        assert noisy == standardize(date(2025, 3, 11), date(2025, 3, 20))

    def test_aware_datetime_converted_to_utc_day(self) -> None:
        plus_five = timezone(timedelta(hours=5))
        assert to_utc_day(datetime(2025, 3, 11, 1, 0, tzinfo=plus_five)) == date(2025, 3, 10)

    def test_naive_datetime_treated_as_utc(self) -> None:
        assert to_utc_day(datetime(2025, 3, 11, 23, 59)) == date(2025, 3, 11)

    def test_date_passes_through(self) -> None:
        assert to_utc_day(date(2025, 3, 11)) == date(2025, 3, 11)


# ---------------------------------------------------------------------------
# Malformed periods
# ---------------------------------------------------------------------------


class TestMalformedPeriod:
    def test_end_before_start_raises(self) -> None:
        with pytest.raises(MalformedPeriodError):
            standardize(date(2025, 3, 20), date(2025, 3, 11))

    def test_is_an_assertion_error(self) -> None:
        assert issubclass(MalformedPeriodError, AssertionError)


# ---------------------------------------------------------------------------
# Previous period
# ---------------------------------------------------------------------------


class TestPreviousPeriod:
    def test_previous_month(self) -> None:
        prev = previous_period(standardize(date(2025, 3, 11), date(2025, 3, 20)))
        assert prev == StandardPeriod(date(2025, 2, 1), date(2025, 2, 28), MONTHLY)

    def test_previous_month_across_year(self) -> None:
        prev = previous_period(standardize(date(2025, 1, 5), date(2025, 1, 20)))
        assert (prev.start, prev.end) == (date(2024, 12, 1), date(2024, 12, 31))

    def test_previous_quarter(self) -> None:
        prev = previous_period(standardize(date(2025, 5, 10), date(2025, 7, 1)))
        assert prev == StandardPeriod(date(2025, 1, 1), date(2025, 3, 31), QUARTERLY)

    def test_previous_year(self) -> None:
        prev = previous_period(standardize(date(2025, 2, 1), date(2025, 12, 1)))
        assert prev == StandardPeriod(date(2024, 1, 1), date(2024, 12, 31), YEARLY)

    def test_previous_week_stays_monday_aligned(self) -> None:
        prev = previous_period(standardize(date(2025, 3, 12), date(2025, 3, 19)))
        assert (prev.start, prev.end) == (date(2025, 2, 24), date(2025, 3, 9))
        assert prev.start.weekday() == 0

    def test_previous_day(self) -> None:
        prev = previous_period(standardize(date(2025, 3, 11), date(2025, 3, 11)))
        assert prev == StandardPeriod(date(2025, 3, 10), date(2025, 3, 10), DAILY)

    def test_previous_custom_has_same_length(self) -> None:
        period = standardize(date(2024, 1, 10), date(2025, 6, 1))
        prev = previous_period(period)
        assert prev.end == period.start - timedelta(days=1)
        assert prev.days == period.days


# ---------------------------------------------------------------------------
# Boundary format
# ---------------------------------------------------------------------------


def test_format_boundary_fixed_utc_text() -> None:
    assert format_boundary(date(2025, 3, 11)) == "2025-03-11 00:00:00+00"


def test_format_boundary_strips_time() -> None:
    assert format_boundary(datetime(2025, 3, 11, 6, 30)) == "2025-03-11 00:00:00+00"


def test_standard_period_text_properties() -> None:
    period = standardize(date(2025, 3, 11), date(2025, 3, 20))
    assert period.start_text == "2025-03-01 00:00:00+00"
    assert period.end_text == "2025-03-31 00:00:00+00"
