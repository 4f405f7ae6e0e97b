"""
kpi/periods.py

Period classification and snapping for memoized KPIs.

A raw ``(start, end)`` request window is reduced to a calendar-day span,
classified into a period type, and snapped to that type's natural bucket
so that near-identical requests ("Mar 11 – Mar 20", "Mar 12 – Mar 19")
resolve to the same canonical period and therefore the same stored KPI.

Classification
--------------
``span = ceil((end - start) / 1 day)`` after both ends are truncated to a
UTC calendar day::

    span <= 1    → daily
    span <= 7    → weekly
    span <= 31   → monthly
    span <= 92   → quarterly
    span <= 366  → yearly
    otherwise    → custom

Snapping
--------
daily      unchanged
weekly     Monday of start's week  → Sunday of end's week
monthly    first → last day of the month containing start
quarterly  first → last day of the quarter containing start
yearly     Jan 1 → Dec 31 of start's year
custom     unchanged
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone

DAILY = "daily"
WEEKLY = "weekly"
MONTHLY = "monthly"
QUARTERLY = "quarterly"
YEARLY = "yearly"
CUSTOM = "custom"

# Upper bound (inclusive, in days) for each bucketed period type.
_SPAN_LIMITS: tuple[tuple[int, str], ...] = (
    (1, DAILY),
    (7, WEEKLY),
    (31, MONTHLY),
    (92, QUARTERLY),
    (366, YEARLY),
)

# Period types whose previous window is the calendar bucket before start.
_CALENDAR_BUCKETS: frozenset[str] = frozenset({MONTHLY, QUARTERLY, YEARLY})

_DB_BOUNDARY_FORMAT = "%Y-%m-%d %H:%M:%S+00"


class MalformedPeriodError(AssertionError):
    """
    Raised when a standardized period ends before it starts.

    Snapping never produces such a window from a well-ordered request, so
    this signals a caller bug rather than a recoverable runtime condition.
    """


@dataclass(frozen=True)
class StandardPeriod:
    """
    Canonical period produced by :func:`standardize`.

    ``start`` and ``end`` are inclusive UTC calendar days.
    """

    start: date
    end: date
    period_type: str

    @property
    def days(self) -> int:
        """Inclusive number of calendar days covered by the period."""
        return (self.end - self.start).days + 1

    @property
    def start_text(self) -> str:
        return format_boundary(self.start)

    @property
    def end_text(self) -> str:
        return format_boundary(self.end)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def to_utc_day(value: date | datetime) -> date:
    """
    Strip time-of-day and timezone noise from *value*.

    Naive datetimes are interpreted as UTC; aware datetimes are converted to
    UTC before the calendar day is taken.  Plain ``date`` objects pass
    through unchanged.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    return value


def span_days(start: date | datetime, end: date | datetime) -> int:
    """Whole-day distance between the UTC days of *start* and *end*."""
    return (to_utc_day(end) - to_utc_day(start)).days


def classify(start: date | datetime, end: date | datetime) -> str:
    """Return the period type for the raw window ``[start, end]``."""
    span = span_days(start, end)
    for limit, period_type in _SPAN_LIMITS:
        if span <= limit:
            return period_type
    return CUSTOM


def standardize(start: date | datetime, end: date | datetime) -> StandardPeriod:
    """
    Classify ``[start, end]`` and snap it to its canonical bucket.

    Raises
    ------
    MalformedPeriodError
        If the snapped end falls before the snapped start.
    """
    start_day = to_utc_day(start)
    end_day = to_utc_day(end)
    period_type = classify(start_day, end_day)
    canonical_start, canonical_end = _snap(start_day, end_day, period_type)

    if canonical_end < canonical_start:
        raise MalformedPeriodError(
            f"Standardized {period_type} period ends before it starts: "
            f"{canonical_start.isoformat()} > {canonical_end.isoformat()}"
        )

    return StandardPeriod(start=canonical_start, end=canonical_end, period_type=period_type)


def previous_period(period: StandardPeriod) -> StandardPeriod:
    """
    Return the standardized window immediately preceding *period*.

    Month, quarter and year periods step back to the calendar bucket that
    contains the day before ``period.start``.  Daily, weekly and custom
    periods shift back by their own inclusive length, which keeps weekly
    windows Monday-aligned.
    """
    prev_end = period.start - timedelta(days=1)

    if period.period_type in _CALENDAR_BUCKETS:
        prev_start, prev_end = _snap(prev_end, prev_end, period.period_type)
        return StandardPeriod(start=prev_start, end=prev_end, period_type=period.period_type)

    prev_start = period.start - timedelta(days=period.days)
    return StandardPeriod(start=prev_start, end=prev_end, period_type=period.period_type)


def format_boundary(day: date | datetime) -> str:
    """
    Render a period boundary in the fixed text format stored in ``kpis``.

    Example: ``2025-03-11 00:00:00+00``.
    """
    day = to_utc_day(day)
    return datetime(day.year, day.month, day.day, tzinfo=timezone.utc).strftime(
        _DB_BOUNDARY_FORMAT
    )


# ---------------------------------------------------------------------------
# Module-level helpers
# ---------------------------------------------------------------------------


def _snap(start: date, end: date, period_type: str) -> tuple[date, date]:
    if period_type == WEEKLY:
        week_start = start - timedelta(days=start.weekday())
        week_end = end + timedelta(days=6 - end.weekday())
        return week_start, week_end

    if period_type == MONTHLY:
        return _month_bounds(start.year, start.month)

    if period_type == QUARTERLY:
        first_month = 3 * ((start.month - 1) // 3) + 1
        quarter_start, _ = _month_bounds(start.year, first_month)
        _, quarter_end = _month_bounds(start.year, first_month + 2)
        return quarter_start, quarter_end

    if period_type == YEARLY:
        return date(start.year, 1, 1), date(start.year, 12, 31)

    return start, end


def _month_bounds(year: int, month: int) -> tuple[date, date]:
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)
