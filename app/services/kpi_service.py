"""
app/services/kpi_service.py

Period-over-period KPI snapshots backed by the memoizer.

A snapshot answers "what is <metric> for this window, and how did it move
against the window before it?".  The previous window's value is taken from
its memoized KpiRecord when one exists, so a dashboard refresh never shows
a different baseline than the one already stored.  Raw values come from a
:class:`MetricSource`; this module performs no metric queries itself.

Flow
----
1. Standardize the requested window and derive the previous window.
2. Writable request (``user_id`` present, creation not skipped):
     a. look up the previous window's KPI without writing;
     b. if absent, measure the previous window and memoize it;
     c. measure the current window; no value and no evidence → ``no_data``;
     d. memoize the current window with the previous value as baseline.
3. Read-only request: measure both windows, write nothing.
4. ``percent_change`` is always recomputed from the values in hand.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Protocol

from app.services.kpi_memoizer import KpiMemoizer, KpiParams
from kpi.periods import StandardPeriod, previous_period, standardize
from kpi.trend import calculate_trend

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Measurement:
    """
    Raw metric value for one window.

    ``value`` is ``None`` when the source could not compute it.
    ``has_evidence`` is ``True`` when any underlying activity was seen,
    which distinguishes a genuine zero from an empty window.
    """

    value: float | None
    has_evidence: bool = False


class MetricSource(Protocol):
    """
    Computes a raw metric for a site, segment and standardized window.
    """

    def measure(
        self,
        *,
        site_id: str,
        segment_id: str | None,
        period: StandardPeriod,
    ) -> Measurement:
        ...


# ---------------------------------------------------------------------------
# Input / output dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SnapshotRequest:
    site_id: str
    user_id: str | None
    segment_id: str | None
    period_start: date | datetime
    period_end: date | datetime
    kpi_type: str
    name: str
    unit: str | None = None
    skip_kpi_creation: bool = False

    @property
    def writable(self) -> bool:
        return bool(self.user_id) and not self.skip_kpi_creation


@dataclass(frozen=True)
class KpiSnapshot:
    """
    Value returned to a dashboard widget.

    ``kpi_id`` is set when the current window was memoized.
    """

    actual: float
    percent_change: float
    period_type: str
    no_data: bool = False
    kpi_id: str | None = None


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class KpiSnapshotService:
    """
    Stateless snapshot builder over a :class:`KpiMemoizer`.

    Usage::

        service = KpiSnapshotService(KpiMemoizer(store))
        snapshot = service.snapshot(request, source)
    """

    def __init__(self, memoizer: KpiMemoizer) -> None:
        self._memoizer = memoizer

    def snapshot(self, request: SnapshotRequest, source: MetricSource) -> KpiSnapshot:
        period = standardize(request.period_start, request.period_end)
        prev = previous_period(period)
        logger.debug(
            "snapshot %r site=%s period=%s [%s, %s] previous=[%s, %s] writable=%s",
            request.name,
            request.site_id,
            period.period_type,
            period.start.isoformat(),
            period.end.isoformat(),
            prev.start.isoformat(),
            prev.end.isoformat(),
            request.writable,
        )

        if request.writable:
            previous_value = self._memoized_previous_value(request, prev, source)
        else:
            previous_value = self._measure(source, request, prev).value or 0.0

        current = self._measure(source, request, period)
        actual = current.value or 0.0
        if actual <= 0 and not current.has_evidence:
            logger.info(
                "snapshot %r site=%s: no activity in [%s, %s]",
                request.name,
                request.site_id,
                period.start.isoformat(),
                period.end.isoformat(),
            )
            return KpiSnapshot(
                actual=0.0,
                percent_change=0.0,
                period_type=period.period_type,
                no_data=True,
            )

        kpi_id: str | None = None
        if request.writable:
            memoized = self._memoizer.find_or_create(
                self._params(request, period, value=actual, previous_value=previous_value),
                period,
            )
            kpi_id = memoized.kpi.id if memoized.kpi is not None else None

        return KpiSnapshot(
            actual=actual,
            percent_change=calculate_trend(actual, previous_value),
            period_type=period.period_type,
            kpi_id=kpi_id,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _memoized_previous_value(
        self,
        request: SnapshotRequest,
        prev: StandardPeriod,
        source: MetricSource,
    ) -> float:
        lookup = self._memoizer.find_or_create(
            self._params(request, prev, value=0.0, read_only=True), prev
        )
        if lookup.kpi is not None:
            return lookup.kpi.value

        measured = self._measure(source, request, prev)
        if measured.value is None:
            return 0.0

        self._memoizer.find_or_create(self._params(request, prev, value=measured.value), prev)
        return measured.value

    @staticmethod
    def _measure(
        source: MetricSource,
        request: SnapshotRequest,
        period: StandardPeriod,
    ) -> Measurement:
        return source.measure(
            site_id=request.site_id,
            segment_id=request.segment_id,
            period=period,
        )

    @staticmethod
    def _params(
        request: SnapshotRequest,
        period: StandardPeriod,
        *,
        value: float,
        previous_value: float | None = None,
        read_only: bool = False,
    ) -> KpiParams:
        return KpiParams(
            site_id=request.site_id,
            user_id=None if read_only else request.user_id,
            segment_id=request.segment_id,
            period_start=period.start,
            period_end=period.end,
            kpi_type=request.kpi_type,
            name=request.name,
            value=value,
            previous_value=previous_value,
            unit=request.unit,
        )
