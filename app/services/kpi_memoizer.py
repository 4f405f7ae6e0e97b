"""
app/services/kpi_memoizer.py

Find-or-create orchestration for memoized KPI records.

Given a metric request and a freshly computed value, the memoizer returns
the one stored KpiRecord for the request's canonical key, creating it only
when no row exists yet and a writer (``user_id``) is known.

Lookup order
------------
1. Standardize the period and derive the deterministic id.
2. Fast path       – ``get_by_id``.
3. Attribute path  – ``find_by_attributes`` on the canonical tuple.
4. No-create guard – without ``user_id`` nothing is ever written.
5. Create path     – compute the trend once and ``upsert_by_id``; a row
   another writer stored first is returned with ``created=False``.
6. Race recovery   – if the upsert fails, re-run the attribute lookup.
7. Exception recovery – any unexpected error gets one last attribute lookup.

Failure contract
----------------
- Store failures never propagate; the worst outcome is ``kpi=None``, which
  callers render as "no data".
- ``MalformedPeriodError`` propagates: it signals a caller bug.

Concurrent callers racing on the same key rely on the store's primary key
on ``id``; no lock is held across steps.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from app.config import KPISettings, get_kpi_settings
from db.models.kpi_record import KpiRecord
from db.repositories.errors import KpiStoreError
from db.repositories.kpi_store import KpiStore
from kpi.identifier import identify, stored_segment
from kpi.periods import MalformedPeriodError, StandardPeriod, standardize
from kpi.trend import calculate_trend

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Input / output dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class KpiParams:
    """
    One request to memoize a KPI value.

    ``period_start`` / ``period_end`` are the raw requested bounds; they are
    standardized before any lookup.  ``segment_id`` of ``None`` or ``"all"``
    both mean "no segment filter".  ``unit`` falls back to
    :attr:`KPISettings.default_unit`.
    """

    site_id: str
    user_id: str | None
    segment_id: str | None
    period_start: date | datetime
    period_end: date | datetime
    kpi_type: str
    name: str
    value: float
    previous_value: float | None = None
    unit: str | None = None


@dataclass(frozen=True)
class MemoizedKpi:
    """
    Result of :meth:`KpiMemoizer.find_or_create`.

    ``kpi`` is ``None`` when no record exists and none could be created;
    ``created`` is ``True`` only for the call whose upsert materialized it.
    """

    kpi: KpiRecord | None
    created: bool


@dataclass(frozen=True)
class _Lookup:
    kpi_type: str
    name: str
    site_id: str
    period_start: str
    period_end: str
    segment_id: str | None


# ---------------------------------------------------------------------------
# Memoizer
# ---------------------------------------------------------------------------


class KpiMemoizer:
    """
    Request-scoped find-or-create over a :class:`KpiStore`.

    Holds no state between calls beyond its collaborators.
    """

    def __init__(self, store: KpiStore, settings: KPISettings | None = None) -> None:
        self._store = store
        self._settings = settings or get_kpi_settings()

    def find_or_create(
        self,
        params: KpiParams,
        period: StandardPeriod | None = None,
    ) -> MemoizedKpi:
        """
        Return the stored KPI for *params*, creating it at most once.

        Pass *period* when the caller already holds the standardized window
        for ``params.period_start`` / ``params.period_end``; otherwise the raw
        bounds are standardized here.
        """
        if period is None:
            period = standardize(params.period_start, params.period_end)
        kpi_id = identify(
            params.kpi_type,
            params.name,
            params.site_id,
            period.start,
            period.end,
            params.segment_id,
        )
        lookup = _Lookup(
            kpi_type=params.kpi_type,
            name=params.name,
            site_id=params.site_id,
            period_start=period.start_text,
            period_end=period.end_text,
            segment_id=stored_segment(params.segment_id),
        )
        logger.debug(
            "find_or_create id=%s type=%r name=%r site=%s period=[%s, %s] segment=%s",
            kpi_id,
            params.kpi_type,
            params.name,
            params.site_id,
            lookup.period_start,
            lookup.period_end,
            lookup.segment_id,
        )

        try:
            existing = self._get_by_id(kpi_id)
            if existing is not None:
                logger.debug("find_or_create hit by id=%s", kpi_id)
                return MemoizedKpi(kpi=existing, created=False)

            existing = self._find_by_attributes(lookup)
            if existing is not None:
                logger.info(
                    "find_or_create hit by attributes id=%s (canonical id=%s)",
                    existing.id,
                    kpi_id,
                )
                return MemoizedKpi(kpi=existing, created=False)

            if not params.user_id or not self._settings.creation_enabled:
                logger.info(
                    "find_or_create skipping creation of id=%s: read-only request", kpi_id
                )
                return MemoizedKpi(kpi=None, created=False)

            values = self._build_values(kpi_id, params, period, lookup)
            try:
                row, inserted = self._store.upsert_by_id(values)
            except KpiStoreError as exc:
                logger.warning("find_or_create upsert failed id=%s: %s", kpi_id, exc)
                recovered = self._find_by_attributes(lookup)
                if recovered is not None:
                    logger.info("find_or_create recovered concurrent row id=%s", recovered.id)
                    return MemoizedKpi(kpi=recovered, created=False)
                return MemoizedKpi(kpi=None, created=False)

            if not inserted:
                logger.info("find_or_create lost race; id=%s stored by another writer", row.id)
                return MemoizedKpi(kpi=row, created=False)

            logger.info(
                "find_or_create created id=%s value=%s trend=%s",
                row.id,
                row.value,
                row.trend,
            )
            return MemoizedKpi(kpi=row, created=True)

        except MalformedPeriodError:
            raise
        except Exception as exc:  # noqa: BLE001
            logger.error("find_or_create failed id=%s: %s", kpi_id, exc, exc_info=True)
            return self._recover(lookup)

    # ------------------------------------------------------------------
    # Internal: store access
    # ------------------------------------------------------------------

    def _get_by_id(self, kpi_id: str) -> KpiRecord | None:
        try:
            return self._store.get_by_id(kpi_id)
        except KpiStoreError as exc:
            logger.warning("find_or_create id lookup failed id=%s: %s", kpi_id, exc)
            return None

    def _find_by_attributes(self, lookup: _Lookup) -> KpiRecord | None:
        try:
            return self._store.find_by_attributes(
                kpi_type=lookup.kpi_type,
                name=lookup.name,
                site_id=lookup.site_id,
                period_start=lookup.period_start,
                period_end=lookup.period_end,
                segment_id=lookup.segment_id,
            )
        except KpiStoreError as exc:
            logger.warning(
                "find_or_create attribute lookup failed type=%r name=%r site=%s: %s",
                lookup.kpi_type,
                lookup.name,
                lookup.site_id,
                exc,
            )
            return None

    def _recover(self, lookup: _Lookup) -> MemoizedKpi:
        try:
            recovered = self._find_by_attributes(lookup)
        except Exception as exc:  # noqa: BLE001
            logger.error("find_or_create recovery lookup failed: %s", exc)
            recovered = None

        if recovered is not None:
            logger.info("find_or_create recovered row id=%s", recovered.id)
        return MemoizedKpi(kpi=recovered, created=False)

    # ------------------------------------------------------------------
    # Internal: record construction
    # ------------------------------------------------------------------

    def _build_values(
        self,
        kpi_id: str,
        params: KpiParams,
        period: StandardPeriod,
        lookup: _Lookup,
    ) -> dict[str, Any]:
        trend = (
            calculate_trend(params.value, params.previous_value)
            if params.previous_value is not None
            else 0.0
        )
        return {
            "id": kpi_id,
            "type": params.kpi_type,
            "name": params.name,
            "description": f"{params.name} for {period.period_type} period",
            "value": params.value,
            "previous_value": params.previous_value or 0.0,
            "trend": trend,
            "unit": params.unit or self._settings.default_unit,
            "period_start": lookup.period_start,
            "period_end": lookup.period_end,
            "segment_id": lookup.segment_id,
            "site_id": params.site_id,
            "user_id": params.user_id,
            "is_highlighted": self._settings.highlight_new_kpis,
            "target_value": None,
            "benchmark": None,
            "meta": {"period_type": period.period_type},
        }


# ---------------------------------------------------------------------------
# Caller-facing operation
# ---------------------------------------------------------------------------


def find_or_create_kpi(
    store: KpiStore,
    params: KpiParams,
    settings: KPISettings | None = None,
) -> MemoizedKpi:
    """
    Return the stored KPI for *params*, creating it at most once.

    Equivalent to ``KpiMemoizer(store, settings).find_or_create(params)``.
    """
    return KpiMemoizer(store, settings).find_or_create(params)
