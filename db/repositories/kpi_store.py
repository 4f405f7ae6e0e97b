"""
Persistence boundary consumed by the KPI memoizer.
"""

from __future__ import annotations

from typing import Any, Protocol

from db.models.kpi_record import KpiRecord


class KpiStore(Protocol):
    """
    Minimal store contract for memoized KPIs.

    Implementations raise :class:`db.repositories.errors.KpiStoreError`
    subclasses for backend failures.
    """

    def get_by_id(self, kpi_id: str) -> KpiRecord | None:
        ...

    def find_by_attributes(
        self,
        *,
        kpi_type: str,
        name: str,
        site_id: str,
        period_start: str,
        period_end: str,
        segment_id: str | None,
    ) -> KpiRecord | None:
        """
        ``segment_id=None`` must match only rows whose segment is NULL,
        never "any segment".
        """
        ...

    def upsert_by_id(self, values: dict[str, Any]) -> tuple[KpiRecord, bool]:
        """
        Insert a row keyed by ``values["id"]``; return ``(row, inserted)``.

        When a row with that id already exists it is returned unchanged with
        ``inserted=False``; repeated identical calls are idempotent.
        """
        ...
