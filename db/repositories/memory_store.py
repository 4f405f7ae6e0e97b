"""
In-process KPI store.

Backs previews and tests with the same contract as :class:`KPIRepository`.
A single lock makes each call atomic, which stands in for the primary key
constraint of the ``kpis`` table.
"""

from __future__ import annotations

import threading
from datetime import datetime, timezone
from typing import Any

from db.models.kpi_record import KpiRecord


class InMemoryKpiStore:
    """
    Dict-backed :class:`db.repositories.kpi_store.KpiStore`.

    ``writes`` counts calls to :meth:`upsert_by_id`, including ones that hit
    an existing row.
    """

    def __init__(self) -> None:
        self._rows: dict[str, KpiRecord] = {}
        self._lock = threading.Lock()
        self.writes = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._rows)

    def all(self) -> list[KpiRecord]:
        with self._lock:
            return list(self._rows.values())

    def get_by_id(self, kpi_id: str) -> KpiRecord | None:
        with self._lock:
            return self._rows.get(kpi_id)

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
        with self._lock:
            for row in self._rows.values():
                if (
                    row.type == kpi_type
                    and row.name == name
                    and row.site_id == site_id
                    and row.period_start == period_start
                    and row.period_end == period_end
                    and row.segment_id == segment_id
                ):
                    return row
        return None

    def upsert_by_id(self, values: dict[str, Any]) -> tuple[KpiRecord, bool]:
        with self._lock:
            self.writes += 1
            existing = self._rows.get(values["id"])
            if existing is not None:
                return existing, False

            now = datetime.now(timezone.utc)
            row = KpiRecord(**values)
            row.created_at = now
            row.updated_at = now
            self._rows[row.id] = row
            return row, True
