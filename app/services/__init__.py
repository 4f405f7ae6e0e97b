"""
app/services package marker.
"""

from app.services.kpi_memoizer import KpiMemoizer, KpiParams, MemoizedKpi, find_or_create_kpi
from app.services.kpi_service import (
    KpiSnapshot,
    KpiSnapshotService,
    Measurement,
    MetricSource,
    SnapshotRequest,
)

__all__ = [
    "KpiMemoizer",
    "KpiParams",
    "MemoizedKpi",
    "find_or_create_kpi",
    "KpiSnapshot",
    "KpiSnapshotService",
    "Measurement",
    "MetricSource",
    "SnapshotRequest",
]
