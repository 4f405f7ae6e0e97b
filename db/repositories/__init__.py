"""
Repository layer exports.
"""

from db.repositories.errors import KpiConflictError, KpiStoreError, KpiStoreUnavailableError
from db.repositories.kpi_repository import KPIRepository
from db.repositories.kpi_store import KpiStore
from db.repositories.memory_store import InMemoryKpiStore

__all__ = [
    "KPIRepository",
    "KpiStore",
    "InMemoryKpiStore",
    "KpiStoreError",
    "KpiStoreUnavailableError",
    "KpiConflictError",
]
