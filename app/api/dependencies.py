"""
app/api/dependencies.py

Shared FastAPI dependencies for KPI endpoints.
"""

from __future__ import annotations

from fastapi import Depends
from sqlalchemy.orm import Session

from app.config import KPISettings, get_kpi_settings
from app.services.kpi_memoizer import KpiMemoizer
from db.repositories.kpi_repository import KPIRepository
from db.repositories.kpi_store import KpiStore
from db.session import get_db


def get_kpi_store(db: Session = Depends(get_db)) -> KpiStore:
    """
    Request-scoped KPI store bound to the request's database session.
    """

    return KPIRepository(db)


def get_kpi_memoizer(
    store: KpiStore = Depends(get_kpi_store),
    settings: KPISettings = Depends(get_kpi_settings),
) -> KpiMemoizer:
    """
    Memoizer over the request's KPI store.
    """

    return KpiMemoizer(store, settings)
