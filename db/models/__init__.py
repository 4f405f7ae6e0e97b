"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.kpi_record import KpiRecord

__all__ = [
    "KpiRecord",
]
