"""
app/api/routers package marker.
"""

from app.api.routers.kpi_router import router as kpi_router

__all__ = [
    "kpi_router",
]
