"""
app/main.py

FastAPI entrypoint for the KPI memoization API.

Startup refuses to serve traffic until the ``kpis`` table is reachable and
carries the columns and lookup index the memoizer depends on.
"""

from __future__ import annotations

import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

logger = logging.getLogger(__name__)

_DATABASE_URL_VARS = ("DATABASE_URL", "CLOUD_DATABASE_URL", "LOCAL_DATABASE_URL")


def _require_database_url() -> None:
    """Fail fast when none of the database URL variables is set."""
    from db.config import load_env_files

    load_env_files()
    if any(os.getenv(name, "").strip() for name in _DATABASE_URL_VARS):
        return
    raise RuntimeError(
        "No database URL configured; set one of: " + ", ".join(_DATABASE_URL_VARS)
    )


def _configure_logging() -> None:
    level_name = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def _verify_kpi_table() -> None:
    """
    Check that the ``kpis`` table matches the ORM model.

    Raises
    ------
    RuntimeError
        If the database is unreachable, or the table, one of its columns or
        the attribute lookup index is missing.  Migrations are never applied
        here; run ``alembic upgrade head``.
    """
    from sqlalchemy import inspect as sa_inspect
    from sqlalchemy.exc import SQLAlchemyError

    from db.models import KpiRecord
    from db.session import get_engine

    table = KpiRecord.__table__
    try:
        inspector = sa_inspect(get_engine())
        if not inspector.has_table(table.name):
            raise RuntimeError(
                f"Table {table.name!r} is missing. Run 'alembic upgrade head'."
            )
        present_columns = {col["name"] for col in inspector.get_columns(table.name)}
        present_indexes = {idx["name"] for idx in inspector.get_indexes(table.name)}
    except SQLAlchemyError as exc:
        raise RuntimeError("Database unavailable.") from exc

    missing_columns = sorted(set(table.columns.keys()) - present_columns)
    missing_indexes = sorted({idx.name for idx in table.indexes} - present_indexes)
    if missing_columns or missing_indexes:
        logger.critical(
            "kpis schema drift: missing columns=%s indexes=%s",
            missing_columns,
            missing_indexes,
        )
        raise RuntimeError(
            "kpis schema drift; run 'alembic upgrade head' and restart."
        )


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    _verify_kpi_table()
    logger.info("kpis table verified")
    yield


def create_app(*, check_database: bool = True) -> FastAPI:
    """
    Build the API application.

    ``check_database=False`` skips the database URL and schema checks; tests
    use it together with dependency overrides.
    """
    if check_database:
        _require_database_url()
    _configure_logging()

    from app.api.routers import kpi_router

    application = FastAPI(
        title="KPI Memoization API",
        version="1.0.0",
        lifespan=_lifespan if check_database else None,
    )
    application.include_router(kpi_router)

    @application.get("/health")
    def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    return application
