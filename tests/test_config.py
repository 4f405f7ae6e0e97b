"""
tests/test_config.py

Environment-driven settings for KPI memoization and the database URL.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from pathlib import Path

import pytest

from app.config import KPISettings, get_kpi_settings
from db.config import (
    DatabaseSettings,
    get_database_settings,
    load_env_files,
    normalize_postgres_url,
    resolve_database_url,
)


@pytest.fixture(autouse=True)
def _fresh_settings() -> Iterator[None]:
    get_kpi_settings.cache_clear()
    yield
    get_kpi_settings.cache_clear()


def test_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("KPI_DEFAULT_UNIT", "KPI_HIGHLIGHT_NEW", "KPI_CREATION_ENABLED"):
        monkeypatch.delenv(name, raising=False)
    assert get_kpi_settings() == KPISettings()


def test_env_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("KPI_DEFAULT_UNIT", "currency")
    monkeypatch.setenv("KPI_HIGHLIGHT_NEW", "no")
    monkeypatch.setenv("KPI_CREATION_ENABLED", "0")

    settings = get_kpi_settings()

    assert settings.default_unit == "currency"
    assert settings.highlight_new_kpis is False
    assert settings.creation_enabled is False


def test_blank_unit_falls_back(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("KPI_DEFAULT_UNIT", "   ")
    assert get_kpi_settings().default_unit == "count"


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("postgres://u:p@h/db", "postgresql+psycopg://u:p@h/db"),
        ("postgresql://u:p@h/db", "postgresql+psycopg://u:p@h/db"),
        ("postgresql+psycopg://u:p@h/db", "postgresql+psycopg://u:p@h/db"),
    ],
)
def test_normalize_postgres_url(raw: str, expected: str) -> None:
    assert normalize_postgres_url(raw) == expected


# ---------------------------------------------------------------------------
# Database settings
# ---------------------------------------------------------------------------


_DB_VARS = (
    "DATABASE_URL",
    "CLOUD_DATABASE_URL",
    "LOCAL_DATABASE_URL",
    "ENVIRONMENT",
    "SQL_ECHO",
    "DB_POOL_SIZE",
    "DB_MAX_OVERFLOW",
    "DB_POOL_RECYCLE",
)


@pytest.fixture()
def clean_db_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[pytest.MonkeyPatch]:
    for name in _DB_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("db.config.load_env_files", lambda project_root=None: None)
    get_database_settings.cache_clear()
    yield monkeypatch
    get_database_settings.cache_clear()


def test_direct_url_wins(clean_db_env: pytest.MonkeyPatch) -> None:
    clean_db_env.setenv("DATABASE_URL", "postgres://u@h/direct")
    clean_db_env.setenv("LOCAL_DATABASE_URL", "postgres://u@h/local")
    assert resolve_database_url() == "postgresql+psycopg://u@h/direct"


def test_cloud_url_only_in_cloud_like_env(clean_db_env: pytest.MonkeyPatch) -> None:
    clean_db_env.setenv("CLOUD_DATABASE_URL", "postgres://u@h/cloud")
    clean_db_env.setenv("LOCAL_DATABASE_URL", "postgres://u@h/local")
    assert resolve_database_url().endswith("/local")

    clean_db_env.setenv("ENVIRONMENT", "Production")
    assert resolve_database_url().endswith("/cloud")


def test_missing_url_raises(clean_db_env: pytest.MonkeyPatch) -> None:
    with pytest.raises(RuntimeError, match="No database URL"):
        resolve_database_url()


def test_non_postgres_url_is_rejected(clean_db_env: pytest.MonkeyPatch) -> None:
    clean_db_env.setenv("DATABASE_URL", "sqlite:///kpis.db")
    with pytest.raises(RuntimeError, match="PostgreSQL"):
        resolve_database_url()


def test_engine_settings_from_env(clean_db_env: pytest.MonkeyPatch) -> None:
    clean_db_env.setenv("DATABASE_URL", "postgresql://u@h/db")
    clean_db_env.setenv("SQL_ECHO", "true")
    clean_db_env.setenv("DB_POOL_SIZE", "12")
    clean_db_env.setenv("DB_MAX_OVERFLOW", "not-a-number")

    settings = get_database_settings()

    assert settings == DatabaseSettings(
        url="postgresql+psycopg://u@h/db",
        echo=True,
        pool_size=12,
        max_overflow=10,
        pool_recycle=1800,
    )


def test_env_file_does_not_override_process_env(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    (tmp_path / ".env").write_text(
        "# comment\nKPI_TEST_A=from-file\nKPI_TEST_B = 'quoted'\nnot a pair\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("KPI_TEST_A", "from-process")
    monkeypatch.setenv("KPI_TEST_B", "unset")
    monkeypatch.delenv("KPI_TEST_B")

    load_env_files(tmp_path)

    assert os.environ["KPI_TEST_A"] == "from-process"
    assert os.environ["KPI_TEST_B"] == "quoted"
