"""
db/config.py

Environment-driven settings for the KPI store database.

Everything the engine needs (URL, pool sizing, SQL echo) is read once into
a frozen :class:`DatabaseSettings`.  Only PostgreSQL is accepted: the
``kpis`` upsert relies on ``INSERT ... ON CONFLICT``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

_PROJECT_ROOT = Path(__file__).resolve().parents[1]
_CLOUD_LIKE_ENVS = frozenset({"prod", "production", "staging", "cloud"})
_PSYCOPG_SCHEME = "postgresql+psycopg://"


def load_env_files(project_root: Path | None = None) -> None:
    """
    Merge ``.env`` then ``.env.local`` into ``os.environ``.

    Variables already set in the process environment win.
    """
    root = project_root or _PROJECT_ROOT
    for env_path in (root / ".env", root / ".env.local"):
        if not env_path.is_file():
            continue
        for raw_line in env_path.read_text(encoding="utf-8").splitlines():
            key, sep, value = raw_line.strip().partition("=")
            if not sep or key.startswith("#"):
                continue
            os.environ.setdefault(key.strip(), value.strip().strip("\"'"))


def normalize_postgres_url(url: str) -> str:
    """Rewrite ``postgres://`` / ``postgresql://`` to the psycopg 3 driver form."""
    scheme, sep, rest = url.partition("://")
    if sep and scheme in {"postgres", "postgresql"}:
        return _PSYCOPG_SCHEME + rest
    return url


def resolve_database_url() -> str:
    """
    Resolve the KPI store database URL.

    Priority:
    1) DATABASE_URL
    2) CLOUD_DATABASE_URL when ENVIRONMENT is cloud-like
    3) LOCAL_DATABASE_URL

    Raises
    ------
    RuntimeError
        If none is set, or the resolved URL is not a PostgreSQL URL.
    """
    load_env_files()

    environment = os.getenv("ENVIRONMENT", "local").strip().lower()
    candidates = [os.getenv("DATABASE_URL")]
    if environment in _CLOUD_LIKE_ENVS:
        candidates.append(os.getenv("CLOUD_DATABASE_URL"))
    candidates.append(os.getenv("LOCAL_DATABASE_URL"))

    url = next((c.strip() for c in candidates if c and c.strip()), None)
    if url is None:
        raise RuntimeError(
            "No database URL configured. Set DATABASE_URL, or configure "
            "LOCAL_DATABASE_URL / CLOUD_DATABASE_URL."
        )

    url = normalize_postgres_url(url)
    if not url.startswith("postgresql"):
        raise RuntimeError("The KPI store requires a PostgreSQL database URL.")
    return url


def _get_bool_env(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


@dataclass(frozen=True)
class DatabaseSettings:
    url: str
    echo: bool = False
    pool_size: int = 5
    max_overflow: int = 10
    pool_recycle: int = 1800


@lru_cache(maxsize=1)
def get_database_settings() -> DatabaseSettings:
    """
    Return cached engine settings.

    Env vars: SQL_ECHO, DB_POOL_SIZE, DB_MAX_OVERFLOW, DB_POOL_RECYCLE.
    """
    url = resolve_database_url()
    return DatabaseSettings(
        url=url,
        echo=_get_bool_env("SQL_ECHO", False),
        pool_size=_get_int_env("DB_POOL_SIZE", 5),
        max_overflow=_get_int_env("DB_MAX_OVERFLOW", 10),
        pool_recycle=_get_int_env("DB_POOL_RECYCLE", 1800),
    )
