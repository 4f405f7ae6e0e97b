"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from db.config import load_env_files


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


@dataclass(frozen=True)
class KPISettings:
    """
    Runtime settings for KPI memoization.

    ``creation_enabled=False`` puts every request in read-only mode: lookups
    still run but no KPI row is ever written.
    """

    default_unit: str = "count"
    highlight_new_kpis: bool = True
    creation_enabled: bool = True


@lru_cache(maxsize=1)
def get_kpi_settings() -> KPISettings:
    """
    Return cached KPI settings from environment variables.
    """

    return KPISettings(
        default_unit=_get_str_env("KPI_DEFAULT_UNIT", "count"),
        highlight_new_kpis=_get_bool_env("KPI_HIGHLIGHT_NEW", True),
        creation_enabled=_get_bool_env("KPI_CREATION_ENABLED", True),
    )
