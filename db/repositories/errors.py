"""
Repository-layer exceptions for KPI persistence.
"""

from __future__ import annotations


class KpiStoreError(Exception):
    """Base exception for KPI store failures."""


class KpiStoreUnavailableError(KpiStoreError):
    """Raised when a lookup or write cannot reach the backing store."""


class KpiConflictError(KpiStoreError):
    """Raised when a write collides with a row written concurrently."""
