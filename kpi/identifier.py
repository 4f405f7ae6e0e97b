"""
kpi/identifier.py

Deterministic identifiers for memoized KPI records.

The id of a KPI row is derived from its canonical key alone::

    "{type}:{name}:{site_id}:{period_start}:{period_end}:{segment}"

hashed with MD5 and regrouped into the 8-4-4-4-12 UUID shape.  Inside the
free-text fields (type, name, site, segment) ``\\`` and ``:`` are
backslash-escaped so no two distinct tuples share a key; keys of inputs
without those characters are unaffected.

MD5 is used as a stable cache key, not as a security primitive: collisions
are negligible for this domain but not impossible under adversarial input.
"""

from __future__ import annotations

import hashlib
from datetime import date, datetime

from kpi.periods import format_boundary

NIL_SEGMENT = "00000000-0000-0000-0000-000000000000"
ALL_SEGMENTS = "all"


def _escape(component: str) -> str:
    return component.replace("\\", "\\\\").replace(":", "\\:")


def is_unfiltered_segment(segment_id: str | None) -> bool:
    """True when *segment_id* means "no segment filter"."""
    return not segment_id or segment_id == ALL_SEGMENTS


def stored_segment(segment_id: str | None) -> str | None:
    """Segment value persisted in ``kpis.segment_id`` (NULL for no filter)."""
    return None if is_unfiltered_segment(segment_id) else segment_id


def canonical_segment(segment_id: str | None) -> str:
    """Segment component of the canonical key."""
    return NIL_SEGMENT if is_unfiltered_segment(segment_id) else segment_id


def canonical_key(
    kpi_type: str,
    name: str,
    site_id: str,
    period_start: date | datetime,
    period_end: date | datetime,
    segment_id: str | None,
) -> str:
    return ":".join(
        (
            _escape(kpi_type),
            _escape(name),
            _escape(site_id),
            format_boundary(period_start),
            format_boundary(period_end),
            _escape(canonical_segment(segment_id)),
        )
    )


def identify(
    kpi_type: str,
    name: str,
    site_id: str,
    period_start: date | datetime,
    period_end: date | datetime,
    segment_id: str | None,
) -> str:
    """
    Return the stable KPI id for the given canonical attributes.

    *period_start* and *period_end* are expected to be already standardized
    (see :func:`kpi.periods.standardize`).
    """
    key = canonical_key(kpi_type, name, site_id, period_start, period_end, segment_id)
    digest = hashlib.md5(key.encode("utf-8")).hexdigest()
    return "-".join(
        (digest[0:8], digest[8:12], digest[12:16], digest[16:20], digest[20:32])
    )
