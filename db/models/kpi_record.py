"""
db/models/kpi_record.py

Memoized KPI values.
One row per (type, name, site, standardized period, segment).
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import Boolean, Float, Index, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin


class KpiRecord(TimestampMixin, Base):
    """
    Stored KPI value for one canonical period.

    ``id`` is not random: it is derived from the canonical key by
    :func:`kpi.identifier.identify`, so the primary key constraint is what
    keeps concurrent writers from materializing the same KPI twice.

    ``period_start`` / ``period_end`` hold the standardized boundaries as
    text in the fixed ``YYYY-MM-DD HH:MM:SS+00`` format, which makes the
    attribute lookup an exact string match.

    ``trend`` is computed once from ``value`` and ``previous_value`` when the
    row is first created and is never recomputed.
    """

    __tablename__ = "kpis"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
    )
    type: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="KPI category, e.g. engagement, ltv, cac",
    )
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Human label, e.g. Active Users",
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    value: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    previous_value: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    trend: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        default=0.0,
        comment="Percentage change vs previous_value at creation time",
    )
    unit: Mapped[str] = mapped_column(String(32), nullable=False, default="count")
    period_start: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="Standardized inclusive start, YYYY-MM-DD HH:MM:SS+00",
    )
    period_end: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="Standardized inclusive end, YYYY-MM-DD HH:MM:SS+00",
    )
    segment_id: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="NULL means all segments",
    )
    site_id: Mapped[str] = mapped_column(String(255), nullable=False)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    is_highlighted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    target_value: Mapped[float | None] = mapped_column(Float, nullable=True)
    benchmark: Mapped[float | None] = mapped_column(Float, nullable=True)
    meta: Mapped[dict[str, Any] | None] = mapped_column(
        "metadata",
        JSONB,
        nullable=True,
        comment="Free-form annotations; always includes period_type",
    )

    __table_args__ = (
        Index(
            "ix_kpis_lookup",
            "site_id",
            "type",
            "name",
            "period_start",
            "period_end",
        ),
        Index("ix_kpis_segment_id", "segment_id"),
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "name": self.name,
            "description": self.description,
            "value": self.value,
            "previous_value": self.previous_value,
            "trend": self.trend,
            "unit": self.unit,
            "period_start": self.period_start,
            "period_end": self.period_end,
            "segment_id": self.segment_id,
            "site_id": self.site_id,
            "user_id": self.user_id,
            "is_highlighted": self.is_highlighted,
            "target_value": self.target_value,
            "benchmark": self.benchmark,
            "metadata": self.meta,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
