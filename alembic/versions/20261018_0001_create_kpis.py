"""create kpis table

Revision ID: 20261018_0001
Revises:
Create Date: 2026-10-18 09:00:00
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "20261018_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "kpis",
        sa.Column("id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("type", sa.String(length=64), nullable=False,
                  comment="KPI category, e.g. engagement, ltv, cac"),
        sa.Column("name", sa.String(length=255), nullable=False,
                  comment="Human label, e.g. Active Users"),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("value", sa.Float(), nullable=False),
        sa.Column("previous_value", sa.Float(), nullable=False),
        sa.Column("trend", sa.Float(), nullable=False,
                  comment="Percentage change vs previous_value at creation time"),
        sa.Column("unit", sa.String(length=32), nullable=False),
        sa.Column("period_start", sa.String(length=32), nullable=False,
                  comment="Standardized inclusive start, YYYY-MM-DD HH:MM:SS+00"),
        sa.Column("period_end", sa.String(length=32), nullable=False,
                  comment="Standardized inclusive end, YYYY-MM-DD HH:MM:SS+00"),
        sa.Column("segment_id", sa.String(length=255), nullable=True,
                  comment="NULL means all segments"),
        sa.Column("site_id", sa.String(length=255), nullable=False),
        sa.Column("user_id", sa.String(length=255), nullable=False),
        sa.Column("is_highlighted", sa.Boolean(), nullable=False),
        sa.Column("target_value", sa.Float(), nullable=True),
        sa.Column("benchmark", sa.Float(), nullable=True),
        sa.Column(
            "metadata",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=True,
            comment="Free-form annotations; always includes period_type",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_kpis_lookup",
        "kpis",
        ["site_id", "type", "name", "period_start", "period_end"],
        unique=False,
    )
    op.create_index("ix_kpis_segment_id", "kpis", ["segment_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_kpis_segment_id", table_name="kpis")
    op.drop_index("ix_kpis_lookup", table_name="kpis")
    op.drop_table("kpis")
