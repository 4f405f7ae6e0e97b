"""
app/api/routers/kpi_router.py

KPI memoization endpoint.

Exposes :func:`app.services.kpi_memoizer.find_or_create_kpi` to dashboard
widgets.  A missing KPI is a neutral "no data" answer, never an error: the
response is HTTP 200 with ``kpi=null`` whenever the store could not produce
a row.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.api.dependencies import get_kpi_memoizer
from app.services.kpi_memoizer import KpiMemoizer, KpiParams
from db.session import get_db
from kpi.periods import MalformedPeriodError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/kpis", tags=["kpi"])


# ---------------------------------------------------------------------------
# Request / Response schemas
# ---------------------------------------------------------------------------


class KpiFindOrCreateRequest(BaseModel):
    site_id: str = Field(min_length=1)
    user_id: str | None = None
    segment_id: str | None = None
    period_start: date
    period_end: date
    type: str = Field(min_length=1)
    name: str = Field(min_length=1)
    value: float
    previous_value: float | None = None
    unit: str | None = None


class KpiRecordOut(BaseModel):
    id: str
    type: str
    name: str
    description: str | None = None
    value: float
    previous_value: float
    trend: float
    unit: str
    period_start: str
    period_end: str
    segment_id: str | None = None
    site_id: str
    user_id: str
    is_highlighted: bool
    target_value: float | None = None
    benchmark: float | None = None
    metadata: dict[str, Any] | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class KpiFindOrCreateResponse(BaseModel):
    kpi: KpiRecordOut | None = None
    created: bool = False


# ---------------------------------------------------------------------------
# Endpoint
# ---------------------------------------------------------------------------


@router.post(
    "/find-or-create",
    response_model=KpiFindOrCreateResponse,
    status_code=status.HTTP_200_OK,
)
def find_or_create(
    body: KpiFindOrCreateRequest,
    memoizer: KpiMemoizer = Depends(get_kpi_memoizer),
    db: Session = Depends(get_db),
) -> KpiFindOrCreateResponse:
    """
    Return the memoized KPI for the request's canonical period.

    Raises HTTP 400 when the requested period cannot be standardized.
    """
    params = KpiParams(
        site_id=body.site_id,
        user_id=body.user_id,
        segment_id=body.segment_id,
        period_start=body.period_start,
        period_end=body.period_end,
        kpi_type=body.type,
        name=body.name,
        value=body.value,
        previous_value=body.previous_value,
        unit=body.unit,
    )

    try:
        result = memoizer.find_or_create(params)
    except MalformedPeriodError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc

    if result.created:
        try:
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            logger.warning(
                "KPI commit failed site=%s name=%r: %s",
                body.site_id,
                body.name,
                exc,
            )
            return KpiFindOrCreateResponse(kpi=None, created=False)

    if result.kpi is None:
        return KpiFindOrCreateResponse(kpi=None, created=False)

    return KpiFindOrCreateResponse(
        kpi=KpiRecordOut(**result.kpi.to_dict()),
        created=result.created,
    )
