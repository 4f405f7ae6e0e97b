"""
db/repositories/kpi_repository.py

PostgreSQL persistence for memoized KpiRecord rows.

The caller controls commit/rollback of its own transaction.  Writes run
inside a savepoint when a transaction is already open, so a failed insert
never poisons the caller's session.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from db.models.kpi_record import KpiRecord
from db.repositories.errors import KpiConflictError, KpiStoreUnavailableError

logger = logging.getLogger(__name__)


class KPIRepository:
    """
    SQLAlchemy implementation of :class:`db.repositories.kpi_store.KpiStore`.

    Upsert semantics: inserting a record whose ``id`` already exists is a
    no-op (``ON CONFLICT (id) DO NOTHING``) and the existing row is read
    back, so the first writer's ``value`` and ``trend`` are never
    overwritten by a racing request.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, kpi_id: str) -> KpiRecord | None:
        try:
            return self._session.get(KpiRecord, kpi_id)
        except SQLAlchemyError as exc:
            raise KpiStoreUnavailableError(f"Lookup of KPI id={kpi_id} failed: {exc}") from exc

    def find_by_attributes(
        self,
        *,
        kpi_type: str,
        name: str,
        site_id: str,
        period_start: str,
        period_end: str,
        segment_id: str | None,
    ) -> KpiRecord | None:
        """
        Return the oldest row matching the canonical attributes.

        ``segment_id=None`` matches only rows stored without a segment.
        """
        stmt = select(KpiRecord).where(
            KpiRecord.type == kpi_type,
            KpiRecord.name == name,
            KpiRecord.site_id == site_id,
            KpiRecord.period_start == period_start,
            KpiRecord.period_end == period_end,
        )
        if segment_id is None:
            stmt = stmt.where(KpiRecord.segment_id.is_(None))
        else:
            stmt = stmt.where(KpiRecord.segment_id == segment_id)
        stmt = stmt.order_by(KpiRecord.created_at).limit(1)

        try:
            return self._session.scalars(stmt).first()
        except SQLAlchemyError as exc:
            raise KpiStoreUnavailableError(
                f"Attribute lookup failed for KPI {kpi_type}:{name} site={site_id}: {exc}"
            ) from exc

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def upsert_by_id(self, values: dict[str, Any]) -> tuple[KpiRecord, bool]:
        """
        Insert a KPI row keyed by ``values["id"]`` or return the existing one.

        Returns ``(row, inserted)``; ``inserted`` is ``False`` when the id
        conflict was resolved by reading back the row another writer stored.

        Parameters
        ----------
        values:
            Column values keyed by :class:`KpiRecord` attribute name
            (``meta`` for the ``metadata`` column).

        Raises
        ------
        KpiConflictError
            If the insert violates a constraint other than the id conflict
            it resolves itself.
        KpiStoreUnavailableError
            For any other database failure.
        """
        kpi_id = values["id"]
        stmt = (
            insert(KpiRecord)
            .values({getattr(KpiRecord, key): value for key, value in values.items()})
            .on_conflict_do_nothing(index_elements=[KpiRecord.id])
            .returning(KpiRecord)
        )

        try:
            with self._transaction_context():
                row = self._session.scalars(stmt).one_or_none()
                inserted = row is not None
                if row is None:
                    logger.debug("upsert_by_id id=%s already present; reading existing row", kpi_id)
                    row = self._session.get(KpiRecord, kpi_id, populate_existing=True)
        except IntegrityError as exc:
            raise KpiConflictError(f"Insert of KPI id={kpi_id} conflicted: {exc}") from exc
        except SQLAlchemyError as exc:
            raise KpiStoreUnavailableError(f"Upsert of KPI id={kpi_id} failed: {exc}") from exc

        if row is None:
            raise KpiConflictError(f"KPI id={kpi_id} vanished between insert and read-back")
        return row, inserted

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _transaction_context(self) -> Any:
        if self._session.in_transaction():
            return self._session.begin_nested()
        return self._session.begin()
