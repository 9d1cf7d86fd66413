"""SessionSelector -- roll calls as groups of consumption records."""

from datetime import date, datetime
from uuid import UUID

from sqlalchemy import case, func, select

from donation_kernel.domain.clock import ensure_utc
from donation_kernel.domain.dtos import SessionPage, SessionSummary
from donation_kernel.models.consumption import ConsumptionRecord
from donation_kernel.selectors.base import BaseSelector


class SessionSelector(BaseSelector[ConsumptionRecord]):

    def list_sessions(
        self,
        location_id: UUID | None = None,
        date_from: date | datetime | None = None,
        date_to: date | datetime | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> SessionPage:
        """Sessions newest first, with headcount and total consumed."""
        recorded_at = func.min(ConsumptionRecord.recorded_at).label("recorded_at")
        stmt = (
            select(
                ConsumptionRecord.session_id,
                ConsumptionRecord.location_id,
                recorded_at,
                func.sum(case((ConsumptionRecord.present.is_(True), 1), else_=0)),
                func.sum(case((ConsumptionRecord.present.is_(True), 0), else_=1)),
                func.coalesce(func.sum(ConsumptionRecord.quantity_consumed), 0),
            )
            .where(*self._date_range(ConsumptionRecord.recorded_at, date_from, date_to))
            .group_by(ConsumptionRecord.session_id, ConsumptionRecord.location_id)
        )
        if location_id is not None:
            stmt = stmt.where(ConsumptionRecord.location_id == location_id)

        total = self._count(stmt)
        rows = self.session.execute(
            stmt.order_by(recorded_at.desc(), ConsumptionRecord.session_id)
            .offset((page - 1) * limit)
            .limit(limit)
        ).all()

        items = tuple(
            SessionSummary(
                session_id=session_id,
                location_id=loc_id,
                recorded_at=ensure_utc(when),
                present_count=int(present),
                absent_count=int(absent),
                total_consumed=int(consumed),
            )
            for session_id, loc_id, when, present, absent, consumed in rows
        )
        return SessionPage(page=page, limit=limit, total=total, items=items)
