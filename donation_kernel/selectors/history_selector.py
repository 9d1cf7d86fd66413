"""
HistorySelector -- consumption timelines per donation and per child.

Both views are paginated, newest first, and filter on an inclusive day
range.  Totals and per-category counts are computed over the full filtered
set, not over the returned page.
"""

from datetime import date, datetime
from uuid import UUID

from sqlalchemy import and_, func, or_, select

from donation_kernel.domain.clock import ensure_utc
from donation_kernel.domain.dtos import (
    ChildHistoryPage,
    ChildHistoryRow,
    DonationHistoryPage,
    DonationHistoryRow,
    DonationHistorySummary,
)
from donation_kernel.domain.values import DonationCategory
from donation_kernel.exceptions import ChildNotFoundError
from donation_kernel.models.consumption import ConsumptionRecord
from donation_kernel.models.donation import Donation
from donation_kernel.models.reference import Child
from donation_kernel.selectors.base import BaseSelector
from donation_kernel.selectors.stock_selector import StockSelector

MIN_SEARCH_WORD = 2


def search_words(text: str | None) -> list[str]:
    """Lower-cased words of at least two characters."""
    if not text:
        return []
    return [word.lower() for word in text.split() if len(word) >= MIN_SEARCH_WORD]


class HistorySelector(BaseSelector[ConsumptionRecord]):
    """Read side of the consumption history."""

    def donation_history(
        self,
        donation_id: UUID,
        page: int = 1,
        limit: int = 20,
        date_from: date | datetime | None = None,
        date_to: date | datetime | None = None,
        child_name: str | None = None,
    ) -> DonationHistoryPage:
        """
        Present consumption rows drawn from one donation.

        Raises:
            DonationNotFoundError: unknown donation.
        """
        # Also the not-found check.
        position = StockSelector(self.session).stock_position(donation_id)

        filters = [
            ConsumptionRecord.donation_id == donation_id,
            ConsumptionRecord.present.is_(True),
            *self._date_range(ConsumptionRecord.recorded_at, date_from, date_to),
        ]
        if child_name and child_name.strip():
            filters.append(
                func.lower(Child.name).contains(child_name.strip().lower(), autoescape=True)
            )

        base = (
            select(ConsumptionRecord, Child.name)
            .join(Child, Child.id == ConsumptionRecord.child_id)
            .where(*filters)
        )
        total = self._count(base)
        rows = self.session.execute(
            base.order_by(ConsumptionRecord.recorded_at.desc(), ConsumptionRecord.id)
            .offset((page - 1) * limit)
            .limit(limit)
        ).all()

        deliveries, consumed, children = self.session.execute(
            select(
                func.count(ConsumptionRecord.id),
                func.coalesce(func.sum(ConsumptionRecord.quantity_consumed), 0),
                func.count(func.distinct(ConsumptionRecord.child_id)),
            )
            .join(Child, Child.id == ConsumptionRecord.child_id)
            .where(*filters)
        ).one()

        items = tuple(
            DonationHistoryRow(
                record_id=record.id,
                session_id=record.session_id,
                child_id=record.child_id,
                child_name=name,
                quantity_consumed=record.quantity_consumed,
                recorded_at=ensure_utc(record.recorded_at),
                observations=record.observations,
            )
            for record, name in rows
        )
        return DonationHistoryPage(
            page=page,
            limit=limit,
            total=total,
            donation_id=donation_id,
            items=items,
            summary=DonationHistorySummary(
                total_deliveries=int(deliveries),
                total_consumed=int(consumed),
                remaining=position.remaining,
                children_served=int(children),
            ),
        )

    def child_history(
        self,
        child_id: UUID,
        page: int = 1,
        limit: int = 20,
        category: DonationCategory | None = None,
        date_from: date | datetime | None = None,
        date_to: date | datetime | None = None,
        text: str | None = None,
    ) -> ChildHistoryPage:
        """
        Every roll-call row of one child, with the donation it drew from.

        Absent rows are included unless a category or text filter restricts
        the view to consumption.  Every search word must match the donation's
        description or donor.

        Raises:
            ChildNotFoundError: unknown child.
        """
        if self.session.get(Child, child_id) is None:
            raise ChildNotFoundError(child_id)

        filters = [
            ConsumptionRecord.child_id == child_id,
            *self._date_range(ConsumptionRecord.recorded_at, date_from, date_to),
        ]
        if category is not None:
            filters.append(Donation.category == category)
        words = search_words(text)
        if words:
            filters.append(
                and_(
                    *(
                        or_(
                            func.lower(Donation.description).contains(word, autoescape=True),
                            func.lower(Donation.donor).contains(word, autoescape=True),
                        )
                        for word in words
                    )
                )
            )

        base = (
            select(ConsumptionRecord, Donation)
            .outerjoin(Donation, Donation.id == ConsumptionRecord.donation_id)
            .where(*filters)
        )
        total = self._count(base)
        rows = self.session.execute(
            base.order_by(ConsumptionRecord.recorded_at.desc(), ConsumptionRecord.id)
            .offset((page - 1) * limit)
            .limit(limit)
        ).all()

        count_rows = self.session.execute(
            select(Donation.category, func.count(ConsumptionRecord.id))
            .select_from(ConsumptionRecord)
            .join(Donation, Donation.id == ConsumptionRecord.donation_id)
            .where(*filters)
            .group_by(Donation.category)
        ).all()
        category_counts = {cat.value: int(count) for cat, count in count_rows}

        items = tuple(
            ChildHistoryRow(
                record_id=record.id,
                session_id=record.session_id,
                recorded_at=ensure_utc(record.recorded_at),
                present=record.present,
                donation_id=record.donation_id,
                donor=donation.donor if donation else None,
                category=donation.category if donation else None,
                description=donation.description if donation else None,
                quantity_consumed=record.quantity_consumed,
                unit=donation.unit if donation else None,
                observations=record.observations,
            )
            for record, donation in rows
        )
        return ChildHistoryPage(
            page=page,
            limit=limit,
            total=total,
            child_id=child_id,
            items=items,
            category_counts=category_counts,
        )
