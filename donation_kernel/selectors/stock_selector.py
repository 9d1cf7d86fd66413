"""
StockSelector -- derived stock figures: per donation and in aggregate.

Every figure is computed from consumption_records at read time.  A single
donation's position is read in one statement, so quantity and consumed come
from the same snapshot and remaining is never observed negative.  The
aggregate summary issues several statements and may trail a concurrent
submission by one transaction.
"""

from uuid import UUID

from sqlalchemy import case, func, or_, select
from sqlalchemy.sql.elements import ColumnElement

from donation_kernel.domain.dtos import (
    DonationListItem,
    DonationPage,
    DonationRecord,
    StockPosition,
    StockSummary,
)
from donation_kernel.domain.values import (
    DistributionStatus,
    DonationCategory,
    distribution_status,
    remaining_quantity,
)
from donation_kernel.exceptions import DonationNotFoundError
from donation_kernel.models.consumption import ConsumptionRecord
from donation_kernel.models.donation import Donation, DonationRecipient
from donation_kernel.selectors.base import BaseSelector


def consumed_by_donation():
    """Subquery: donation_id -> SUM(quantity_consumed) over present records."""
    return (
        select(
            ConsumptionRecord.donation_id.label("donation_id"),
            func.sum(ConsumptionRecord.quantity_consumed).label("consumed"),
        )
        .where(ConsumptionRecord.present.is_(True))
        .where(ConsumptionRecord.donation_id.is_not(None))
        .group_by(ConsumptionRecord.donation_id)
        .subquery("consumed_by_donation")
    )


def status_expression(consumed: ColumnElement) -> ColumnElement:
    """SQL rendition of distribution_status()."""
    return case(
        (consumed <= 0, DistributionStatus.NOT_DISTRIBUTED.value),
        (
            Donation.quantity.is_not(None) & (consumed >= Donation.quantity),
            DistributionStatus.FULLY_DISTRIBUTED.value,
        ),
        else_=DistributionStatus.PARTIALLY_DISTRIBUTED.value,
    )


class StockSelector(BaseSelector[Donation]):
    """Read side of stock accounting."""

    def stock_position(self, donation_id: UUID) -> StockPosition:
        consumed_sq = consumed_by_donation()
        consumed = func.coalesce(consumed_sq.c.consumed, 0)
        row = self.session.execute(
            select(Donation.id, Donation.category, Donation.quantity, Donation.unit, consumed)
            .outerjoin(consumed_sq, consumed_sq.c.donation_id == Donation.id)
            .where(Donation.id == donation_id)
        ).one_or_none()
        if row is None:
            raise DonationNotFoundError(donation_id)

        _, category, quantity, unit, consumed_total = row
        consumed_total = int(consumed_total)
        return StockPosition(
            donation_id=donation_id,
            category=category,
            quantity=quantity,
            unit=unit,
            consumed=consumed_total,
            remaining=remaining_quantity(quantity, consumed_total),
            status=distribution_status(quantity, consumed_total),
        )

    def list_donations(
        self,
        page: int = 1,
        limit: int = 20,
        search: str | None = None,
        location_id: UUID | None = None,
        category: DonationCategory | None = None,
        status: DistributionStatus | None = None,
    ) -> DonationPage:
        """
        Donations with consumed, remaining and status, newest first.

        search matches donor or description, case-insensitive.
        """
        consumed_sq = consumed_by_donation()
        consumed = func.coalesce(consumed_sq.c.consumed, 0)

        stmt = select(Donation, consumed.label("consumed")).outerjoin(
            consumed_sq, consumed_sq.c.donation_id == Donation.id
        )
        if search:
            needle = search.strip().lower()
            stmt = stmt.where(
                or_(
                    func.lower(Donation.donor).contains(needle, autoescape=True),
                    func.lower(Donation.description).contains(needle, autoescape=True),
                )
            )
        if location_id is not None:
            stmt = stmt.where(Donation.location_id == location_id)
        if category is not None:
            stmt = stmt.where(Donation.category == category)
        if status is not None:
            stmt = stmt.where(status_expression(consumed) == status.value)

        total = self._count(stmt)
        rows = self.session.execute(
            stmt.order_by(Donation.donated_at.desc(), Donation.id)
            .offset((page - 1) * limit)
            .limit(limit)
        ).all()

        items = []
        for donation, consumed_total in rows:
            consumed_total = int(consumed_total)
            items.append(
                DonationListItem(
                    donation=DonationRecord.from_model(donation),
                    consumed=consumed_total,
                    remaining=remaining_quantity(donation.quantity, consumed_total),
                    status=distribution_status(donation.quantity, consumed_total),
                )
            )
        return DonationPage(page=page, limit=limit, total=total, items=tuple(items))

    def stock_summary(self) -> StockSummary:
        consumed_sq = consumed_by_donation()
        consumed = func.coalesce(consumed_sq.c.consumed, 0)

        statuses = (
            select(status_expression(consumed).label("status"))
            .select_from(Donation)
            .outerjoin(consumed_sq, consumed_sq.c.donation_id == Donation.id)
            .subquery("donation_status")
        )
        status_rows = self.session.execute(
            select(statuses.c.status, func.count()).group_by(statuses.c.status)
        ).all()
        by_status = {s.value: 0 for s in DistributionStatus}
        for status, count in status_rows:
            by_status[status] = int(count)

        remaining_rows = self.session.execute(
            select(Donation.category, func.sum(Donation.quantity - consumed))
            .outerjoin(consumed_sq, consumed_sq.c.donation_id == Donation.id)
            .where(Donation.quantity.is_not(None))
            .group_by(Donation.category)
        ).all()
        remaining_by_category = {
            category.value: int(remaining or 0) for category, remaining in remaining_rows
        }

        total_distributed = self.session.execute(
            select(func.coalesce(func.sum(ConsumptionRecord.quantity_consumed), 0))
            .where(ConsumptionRecord.present.is_(True))
        ).scalar_one()

        gift_rows = self.session.execute(
            select(DonationRecipient.delivered, func.count(DonationRecipient.id))
            .group_by(DonationRecipient.delivered)
        ).all()
        gifts = {bool(delivered): int(count) for delivered, count in gift_rows}

        return StockSummary(
            total_donations=sum(by_status.values()),
            by_status=by_status,
            total_distributed=int(total_distributed),
            remaining_by_category=remaining_by_category,
            gifts_delivered=gifts.get(True, 0),
            gifts_pending=gifts.get(False, 0),
        )
