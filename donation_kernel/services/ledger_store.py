"""
LedgerStore -- durable access to donations and consumption records.

Responsibility:
    The minimal set of storage operations the accountant, the gift tracker
    and the session coordinator need: get-donation-with-lock, lock a batch
    of donations, insert consumption records, read records by donation or
    session, and the consumed-total aggregate.

Architecture position:
    Kernel > Services.  Used only by other services; selectors issue their
    own read-only queries.

Invariants enforced:
    - Locking reads use ``SELECT ... FOR UPDATE`` with populate_existing, so
      the caller sees the latest committed quantity and holds the row until
      its transaction ends.  On SQLite the transaction already holds the
      database write lock (BEGIN IMMEDIATE) and FOR UPDATE is not emitted.
    - lock_donations() acquires rows in ascending id order.  Two batches that
      touch the same donations never wait on each other in opposite orders.

Failure modes:
    - DonationNotFoundError for unknown donation ids.
    - OperationalError on lock timeout or deadlock (transient, retried by
      run_in_transaction).
"""

from typing import Iterable
from uuid import UUID

from sqlalchemy import delete, func, select

from donation_kernel.exceptions import DonationNotFoundError
from donation_kernel.logging_config import get_logger
from donation_kernel.models.consumption import ConsumptionRecord
from donation_kernel.models.donation import Donation
from donation_kernel.services.base import BaseService

logger = get_logger("services.ledger_store")


class LedgerStore(BaseService[ConsumptionRecord]):
    """Storage operations over donations and consumption_records."""

    def get_donation(self, donation_id: UUID) -> Donation:
        donation = self.session.get(Donation, donation_id)
        if donation is None:
            raise DonationNotFoundError(donation_id)
        return donation

    def get_donation_for_update(self, donation_id: UUID) -> Donation:
        """
        Lock the donation row and return it freshly loaded.

        Postconditions:
            - The row is locked until the caller's transaction ends.
            - quantity reflects the latest committed value, so a restock
              committed by another transaction is visible here.
        """
        donation = self.session.execute(
            select(Donation)
            .where(Donation.id == donation_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if donation is None:
            raise DonationNotFoundError(donation_id)
        return donation

    def lock_donations(self, donation_ids: Iterable[UUID]) -> dict[UUID, Donation]:
        """
        Lock several donations in ascending id order.

        Raises:
            DonationNotFoundError: for the first id (in lock order) that does
                not exist.
        """
        locked: dict[UUID, Donation] = {}
        for donation_id in sorted(set(donation_ids), key=str):
            locked[donation_id] = self.get_donation_for_update(donation_id)
        if locked:
            logger.debug(
                "donations_locked",
                extra={"donation_ids": [str(d) for d in locked]},
            )
        return locked

    def insert_records(self, records: list[ConsumptionRecord]) -> None:
        self.session.add_all(records)
        self.session.flush()

    def records_for_donation(self, donation_id: UUID) -> list[ConsumptionRecord]:
        return list(
            self.session.execute(
                select(ConsumptionRecord)
                .where(ConsumptionRecord.donation_id == donation_id)
                .order_by(ConsumptionRecord.recorded_at, ConsumptionRecord.id)
            ).scalars()
        )

    def records_for_session(self, session_id: UUID) -> list[ConsumptionRecord]:
        return list(
            self.session.execute(
                select(ConsumptionRecord)
                .where(ConsumptionRecord.session_id == session_id)
                .order_by(ConsumptionRecord.id)
            ).scalars()
        )

    def consumed_total(self, donation_id: UUID) -> int:
        """SUM(quantity_consumed) over present records referencing the donation."""
        total = self.session.execute(
            select(func.coalesce(func.sum(ConsumptionRecord.quantity_consumed), 0))
            .where(ConsumptionRecord.donation_id == donation_id)
            .where(ConsumptionRecord.present.is_(True))
        ).scalar_one()
        return int(total)

    def record_count_for_donation(self, donation_id: UUID, present_only: bool = False) -> int:
        stmt = select(func.count(ConsumptionRecord.id)).where(
            ConsumptionRecord.donation_id == donation_id
        )
        if present_only:
            stmt = stmt.where(ConsumptionRecord.present.is_(True))
        return int(self.session.execute(stmt).scalar_one())

    def delete_session_records(self, session_id: UUID) -> int:
        """Delete every record sharing session_id.  Returns the row count."""
        result = self.session.execute(
            delete(ConsumptionRecord)
            .where(ConsumptionRecord.session_id == session_id)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount
