"""
GiftDeliveryTracker -- at-most-once delivery of birthday gifts.

Responsibility:
    Flips a birthday gift's single recipient row from undelivered to
    delivered, exactly once, and resets it when the delivering session is
    deleted.

Architecture position:
    Kernel > Services.  Called by SessionCoordinator instead of the
    StockAccountant for entries that reference a birthday-gift donation.

Invariants enforced:
    - delivered goes false -> true at most once.  The write is a
      compare-and-swap ``UPDATE ... WHERE delivered = false``; a rowcount of
      zero means another transaction (or an earlier entry of the same batch)
      won.  There is no read-then-write window.
    - A call naming a child other than the designated recipient fails before
      any write.

Failure modes:
    - NotAGiftError for donations of any other category.
    - WrongRecipientError when child_id is not the designated recipient.
    - AlreadyDeliveredError when the compare-and-swap matches no row.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from donation_kernel.domain.clock import Clock
from donation_kernel.exceptions import (
    AlreadyDeliveredError,
    NotAGiftError,
    WrongRecipientError,
)
from donation_kernel.logging_config import get_logger
from donation_kernel.models.donation import DonationRecipient
from donation_kernel.services.base import BaseService
from donation_kernel.services.ledger_store import LedgerStore

logger = get_logger("services.gift_tracker")


class GiftDeliveryTracker(BaseService[DonationRecipient]):
    """Conditional-write guard over donation_recipients.delivered."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        store: LedgerStore | None = None,
    ):
        super().__init__(session, clock)
        self._store = store or LedgerStore(session)

    def _recipient(self, donation_id: UUID) -> DonationRecipient:
        return self.session.execute(
            select(DonationRecipient)
            .where(DonationRecipient.donation_id == donation_id)
            .execution_options(populate_existing=True)
        ).scalar_one()

    def deliver(
        self,
        donation_id: UUID,
        child_id: UUID,
        delivered_at: datetime | None = None,
    ) -> DonationRecipient:
        """
        Mark the gift delivered to ``child_id``.

        The recipient check runs first, so a wrong child is reported as
        WrongRecipientError even after the gift was handed over.

        Raises:
            DonationNotFoundError, NotAGiftError, WrongRecipientError,
            AlreadyDeliveredError.
        """
        donation = self._store.get_donation_for_update(donation_id)
        if not donation.is_gift:
            raise NotAGiftError(donation_id, donation.category.value)

        recipient = self._recipient(donation_id)
        if recipient.child_id != child_id:
            logger.info(
                "gift_wrong_recipient",
                extra={
                    "donation_id": str(donation_id),
                    "child_id": str(child_id),
                    "recipient_child_id": str(recipient.child_id),
                },
            )
            raise WrongRecipientError(donation_id, child_id)

        # INVARIANT: false -> true at most once, via conditional write
        result = self.session.execute(
            update(DonationRecipient)
            .where(DonationRecipient.id == recipient.id)
            .where(DonationRecipient.delivered.is_(False))
            .values(delivered=True, delivered_at=delivered_at or self.clock.now())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.info(
                "gift_already_delivered",
                extra={"donation_id": str(donation_id), "child_id": str(child_id)},
            )
            raise AlreadyDeliveredError(donation_id)

        recipient = self._recipient(donation_id)
        logger.info(
            "gift_delivered",
            extra={"donation_id": str(donation_id), "child_id": str(child_id)},
        )
        return recipient

    def reset_delivery(self, donation_id: UUID) -> bool:
        """
        Return a gift to undelivered.  Returns True if a row changed.

        Only called when no present consumption record for the gift remains.
        """
        result = self.session.execute(
            update(DonationRecipient)
            .where(DonationRecipient.donation_id == donation_id)
            .where(DonationRecipient.delivered.is_(True))
            .values(delivered=False, delivered_at=None)
            .execution_options(synchronize_session=False)
        )
        changed = result.rowcount > 0
        if changed:
            logger.info("gift_delivery_reset", extra={"donation_id": str(donation_id)})
        return changed
