"""
StockAccountant -- write-time guard for the non-negative remainder rule.

Responsibility:
    Decides whether ``amount`` more units may be drawn from a donation.  The
    accountant reads the donation's quantity and the consumed total inside
    the caller's transaction, after locking the donation row, and rejects
    any reservation that would push consumed above quantity.

Architecture position:
    Kernel > Services.  Called by SessionCoordinator once per consuming
    entry of a roll call.  Does not write: the ConsumptionRecord that
    realises a reservation is inserted by the coordinator in the same
    transaction.

Invariants enforced:
    - consumed(D) + pending(D) + amount <= D.quantity for every quantified
      donation, evaluated against a locked, freshly read row.
    - Reservations made earlier in the same batch count toward the check
      (``_pending``), because their records are not inserted yet.
    - Unquantified donations (quantity IS NULL) accept any positive amount.

Failure modes:
    - ValidationError for amount <= 0 (caller error, not a stock conflict).
    - InsufficientStockError(available, requested) when the remainder would
      go negative.  The caller must abort the whole batch.
    - DonationNotFoundError for unknown donation ids.
"""

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.orm import Session

from donation_kernel.exceptions import InsufficientStockError, ValidationError
from donation_kernel.logging_config import get_logger
from donation_kernel.models.donation import Donation
from donation_kernel.services.base import BaseService
from donation_kernel.services.ledger_store import LedgerStore

logger = get_logger("services.stock_accountant")


@dataclass(frozen=True)
class Reservation:
    """An accepted reservation.  remaining is None for unquantified donations."""

    donation_id: UUID
    amount: int
    remaining: int | None


class StockAccountant(BaseService[Donation]):
    """
    Per-transaction stock guard.

    Contract:
        One instance per unit of work.  The pending tally lives only as long
        as the batch that built it; a fresh accountant starts at zero.

    Non-goals:
        - Does NOT insert ConsumptionRecords.
        - Does NOT cache quantities between calls; every reserve() re-reads
          the donation so a committed restock unblocks the next call.
    """

    def __init__(self, session: Session, store: LedgerStore | None = None):
        super().__init__(session)
        self._store = store or LedgerStore(session)
        self._pending: dict[UUID, int] = {}

    def pending(self, donation_id: UUID) -> int:
        """Units reserved through this accountant and not yet inserted."""
        return self._pending.get(donation_id, 0)

    def reserve(self, donation_id: UUID, amount: int) -> Reservation:
        """
        Reserve ``amount`` units of a donation.

        Preconditions:
            - Called inside the transaction that will insert the matching
              ConsumptionRecord.

        Raises:
            ValidationError: amount is not a positive integer.
            InsufficientStockError: consumed + pending + amount > quantity.
        """
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise ValidationError(
                f"reservation amount must be a positive integer, got {amount!r}",
                field="quantity_consumed",
            )

        donation = self._store.get_donation_for_update(donation_id)
        pending = self.pending(donation_id)

        if donation.quantity is None:
            self._pending[donation_id] = pending + amount
            logger.debug(
                "reservation_accepted",
                extra={"donation_id": str(donation_id), "amount": amount, "quantified": False},
            )
            return Reservation(donation_id=donation_id, amount=amount, remaining=None)

        consumed = self._store.consumed_total(donation_id)
        available = donation.quantity - consumed - pending

        # INVARIANT: consumed never exceeds quantity
        if amount > available:
            logger.info(
                "reservation_rejected",
                extra={
                    "donation_id": str(donation_id),
                    "quantity": donation.quantity,
                    "consumed": consumed,
                    "pending": pending,
                    "available": available,
                    "requested": amount,
                },
            )
            raise InsufficientStockError(donation_id, available=available, requested=amount)

        self._pending[donation_id] = pending + amount
        logger.debug(
            "reservation_accepted",
            extra={
                "donation_id": str(donation_id),
                "amount": amount,
                "remaining": available - amount,
            },
        )
        return Reservation(
            donation_id=donation_id,
            amount=amount,
            remaining=available - amount,
        )
