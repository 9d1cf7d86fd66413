"""
SessionCoordinator -- atomic roll-call submission and deletion.

Responsibility:
    Turns a roll call (one entry per child, with presence and an optional
    draw from a donation) into a session: validates the batch, reserves stock
    for every consuming entry, and writes one ConsumptionRecord per entry
    under a single new session id.  Deletes sessions as a whole.

Architecture position:
    Kernel > Services.  Orchestrates LedgerStore, StockAccountant and
    GiftDeliveryTracker.  The caller owns the transaction
    (session_scope / run_in_transaction).

Invariants enforced:
    - Batch atomicity.  Reservations and inserts run inside a savepoint;
      any failure rolls the savepoint back, including gift flags already
      flipped by earlier entries, and re-raises.  No ConsumptionRecord of a
      rejected batch is ever flushed.
    - Every entry is recorded, present or absent, so headcount is auditable.
    - Donations referenced by the batch are locked in ascending id order
      before the first reservation.
    - Deleting a session restores consumed(D) for every donation it drew
      from (stock is derived, so removing the rows is the whole
      compensation) and resets a gift's delivered flag once no present
      record for it remains.

Failure modes:
    - ValidationError: empty batch, unpaired donation/quantity,
      non-positive quantity, absent entry carrying a draw, duplicate child,
      child from another location, gift entry with quantity != 1.
    - LocationNotFoundError / ChildNotFoundError / DonationNotFoundError.
    - InsufficientStockError, AlreadyDeliveredError, WrongRecipientError,
      NotAGiftError from the reserving phase.
    - SessionNotFoundError on deleting an unknown session.
"""

from typing import Sequence
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session

from donation_kernel.domain.clock import Clock
from donation_kernel.domain.dtos import SessionDeletion, SessionEntry, SubmissionResult
from donation_kernel.domain.values import SubmissionPhase
from donation_kernel.exceptions import (
    ChildNotFoundError,
    DonationKernelError,
    LocationNotFoundError,
    NotAGiftError,
    SessionNotFoundError,
    ValidationError,
)
from donation_kernel.logging_config import LogContext, get_logger
from donation_kernel.models.consumption import ConsumptionRecord
from donation_kernel.models.donation import Donation
from donation_kernel.models.reference import Child, Location
from donation_kernel.services.base import BaseService
from donation_kernel.services.gift_tracker import GiftDeliveryTracker
from donation_kernel.services.ledger_store import LedgerStore
from donation_kernel.services.stock_accountant import StockAccountant

logger = get_logger("services.session_coordinator")


def _is_positive_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def validate_entries(entries: Sequence[SessionEntry]) -> list[dict[str, str]]:
    """
    Structural checks on a roll call.  Returns every problem found.

    Pure: no database access.
    """
    if not entries:
        return [{"field": "entries", "message": "a roll call needs at least one entry"}]

    details: list[dict[str, str]] = []
    seen: set[UUID] = set()
    for index, entry in enumerate(entries):
        prefix = f"entries[{index}]"
        if entry.child_id in seen:
            details.append({"field": f"{prefix}.child_id", "message": "child listed twice"})
        seen.add(entry.child_id)

        has_donation = entry.donation_id is not None
        has_quantity = entry.quantity_consumed is not None

        if not entry.present:
            if has_donation or has_quantity:
                details.append({
                    "field": prefix,
                    "message": "an absent child cannot consume a donation",
                })
            continue

        if has_quantity and not has_donation:
            details.append({
                "field": f"{prefix}.donation_id",
                "message": "quantity_consumed requires donation_id",
            })
        elif has_donation and not has_quantity:
            details.append({
                "field": f"{prefix}.quantity_consumed",
                "message": "donation_id requires quantity_consumed",
            })
        if has_quantity and not _is_positive_int(entry.quantity_consumed):
            details.append({
                "field": f"{prefix}.quantity_consumed",
                "message": "must be a positive integer",
            })
    return details


class SessionCoordinator(BaseService[ConsumptionRecord]):
    """
    Roll-call state machine: Validating -> Reserving -> Committing -> Done,
    or Rejected on any failure.

    Contract:
        One coordinator per unit of work.  submit() flushes but never
        commits; a rejected submit leaves the session exactly as it was.

    Usage:
        def work(session):
            return SessionCoordinator(session).submit(location_id, entries)

        result = run_in_transaction(work)
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session, clock)
        self._store = LedgerStore(session, self.clock)
        self._tracker = GiftDeliveryTracker(session, self.clock, store=self._store)
        self.phase: SubmissionPhase | None = None

    def _enter(self, phase: SubmissionPhase) -> None:
        self.phase = phase
        logger.debug("submission_phase", extra={"phase": phase.value})

    def _load_children(
        self, location_id: UUID, entries: Sequence[SessionEntry]
    ) -> list[dict[str, str]]:
        ids = [entry.child_id for entry in entries]
        children = {
            child.id: child
            for child in self.session.execute(
                select(Child).where(Child.id.in_(ids))
            ).scalars()
        }
        details: list[dict[str, str]] = []
        for index, entry in enumerate(entries):
            child = children.get(entry.child_id)
            if child is None:
                raise ChildNotFoundError(entry.child_id)
            if child.location_id != location_id:
                details.append({
                    "field": f"entries[{index}].child_id",
                    "message": f"child does not belong to location {location_id}",
                })
        return details

    def _check_gift_entries(
        self, entries: Sequence[SessionEntry], donations: dict[UUID, Donation]
    ) -> list[dict[str, str]]:
        details: list[dict[str, str]] = []
        for index, entry in enumerate(entries):
            if not entry.consumes:
                continue
            if donations[entry.donation_id].is_gift and entry.quantity_consumed != 1:
                details.append({
                    "field": f"entries[{index}].quantity_consumed",
                    "message": "a birthday gift is delivered as exactly 1 unit",
                })
        return details

    def submit(self, location_id: UUID, entries: Sequence[SessionEntry]) -> SubmissionResult:
        """
        Validate, reserve and record a roll call as one session.

        Postconditions:
            - On success: len(entries) records flushed, all sharing the
              returned session_id and the same recorded_at.
            - On failure: nothing flushed, no gift flag changed; the error
              propagates to the caller, which must roll back.
        """
        entries = tuple(entries)
        with LogContext.bind(location_id=location_id):
            try:
                return self._submit(location_id, entries)
            except DonationKernelError as exc:
                logger.warning(
                    "submission_rejected",
                    extra={
                        "phase": self.phase.value if self.phase else None,
                        "entry_count": len(entries),
                        "error_code": exc.code,
                    },
                )
                self.phase = SubmissionPhase.REJECTED
                raise

    def _submit(self, location_id: UUID, entries: tuple[SessionEntry, ...]) -> SubmissionResult:
        self._enter(SubmissionPhase.VALIDATING)
        details = validate_entries(entries)
        if details:
            raise ValidationError(details)

        if self.session.get(Location, location_id) is None:
            raise LocationNotFoundError(location_id)
        details = self._load_children(location_id, entries)
        if details:
            raise ValidationError(details)

        donations = self._store.lock_donations(
            entry.donation_id for entry in entries if entry.consumes
        )
        details = self._check_gift_entries(entries, donations)
        if details:
            raise ValidationError(details)

        now = self.clock.now()
        session_id = uuid4()
        consumed: dict[UUID, int] = {}
        # pending tallies are scoped to this batch
        accountant = StockAccountant(self.session, store=self._store)

        with self.session.begin_nested():
            self._enter(SubmissionPhase.RESERVING)
            for entry in entries:
                if not entry.consumes:
                    continue
                if donations[entry.donation_id].is_gift:
                    self._tracker.deliver(entry.donation_id, entry.child_id, delivered_at=now)
                else:
                    accountant.reserve(entry.donation_id, entry.quantity_consumed)
                consumed[entry.donation_id] = (
                    consumed.get(entry.donation_id, 0) + entry.quantity_consumed
                )

            self._enter(SubmissionPhase.COMMITTING)
            records = [
                ConsumptionRecord(
                    id=uuid4(),
                    child_id=entry.child_id,
                    location_id=location_id,
                    session_id=session_id,
                    present=entry.present,
                    donation_id=entry.donation_id if entry.present else None,
                    quantity_consumed=entry.quantity_consumed if entry.consumes else None,
                    observations=entry.observations,
                    recorded_at=now,
                )
                for entry in entries
            ]
            self._store.insert_records(records)

        self._enter(SubmissionPhase.DONE)
        present_count = sum(1 for entry in entries if entry.present)
        logger.info(
            "submission_committed",
            extra={
                "session_id": str(session_id),
                "record_count": len(records),
                "present_count": present_count,
                "consumed": {str(k): v for k, v in consumed.items()},
            },
        )
        return SubmissionResult(
            session_id=session_id,
            location_id=location_id,
            recorded_at=now,
            record_ids=tuple(record.id for record in records),
            present_count=present_count,
            absent_count=len(entries) - present_count,
            consumed=consumed,
        )

    def delete_session(self, session_id: UUID) -> SessionDeletion:
        """
        Remove every record of a session in the caller's transaction.

        Raises:
            SessionNotFoundError: no record carries session_id.
        """
        with LogContext.bind(session_id=session_id):
            records = self._store.records_for_session(session_id)
            if not records:
                raise SessionNotFoundError(session_id)

            released: dict[UUID, int] = {}
            for record in records:
                if record.consumes_stock:
                    released[record.donation_id] = (
                        released.get(record.donation_id, 0) + record.quantity_consumed
                    )
            donations = self._store.lock_donations(released)

            deleted = self._store.delete_session_records(session_id)
            # a concurrent delete of the same session got there first
            if deleted == 0:
                raise SessionNotFoundError(session_id)

            gifts_reset: list[UUID] = []
            for donation_id, donation in donations.items():
                if not donation.is_gift:
                    continue
                if self._store.record_count_for_donation(donation_id, present_only=True) == 0:
                    if self._tracker.reset_delivery(donation_id):
                        gifts_reset.append(donation_id)
            self.session.flush()

            logger.info(
                "session_deleted",
                extra={
                    "records_deleted": deleted,
                    "released": {str(k): v for k, v in released.items()},
                    "gifts_reset": [str(g) for g in gifts_reset],
                },
            )
            return SessionDeletion(
                session_id=session_id,
                records_deleted=deleted,
                released=released,
                gifts_reset=tuple(gifts_reset),
            )

    def deliver_gift(
        self,
        donation_id: UUID,
        child_id: UUID,
        observations: str | None = None,
    ) -> SubmissionResult:
        """
        Hand a birthday gift to its recipient as a one-entry roll call at the
        child's location, so the delivery is backed by a ConsumptionRecord
        and undone by deleting that session.
        """
        donation = self._store.get_donation(donation_id)
        if not donation.is_gift:
            raise NotAGiftError(donation_id, donation.category.value)
        child = self.session.get(Child, child_id)
        if child is None:
            raise ChildNotFoundError(child_id)
        entry = SessionEntry(
            child_id=child_id,
            present=True,
            donation_id=donation_id,
            quantity_consumed=1,
            observations=observations,
        )
        return self.submit(child.location_id, [entry])
