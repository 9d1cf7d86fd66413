"""
DonationService -- registry of donations: create, restock, edit, delete.

Responsibility:
    Records a donor's pledge and maintains its quantity over time.  Every
    quantity change runs against the locked donation row and the current
    consumed total, so an edit can never leave consumed above quantity.

Architecture position:
    Kernel > Services.  Shares LedgerStore with the accountant.

Invariants enforced:
    - A birthday gift has exactly one recipient, who is an active child of
      the donation's location, and a quantity of 1.
    - quantity is never lowered below consumed(D).
    - A donation with any consumption record is never deleted.

Failure modes:
    - ValidationError for malformed input (all problems reported at once).
    - LocationNotFoundError / ChildNotFoundError / DonationNotFoundError.
    - QuantityBelowConsumedError, DonationInUseError.
"""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from donation_kernel.domain.clock import Clock
from donation_kernel.domain.values import DonationCategory
from donation_kernel.exceptions import (
    ChildNotFoundError,
    DonationInUseError,
    LocationNotFoundError,
    QuantityBelowConsumedError,
    ValidationError,
)
from donation_kernel.logging_config import get_logger
from donation_kernel.models.donation import Donation, DonationRecipient
from donation_kernel.models.reference import Child, Location
from donation_kernel.services.base import BaseService
from donation_kernel.services.ledger_store import LedgerStore

logger = get_logger("services.donation")

GIFT_UNIT = "unit"


def _is_positive_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def _clean(text: str | None) -> str | None:
    if text is None:
        return None
    text = text.strip()
    return text or None


def parse_category(value: DonationCategory | str) -> DonationCategory:
    if isinstance(value, DonationCategory):
        return value
    try:
        return DonationCategory(value)
    except ValueError:
        allowed = ", ".join(c.value for c in DonationCategory)
        raise ValidationError(
            f"unknown category {value!r} (expected one of: {allowed})",
            field="category",
        ) from None


class DonationService(BaseService[Donation]):
    """Write side of the donation registry."""

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session, clock)
        self._store = LedgerStore(session, self.clock)

    def create_donation(
        self,
        donor: str,
        category: DonationCategory | str,
        location_id: UUID,
        quantity: int | None = None,
        unit: str | None = None,
        description: str | None = None,
        donated_at: datetime | None = None,
        recipient_child_id: UUID | None = None,
    ) -> Donation:
        """
        Record a new donation.

        For a birthday gift, quantity defaults to 1 and unit to "unit";
        recipient_child_id is mandatory.  Other categories must not name a
        recipient.
        """
        category = parse_category(category)
        donor = _clean(donor) or ""
        unit = _clean(unit)
        details: list[dict[str, str]] = []

        if len(donor) < 2:
            details.append({"field": "donor", "message": "must be at least 2 characters"})

        if category == DonationCategory.BIRTHDAY_GIFT:
            if recipient_child_id is None:
                details.append({
                    "field": "recipient_child_id",
                    "message": "a birthday gift needs exactly one recipient",
                })
            if quantity is not None and quantity != 1:
                details.append({
                    "field": "quantity",
                    "message": "a birthday gift has a quantity of 1",
                })
            quantity = 1
            unit = unit or GIFT_UNIT
        else:
            if recipient_child_id is not None:
                details.append({
                    "field": "recipient_child_id",
                    "message": "only birthday gifts have a designated recipient",
                })
            if quantity is not None:
                if not _is_positive_int(quantity):
                    details.append({"field": "quantity", "message": "must be a positive integer"})
                elif unit is None:
                    details.append({"field": "unit", "message": "required when quantity is set"})

        if details:
            raise ValidationError(details)

        if self.session.get(Location, location_id) is None:
            raise LocationNotFoundError(location_id)

        if recipient_child_id is not None:
            child = self.session.get(Child, recipient_child_id)
            if child is None:
                raise ChildNotFoundError(recipient_child_id)
            if not child.active or child.location_id != location_id:
                raise ValidationError(
                    "recipient must be an active child of the donation's location",
                    field="recipient_child_id",
                )

        donation = Donation(
            id=uuid4(),
            donor=donor,
            category=category,
            quantity=quantity,
            unit=unit,
            description=_clean(description),
            donated_at=donated_at or self.clock.now(),
            location_id=location_id,
        )
        if recipient_child_id is not None:
            donation.recipients.append(
                DonationRecipient(child_id=recipient_child_id, delivered=False)
            )
        self.session.add(donation)
        self.session.flush()

        logger.info(
            "donation_created",
            extra={
                "donation_id": str(donation.id),
                "category": category.value,
                "quantity": quantity,
                "unit": unit,
            },
        )
        return donation

    def restock(self, donation_id: UUID, amount: int, unit: str | None = None) -> Donation:
        """
        Raise a donation's quantity by ``amount``.

        An unquantified donation becomes quantified: amount is its first
        quantity, and a unit must be supplied unless one is already set.
        """
        if not _is_positive_int(amount):
            raise ValidationError("must be a positive integer", field="amount")

        donation = self._store.get_donation_for_update(donation_id)
        if donation.is_gift:
            raise ValidationError("a birthday gift cannot be restocked", field="donation_id")

        previous = donation.quantity
        if previous is None:
            unit = _clean(unit) or donation.unit
            if unit is None:
                raise ValidationError("required when quantity is first set", field="unit")
            donation.unit = unit
            donation.quantity = amount
        else:
            donation.quantity = previous + amount
        self.session.flush()

        logger.info(
            "donation_restocked",
            extra={
                "donation_id": str(donation_id),
                "previous_quantity": previous,
                "quantity": donation.quantity,
            },
        )
        return donation

    def set_quantity(self, donation_id: UUID, quantity: int, unit: str | None = None) -> Donation:
        """
        Overwrite a donation's quantity.

        Raises:
            QuantityBelowConsumedError: quantity < consumed(D).
        """
        if not _is_positive_int(quantity):
            raise ValidationError("must be a positive integer", field="quantity")

        donation = self._store.get_donation_for_update(donation_id)
        if donation.is_gift:
            raise ValidationError("a birthday gift's quantity is fixed at 1", field="donation_id")

        unit = _clean(unit) or donation.unit
        if unit is None:
            raise ValidationError("required when quantity is set", field="unit")

        consumed = self._store.consumed_total(donation_id)
        if quantity < consumed:
            logger.info(
                "quantity_edit_rejected",
                extra={
                    "donation_id": str(donation_id),
                    "quantity": quantity,
                    "consumed": consumed,
                },
            )
            raise QuantityBelowConsumedError(donation_id, quantity=quantity, consumed=consumed)

        previous = donation.quantity
        donation.quantity = quantity
        donation.unit = unit
        self.session.flush()

        logger.info(
            "donation_quantity_set",
            extra={
                "donation_id": str(donation_id),
                "previous_quantity": previous,
                "quantity": quantity,
                "consumed": consumed,
            },
        )
        return donation

    def delete_donation(self, donation_id: UUID) -> None:
        """
        Delete a donation that was never consumed, with its recipient row.

        Raises:
            DonationInUseError: a consumption record references it.
        """
        donation = self._store.get_donation_for_update(donation_id)
        record_count = self._store.record_count_for_donation(donation_id)
        if record_count:
            raise DonationInUseError(donation_id, record_count=record_count)

        self.session.delete(donation)
        self.session.flush()
        logger.info("donation_deleted", extra={"donation_id": str(donation_id)})
