"""
Values -- Enumerations and derived-quantity rules for the ledger.

Responsibility:
    Defines the closed vocabularies (donation category, distribution status,
    submission phase) and the pure functions that derive remaining stock and
    distribution status from a quantity and a consumed total.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - remaining = quantity - consumed, defined only when quantity is set.
    - Status is a function of (quantity, consumed) alone; it is never stored.
"""

from enum import Enum


class DonationCategory(str, Enum):
    """Kind of donation.  BIRTHDAY_GIFT has exactly one designated recipient."""

    MONEY = "money"
    FOOD = "food"
    CLOTHING = "clothing"
    SCHOOL_SUPPLIES = "school-supplies"
    TOYS = "toys"
    MEDICINE = "medicine"
    BIRTHDAY_GIFT = "birthday-gift"
    OTHER = "other"


class DistributionStatus(str, Enum):
    """
    How much of a donation has been handed out.

    Contract:
        NOT_DISTRIBUTED while nothing was consumed, FULLY_DISTRIBUTED once a
        quantified donation reaches zero remaining, PARTIALLY_DISTRIBUTED
        otherwise.  An unquantified donation is never FULLY_DISTRIBUTED.
    """

    NOT_DISTRIBUTED = "not_distributed"
    PARTIALLY_DISTRIBUTED = "partially_distributed"
    FULLY_DISTRIBUTED = "fully_distributed"


class SubmissionPhase(str, Enum):
    """
    Roll-call submission state machine.

    Validating -> Reserving -> Committing -> Done, or Validating -> Rejected.
    Any failure after Validating also ends in Rejected; there is no partially
    committed state.
    """

    VALIDATING = "validating"
    RESERVING = "reserving"
    COMMITTING = "committing"
    DONE = "done"
    REJECTED = "rejected"


def remaining_quantity(quantity: int | None, consumed: int) -> int | None:
    """Remaining stock, or None for an unquantified donation."""
    if quantity is None:
        return None
    return quantity - consumed


def distribution_status(quantity: int | None, consumed: int) -> DistributionStatus:
    if consumed <= 0:
        return DistributionStatus.NOT_DISTRIBUTED
    if quantity is not None and consumed >= quantity:
        return DistributionStatus.FULLY_DISTRIBUTED
    return DistributionStatus.PARTIALLY_DISTRIBUTED
