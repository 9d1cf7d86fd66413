"""
Typed Exception Hierarchy for the Donation Ledger.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from DonationKernelError:

    DonationKernelError (base)
    |
    +-- ValidationError
    |   +-- NotAGiftError
    |
    +-- StockError
    |   +-- InsufficientStockError
    |   +-- QuantityBelowConsumedError
    |   +-- DonationInUseError
    |
    +-- GiftDeliveryError
    |   +-- AlreadyDeliveredError
    |   +-- WrongRecipientError
    |
    +-- NotFoundError
        +-- DonationNotFoundError
        +-- ChildNotFoundError
        +-- LocationNotFoundError
        +-- SessionNotFoundError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Kind                     | Code                      | When Raised
-------------------------|---------------------------|------------------------------------
validation_error         | VALIDATION_ERROR          | Malformed submission or edit
                         | NOT_A_GIFT                | deliver() on a non-gift donation
insufficient_stock       | INSUFFICIENT_STOCK        | consumed + amount > quantity
quantity_below_consumed  | QUANTITY_BELOW_CONSUMED   | Edit would lower quantity < consumed
donation_in_use          | DONATION_IN_USE           | Delete of a donation with consumption
already_delivered        | ALREADY_DELIVERED         | Second delivery of a birthday gift
wrong_recipient          | WRONG_RECIPIENT           | Gift delivered to another child
not_found                | DONATION_NOT_FOUND        | Unknown donation id
                         | CHILD_NOT_FOUND           | Unknown child id
                         | LOCATION_NOT_FOUND        | Unknown location id
                         | SESSION_NOT_FOUND         | Unknown session id

===============================================================================
HANDLING PATTERNS
===============================================================================

Every error raised by reserve()/deliver() propagates out of the
SessionCoordinator and aborts the enclosing transaction.  The API layer
catches DonationKernelError once and serializes it with ``to_dict()``:

    try:
        coordinator.submit(location_id, entries)
    except InsufficientStockError as e:
        return {"kind": e.kind, "available": e.available, "requested": e.requested}

``kind`` is the wire discriminator; ``code`` is the finer machine-readable
identifier.  Both are class attributes so callers can match on them without
instantiating anything.
"""

from typing import Any
from uuid import UUID


class DonationKernelError(Exception):
    """
    Base exception for all donation ledger errors.

    All subclasses carry a ``code`` and a wire ``kind`` class attribute.
    """

    code: str = "DONATION_KERNEL_ERROR"
    kind: str = "internal_error"

    def to_dict(self) -> dict[str, Any]:
        """Structured payload for the API boundary."""
        payload: dict[str, Any] = {"kind": self.kind, "code": self.code, "message": str(self)}
        for key, value in vars(self).items():
            if key.startswith("_"):
                continue
            payload[key] = str(value) if isinstance(value, UUID) else value
        return payload


# Validation


class ValidationError(DonationKernelError):
    """
    Malformed submission or edit.

    Always recoverable client-side; never partially applied.
    """

    code: str = "VALIDATION_ERROR"
    kind: str = "validation_error"

    def __init__(self, details: list[dict[str, str]] | str, field: str | None = None):
        if isinstance(details, str):
            details = [{"field": field or "", "message": details}]
        self.details = details
        summary = "; ".join(
            f"{d['field']}: {d['message']}" if d.get("field") else d["message"]
            for d in details
        )
        super().__init__(f"Validation failed: {summary}")


class NotAGiftError(ValidationError):
    """Gift delivery attempted on a donation that is not a birthday gift."""

    code: str = "NOT_A_GIFT"

    def __init__(self, donation_id: UUID, category: str):
        self.donation_id = donation_id
        self.category = category
        super().__init__(
            f"Donation {donation_id} is a {category} donation, not a birthday gift",
            field="donation_id",
        )


# Stock


class StockError(DonationKernelError):
    """Base exception for stock accounting errors."""

    code: str = "STOCK_ERROR"
    kind: str = "stock_error"


class InsufficientStockError(StockError):
    """The reservation would drive remaining stock below zero."""

    code: str = "INSUFFICIENT_STOCK"
    kind: str = "insufficient_stock"

    def __init__(self, donation_id: UUID, available: int, requested: int):
        self.donation_id = donation_id
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient stock on donation {donation_id}: "
            f"available={available}, requested={requested}"
        )


class QuantityBelowConsumedError(StockError):
    """An edit would lower a donation's quantity below what was already consumed."""

    code: str = "QUANTITY_BELOW_CONSUMED"
    kind: str = "quantity_below_consumed"

    def __init__(self, donation_id: UUID, quantity: int, consumed: int):
        self.donation_id = donation_id
        self.quantity = quantity
        self.consumed = consumed
        super().__init__(
            f"Cannot set quantity of donation {donation_id} to {quantity}: "
            f"{consumed} already consumed"
        )


class DonationInUseError(StockError):
    """A donation with consumption history cannot be deleted."""

    code: str = "DONATION_IN_USE"
    kind: str = "donation_in_use"

    def __init__(self, donation_id: UUID, record_count: int):
        self.donation_id = donation_id
        self.record_count = record_count
        super().__init__(
            f"Donation {donation_id} is referenced by {record_count} consumption record(s)"
        )


# Gift delivery


class GiftDeliveryError(DonationKernelError):
    """Base exception for birthday-gift delivery conflicts."""

    code: str = "GIFT_DELIVERY_ERROR"
    kind: str = "gift_delivery_error"


class AlreadyDeliveredError(GiftDeliveryError):
    """The gift has already been delivered."""

    code: str = "ALREADY_DELIVERED"
    kind: str = "already_delivered"

    def __init__(self, donation_id: UUID):
        self.donation_id = donation_id
        super().__init__(f"Gift {donation_id} has already been delivered")


class WrongRecipientError(GiftDeliveryError):
    """The gift was designated for a different child."""

    code: str = "WRONG_RECIPIENT"
    kind: str = "wrong_recipient"

    def __init__(self, donation_id: UUID, child_id: UUID):
        self.donation_id = donation_id
        self.child_id = child_id
        super().__init__(
            f"Child {child_id} is not the designated recipient of gift {donation_id}"
        )


# Not found


class NotFoundError(DonationKernelError):
    """Base exception for unknown identifiers."""

    code: str = "NOT_FOUND"
    kind: str = "not_found"


class DonationNotFoundError(NotFoundError):
    """Donation with given ID was not found."""

    code: str = "DONATION_NOT_FOUND"

    def __init__(self, donation_id: UUID):
        self.donation_id = donation_id
        super().__init__(f"Donation not found: {donation_id}")


class ChildNotFoundError(NotFoundError):
    """Child with given ID was not found."""

    code: str = "CHILD_NOT_FOUND"

    def __init__(self, child_id: UUID):
        self.child_id = child_id
        super().__init__(f"Child not found: {child_id}")


class LocationNotFoundError(NotFoundError):
    """Location with given ID was not found."""

    code: str = "LOCATION_NOT_FOUND"

    def __init__(self, location_id: UUID):
        self.location_id = location_id
        super().__init__(f"Location not found: {location_id}")


class SessionNotFoundError(NotFoundError):
    """No consumption records share the given session ID."""

    code: str = "SESSION_NOT_FOUND"

    def __init__(self, session_id: UUID):
        self.session_id = session_id
        super().__init__(f"Session not found: {session_id}")
