"""
DTOs -- Immutable data structures crossing the kernel boundary.

Responsibility:
    Defines the frozen dataclasses that flow into the SessionCoordinator
    (SessionEntry) and out of services and selectors (submission results,
    stock positions, history pages, summaries).

Architecture position:
    Kernel > Domain -- pure core, zero I/O.  ``from_model()`` class methods
    are boundary converters invoked only from services and selectors.

Invariants enforced:
    - A SessionEntry is structurally well-formed only; cross-field rules
      (pairing of donation_id and quantity, absent entries never consume)
      are checked by the SessionCoordinator during Validating so that every
      violation of a batch is reported at once.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from donation_kernel.domain.clock import ensure_utc
from donation_kernel.domain.values import DistributionStatus, DonationCategory

if TYPE_CHECKING:
    from donation_kernel.models.donation import Donation as DonationModel


@dataclass(frozen=True)
class SessionEntry:
    """One child's line in a roll call."""

    child_id: UUID
    present: bool
    donation_id: UUID | None = None
    quantity_consumed: int | None = None
    observations: str | None = None

    @property
    def consumes(self) -> bool:
        return self.present and self.donation_id is not None


@dataclass(frozen=True)
class SubmissionResult:
    """
    Outcome of a committed roll call.

    Guarantees:
        - record_ids has one id per submitted entry, in entry order.
        - consumed maps each referenced donation to the amount this session
          drew from it.
    """

    session_id: UUID
    location_id: UUID
    recorded_at: datetime
    record_ids: tuple[UUID, ...]
    present_count: int
    absent_count: int
    consumed: dict[UUID, int] = field(default_factory=dict)


@dataclass(frozen=True)
class DonationRecord:
    """Snapshot of a donation row (without derived stock figures)."""

    donation_id: UUID
    donor: str
    category: DonationCategory
    quantity: int | None
    unit: str | None
    description: str | None
    donated_at: datetime
    location_id: UUID
    recipient_child_id: UUID | None = None
    delivered: bool | None = None

    @classmethod
    def from_model(cls, donation: DonationModel) -> DonationRecord:
        recipient = donation.recipients[0] if donation.recipients else None
        return cls(
            donation_id=donation.id,
            donor=donation.donor,
            category=donation.category,
            quantity=donation.quantity,
            unit=donation.unit,
            description=donation.description,
            donated_at=ensure_utc(donation.donated_at),
            location_id=donation.location_id,
            recipient_child_id=recipient.child_id if recipient else None,
            delivered=recipient.delivered if recipient else None,
        )


@dataclass(frozen=True)
class StockPosition:
    """
    Quantity, consumed, remaining and status of one donation, all read in a
    single statement.

    Guarantees:
        - remaining is None iff quantity is None, and never negative.
    """

    donation_id: UUID
    category: DonationCategory
    quantity: int | None
    unit: str | None
    consumed: int
    remaining: int | None
    status: DistributionStatus


@dataclass(frozen=True)
class _Paged:
    page: int
    limit: int
    total: int

    @property
    def pages(self) -> int:
        if self.total == 0:
            return 0
        return (self.total + self.limit - 1) // self.limit


@dataclass(frozen=True)
class DonationListItem:
    donation: DonationRecord
    consumed: int
    remaining: int | None
    status: DistributionStatus


@dataclass(frozen=True)
class DonationPage(_Paged):
    items: tuple[DonationListItem, ...] = ()


@dataclass(frozen=True)
class DonationHistoryRow:
    record_id: UUID
    session_id: UUID
    child_id: UUID
    child_name: str
    quantity_consumed: int | None
    recorded_at: datetime
    observations: str | None


@dataclass(frozen=True)
class DonationHistorySummary:
    """Totals over every row matching the history filters (not just one page)."""

    total_deliveries: int
    total_consumed: int
    remaining: int | None
    children_served: int


@dataclass(frozen=True)
class DonationHistoryPage(_Paged):
    donation_id: UUID | None = None
    items: tuple[DonationHistoryRow, ...] = ()
    summary: DonationHistorySummary | None = None


@dataclass(frozen=True)
class ChildHistoryRow:
    record_id: UUID
    session_id: UUID
    recorded_at: datetime
    present: bool
    donation_id: UUID | None
    donor: str | None
    category: DonationCategory | None
    description: str | None
    quantity_consumed: int | None
    unit: str | None
    observations: str | None


@dataclass(frozen=True)
class ChildHistoryPage(_Paged):
    child_id: UUID | None = None
    items: tuple[ChildHistoryRow, ...] = ()
    category_counts: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class StockSummary:
    """
    Aggregate view over every donation.

    May trail concurrent submissions by a transaction; each figure is still
    computed from committed consumption records only.
    """

    total_donations: int
    by_status: dict[str, int]
    total_distributed: int
    remaining_by_category: dict[str, int]
    gifts_delivered: int
    gifts_pending: int


@dataclass(frozen=True)
class SessionSummary:
    session_id: UUID
    location_id: UUID
    recorded_at: datetime
    present_count: int
    absent_count: int
    total_consumed: int


@dataclass(frozen=True)
class SessionPage(_Paged):
    items: tuple[SessionSummary, ...] = ()


@dataclass(frozen=True)
class SessionDeletion:
    """Outcome of deleting a roll call."""

    session_id: UUID
    records_deleted: int
    released: dict[UUID, int] = field(default_factory=dict)
    gifts_reset: tuple[UUID, ...] = ()
