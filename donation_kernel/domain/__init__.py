"""Pure domain values: enums, DTOs and the injectable clock."""

from donation_kernel.domain.clock import (
    Clock,
    DeterministicClock,
    SystemClock,
    ensure_utc,
)
from donation_kernel.domain.dtos import (
    ChildHistoryPage,
    ChildHistoryRow,
    DonationHistoryPage,
    DonationHistoryRow,
    DonationHistorySummary,
    DonationListItem,
    DonationPage,
    DonationRecord,
    SessionDeletion,
    SessionEntry,
    SessionPage,
    SessionSummary,
    StockPosition,
    StockSummary,
    SubmissionResult,
)
from donation_kernel.domain.values import (
    DistributionStatus,
    DonationCategory,
    SubmissionPhase,
    distribution_status,
    remaining_quantity,
)

__all__ = [
    "Clock",
    "SystemClock",
    "DeterministicClock",
    "ensure_utc",
    "DonationCategory",
    "DistributionStatus",
    "SubmissionPhase",
    "distribution_status",
    "remaining_quantity",
    "SessionEntry",
    "SubmissionResult",
    "SessionDeletion",
    "DonationRecord",
    "StockPosition",
    "DonationListItem",
    "DonationPage",
    "DonationHistoryRow",
    "DonationHistorySummary",
    "DonationHistoryPage",
    "ChildHistoryRow",
    "ChildHistoryPage",
    "StockSummary",
    "SessionSummary",
    "SessionPage",
]
