"""
Module: donation_kernel.models.consumption
Responsibility: ORM persistence for consumption records, one child's
    attendance outcome within a roll-call session.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Records are append-only.  They are inserted by SessionCoordinator.submit
      and removed only by whole-session deletion; no code path updates one.
    - quantity_consumed is set only when present is true and donation_id is
      set, and is positive (CHECK constraints).  An absent child never
      consumes stock.
    - session_id is a plain indexed column.  A session is the set of rows
      sharing it; there is no sessions table.

Failure modes:
    - IntegrityError on a record violating the presence/consumption checks.
    - IntegrityError on a donation_id or child_id that does not exist.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from donation_kernel.db.base import Base, UUIDString
from donation_kernel.models.reference import Child


class ConsumptionRecord(Base):
    """
    One row of a roll call.

    Contract:
        consumed(donation) is the SUM of quantity_consumed over the present
        rows referencing it.  That sum is the only stock figure the system
        trusts.
    """

    __tablename__ = "consumption_records"

    __table_args__ = (
        CheckConstraint(
            "quantity_consumed IS NULL OR quantity_consumed > 0",
            name="ck_consumption_quantity_positive",
        ),
        CheckConstraint(
            "donation_id IS NULL OR present",
            name="ck_consumption_absent_no_donation",
        ),
        CheckConstraint(
            "quantity_consumed IS NULL OR donation_id IS NOT NULL",
            name="ck_consumption_quantity_needs_donation",
        ),
        # Query: consumed total and history per donation
        Index("idx_consumption_donation", "donation_id"),
        # Query: whole-session reads and deletion
        Index("idx_consumption_session", "session_id"),
        # Query: per-child history
        Index("idx_consumption_child", "child_id", "recorded_at"),
        Index("idx_consumption_location_time", "location_id", "recorded_at"),
    )

    child_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("children.id"),
        nullable=False,
    )

    location_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("locations.id"),
        nullable=False,
    )

    session_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    present: Mapped[bool] = mapped_column(Boolean, nullable=False)

    donation_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("donations.id", ondelete="RESTRICT"),
        nullable=True,
    )

    quantity_consumed: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    observations: Mapped[str | None] = mapped_column(Text, nullable=True)

    recorded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    child: Mapped[Child] = relationship()

    @property
    def consumes_stock(self) -> bool:
        return self.present and self.donation_id is not None and bool(self.quantity_consumed)

    def __repr__(self) -> str:
        return (
            f"<ConsumptionRecord {self.id} session={self.session_id} "
            f"child={self.child_id} present={self.present} qty={self.quantity_consumed}>"
        )
