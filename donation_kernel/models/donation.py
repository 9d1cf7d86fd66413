"""
Module: donation_kernel.models.donation
Responsibility: ORM persistence for donations and the designated recipient of
    a birthday gift.
Architecture position: Kernel > Models.  May import from db/base.py and the
    pure enums in domain/values.py.  MUST NOT import from services/ or
    selectors/.

Invariants enforced:
    - quantity, when set, is positive (CHECK constraint).  Remaining stock is
      NOT a column: it is always derived from consumption_records.
    - A (donation, child) pair appears at most once among recipients
      (UNIQUE constraint).  A birthday gift has exactly one recipient row;
      DonationService enforces the cardinality at creation time.
    - DonationRecipient.delivered only goes false -> true through the
      compare-and-swap UPDATE in GiftDeliveryTracker, and back to false only
      when the delivering session is deleted.

Failure modes:
    - IntegrityError on quantity <= 0 or a duplicate recipient row.
    - IntegrityError (RESTRICT) when a donation referenced by consumption
      records is deleted without going through DonationService.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from donation_kernel.db.base import Base, TimestampedBase, UUIDString
from donation_kernel.domain.values import DonationCategory


def _enum_values(enum_cls) -> list[str]:
    return [member.value for member in enum_cls]


class Donation(TimestampedBase):
    """
    A pledge of goods, money, or a designated gift.

    Contract:
        quantity is None for non-quantifiable donations (money notes, unique
        items); such donations are never stock-limited.  unit is set whenever
        quantity is set.

    Non-goals:
        - Does NOT store consumed or remaining amounts.  See StockAccountant
          and StockSelector.
    """

    __tablename__ = "donations"

    __table_args__ = (
        CheckConstraint("quantity IS NULL OR quantity > 0", name="ck_donation_quantity_positive"),
        Index("idx_donation_location", "location_id"),
        Index("idx_donation_category", "category"),
        Index("idx_donation_donated_at", "donated_at"),
    )

    donor: Mapped[str] = mapped_column(String(200), nullable=False)

    category: Mapped[DonationCategory] = mapped_column(
        SAEnum(
            DonationCategory,
            native_enum=False,
            length=32,
            values_callable=_enum_values,
            validate_strings=True,
        ),
        nullable=False,
    )

    quantity: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    unit: Mapped[str | None] = mapped_column(String(50), nullable=True)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    donated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    location_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("locations.id"),
        nullable=False,
    )

    recipients: Mapped[list["DonationRecipient"]] = relationship(
        back_populates="donation",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
        order_by="DonationRecipient.child_id",
    )

    @property
    def is_gift(self) -> bool:
        return self.category == DonationCategory.BIRTHDAY_GIFT

    def __repr__(self) -> str:
        return f"<Donation {self.id} {self.category.value} qty={self.quantity}>"


class DonationRecipient(Base):
    """Designated recipient of a birthday gift and whether it was handed over."""

    __tablename__ = "donation_recipients"

    __table_args__ = (
        UniqueConstraint("donation_id", "child_id", name="uq_donation_recipient"),
        Index("idx_recipient_child", "child_id"),
    )

    donation_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("donations.id", ondelete="CASCADE"),
        nullable=False,
    )

    child_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("children.id"),
        nullable=False,
    )

    delivered: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    delivered_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    donation: Mapped[Donation] = relationship(back_populates="recipients")

    def __repr__(self) -> str:
        return f"<DonationRecipient {self.donation_id} -> {self.child_id} delivered={self.delivered}>"
