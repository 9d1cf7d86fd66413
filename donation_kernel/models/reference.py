"""
Module: donation_kernel.models.reference
Responsibility: Minimal ORM for the reference data the ledger points at:
    locations (program sites) and the children enrolled at them.  Both are
    owned by the surrounding registration system; the ledger only needs
    identity, display name, and the child -> location membership used to
    validate roll calls.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Every child belongs to exactly one location (NOT NULL FK).

Failure modes:
    - IntegrityError on a child pointing at a missing location.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from donation_kernel.db.base import Base, UUIDString


class Location(Base):
    """A program site where roll calls are taken."""

    __tablename__ = "locations"

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    children: Mapped[list["Child"]] = relationship(back_populates="location")

    def __repr__(self) -> str:
        return f"<Location {self.name}>"


class Child(Base):
    """
    A child enrolled at a location.

    Non-goals:
        - Enrollment, guardians and profile data live in the registration
          system; this table mirrors only what the ledger reads.
    """

    __tablename__ = "children"

    __table_args__ = (
        Index("idx_child_location", "location_id"),
        Index("idx_child_name", "name"),
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    location_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("locations.id"),
        nullable=False,
    )

    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    location: Mapped[Location] = relationship(back_populates="children")

    def __repr__(self) -> str:
        return f"<Child {self.name} location={self.location_id}>"
