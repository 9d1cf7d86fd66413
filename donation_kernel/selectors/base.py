"""
Module: donation_kernel.selectors.base
Responsibility: Abstract base class for read-only query selectors, plus the
    shared pagination and date-range helpers.
Architecture position: Kernel > Selectors.  May import from db/, models/ and
    domain/.  MUST NOT import from services/.

Invariants enforced:
    - Read-only access: selectors never add, flush, delete or commit.
    - DTO return convention: selectors return frozen dataclasses, not ORM rows.
    - Remaining stock is recomputed from consumption_records on every read;
      there is no stored balance to drift.
"""

from abc import ABC
from datetime import date, datetime, time, timedelta, timezone
from typing import Generic, TypeVar

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session
from sqlalchemy.sql.elements import ColumnElement

from donation_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


def day_start(value: date | datetime) -> datetime:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


def day_end_exclusive(value: date | datetime) -> datetime:
    """Upper bound that includes the whole of ``value``'s day."""
    if isinstance(value, datetime):
        value = value.date()
    return datetime.combine(value + timedelta(days=1), time.min, tzinfo=timezone.utc)


class BaseSelector(ABC, Generic[ModelType]):
    """
    Abstract base class for all selectors.

    Guarantees:
        - No commit, flush, add, or delete operations are performed.
    """

    def __init__(self, session: Session):
        self.session = session

    @staticmethod
    def _date_range(
        column: ColumnElement,
        date_from: date | datetime | None,
        date_to: date | datetime | None,
    ) -> list[ColumnElement]:
        """Filters for an inclusive [date_from, date_to] day range."""
        clauses: list[ColumnElement] = []
        if date_from is not None:
            clauses.append(column >= day_start(date_from))
        if date_to is not None:
            clauses.append(column < day_end_exclusive(date_to))
        return clauses

    def _count(self, stmt: Select) -> int:
        return int(
            self.session.execute(
                select(func.count()).select_from(stmt.order_by(None).subquery())
            ).scalar_one()
        )
