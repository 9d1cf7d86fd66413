"""
Common constructor for the write-side services.

A service is handed the caller's ``Session`` and a ``Clock``.  It adds and
flushes rows but never commits: the transaction belongs to whoever opened
it (``session_scope`` or ``run_in_transaction``), which is what lets a roll
call's reservations and inserts land together or not at all.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from donation_kernel.db.base import Base
from donation_kernel.domain.clock import Clock, SystemClock

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """Parametrised by the model the service mainly writes."""

    def __init__(self, session: Session, clock: Clock | None = None):
        self.session = session
        self.clock = clock or SystemClock()
