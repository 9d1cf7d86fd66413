"""
Transport-agnostic dispatcher from request types to the ledger kernel.

Every write request runs as one unit of work through run_in_transaction, so
a transient storage failure retries the whole submission and never a single
reservation.  Read requests run in a plain session_scope.  Results come back
as JSON-ready dicts.
"""

from __future__ import annotations

import dataclasses
from datetime import date, datetime
from enum import Enum
from functools import singledispatchmethod
from typing import Any, Callable, TypeVar
from uuid import UUID

from sqlalchemy.orm import Session

from donation_api.requests import (
    ChildHistoryRequest,
    CreateDonationRequest,
    DeleteDonationRequest,
    DeleteSessionRequest,
    DeliverGiftRequest,
    DonationHistoryRequest,
    ListDonationsRequest,
    ListSessionsRequest,
    Paging,
    RestockRequest,
    SetQuantityRequest,
    StockPositionRequest,
    StockSummaryRequest,
    SubmitSessionRequest,
)
from donation_kernel.db.engine import run_in_transaction, session_scope
from donation_kernel.domain.clock import Clock, SystemClock
from donation_kernel.domain.dtos import DonationRecord
from donation_kernel.logging_config import get_logger
from donation_kernel.selectors import HistorySelector, SessionSelector, StockSelector
from donation_kernel.services import DonationService, SessionCoordinator

logger = get_logger("api.handlers")

T = TypeVar("T")


def jsonable(value: Any) -> Any:
    """Convert DTOs (and what they contain) into JSON-compatible values."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        out = {f.name: jsonable(getattr(value, f.name)) for f in dataclasses.fields(value)}
        if hasattr(value, "pages"):
            out["pages"] = value.pages
        return out
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {str(jsonable(k)): jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [jsonable(v) for v in value]
    return value


class LedgerHandler:
    """
    Dispatches a parsed request to the service or selector that serves it.

    Contract:
        handle() is the only entry point.  Kernel exceptions propagate
        unchanged; mapping them to a wire format is the transport's job.
    """

    def __init__(
        self,
        clock: Clock | None = None,
        paging: Paging | None = None,
        retry_attempts: int = 3,
    ):
        self.clock = clock or SystemClock()
        self.paging = paging or Paging()
        self.retry_attempts = retry_attempts

    def _write(self, work: Callable[[Session], T]) -> T:
        return run_in_transaction(work, attempts=self.retry_attempts)

    def _read(self, work: Callable[[Session], T]) -> T:
        with session_scope() as session:
            return work(session)

    @singledispatchmethod
    def handle(self, request) -> dict[str, Any]:
        raise TypeError(f"No handler for {type(request).__name__}")

    @handle.register
    def _(self, request: SubmitSessionRequest) -> dict[str, Any]:
        result = self._write(
            lambda session: SessionCoordinator(session, self.clock).submit(
                request.location_id, request.entries
            )
        )
        return jsonable(result)

    @handle.register
    def _(self, request: DeleteSessionRequest) -> dict[str, Any]:
        result = self._write(
            lambda session: SessionCoordinator(session, self.clock).delete_session(
                request.session_id
            )
        )
        return jsonable(result)

    @handle.register
    def _(self, request: DeliverGiftRequest) -> dict[str, Any]:
        result = self._write(
            lambda session: SessionCoordinator(session, self.clock).deliver_gift(
                request.donation_id, request.child_id, request.observations
            )
        )
        return jsonable(result)

    @handle.register
    def _(self, request: CreateDonationRequest) -> dict[str, Any]:
        def work(session: Session) -> DonationRecord:
            donation = DonationService(session, self.clock).create_donation(
                donor=request.donor,
                category=request.category,
                location_id=request.location_id,
                quantity=request.quantity,
                unit=request.unit,
                description=request.description,
                donated_at=request.donated_at,
                recipient_child_id=request.recipient_child_id,
            )
            return DonationRecord.from_model(donation)

        return jsonable(self._write(work))

    @handle.register
    def _(self, request: RestockRequest) -> dict[str, Any]:
        def work(session: Session):
            DonationService(session, self.clock).restock(
                request.donation_id, request.amount, unit=request.unit
            )
            return StockSelector(session).stock_position(request.donation_id)

        return jsonable(self._write(work))

    @handle.register
    def _(self, request: SetQuantityRequest) -> dict[str, Any]:
        def work(session: Session):
            DonationService(session, self.clock).set_quantity(
                request.donation_id, request.quantity, unit=request.unit
            )
            return StockSelector(session).stock_position(request.donation_id)

        return jsonable(self._write(work))

    @handle.register
    def _(self, request: DeleteDonationRequest) -> dict[str, Any]:
        self._write(
            lambda session: DonationService(session, self.clock).delete_donation(
                request.donation_id
            )
        )
        return {"donation_id": str(request.donation_id), "deleted": True}

    @handle.register
    def _(self, request: ListSessionsRequest) -> dict[str, Any]:
        return jsonable(
            self._read(
                lambda session: SessionSelector(session).list_sessions(
                    location_id=request.location_id,
                    date_from=request.date_from,
                    date_to=request.date_to,
                    page=request.page,
                    limit=request.limit,
                )
            )
        )

    @handle.register
    def _(self, request: ListDonationsRequest) -> dict[str, Any]:
        return jsonable(
            self._read(
                lambda session: StockSelector(session).list_donations(
                    page=request.page,
                    limit=request.limit,
                    search=request.search,
                    location_id=request.location_id,
                    category=request.category,
                    status=request.status,
                )
            )
        )

    @handle.register
    def _(self, request: StockPositionRequest) -> dict[str, Any]:
        return jsonable(
            self._read(lambda session: StockSelector(session).stock_position(request.donation_id))
        )

    @handle.register
    def _(self, request: DonationHistoryRequest) -> dict[str, Any]:
        return jsonable(
            self._read(
                lambda session: HistorySelector(session).donation_history(
                    request.donation_id,
                    page=request.page,
                    limit=request.limit,
                    date_from=request.date_from,
                    date_to=request.date_to,
                    child_name=request.child_name,
                )
            )
        )

    @handle.register
    def _(self, request: ChildHistoryRequest) -> dict[str, Any]:
        return jsonable(
            self._read(
                lambda session: HistorySelector(session).child_history(
                    request.child_id,
                    page=request.page,
                    limit=request.limit,
                    category=request.category,
                    date_from=request.date_from,
                    date_to=request.date_to,
                    text=request.text,
                )
            )
        )

    @handle.register
    def _(self, request: StockSummaryRequest) -> dict[str, Any]:
        return jsonable(self._read(lambda session: StockSelector(session).stock_summary()))
