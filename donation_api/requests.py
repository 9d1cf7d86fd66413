"""
Request types for the ledger API.

One frozen dataclass per endpoint.  Loosely typed JSON bodies and query
strings are parsed exactly once, here, into these types; everything past
this module works with UUIDs, ints, dates and enums.  All problems in a
payload are collected and raised together as one ValidationError.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Mapping, Union
from uuid import UUID

from donation_kernel.domain.dtos import SessionEntry
from donation_kernel.domain.values import DistributionStatus, DonationCategory
from donation_kernel.exceptions import ValidationError


@dataclass(frozen=True)
class Paging:
    """Page-size policy taken from settings."""

    default_limit: int = 20
    max_limit: int = 100


class _Fields:
    """Collects parsed values and validation problems for one payload."""

    def __init__(self, data: Mapping[str, Any] | None, prefix: str = ""):
        self.data = data if data is not None else {}
        self.prefix = prefix
        self.details: list[dict[str, str]] = []

    def error(self, name: str, message: str) -> None:
        self.details.append({"field": f"{self.prefix}{name}", "message": message})

    def uuid(self, name: str, required: bool = True) -> UUID | None:
        raw = self.data.get(name)
        if raw is None or raw == "":
            if required:
                self.error(name, "is required")
            return None
        if isinstance(raw, UUID):
            return raw
        try:
            return UUID(str(raw))
        except ValueError:
            self.error(name, f"not a valid id: {raw!r}")
            return None

    def integer(self, name: str, required: bool = False) -> int | None:
        raw = self.data.get(name)
        if raw is None or raw == "":
            if required:
                self.error(name, "is required")
            return None
        if isinstance(raw, bool):
            self.error(name, "must be an integer")
            return None
        if isinstance(raw, int):
            return raw
        if isinstance(raw, str):
            try:
                return int(raw)
            except ValueError:
                pass
        self.error(name, "must be an integer")
        return None

    def boolean(self, name: str) -> bool | None:
        raw = self.data.get(name)
        if isinstance(raw, bool):
            return raw
        if raw is None:
            self.error(name, "is required")
        else:
            self.error(name, "must be true or false")
        return None

    def text(self, name: str, required: bool = False) -> str | None:
        raw = self.data.get(name)
        if raw is None or (isinstance(raw, str) and not raw.strip()):
            if required:
                self.error(name, "is required")
            return None
        if not isinstance(raw, str):
            self.error(name, "must be a string")
            return None
        return raw.strip()

    def day(self, name: str) -> date | None:
        raw = self.data.get(name)
        if raw is None or raw == "":
            return None
        try:
            return date.fromisoformat(str(raw)[:10])
        except ValueError:
            self.error(name, f"expected YYYY-MM-DD, got {raw!r}")
            return None

    def timestamp(self, name: str) -> datetime | None:
        raw = self.data.get(name)
        if raw is None or raw == "":
            return None
        try:
            value = datetime.fromisoformat(str(raw))
        except ValueError:
            self.error(name, f"expected an ISO 8601 timestamp, got {raw!r}")
            return None
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)

    def choice(self, name: str, enum_cls):
        raw = self.data.get(name)
        if raw is None or raw == "":
            return None
        try:
            return enum_cls(raw)
        except ValueError:
            allowed = ", ".join(member.value for member in enum_cls)
            self.error(name, f"expected one of: {allowed}")
            return None

    def page(self, paging: Paging) -> tuple[int, int]:
        page = self.integer("page")
        page = 1 if page is None else page
        limit = self.integer("limit")
        limit = paging.default_limit if limit is None else limit
        if page < 1:
            self.error("page", "must be >= 1")
        if limit < 1:
            self.error("limit", "must be >= 1")
        return page, min(limit, paging.max_limit)

    def date_range(self) -> tuple[date | None, date | None]:
        date_from = self.day("date_from")
        date_to = self.day("date_to")
        if date_from and date_to and date_from > date_to:
            self.error("date_to", "must not be before date_from")
        return date_from, date_to

    def finish(self) -> None:
        if self.details:
            raise ValidationError(self.details)


def _require_mapping(payload: Any) -> Mapping[str, Any]:
    if not isinstance(payload, Mapping):
        raise ValidationError("request body must be a JSON object", field="body")
    return payload


# Write requests


@dataclass(frozen=True)
class SubmitSessionRequest:
    location_id: UUID
    entries: tuple[SessionEntry, ...]

    @classmethod
    def from_payload(cls, payload: Any) -> SubmitSessionRequest:
        f = _Fields(_require_mapping(payload))
        location_id = f.uuid("location_id")
        raw_entries = f.data.get("entries")
        entries: list[SessionEntry] = []
        if not isinstance(raw_entries, list):
            f.error("entries", "must be a list")
        else:
            for index, raw in enumerate(raw_entries):
                if not isinstance(raw, Mapping):
                    f.error(f"entries[{index}]", "must be an object")
                    continue
                e = _Fields(raw, prefix=f"entries[{index}].")
                entry = SessionEntry(
                    child_id=e.uuid("child_id"),
                    present=e.boolean("present"),
                    donation_id=e.uuid("donation_id", required=False),
                    quantity_consumed=e.integer("quantity_consumed"),
                    observations=e.text("observations"),
                )
                f.details.extend(e.details)
                entries.append(entry)
        f.finish()
        return cls(location_id=location_id, entries=tuple(entries))


@dataclass(frozen=True)
class DeleteSessionRequest:
    session_id: UUID

    @classmethod
    def from_path(cls, session_id: str) -> DeleteSessionRequest:
        f = _Fields({"session_id": session_id})
        parsed = f.uuid("session_id")
        f.finish()
        return cls(session_id=parsed)


@dataclass(frozen=True)
class CreateDonationRequest:
    donor: str
    category: DonationCategory
    location_id: UUID
    quantity: int | None = None
    unit: str | None = None
    description: str | None = None
    donated_at: datetime | None = None
    recipient_child_id: UUID | None = None

    @classmethod
    def from_payload(cls, payload: Any) -> CreateDonationRequest:
        f = _Fields(_require_mapping(payload))
        donor = f.text("donor", required=True)
        category = f.choice("category", DonationCategory)
        if category is None and not f.data.get("category"):
            f.error("category", "is required")
        request = dict(
            donor=donor,
            category=category,
            location_id=f.uuid("location_id"),
            quantity=f.integer("quantity"),
            unit=f.text("unit"),
            description=f.text("description"),
            donated_at=f.timestamp("donated_at"),
            recipient_child_id=f.uuid("recipient_child_id", required=False),
        )
        f.finish()
        return cls(**request)


@dataclass(frozen=True)
class RestockRequest:
    donation_id: UUID
    amount: int
    unit: str | None = None

    @classmethod
    def from_payload(cls, donation_id: str, payload: Any) -> RestockRequest:
        f = _Fields({**_require_mapping(payload), "donation_id": donation_id})
        request = dict(
            donation_id=f.uuid("donation_id"),
            amount=f.integer("amount", required=True),
            unit=f.text("unit"),
        )
        f.finish()
        return cls(**request)


@dataclass(frozen=True)
class SetQuantityRequest:
    donation_id: UUID
    quantity: int
    unit: str | None = None

    @classmethod
    def from_payload(cls, donation_id: str, payload: Any) -> SetQuantityRequest:
        f = _Fields({**_require_mapping(payload), "donation_id": donation_id})
        request = dict(
            donation_id=f.uuid("donation_id"),
            quantity=f.integer("quantity", required=True),
            unit=f.text("unit"),
        )
        f.finish()
        return cls(**request)


@dataclass(frozen=True)
class DeleteDonationRequest:
    donation_id: UUID

    @classmethod
    def from_path(cls, donation_id: str) -> DeleteDonationRequest:
        f = _Fields({"donation_id": donation_id})
        parsed = f.uuid("donation_id")
        f.finish()
        return cls(donation_id=parsed)


@dataclass(frozen=True)
class DeliverGiftRequest:
    donation_id: UUID
    child_id: UUID
    observations: str | None = None

    @classmethod
    def from_payload(cls, donation_id: str, payload: Any) -> DeliverGiftRequest:
        f = _Fields({**_require_mapping(payload), "donation_id": donation_id})
        request = dict(
            donation_id=f.uuid("donation_id"),
            child_id=f.uuid("child_id"),
            observations=f.text("observations"),
        )
        f.finish()
        return cls(**request)


# Read requests


@dataclass(frozen=True)
class ListSessionsRequest:
    location_id: UUID | None
    date_from: date | None
    date_to: date | None
    page: int
    limit: int

    @classmethod
    def from_args(cls, args: Mapping[str, Any], paging: Paging) -> ListSessionsRequest:
        f = _Fields(args)
        location_id = f.uuid("location_id", required=False)
        date_from, date_to = f.date_range()
        page, limit = f.page(paging)
        f.finish()
        return cls(location_id, date_from, date_to, page, limit)


@dataclass(frozen=True)
class ListDonationsRequest:
    page: int
    limit: int
    search: str | None = None
    location_id: UUID | None = None
    category: DonationCategory | None = None
    status: DistributionStatus | None = None

    @classmethod
    def from_args(cls, args: Mapping[str, Any], paging: Paging) -> ListDonationsRequest:
        f = _Fields(args)
        page, limit = f.page(paging)
        request = dict(
            page=page,
            limit=limit,
            search=f.text("search"),
            location_id=f.uuid("location_id", required=False),
            category=f.choice("category", DonationCategory),
            status=f.choice("status", DistributionStatus),
        )
        f.finish()
        return cls(**request)


@dataclass(frozen=True)
class StockPositionRequest:
    donation_id: UUID

    @classmethod
    def from_path(cls, donation_id: str) -> StockPositionRequest:
        f = _Fields({"donation_id": donation_id})
        parsed = f.uuid("donation_id")
        f.finish()
        return cls(donation_id=parsed)


@dataclass(frozen=True)
class DonationHistoryRequest:
    donation_id: UUID
    page: int
    limit: int
    date_from: date | None = None
    date_to: date | None = None
    child_name: str | None = None

    @classmethod
    def from_args(
        cls, donation_id: str, args: Mapping[str, Any], paging: Paging
    ) -> DonationHistoryRequest:
        f = _Fields({**args, "donation_id": donation_id})
        parsed = f.uuid("donation_id")
        page, limit = f.page(paging)
        date_from, date_to = f.date_range()
        child_name = f.text("child_name")
        f.finish()
        return cls(parsed, page, limit, date_from, date_to, child_name)


@dataclass(frozen=True)
class ChildHistoryRequest:
    child_id: UUID
    page: int
    limit: int
    category: DonationCategory | None = None
    date_from: date | None = None
    date_to: date | None = None
    text: str | None = None

    @classmethod
    def from_args(
        cls, child_id: str, args: Mapping[str, Any], paging: Paging
    ) -> ChildHistoryRequest:
        f = _Fields({**args, "child_id": child_id})
        parsed = f.uuid("child_id")
        page, limit = f.page(paging)
        category = f.choice("category", DonationCategory)
        date_from, date_to = f.date_range()
        text = f.text("text")
        f.finish()
        return cls(parsed, page, limit, category, date_from, date_to, text)


@dataclass(frozen=True)
class StockSummaryRequest:
    pass


LedgerRequest = Union[
    SubmitSessionRequest,
    DeleteSessionRequest,
    CreateDonationRequest,
    RestockRequest,
    SetQuantityRequest,
    DeleteDonationRequest,
    DeliverGiftRequest,
    ListSessionsRequest,
    ListDonationsRequest,
    StockPositionRequest,
    DonationHistoryRequest,
    ChildHistoryRequest,
    StockSummaryRequest,
]
