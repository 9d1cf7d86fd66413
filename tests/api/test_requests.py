"""Parsing of loosely typed payloads into request types."""

from datetime import date, datetime, timezone
from uuid import uuid4

import pytest

from donation_api.requests import (
    ChildHistoryRequest,
    CreateDonationRequest,
    DeleteSessionRequest,
    DonationHistoryRequest,
    ListDonationsRequest,
    ListSessionsRequest,
    Paging,
    RestockRequest,
    SubmitSessionRequest,
)
from donation_kernel.domain.values import DistributionStatus, DonationCategory
from donation_kernel.exceptions import ValidationError


def _fields(exc: ValidationError) -> set[str]:
    return {d["field"] for d in exc.details}


class TestSubmitSessionRequest:

    def test_parses_entries(self):
        location_id, child_id, donation_id = uuid4(), uuid4(), uuid4()
        request = SubmitSessionRequest.from_payload({
            "location_id": str(location_id),
            "entries": [
                {"child_id": str(child_id), "present": True,
                 "donation_id": str(donation_id), "quantity_consumed": 2},
                {"child_id": str(uuid4()), "present": False, "observations": "  febre "},
            ],
        })
        assert request.location_id == location_id
        first, second = request.entries
        assert (first.child_id, first.donation_id, first.quantity_consumed) == (child_id, donation_id, 2)
        assert second.present is False
        assert second.observations == "febre"

    def test_numeric_string_quantity(self):
        request = SubmitSessionRequest.from_payload({
            "location_id": str(uuid4()),
            "entries": [{"child_id": str(uuid4()), "present": True,
                         "donation_id": str(uuid4()), "quantity_consumed": "3"}],
        })
        assert request.entries[0].quantity_consumed == 3

    def test_collects_every_problem(self):
        with pytest.raises(ValidationError) as exc_info:
            SubmitSessionRequest.from_payload({
                "location_id": "not-a-uuid",
                "entries": [
                    {"child_id": str(uuid4()), "present": "yes"},
                    {"present": True, "quantity_consumed": 1.5},
                    "oops",
                ],
            })
        assert _fields(exc_info.value) == {
            "location_id",
            "entries[0].present",
            "entries[1].child_id",
            "entries[1].quantity_consumed",
            "entries[2]",
        }

    def test_entries_must_be_a_list(self):
        with pytest.raises(ValidationError) as exc_info:
            SubmitSessionRequest.from_payload({"location_id": str(uuid4()), "entries": {}})
        assert _fields(exc_info.value) == {"entries"}

    @pytest.mark.parametrize("payload", [None, [], "text"])
    def test_body_must_be_an_object(self, payload):
        with pytest.raises(ValidationError) as exc_info:
            SubmitSessionRequest.from_payload(payload)
        assert _fields(exc_info.value) == {"body"}


class TestCreateDonationRequest:

    def test_full_payload(self):
        location_id = uuid4()
        request = CreateDonationRequest.from_payload({
            "donor": "Padaria Central",
            "category": "food",
            "location_id": str(location_id),
            "quantity": 12,
            "unit": "kg",
            "donated_at": "2024-03-05T10:30:00",
        })
        assert request.category == DonationCategory.FOOD
        assert request.quantity == 12
        assert request.donated_at == datetime(2024, 3, 5, 10, 30, tzinfo=timezone.utc)

    def test_missing_and_unknown_fields(self):
        with pytest.raises(ValidationError) as exc_info:
            CreateDonationRequest.from_payload({"category": "furniture", "quantity": True})
        assert _fields(exc_info.value) == {"donor", "category", "location_id", "quantity"}

    def test_missing_category(self):
        with pytest.raises(ValidationError) as exc_info:
            CreateDonationRequest.from_payload({"donor": "Ana", "location_id": str(uuid4())})
        assert exc_info.value.details == [{"field": "category", "message": "is required"}]


class TestPathAndQueryRequests:

    def test_bad_path_id(self):
        with pytest.raises(ValidationError):
            DeleteSessionRequest.from_path("123")

    def test_restock_amount_required(self):
        with pytest.raises(ValidationError) as exc_info:
            RestockRequest.from_payload(str(uuid4()), {})
        assert _fields(exc_info.value) == {"amount"}

    def test_paging_defaults_and_clamp(self):
        paging = Paging(default_limit=20, max_limit=50)
        assert ListSessionsRequest.from_args({}, paging).limit == 20
        request = ListSessionsRequest.from_args({"page": "3", "limit": "500"}, paging)
        assert (request.page, request.limit) == (3, 50)

    @pytest.mark.parametrize("args, field", [
        ({"page": "0"}, "page"),
        ({"limit": "0"}, "limit"),
        ({"page": "first"}, "page"),
    ])
    def test_paging_errors(self, args, field):
        with pytest.raises(ValidationError) as exc_info:
            ListDonationsRequest.from_args(args, Paging())
        assert _fields(exc_info.value) == {field}

    def test_list_donation_filters(self):
        request = ListDonationsRequest.from_args(
            {"status": "fully_distributed", "category": "toys", "search": " bola "}, Paging()
        )
        assert request.status == DistributionStatus.FULLY_DISTRIBUTED
        assert request.category == DonationCategory.TOYS
        assert request.search == "bola"

    def test_date_range(self):
        request = DonationHistoryRequest.from_args(
            str(uuid4()), {"date_from": "2024-01-01", "date_to": "2024-01-31"}, Paging()
        )
        assert (request.date_from, request.date_to) == (date(2024, 1, 1), date(2024, 1, 31))

        with pytest.raises(ValidationError) as exc_info:
            ChildHistoryRequest.from_args(
                str(uuid4()), {"date_from": "2024-02-01", "date_to": "2024-01-01"}, Paging()
            )
        assert _fields(exc_info.value) == {"date_to"}

    def test_bad_date(self):
        with pytest.raises(ValidationError) as exc_info:
            ChildHistoryRequest.from_args(str(uuid4()), {"date_from": "01/02/2024"}, Paging())
        assert _fields(exc_info.value) == {"date_from"}
