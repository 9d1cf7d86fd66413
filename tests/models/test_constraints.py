"""
Database-level constraints.

The services never produce these rows; the constraints are the last line
that keeps a hand-written INSERT from breaking the ledger's shape.
"""

from datetime import datetime, timezone
from uuid import uuid4

import pytest
from sqlalchemy.exc import IntegrityError

from donation_kernel.domain.values import DonationCategory
from donation_kernel.models import ConsumptionRecord, Donation, DonationRecipient


def _record(location, child, **overrides):
    values = dict(
        id=uuid4(),
        child_id=child.id,
        location_id=location.id,
        session_id=uuid4(),
        present=True,
        donation_id=None,
        quantity_consumed=None,
        recorded_at=datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc),
    )
    values.update(overrides)
    return ConsumptionRecord(**values)


def _assert_rejected(session, obj):
    with pytest.raises(IntegrityError):
        with session.begin_nested():
            session.add(obj)
            session.flush()


class TestConsumptionRecordConstraints:

    def test_absent_row_cannot_reference_a_donation(self, session, location, children, make_donation):
        donation = make_donation()
        _assert_rejected(session, _record(location, children[0], present=False, donation_id=donation.id))

    def test_quantity_must_be_positive(self, session, location, children, make_donation):
        donation = make_donation()
        _assert_rejected(
            session, _record(location, children[0], donation_id=donation.id, quantity_consumed=0)
        )

    def test_quantity_needs_a_donation(self, session, location, children):
        _assert_rejected(session, _record(location, children[0], quantity_consumed=2))

    def test_donation_must_exist(self, session, location, children):
        _assert_rejected(
            session, _record(location, children[0], donation_id=uuid4(), quantity_consumed=1)
        )

    def test_well_formed_rows(self, session, location, children, make_donation):
        donation = make_donation()
        session.add_all([
            _record(location, children[0]),
            _record(location, children[1], present=False),
            _record(location, children[2], donation_id=donation.id, quantity_consumed=2),
        ])
        session.flush()


class TestDonationConstraints:

    def test_quantity_must_be_positive(self, session, location, clock):
        _assert_rejected(session, Donation(
            id=uuid4(), donor="Padaria Central", category=DonationCategory.FOOD,
            quantity=0, unit="kg", donated_at=clock.now(), location_id=location.id,
        ))

    def test_one_row_per_donation_and_child(self, session, children, make_donation):
        gift = make_donation(category=DonationCategory.BIRTHDAY_GIFT, recipient_child_id=children[0].id)
        _assert_rejected(session, DonationRecipient(donation_id=gift.id, child_id=children[0].id))
