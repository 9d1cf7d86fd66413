"""
Property-based checks of the stock invariant.

For every donation and any interleaving of submissions, session deletions,
restocks and quantity edits:

    0 <= consumed(D) <= D.quantity

and consumed(D) equals the sum of draws of the sessions still on record.
"""

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st
from hypothesis.strategies import composite

from donation_kernel.domain.dtos import SessionEntry
from donation_kernel.domain.values import (
    DistributionStatus,
    distribution_status,
    remaining_quantity,
)
from donation_kernel.exceptions import InsufficientStockError, QuantityBelowConsumedError
from donation_kernel.selectors import StockSelector
from donation_kernel.services import DonationService, SessionCoordinator
from tests.factories import add_child, add_location

CHILDREN_PER_EXAMPLE = 3


@composite
def operations(draw):
    """A list of ("submit", [amounts]) / ("delete", index) / ("restock", n) / ("set", n)."""
    op = st.one_of(
        st.tuples(
            st.just("submit"),
            st.lists(st.integers(min_value=1, max_value=6), min_size=1, max_size=CHILDREN_PER_EXAMPLE),
        ),
        st.tuples(st.just("delete"), st.integers(min_value=0, max_value=10)),
        st.tuples(st.just("restock"), st.integers(min_value=1, max_value=5)),
        st.tuples(st.just("set"), st.integers(min_value=1, max_value=15)),
    )
    return draw(st.lists(op, min_size=1, max_size=12))


@settings(
    max_examples=60,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow, HealthCheck.function_scoped_fixture],
)
@given(initial=st.integers(min_value=1, max_value=10), ops=operations())
def test_consumed_never_exceeds_quantity(session, clock, initial, ops):
    location = add_location(session)
    children = [add_child(session, location, f"Criança {i}") for i in range(CHILDREN_PER_EXAMPLE)]
    donations = DonationService(session, clock)
    coordinator = SessionCoordinator(session, clock)
    selector = StockSelector(session)
    donation = donations.create_donation(
        "Padaria Central", "food", location.id, quantity=initial, unit="kg"
    )

    quantity = initial
    sessions: list[tuple] = []

    for kind, arg in ops:
        if kind == "submit":
            entries = [
                SessionEntry(children[i].id, True, donation.id, amount)
                for i, amount in enumerate(arg)
            ]
            consumed = sum(amount for _, amount in sessions)
            try:
                result = coordinator.submit(location.id, entries)
            except InsufficientStockError:
                assert consumed + sum(arg) > quantity
            else:
                assert consumed + sum(arg) <= quantity
                sessions.append((result.session_id, sum(arg)))
        elif kind == "delete" and sessions:
            session_id, _ = sessions.pop(arg % len(sessions))
            coordinator.delete_session(session_id)
        elif kind == "restock":
            quantity = donations.restock(donation.id, arg).quantity
        elif kind == "set":
            try:
                quantity = donations.set_quantity(donation.id, arg).quantity
            except QuantityBelowConsumedError as exc:
                assert arg < exc.consumed

        position = selector.stock_position(donation.id)
        assert position.quantity == quantity
        assert position.consumed == sum(amount for _, amount in sessions)
        assert 0 <= position.consumed <= position.quantity
        assert position.remaining == quantity - position.consumed


@given(
    quantity=st.one_of(st.none(), st.integers(min_value=1, max_value=1000)),
    consumed=st.integers(min_value=0, max_value=1000),
)
def test_status_agrees_with_remaining(quantity, consumed):
    if quantity is not None and consumed > quantity:
        consumed = quantity
    status = distribution_status(quantity, consumed)
    remaining = remaining_quantity(quantity, consumed)

    if consumed == 0:
        assert status == DistributionStatus.NOT_DISTRIBUTED
    elif remaining == 0:
        assert status == DistributionStatus.FULLY_DISTRIBUTED
    else:
        assert status == DistributionStatus.PARTIALLY_DISTRIBUTED
    if quantity is None:
        assert remaining is None
        assert status != DistributionStatus.FULLY_DISTRIBUTED
