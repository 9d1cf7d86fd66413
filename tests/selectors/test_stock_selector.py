"""StockSelector: stock position, donation list, aggregate summary."""

from uuid import uuid4

import pytest

from donation_kernel.domain.dtos import SessionEntry
from donation_kernel.domain.values import DistributionStatus, DonationCategory
from donation_kernel.exceptions import DonationNotFoundError
from donation_kernel.selectors import StockSelector
from tests.factories import add_location


@pytest.fixture
def selector(session) -> StockSelector:
    return StockSelector(session)


@pytest.fixture
def stocked(clock, coordinator, location, children, make_donation):
    """Four donations, one per distribution state, donated a day apart."""
    untouched = make_donation(quantity=10, donor="Padaria Central", description="Pão francês")
    clock.advance_days(1)
    partial = make_donation(quantity=10, unit="l", donor="Laticínios Serra", description="Leite integral")
    clock.advance_days(1)
    exhausted = make_donation(quantity=2, unit="cx", category=DonationCategory.MEDICINE, donor="Farmácia Boa Saúde")
    clock.advance_days(1)
    money = make_donation(quantity=None, unit=None, category=DonationCategory.MONEY, donor="João Silva")
    clock.advance_days(1)

    coordinator.submit(
        location.id,
        [
            SessionEntry(children[0].id, True, partial.id, 4),
            SessionEntry(children[1].id, True, exhausted.id, 2),
            SessionEntry(children[2].id, True, money.id, 50),
            SessionEntry(children[3].id, False),
        ],
    )
    return {"untouched": untouched, "partial": partial, "exhausted": exhausted, "money": money}


class TestStockPosition:

    def test_positions(self, selector, stocked):
        partial = selector.stock_position(stocked["partial"].id)
        assert (partial.quantity, partial.consumed, partial.remaining) == (10, 4, 6)
        assert partial.status == DistributionStatus.PARTIALLY_DISTRIBUTED
        assert partial.unit == "l"

        exhausted = selector.stock_position(stocked["exhausted"].id)
        assert exhausted.remaining == 0
        assert exhausted.status == DistributionStatus.FULLY_DISTRIBUTED

        untouched = selector.stock_position(stocked["untouched"].id)
        assert (untouched.consumed, untouched.remaining) == (0, 10)
        assert untouched.status == DistributionStatus.NOT_DISTRIBUTED

    def test_unquantified_is_never_fully_distributed(self, selector, stocked):
        money = selector.stock_position(stocked["money"].id)
        assert money.quantity is None
        assert money.remaining is None
        assert money.consumed == 50
        assert money.status == DistributionStatus.PARTIALLY_DISTRIBUTED

    def test_position_follows_session_deletion(self, selector, coordinator, location, children, make_donation):
        donation = make_donation(quantity=3)
        result = coordinator.submit(location.id, [SessionEntry(children[0].id, True, donation.id, 3)])
        assert selector.stock_position(donation.id).remaining == 0

        coordinator.delete_session(result.session_id)
        assert selector.stock_position(donation.id).remaining == 3

    def test_unknown_donation(self, selector):
        with pytest.raises(DonationNotFoundError):
            selector.stock_position(uuid4())


class TestListDonations:

    def test_newest_first(self, selector, stocked):
        page = selector.list_donations()
        assert page.total == 4
        assert [item.donation.donor for item in page.items] == [
            "João Silva",
            "Farmácia Boa Saúde",
            "Laticínios Serra",
            "Padaria Central",
        ]
        partial = page.items[2]
        assert (partial.consumed, partial.remaining) == (4, 6)

    def test_pagination(self, selector, stocked):
        page = selector.list_donations(page=2, limit=3)
        assert page.total == 4
        assert page.pages == 2
        assert [item.donation.donor for item in page.items] == ["Padaria Central"]

    def test_filter_by_status(self, selector, stocked):
        fully = selector.list_donations(status=DistributionStatus.FULLY_DISTRIBUTED)
        assert [i.donation.donation_id for i in fully.items] == [stocked["exhausted"].id]

        partial = selector.list_donations(status=DistributionStatus.PARTIALLY_DISTRIBUTED)
        assert {i.donation.donation_id for i in partial.items} == {stocked["partial"].id, stocked["money"].id}

        untouched = selector.list_donations(status=DistributionStatus.NOT_DISTRIBUTED)
        assert untouched.total == 1

    def test_search_donor_and_description(self, selector, stocked):
        assert selector.list_donations(search="leite").items[0].donation.donation_id == stocked["partial"].id
        assert selector.list_donations(search="PADARIA").total == 1
        assert selector.list_donations(search="nada disso").total == 0

    def test_filter_by_category_and_location(self, session, selector, stocked, make_donation):
        other = add_location(session, "Escola Municipal")
        make_donation(quantity=5, location_id=other.id)

        assert selector.list_donations(category=DonationCategory.MEDICINE).total == 1
        assert selector.list_donations(location_id=other.id).total == 1
        assert selector.list_donations().total == 5


class TestStockSummary:

    def test_summary(self, selector, stocked, coordinator, children, make_donation):
        gift = make_donation(category=DonationCategory.BIRTHDAY_GIFT, recipient_child_id=children[0].id)
        make_donation(category=DonationCategory.BIRTHDAY_GIFT, recipient_child_id=children[1].id)
        coordinator.deliver_gift(gift.id, children[0].id)

        summary = selector.stock_summary()

        assert summary.total_donations == 6
        assert summary.by_status == {
            "not_distributed": 2,
            "partially_distributed": 2,
            "fully_distributed": 2,
        }
        assert summary.total_distributed == 4 + 2 + 50 + 1
        assert summary.remaining_by_category == {
            "food": 16,
            "medicine": 0,
            "birthday-gift": 1,
        }
        assert summary.gifts_delivered == 1
        assert summary.gifts_pending == 1

    def test_empty_ledger(self, session, selector):
        summary = selector.stock_summary()
        assert summary.total_donations == 0
        assert set(summary.by_status.values()) == {0}
        assert summary.total_distributed == 0
        assert summary.remaining_by_category == {}
