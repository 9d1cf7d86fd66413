"""Pure domain helpers: stock arithmetic, clocks, DTOs."""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from donation_kernel.domain.clock import DeterministicClock, SystemClock, ensure_utc
from donation_kernel.domain.dtos import DonationPage, SessionEntry
from donation_kernel.domain.values import (
    DistributionStatus,
    DonationCategory,
    distribution_status,
    remaining_quantity,
)


class TestStockArithmetic:

    @pytest.mark.parametrize("quantity, consumed, expected", [
        (10, 0, DistributionStatus.NOT_DISTRIBUTED),
        (10, 3, DistributionStatus.PARTIALLY_DISTRIBUTED),
        (10, 10, DistributionStatus.FULLY_DISTRIBUTED),
        (None, 0, DistributionStatus.NOT_DISTRIBUTED),
        (None, 500, DistributionStatus.PARTIALLY_DISTRIBUTED),
    ])
    def test_distribution_status(self, quantity, consumed, expected):
        assert distribution_status(quantity, consumed) == expected

    def test_remaining(self):
        assert remaining_quantity(10, 4) == 6
        assert remaining_quantity(None, 4) is None

    def test_category_wire_values(self):
        assert DonationCategory("birthday-gift") is DonationCategory.BIRTHDAY_GIFT
        assert DonationCategory.SCHOOL_SUPPLIES.value == "school-supplies"


class TestClock:

    def test_deterministic_clock(self):
        clock = DeterministicClock()
        start = clock.now()
        assert start.tzinfo is not None
        clock.advance(30)
        assert clock.now() - start == timedelta(seconds=30)
        clock.advance_days(2)
        assert clock.now() - start == timedelta(days=2, seconds=30)

    def test_set_time(self):
        clock = DeterministicClock()
        moment = datetime(2025, 6, 1, 8, 0, tzinfo=timezone.utc)
        clock.set_time(moment)
        assert clock.now() == moment

    def test_system_clock_is_utc(self):
        assert SystemClock().now().utcoffset() == timedelta(0)

    def test_ensure_utc(self):
        naive = datetime(2024, 1, 1, 12, 0)
        assert ensure_utc(naive) == datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
        aware = datetime(2024, 1, 1, 9, 0, tzinfo=timezone(timedelta(hours=-3)))
        assert ensure_utc(aware) is aware
        assert ensure_utc(None) is None


class TestDtos:

    def test_session_entry_consumes(self):
        assert SessionEntry(uuid4(), True, uuid4(), 1).consumes
        assert not SessionEntry(uuid4(), True).consumes
        assert not SessionEntry(uuid4(), False).consumes

    @pytest.mark.parametrize("total, limit, pages", [(0, 20, 0), (20, 20, 1), (21, 20, 2)])
    def test_pages(self, total, limit, pages):
        assert DonationPage(page=1, limit=limit, total=total).pages == pages
