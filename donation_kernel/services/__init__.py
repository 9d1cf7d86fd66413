"""Services for the donation ledger (write side)."""

from donation_kernel.services.donation_service import DonationService
from donation_kernel.services.gift_tracker import GiftDeliveryTracker
from donation_kernel.services.ledger_store import LedgerStore
from donation_kernel.services.session_coordinator import SessionCoordinator
from donation_kernel.services.stock_accountant import Reservation, StockAccountant

__all__ = [
    "DonationService",
    "GiftDeliveryTracker",
    "LedgerStore",
    "Reservation",
    "SessionCoordinator",
    "StockAccountant",
]
