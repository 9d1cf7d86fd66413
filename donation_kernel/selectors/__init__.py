"""Selectors for the donation ledger (read side)."""

from donation_kernel.selectors.history_selector import HistorySelector
from donation_kernel.selectors.session_selector import SessionSelector
from donation_kernel.selectors.stock_selector import StockSelector

__all__ = [
    "HistorySelector",
    "SessionSelector",
    "StockSelector",
]
