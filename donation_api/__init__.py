"""Request boundary and HTTP surface for the donation ledger."""

from donation_api.handlers import LedgerHandler
from donation_api.routes import create_app, ledger_bp

__all__ = ["LedgerHandler", "create_app", "ledger_bp"]
