"""ORM models for the donation ledger."""

from donation_kernel.models.consumption import ConsumptionRecord
from donation_kernel.models.donation import Donation, DonationRecipient
from donation_kernel.models.reference import Child, Location

__all__ = [
    "Location",
    "Child",
    "Donation",
    "DonationRecipient",
    "ConsumptionRecord",
]
