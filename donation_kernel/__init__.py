"""
Donation Kernel

The donation stock ledger and attendance-driven consumption engine:
- Remaining stock derived from consumption history, never stored
- Locked read-check-write reservations
- At-most-once birthday gift delivery
- All-or-nothing roll-call sessions
"""

__version__ = "0.1.0"
