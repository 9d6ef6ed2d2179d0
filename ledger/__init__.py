"""
ledger/ - Base ledger collaborators.

Modules:
- base: In-memory fungible-unit ledger (balances, allowances, burn)
- reference: Reference-currency settlement bank
- events: Notification log
- journal: Snapshot/restore transactions across participants
"""

from ledger.base import InMemoryLedger
from ledger.events import Event, EventLog
from ledger.journal import Journal
from ledger.reference import ReferenceBank

__all__ = [
    "InMemoryLedger",
    "Event",
    "EventLog",
    "Journal",
    "ReferenceBank",
]
