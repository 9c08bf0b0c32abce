"""SQLAlchemy models for the Booka booking core."""

from .ledger_entry import LedgerEntry
from .reservation import Reservation
from .tenant import Tenant
from .transaction import Transaction
from .webhook_event import WebhookEvent

__all__ = [
    "LedgerEntry",
    "Reservation",
    "Tenant",
    "Transaction",
    "WebhookEvent",
]
