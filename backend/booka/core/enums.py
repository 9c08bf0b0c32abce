# backend/booka/core/enums.py
"""
Core enums for the Booka booking core.

These enums keep persisted status values, provider names and
caller roles consistent between the API, services and workers.
"""

from enum import Enum


class RoleName(str, Enum):
    """
    Caller roles forwarded by the upstream auth gateway.

    The role policy itself lives outside this service; routes only
    declare which of these roles may perform an operation.
    """

    OWNER = "owner"
    ADMIN = "admin"
    STAFF = "staff"
    SYSTEM = "system"


class ReservationStatus(str, Enum):
    """Lifecycle of a reservation. Cancellation is a status change, never a delete."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class TransactionStatus(str, Enum):
    """Payment status of a transaction row."""

    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"
    UNKNOWN = "unknown"


class TransactionType(str, Enum):
    DEPOSIT = "deposit"


class ReconciliationStatus(str, Enum):
    PENDING = "pending"
    MATCHED = "matched"


class PaymentProviderName(str, Enum):
    """Payment providers a deposit can be routed through."""

    PAYSTACK = "paystack"
    STRIPE = "stripe"


RETRYABLE_TRANSACTION_STATUSES = (TransactionStatus.PENDING, TransactionStatus.FAILED)
ACTIVE_DEPOSIT_STATUSES = (TransactionStatus.PENDING, TransactionStatus.SUCCESS)
