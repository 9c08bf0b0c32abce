"""
Transaction model: one row per deposit attempt or provider webhook delivery.

Amounts are stored in major units (naira, dollars) with two decimal
places. Providers work in minor units; conversion goes through
``booka.core.currency``.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import DateTime, Index, Integer, Numeric, String, Text, func, text
from sqlalchemy.orm import Mapped, mapped_column
import ulid

from ..core.enums import ReconciliationStatus, TransactionStatus
from ..database import Base
from ._common import JSONType, now_utc

_PENDING_DEPOSIT_WHERE = text("type = 'deposit' AND status = 'pending'")


class Transaction(Base):
    """Payment transaction tracked for retries and reconciliation."""

    __tablename__ = "transactions"

    __table_args__ = (
        # At most one open checkout per (tenant, reservation).
        Index(
            "uq_transactions_pending_deposit",
            "tenant_id",
            "reservation_id",
            unique=True,
            postgresql_where=_PENDING_DEPOSIT_WHERE,
            sqlite_where=_PENDING_DEPOSIT_WHERE,
        ),
        Index("ix_transactions_retry_due", "status", "next_retry_at"),
        Index("ix_transactions_tenant_created", "tenant_id", "created_at"),
        Index("ix_transactions_provider_reference", "provider_reference"),
    )

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    # Not foreign keys: webhook rows may carry ids we have never seen.
    tenant_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    reservation_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, comment="Amount in major currency units"
    )
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    type: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TransactionStatus.PENDING.value
    )

    provider: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    provider_reference: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    authorization_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    retry_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    next_retry_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    last_retry_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    raw: Mapped[Optional[dict[str, Any]]] = mapped_column(JSONType, nullable=True)

    reconciliation_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ReconciliationStatus.PENDING.value
    )
    reconciled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now_utc, server_default=func.now()
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), onupdate=now_utc)

    def __repr__(self) -> str:
        return (
            f"<Transaction(id={self.id}, type={self.type}, status={self.status}, "
            f"amount={self.amount} {self.currency}, retries={self.retry_count})>"
        )
