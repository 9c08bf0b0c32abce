"""Ledger entry model. Written by accounting; this service only reads it."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import DateTime, Index, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column
import ulid

from ..database import Base
from ._common import now_utc


class LedgerEntry(Base):
    __tablename__ = "ledger_entries"

    __table_args__ = (Index("ix_ledger_entries_tenant_posted", "tenant_id", "posted_at"),)

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    tenant_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    # Entries without a transaction are reported as orphaned.
    transaction_id: Mapped[Optional[str]] = mapped_column(String(26), nullable=True, index=True)
    entry_type: Mapped[str] = mapped_column(String(50), nullable=False, default="credit")
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    posted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now_utc, server_default=func.now()
    )

    def __repr__(self) -> str:
        return f"<LedgerEntry(id={self.id}, txn={self.transaction_id}, amount={self.amount})>"
