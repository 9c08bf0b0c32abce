"""Tenant model: the business that owns reservations and its deposit policy."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import DateTime, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column
import ulid

from ..database import Base
from ._common import now_utc


class Tenant(Base):
    """A business using Booka. ``deposit_pct`` of None or 0 disables deposits."""

    __tablename__ = "tenants"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=lambda: str(ulid.ULID()))
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    deposit_pct: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(5, 2), nullable=True, comment="Deposit percentage of the base amount, 0-100"
    )
    default_currency: Mapped[str] = mapped_column(String(3), nullable=False, default="NGN")

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now_utc, server_default=func.now()
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), onupdate=now_utc)

    def __repr__(self) -> str:
        return f"<Tenant(id={self.id}, deposit_pct={self.deposit_pct})>"
