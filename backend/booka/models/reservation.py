# backend/booka/models/reservation.py
"""
Reservation model for the Booka booking core.

A reservation books one staff member for a half-open interval
``[start_at, end_at)``. For a given tenant and staff member no two
non-cancelled reservations may overlap. On PostgreSQL the migration adds
a btree_gist exclusion constraint enforcing this; the booking service
takes an advisory lock so the constraint is only ever a backstop.

Reservations are never deleted. Cancelling one is a status change.
"""

from datetime import datetime
import logging
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column
import ulid

from ..core.enums import ReservationStatus
from ..database import Base
from ._common import now_utc

logger = logging.getLogger(__name__)


class Reservation(Base):
    """A customer's booking of a service with (optionally) a staff member."""

    __tablename__ = "reservations"

    __table_args__ = (
        CheckConstraint("start_at < end_at", name="ck_reservations_start_before_end"),
        Index("ix_reservations_tenant_staff_start", "tenant_id", "staff_id", "start_at"),
        Index("ix_reservations_tenant_status", "tenant_id", "status"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=lambda: str(ulid.ULID()))
    tenant_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    staff_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    service_id: Mapped[str] = mapped_column(String(64), nullable=False)

    customer_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    customer_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    customer_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    start_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ReservationStatus.CONFIRMED.value, index=True
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    cancellation_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now_utc, server_default=func.now()
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), onupdate=now_utc)
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return (
            f"<Reservation(id={self.id}, tenant={self.tenant_id}, staff={self.staff_id}, "
            f"{self.start_at}-{self.end_at}, status={self.status})>"
        )

    @property
    def is_cancelled(self) -> bool:
        return self.status == ReservationStatus.CANCELLED.value

    def cancel(self, reason: Optional[str] = None) -> None:
        """Mark the reservation cancelled; it stops blocking its interval."""
        self.status = ReservationStatus.CANCELLED.value
        self.cancelled_at = now_utc()
        self.cancellation_reason = reason
        logger.info(f"Reservation {self.id} cancelled")
