# backend/booka/repositories/reservation_repository.py
"""
Reservation Repository for the Booka booking core.

All queries are tenant-scoped: a reservation id belonging to another
tenant behaves exactly like a missing one.
"""

from datetime import datetime
import logging
from typing import List, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.enums import ReservationStatus
from ..core.exceptions import RepositoryException
from ..models.reservation import Reservation
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class ReservationRepository(BaseRepository[Reservation]):
    """Data access for reservations, including the overlap query used for conflict checks."""

    def __init__(self, db: Session):
        super().__init__(db, Reservation)
        self.logger = logging.getLogger(__name__)

    def get_for_tenant(self, tenant_id: str, reservation_id: str) -> Optional[Reservation]:
        try:
            return (
                self.db.query(Reservation)
                .filter(Reservation.id == reservation_id, Reservation.tenant_id == tenant_id)
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading reservation {reservation_id}: {str(e)}")
            raise RepositoryException(f"Failed to load reservation: {str(e)}") from e

    def find_overlapping(
        self,
        tenant_id: str,
        staff_id: str,
        start_at: datetime,
        end_at: datetime,
        exclude_reservation_id: Optional[str] = None,
    ) -> List[Reservation]:
        """
        Return non-cancelled reservations for the staff member overlapping ``[start_at, end_at)``.

        Two half-open intervals overlap iff ``a.start < b.end and a.end > b.start``;
        intervals that only touch at a boundary are not returned.
        """
        try:
            query = self.db.query(Reservation).filter(
                Reservation.tenant_id == tenant_id,
                Reservation.staff_id == staff_id,
                Reservation.status != ReservationStatus.CANCELLED.value,
                Reservation.start_at < end_at,
                Reservation.end_at > start_at,
            )
            if exclude_reservation_id:
                query = query.filter(Reservation.id != exclude_reservation_id)
            return query.order_by(Reservation.start_at).all()
        except SQLAlchemyError as e:
            self.logger.error(f"Error checking reservation overlap: {str(e)}")
            raise RepositoryException(f"Failed to check reservation conflicts: {str(e)}") from e

    def lock_staff_schedule(self, tenant_id: str, staff_id: str) -> None:
        """
        Serialize writers for one (tenant, staff) schedule until the transaction ends.

        Uses a transaction-scoped advisory lock on PostgreSQL. Other dialects
        have no equivalent and rely on their own write serialization.
        """
        if self.dialect_name != "postgresql":
            return
        key = f"booka:schedule:{tenant_id}:{staff_id}"
        try:
            self.db.execute(
                text("SELECT pg_advisory_xact_lock(hashtextextended(:key, 0))"),
                {"key": key},
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Failed to take schedule lock {key}: {str(e)}")
            raise RepositoryException(f"Failed to lock staff schedule: {str(e)}") from e

