# backend/booka/services/conflict_checker.py
"""
Conflict Checker Service for the Booka booking core.

Decides whether a proposed staff interval overlaps an existing,
non-cancelled reservation of the same tenant. Reservations are
half-open intervals ``[start_at, end_at)``, so back-to-back bookings
never conflict.
"""

from datetime import datetime
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.exceptions import InfrastructureException, InvalidIntervalException, RepositoryException
from ..core.time_utils import ensure_utc
from ..models.reservation import Reservation
from ..repositories import RepositoryFactory
from ..repositories.reservation_repository import ReservationRepository
from .base import BaseService

logger = logging.getLogger(__name__)


def intervals_overlap(
    a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime
) -> bool:
    """Half-open interval overlap test. Symmetric in its two intervals."""
    return ensure_utc(a_start) < ensure_utc(b_end) and ensure_utc(a_end) > ensure_utc(b_start)


class ConflictChecker(BaseService):
    """
    Service for checking reservation conflicts.

    The check is read-only. Callers that act on its answer must hold the
    staff schedule lock (see ``BookingService``) for the answer to stay true.
    """

    def __init__(self, db: Session, repository: Optional[ReservationRepository] = None):
        """
        Initialize conflict checker service.

        Args:
            db: Database session
            repository: Optional ReservationRepository instance
        """
        super().__init__(db)
        self.logger = logging.getLogger(__name__)
        self.repository = repository or RepositoryFactory.create_reservation_repository(db)

    @BaseService.measure_operation("find_conflicts")
    def find_conflicts(
        self,
        tenant_id: str,
        staff_id: Optional[str],
        start_at: datetime,
        end_at: datetime,
        exclude_reservation_id: Optional[str] = None,
    ) -> List[Reservation]:
        """
        Return the reservations that conflict with ``[start_at, end_at)``.

        Raises:
            InvalidIntervalException: if ``start_at >= end_at``
            InfrastructureException: if the reservation store cannot be queried
        """
        start_at = ensure_utc(start_at)
        end_at = ensure_utc(end_at)
        if start_at >= end_at:
            raise InvalidIntervalException(start_at, end_at)

        # A reservation without staff never blocks anyone.
        if not staff_id:
            return []

        try:
            candidates = self.repository.find_overlapping(
                tenant_id, staff_id, start_at, end_at, exclude_reservation_id
            )
        except RepositoryException as exc:
            self.logger.error(f"Conflict check failed for staff {staff_id}: {exc}")
            raise InfrastructureException(
                "Unable to check reservation conflicts", details={"staff_id": staff_id}
            ) from exc

        conflicts = [
            r for r in candidates if intervals_overlap(start_at, end_at, r.start_at, r.end_at)
        ]
        if conflicts:
            self.logger.info(
                f"Found {len(conflicts)} conflicting reservations for staff {staff_id} "
                f"between {start_at.isoformat()} and {end_at.isoformat()}",
                extra={"tenant_id": tenant_id, "staff_id": staff_id},
            )
        return conflicts

    def has_conflict(
        self,
        tenant_id: str,
        staff_id: Optional[str],
        start_at: datetime,
        end_at: datetime,
        exclude_reservation_id: Optional[str] = None,
    ) -> bool:
        """
        Check if a staff interval conflicts with any non-cancelled reservation.

        Returns False without querying when ``staff_id`` is absent.
        """
        return bool(
            self.find_conflicts(tenant_id, staff_id, start_at, end_at, exclude_reservation_id)
        )
