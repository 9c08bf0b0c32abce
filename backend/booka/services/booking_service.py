# backend/booka/services/booking_service.py
"""
Booking Service for the Booka booking core.

Creates and updates reservations without ever double-booking a staff
member. The check-then-write sequence runs in a single database
transaction holding a per-(tenant, staff) schedule lock; on PostgreSQL
an exclusion constraint backs this up and its violations surface as
``BookingConflictException``.
"""

from datetime import datetime
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.enums import ReservationStatus
from ..core.exceptions import (
    BookingConflictException,
    InfrastructureException,
    InvalidIntervalException,
    NotFoundException,
    RepositoryException,
    RepositoryIntegrityException,
)
from ..core.time_utils import ensure_utc, now_utc
from ..models.reservation import Reservation
from ..repositories import RepositoryFactory
from ..repositories.reservation_repository import ReservationRepository
from ..schemas.reservation import ReservationCreate, ReservationUpdate
from .base import BaseService
from .conflict_checker import ConflictChecker

logger = logging.getLogger(__name__)

SLOT_UNAVAILABLE_MESSAGE = "This time slot is no longer available"
EXCLUSION_CONSTRAINT_NAME = "reservations_no_overlap_per_staff"


class BookingService(BaseService):
    """Reservation writes guarded by the conflict checker."""

    def __init__(
        self,
        db: Session,
        conflict_checker: Optional[ConflictChecker] = None,
        repository: Optional[ReservationRepository] = None,
    ):
        super().__init__(db)
        self.repository = repository or RepositoryFactory.create_reservation_repository(db)
        self.conflict_checker = conflict_checker or ConflictChecker(db, self.repository)

    @BaseService.measure_operation("get_booking")
    def get_booking(self, tenant_id: str, reservation_id: str) -> Reservation:
        """Load a reservation owned by ``tenant_id``; other tenants' ids are not found."""
        try:
            reservation = self.repository.get_for_tenant(tenant_id, reservation_id)
        except RepositoryException as exc:
            raise InfrastructureException("Unable to load reservation") from exc
        if reservation is None:
            raise NotFoundException(
                "Reservation not found",
                code="RESERVATION_NOT_FOUND",
                details={"reservation_id": reservation_id},
            )
        return reservation

    @BaseService.measure_operation("create_booking")
    def create_booking(self, tenant_id: str, data: ReservationCreate) -> Reservation:
        """
        Create a confirmed reservation.

        Raises:
            InvalidIntervalException: if ``start_at >= end_at``
            BookingConflictException: if the staff member is already booked
            InfrastructureException: if the reservation store fails
        """
        start_at = ensure_utc(data.start_at)
        end_at = ensure_utc(data.end_at)
        if start_at >= end_at:
            raise InvalidIntervalException(start_at, end_at)

        self.log_operation(
            "create_booking",
            tenant_id=tenant_id,
            staff_id=data.staff_id,
            start_at=start_at.isoformat(),
        )

        try:
            with self.repository.transaction():
                self._ensure_slot_free(tenant_id, data.staff_id, start_at, end_at)
                reservation = self.repository.create(
                    tenant_id=tenant_id,
                    staff_id=data.staff_id,
                    service_id=data.service_id,
                    customer_id=data.customer_id,
                    customer_name=data.customer_name,
                    customer_email=str(data.customer_email) if data.customer_email else None,
                    start_at=start_at,
                    end_at=end_at,
                    status=ReservationStatus.CONFIRMED.value,
                    notes=data.notes,
                )
        except (IntegrityError, RepositoryIntegrityException) as exc:
            raise self._conflict_from_integrity_error(exc, data.staff_id, start_at, end_at) from exc
        except OperationalError as exc:
            if self._is_deadlock_error(exc):
                raise BookingConflictException(SLOT_UNAVAILABLE_MESSAGE) from exc
            raise InfrastructureException("Unable to create reservation") from exc
        except (SQLAlchemyError, RepositoryException) as exc:
            raise InfrastructureException("Unable to create reservation") from exc

        self.logger.info(
            f"Created reservation {reservation.id}",
            extra={"tenant_id": tenant_id, "reservation_id": reservation.id},
        )
        return reservation

    @BaseService.measure_operation("update_booking")
    def update_booking(
        self, tenant_id: str, reservation_id: str, patch: ReservationUpdate
    ) -> Reservation:
        """
        Reschedule, reassign or change the status of a reservation.

        Values missing from ``patch`` fall back to the current ones. The
        conflict check runs against the proposed staff and interval,
        excluding the reservation itself, unless the result is cancelled.
        """
        changes: Dict[str, Any] = patch.model_dump(exclude_unset=True)

        try:
            with self.repository.transaction():
                reservation = self.get_booking(tenant_id, reservation_id)

                staff_id = changes["staff_id"] if "staff_id" in changes else reservation.staff_id
                start_at = ensure_utc(changes.get("start_at") or reservation.start_at)
                end_at = ensure_utc(changes.get("end_at") or reservation.end_at)
                status = changes.get("status") or reservation.status

                if start_at >= end_at:
                    raise InvalidIntervalException(start_at, end_at)

                if status != ReservationStatus.CANCELLED.value:
                    self._ensure_slot_free(
                        tenant_id, staff_id, start_at, end_at, exclude_reservation_id=reservation.id
                    )

                reservation.staff_id = staff_id
                reservation.start_at = start_at
                reservation.end_at = end_at
                if "notes" in changes:
                    reservation.notes = changes["notes"]

                if status == ReservationStatus.CANCELLED.value and not reservation.is_cancelled:
                    reservation.cancel(changes.get("cancellation_reason"))
                elif status != reservation.status:
                    reservation.status = status
                    reservation.cancelled_at = None
                    reservation.cancellation_reason = None

                self.repository.flush()
        except (IntegrityError, RepositoryIntegrityException) as exc:
            raise self._conflict_from_integrity_error(exc, None, None, None) from exc
        except OperationalError as exc:
            if self._is_deadlock_error(exc):
                raise BookingConflictException(SLOT_UNAVAILABLE_MESSAGE) from exc
            raise InfrastructureException("Unable to update reservation") from exc
        except (SQLAlchemyError, RepositoryException) as exc:
            raise InfrastructureException("Unable to update reservation") from exc

        self.log_operation(
            "update_booking",
            tenant_id=tenant_id,
            reservation_id=reservation_id,
            fields=sorted(changes),
        )
        return reservation

    def cancel_booking(
        self, tenant_id: str, reservation_id: str, reason: Optional[str] = None
    ) -> Reservation:
        """Cancel a reservation, freeing its interval."""
        return self.update_booking(
            tenant_id,
            reservation_id,
            ReservationUpdate(status="cancelled", cancellation_reason=reason),
        )

    def _ensure_slot_free(
        self,
        tenant_id: str,
        staff_id: Optional[str],
        start_at: datetime,
        end_at: datetime,
        exclude_reservation_id: Optional[str] = None,
    ) -> None:
        """Lock the staff schedule and raise if the interval is taken. Caller owns the transaction."""
        if staff_id:
            self.repository.lock_staff_schedule(tenant_id, staff_id)
        conflicts: List[Reservation] = self.conflict_checker.find_conflicts(
            tenant_id, staff_id, start_at, end_at, exclude_reservation_id
        )
        if conflicts:
            raise BookingConflictException(
                SLOT_UNAVAILABLE_MESSAGE,
                details={
                    "staff_id": staff_id,
                    "start_at": start_at.isoformat(),
                    "end_at": end_at.isoformat(),
                    "conflicting_ids": [r.id for r in conflicts],
                },
            )

    def _conflict_from_integrity_error(
        self,
        exc: Exception,
        staff_id: Optional[str],
        start_at: Optional[datetime],
        end_at: Optional[datetime],
    ) -> Exception:
        """
        Translate the exclusion-constraint violation into a booking conflict.

        Any other integrity failure is an infrastructure problem, not a
        user-facing conflict.
        """
        text = str(getattr(exc, "orig", None) or exc)
        if EXCLUSION_CONSTRAINT_NAME in text or "exclusion constraint" in text.lower():
            details: Dict[str, Any] = {"staff_id": staff_id}
            if start_at and end_at:
                details.update(start_at=start_at.isoformat(), end_at=end_at.isoformat())
            self.logger.warning(
                "Exclusion constraint rejected overlapping reservation",
                extra={"staff_id": staff_id},
            )
            return BookingConflictException(SLOT_UNAVAILABLE_MESSAGE, details=details)
        self.logger.error(f"Integrity error writing reservation: {text}")
        return InfrastructureException("Unable to save reservation")

    @staticmethod
    def _is_deadlock_error(exc: OperationalError) -> bool:
        return "deadlock detected" in str(exc).lower()
