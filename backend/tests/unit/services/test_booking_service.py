"""Tests for BookingService: conflict-guarded create/update/cancel."""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import IntegrityError

from booka.core.exceptions import (
    BookingConflictException,
    InfrastructureException,
    InvalidIntervalException,
    NotFoundException,
    RepositoryIntegrityException,
)
from booka.core.time_utils import ensure_utc
from booka.models import Reservation
from booka.schemas.reservation import ReservationCreate, ReservationUpdate
from booka.services.booking_service import BookingService

T0 = datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc)


def at(minutes: int) -> datetime:
    return T0 + timedelta(minutes=minutes)


def create_payload(start: int = 0, end: int = 60, staff_id="s1") -> ReservationCreate:
    return ReservationCreate(
        staff_id=staff_id,
        service_id="svc-1",
        customer_name="Ada Obi",
        customer_email="ada@example.com",
        start_at=at(start),
        end_at=at(end),
    )


@pytest.fixture
def service(db):
    return BookingService(db)


class TestCreateBooking:
    def test_creates_confirmed_reservation(self, db, service, make_tenant):
        make_tenant()

        reservation = service.create_booking("t1", create_payload())

        stored = db.get(Reservation, reservation.id)
        assert stored is not None
        assert stored.status == "confirmed"
        assert stored.tenant_id == "t1"
        assert ensure_utc(stored.start_at) == T0

    def test_overlap_is_rejected_and_nothing_written(self, db, service, make_tenant, make_reservation):
        make_tenant()
        make_reservation(start_at=T0)

        with pytest.raises(BookingConflictException) as exc_info:
            service.create_booking("t1", create_payload(30, 90))

        assert exc_info.value.status_code == 409
        assert exc_info.value.message == "This time slot is no longer available"
        assert db.query(Reservation).count() == 1

    def test_back_to_back_bookings_are_allowed(self, db, service, make_tenant, make_reservation):
        make_tenant()
        make_reservation(start_at=T0)

        service.create_booking("t1", create_payload(60, 120))

        assert db.query(Reservation).count() == 2

    def test_same_slot_for_another_tenant_is_allowed(self, db, service, make_tenant, make_reservation):
        make_tenant("t1")
        make_tenant("t2")
        make_reservation(tenant_id="t1", start_at=T0)

        service.create_booking("t2", create_payload())

        assert db.query(Reservation).filter(Reservation.tenant_id == "t2").count() == 1

    def test_staffless_reservations_never_conflict(self, db, service, make_tenant):
        make_tenant()
        service.create_booking("t1", create_payload(staff_id=None))
        service.create_booking("t1", create_payload(staff_id=None))

        assert db.query(Reservation).count() == 2

    def test_inverted_interval_is_rejected(self, service):
        with pytest.raises(InvalidIntervalException):
            service.create_booking("t1", create_payload(60, 0))

    def test_exclusion_constraint_violation_maps_to_conflict(self, db):
        repository = MagicMock()
        repository.transaction.return_value.__enter__ = MagicMock(return_value=db)
        repository.transaction.return_value.__exit__ = MagicMock(return_value=False)
        repository.create.side_effect = RepositoryIntegrityException(
            'conflicting key value violates exclusion constraint "reservations_no_overlap_per_staff"'
        )
        checker = MagicMock()
        checker.find_conflicts.return_value = []

        service = BookingService(db, conflict_checker=checker, repository=repository)
        with pytest.raises(BookingConflictException):
            service.create_booking("t1", create_payload())

    def test_other_integrity_errors_are_infrastructure_errors(self, db):
        repository = MagicMock()
        repository.transaction.return_value.__enter__ = MagicMock(return_value=db)
        repository.transaction.return_value.__exit__ = MagicMock(return_value=False)
        repository.create.side_effect = IntegrityError(
            "INSERT", {}, Exception('null value in column "service_id"')
        )
        checker = MagicMock()
        checker.find_conflicts.return_value = []

        service = BookingService(db, conflict_checker=checker, repository=repository)
        with pytest.raises(InfrastructureException):
            service.create_booking("t1", create_payload())


class TestUpdateBooking:
    def test_reschedule_excludes_itself(self, db, service, make_tenant, make_reservation):
        make_tenant()
        own = make_reservation("r1", start_at=T0)

        updated = service.update_booking(
            "t1", own.id, ReservationUpdate(start_at=at(30), end_at=at(90))
        )

        assert ensure_utc(updated.start_at) == at(30)
        assert ensure_utc(updated.end_at) == at(90)

    def test_reschedule_onto_another_booking_conflicts(self, db, service, make_tenant, make_reservation):
        make_tenant()
        make_reservation("r1", start_at=T0)
        other = make_reservation("r2", start_at=at(120))

        with pytest.raises(BookingConflictException):
            service.update_booking("t1", other.id, ReservationUpdate(start_at=at(30), end_at=at(90)))

        db.expire_all()
        assert ensure_utc(db.get(Reservation, "r2").start_at) == at(120)

    def test_missing_fields_fall_back_to_current_values(self, db, service, make_tenant, make_reservation):
        make_tenant()
        make_reservation("r1", start_at=T0, minutes=60)

        updated = service.update_booking("t1", "r1", ReservationUpdate(end_at=at(90)))

        assert ensure_utc(updated.start_at) == T0
        assert ensure_utc(updated.end_at) == at(90)
        assert updated.staff_id == "s1"

    def test_reassigning_staff_checks_the_new_schedule(self, db, service, make_tenant, make_reservation):
        make_tenant()
        make_reservation("r1", staff_id="s1", start_at=T0)
        make_reservation("r2", staff_id="s2", start_at=T0)

        with pytest.raises(BookingConflictException):
            service.update_booking("t1", "r1", ReservationUpdate(staff_id="s2"))

    def test_cancellation_skips_conflict_check(self, db, service, make_tenant, make_reservation):
        make_tenant()
        make_reservation("r1", start_at=T0)
        make_reservation("r2", staff_id="s2", start_at=T0)
        checker = MagicMock(wraps=service.conflict_checker)
        service.conflict_checker = checker

        cancelled = service.update_booking(
            "t1", "r2", ReservationUpdate(status="cancelled", staff_id="s1")
        )

        assert cancelled.status == "cancelled"
        assert cancelled.cancelled_at is not None
        checker.find_conflicts.assert_not_called()

    def test_cancel_frees_the_slot(self, db, service, make_tenant, make_reservation):
        make_tenant()
        make_reservation("r1", start_at=T0)

        service.cancel_booking("t1", "r1", reason="customer request")
        service.create_booking("t1", create_payload())

        assert db.get(Reservation, "r1").cancellation_reason == "customer request"

    def test_reactivating_a_cancelled_booking_rechecks(self, db, service, make_tenant, make_reservation):
        make_tenant()
        make_reservation("r1", start_at=T0, status="cancelled")
        make_reservation("r2", start_at=T0)

        with pytest.raises(BookingConflictException):
            service.update_booking("t1", "r1", ReservationUpdate(status="confirmed"))

    def test_other_tenants_reservation_is_not_found(self, db, service, make_tenant, make_reservation):
        make_tenant("t1")
        make_tenant("t2")
        make_reservation("r1", tenant_id="t1")

        with pytest.raises(NotFoundException):
            service.update_booking("t2", "r1", ReservationUpdate(notes="hijack"))

    def test_inverted_interval_is_rejected(self, db, service, make_tenant, make_reservation):
        make_tenant()
        make_reservation("r1", start_at=T0)

        with pytest.raises(InvalidIntervalException):
            service.update_booking("t1", "r1", ReservationUpdate(end_at=at(-30)))


class TestGetBooking:
    def test_not_found(self, service):
        with pytest.raises(NotFoundException) as exc_info:
            service.get_booking("t1", "missing")
        assert exc_info.value.code == "RESERVATION_NOT_FOUND"
