# backend/booka/routes/v1/reservations.py
"""
Reservation routes - API v1

Versioned reservation endpoints under /api/v1/reservations.
All business logic delegated to BookingService and ConflictChecker.

Endpoints:
    POST / - Create a reservation
    POST /conflicts - Check a proposed interval for conflicts
    GET /{reservation_id} - Fetch a reservation
    PATCH /{reservation_id} - Reschedule, reassign or cancel
"""

import logging
from typing import NoReturn

from fastapi import APIRouter, Depends, status

from ...api.dependencies import (
    TenantContext,
    get_booking_service,
    get_conflict_checker,
    require_policy,
)
from ...api.dependencies.authz import MANAGE_RESERVATIONS, VIEW_RESERVATIONS
from ...core.exceptions import DomainException
from ...schemas.reservation import (
    ConflictCheckRequest,
    ConflictCheckResponse,
    ReservationCreate,
    ReservationResponse,
    ReservationUpdate,
)
from ...services.booking_service import BookingService
from ...services.conflict_checker import ConflictChecker

logger = logging.getLogger(__name__)

# V1 router - no prefix here, will be added when mounting in main.py
router = APIRouter(tags=["reservations-v1"])


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    raise exc.to_http_exception()


@router.post("", response_model=ReservationResponse, status_code=status.HTTP_201_CREATED)
def create_reservation(
    payload: ReservationCreate,
    ctx: TenantContext = Depends(require_policy(MANAGE_RESERVATIONS)),
    booking_service: BookingService = Depends(get_booking_service),
) -> ReservationResponse:
    """Create a confirmed reservation; 409 if the staff member is already booked."""
    try:
        reservation = booking_service.create_booking(ctx.tenant_id, payload)
    except DomainException as exc:
        handle_domain_exception(exc)
    return ReservationResponse.model_validate(reservation)


@router.post("/conflicts", response_model=ConflictCheckResponse)
def check_conflicts(
    payload: ConflictCheckRequest,
    ctx: TenantContext = Depends(require_policy(VIEW_RESERVATIONS)),
    conflict_checker: ConflictChecker = Depends(get_conflict_checker),
) -> ConflictCheckResponse:
    try:
        conflicts = conflict_checker.find_conflicts(
            ctx.tenant_id,
            payload.staff_id,
            payload.start_at,
            payload.end_at,
            payload.exclude_reservation_id,
        )
    except DomainException as exc:
        handle_domain_exception(exc)
    return ConflictCheckResponse(
        conflict=bool(conflicts), conflicting_ids=[r.id for r in conflicts]
    )


@router.get("/{reservation_id}", response_model=ReservationResponse)
def get_reservation(
    reservation_id: str,
    ctx: TenantContext = Depends(require_policy(VIEW_RESERVATIONS)),
    booking_service: BookingService = Depends(get_booking_service),
) -> ReservationResponse:
    try:
        reservation = booking_service.get_booking(ctx.tenant_id, reservation_id)
    except DomainException as exc:
        handle_domain_exception(exc)
    return ReservationResponse.model_validate(reservation)


@router.patch("/{reservation_id}", response_model=ReservationResponse)
def update_reservation(
    reservation_id: str,
    payload: ReservationUpdate,
    ctx: TenantContext = Depends(require_policy(MANAGE_RESERVATIONS)),
    booking_service: BookingService = Depends(get_booking_service),
) -> ReservationResponse:
    """
    Update a reservation.

    Omitted fields keep their current values. Setting ``status`` to
    ``cancelled`` frees the interval without a conflict check.
    """
    try:
        reservation = booking_service.update_booking(ctx.tenant_id, reservation_id, payload)
    except DomainException as exc:
        handle_domain_exception(exc)
    return ReservationResponse.model_validate(reservation)
