"""Reservation request and response schemas."""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import ConfigDict, EmailStr, Field, model_validator

from .base import StandardizedModel, StrictModel

ReservationStatusLiteral = Literal["pending", "confirmed", "cancelled"]


class ReservationCreate(StrictModel):
    staff_id: Optional[str] = Field(default=None, max_length=64)
    service_id: str = Field(..., min_length=1, max_length=64)
    customer_id: Optional[str] = Field(default=None, max_length=64)
    customer_name: Optional[str] = Field(default=None, max_length=255)
    customer_email: Optional[EmailStr] = None
    start_at: datetime
    end_at: datetime
    notes: Optional[str] = None


class ReservationUpdate(StrictModel):
    """
    Partial update. Fields left out keep their current value; an explicit
    ``staff_id: null`` unassigns the staff member.
    """

    staff_id: Optional[str] = Field(default=None, max_length=64)
    start_at: Optional[datetime] = None
    end_at: Optional[datetime] = None
    status: Optional[ReservationStatusLiteral] = None
    notes: Optional[str] = None
    cancellation_reason: Optional[str] = None

    @model_validator(mode="after")
    def _status_not_null(self) -> "ReservationUpdate":
        if "status" in self.model_fields_set and self.status is None:
            raise ValueError("status cannot be null")
        return self


class ReservationResponse(StandardizedModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: str
    tenant_id: str
    staff_id: Optional[str] = None
    service_id: str
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    start_at: datetime
    end_at: datetime
    status: str
    notes: Optional[str] = None
    cancelled_at: Optional[datetime] = None


class ConflictCheckRequest(StrictModel):
    staff_id: Optional[str] = None
    start_at: datetime
    end_at: datetime
    exclude_reservation_id: Optional[str] = None


class ConflictCheckResponse(StandardizedModel):
    conflict: bool
    conflicting_ids: List[str] = Field(default_factory=list)
