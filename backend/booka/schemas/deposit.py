"""Deposit initiation request/response schemas (camelCase on the wire)."""

from typing import Optional

from pydantic import EmailStr, Field, field_validator

from ..core.enums import PaymentProviderName
from .base import StandardizedModel, StrictModel


class DepositRequest(StrictModel):
    amount: int = Field(..., gt=0, description="Reservation base amount in minor units (kobo, cents)")
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    email: EmailStr
    reservation_id: str = Field(..., alias="reservationId", min_length=1)
    provider: Optional[PaymentProviderName] = None

    @field_validator("currency")
    @classmethod
    def _upper(cls, v: Optional[str]) -> Optional[str]:
        return v.upper() if v else v


class DepositResponse(StandardizedModel):
    success: bool = True
    transaction_id: Optional[str] = Field(default=None, serialization_alias="transactionId")
    authorization_url: Optional[str] = Field(default=None, serialization_alias="authorizationUrl")
    duplicate: Optional[bool] = None
    skipped: Optional[str] = None
    message: str
