# backend/booka/core/exceptions.py
"""
Domain-specific exceptions for the Booka booking core.

These exceptions provide clear, business-focused error messages
that can be caught and handled appropriately at the API layer.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status

HTTP_422_UNPROCESSABLE: int = getattr(status, "HTTP_422_UNPROCESSABLE_CONTENT", 422)


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_http_exception(self) -> HTTPException:
        """Convert to an HTTPException using the class status code."""
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class ValidationException(DomainException):
    """Raised when business validation fails."""

    status_code = status.HTTP_400_BAD_REQUEST


class InvalidIntervalException(ValidationException):
    """Raised when a requested interval does not satisfy start < end."""

    def __init__(self, start_at: Any, end_at: Any):
        super().__init__(
            message="start_at must be before end_at",
            code="INVALID_INTERVAL",
            details={"start_at": str(start_at), "end_at": str(end_at)},
        )


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictException(DomainException):
    """Raised when there's a conflict with existing data."""

    status_code = status.HTTP_409_CONFLICT


class BusinessRuleException(DomainException):
    """Raised when a business rule is violated."""

    status_code = HTTP_422_UNPROCESSABLE


class InvalidStateException(BusinessRuleException):
    """Raised when an operation is not allowed in the entity's current state."""


class UnauthorizedException(DomainException):
    """Raised when the caller identity is missing."""

    status_code = status.HTTP_401_UNAUTHORIZED


class ForbiddenException(DomainException):
    """Raised when the caller lacks permission for an action."""

    status_code = status.HTTP_403_FORBIDDEN


class InfrastructureException(DomainException):
    """Raised when a backing store is unavailable or a query fails."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message or "Service temporarily unavailable. Please retry.",
            code=code or "INFRASTRUCTURE_ERROR",
            details=details,
        )

    def to_http_exception(self) -> HTTPException:
        exc = super().to_http_exception()
        exc.headers = {"Retry-After": "2"}
        return exc


class PaymentProviderException(DomainException):
    """Raised when a payment provider rejects a request or is unreachable."""

    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(
        self,
        message: str,
        *,
        provider: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        merged: Dict[str, Any] = dict(details or {})
        if provider:
            merged.setdefault("provider", provider)
        if status_code is not None:
            merged.setdefault("provider_status", status_code)
        super().__init__(message=message, code="PAYMENT_PROVIDER_ERROR", details=merged)
        self.provider = provider
        self.provider_status = status_code


class SignatureVerificationException(DomainException):
    """Raised when a webhook signature is missing or does not match."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = "Invalid webhook signature"):
        super().__init__(message=message, code="INVALID_SIGNATURE")


class WebhookNotConfiguredException(DomainException):
    """Raised when no signing secret is configured for a webhook provider."""

    def __init__(self, provider: str):
        super().__init__(
            message="Webhook secret not configured",
            code="WEBHOOK_NOT_CONFIGURED",
            details={"provider": provider},
        )


# Specific business exceptions


class BookingConflictException(ConflictException):
    """Raised when a booking conflicts with existing bookings."""

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message or "This time slot is no longer available",
            code="BOOKING_CONFLICT",
            details=details or {},
        )


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations.
    """


class RepositoryIntegrityException(RepositoryException):
    """Raised when a write violates a database constraint (unique, exclusion, check)."""
