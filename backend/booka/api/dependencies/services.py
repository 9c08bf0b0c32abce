# backend/booka/api/dependencies/services.py
"""
Service layer dependencies for dependency injection.

This module provides factory functions that create service instances
with their required dependencies properly injected.
"""

from fastapi import Depends
from sqlalchemy.orm import Session

from ...services.booking_service import BookingService
from ...services.conflict_checker import ConflictChecker
from ...services.deposit_service import DepositService
from ...services.webhook_ingest_service import WebhookIngestService
from .database import get_db


def get_conflict_checker(db: Session = Depends(get_db)) -> ConflictChecker:
    """Get ConflictChecker instance for dependency injection."""
    return ConflictChecker(db)


def get_booking_service(
    db: Session = Depends(get_db),
    conflict_checker: ConflictChecker = Depends(get_conflict_checker),
) -> BookingService:
    """
    Get booking service instance.

    Args:
        db: Database session
        conflict_checker: Conflict checker sharing the same session

    Returns:
        BookingService instance
    """
    return BookingService(db, conflict_checker=conflict_checker)


def get_deposit_service(db: Session = Depends(get_db)) -> DepositService:
    """Get DepositService instance for dependency injection."""
    return DepositService(db)


def get_webhook_ingest_service(db: Session = Depends(get_db)) -> WebhookIngestService:
    return WebhookIngestService(db)
