# backend/booka/api/dependencies/__init__.py
"""
Central export point for all dependencies.

This module re-exports all dependencies from submodules
for convenient access throughout the application.
"""

from .authz import OperationPolicy, TenantContext, require_policy
from .database import get_db
from .services import (
    get_booking_service,
    get_conflict_checker,
    get_deposit_service,
    get_webhook_ingest_service,
)

__all__ = [
    # Authorization
    "OperationPolicy",
    "TenantContext",
    "require_policy",
    # Database
    "get_db",
    # Services
    "get_booking_service",
    "get_conflict_checker",
    "get_deposit_service",
    "get_webhook_ingest_service",
]
