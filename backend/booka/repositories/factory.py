# backend/booka/repositories/factory.py
"""
Repository Factory for the Booka booking core.

Provides centralized creation of repository instances,
ensuring consistent initialization and dependency injection.
"""

from typing import TYPE_CHECKING, Any

from sqlalchemy.orm import Session

from .base_repository import BaseRepository

# Avoid circular imports
if TYPE_CHECKING:
    from .ledger_repository import LedgerRepository
    from .reservation_repository import ReservationRepository
    from .tenant_repository import TenantRepository
    from .transaction_repository import TransactionRepository
    from .webhook_event_repository import WebhookEventRepository


class RepositoryFactory:
    """
    Factory class for creating repository instances.

    Centralizes repository creation to ensure consistent initialization
    and makes it easy to swap implementations if needed.
    """

    @staticmethod
    def create_base_repository(db: Session, model: Any) -> BaseRepository[Any]:
        """Create a generic base repository for any model."""
        return BaseRepository(db, model)

    @staticmethod
    def create_reservation_repository(db: Session) -> "ReservationRepository":
        """Create repository for reservation and conflict queries."""
        from .reservation_repository import ReservationRepository

        return ReservationRepository(db)

    @staticmethod
    def create_tenant_repository(db: Session) -> "TenantRepository":
        from .tenant_repository import TenantRepository

        return TenantRepository(db)

    @staticmethod
    def create_transaction_repository(db: Session) -> "TransactionRepository":
        """Create repository for payment transactions."""
        from .transaction_repository import TransactionRepository

        return TransactionRepository(db)

    @staticmethod
    def create_ledger_repository(db: Session) -> "LedgerRepository":
        from .ledger_repository import LedgerRepository

        return LedgerRepository(db)

    @staticmethod
    def create_webhook_event_repository(db: Session) -> "WebhookEventRepository":
        from .webhook_event_repository import WebhookEventRepository

        return WebhookEventRepository(db)
