# backend/booka/repositories/transaction_repository.py
"""
Transaction Repository for the Booka booking core.

Covers the three access paths that touch transactions: deposit
idempotency lookups, retry-worker claims and reconciliation reads.
"""

from datetime import datetime, timedelta
import logging
from typing import List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.enums import (
    ACTIVE_DEPOSIT_STATUSES,
    RETRYABLE_TRANSACTION_STATUSES,
    TransactionStatus,
    TransactionType,
)
from ..core.exceptions import RepositoryException
from ..models.transaction import Transaction
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class TransactionRepository(BaseRepository[Transaction]):
    """Data access for payment transactions."""

    def __init__(self, db: Session):
        super().__init__(db, Transaction)
        self.logger = logging.getLogger(__name__)

    def find_active_deposit(self, tenant_id: str, reservation_id: str) -> Optional[Transaction]:
        """Return the pending/successful deposit for a reservation, if one exists."""
        try:
            return (
                self.db.query(Transaction)
                .filter(
                    Transaction.tenant_id == tenant_id,
                    Transaction.reservation_id == reservation_id,
                    Transaction.type == TransactionType.DEPOSIT.value,
                    Transaction.status.in_([s.value for s in ACTIVE_DEPOSIT_STATUSES]),
                )
                .order_by(Transaction.created_at.asc())
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error looking up deposit for reservation {reservation_id}: {str(e)}")
            raise RepositoryException(f"Failed to look up existing deposit: {str(e)}") from e

    def list_pending_deposits(
        self, tenant_id: Optional[str], reservation_id: Optional[str], *, exclude_id: str
    ) -> List[Transaction]:
        """Open deposit checkouts for a reservation other than ``exclude_id``."""
        try:
            return (
                self.db.query(Transaction)
                .filter(
                    Transaction.tenant_id == tenant_id,
                    Transaction.reservation_id == reservation_id,
                    Transaction.type == TransactionType.DEPOSIT.value,
                    Transaction.status == TransactionStatus.PENDING.value,
                    Transaction.id != exclude_id,
                )
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing pending deposits for reservation {reservation_id}: {str(e)}")
            raise RepositoryException(f"Failed to list pending deposits: {str(e)}") from e

    def claim_due_for_retry(
        self,
        now: datetime,
        *,
        max_attempts: int,
        limit: int,
        lease: timedelta,
    ) -> List[Transaction]:
        """
        Select and lease transactions due for a retry attempt.

        Rows are locked with ``FOR UPDATE SKIP LOCKED`` so concurrent workers
        pick disjoint sets, then ``next_retry_at`` is pushed forward by
        ``lease`` so they stay invisible after this transaction commits.
        The caller owns the commit.
        """
        try:
            rows = (
                self.db.query(Transaction)
                .filter(
                    Transaction.next_retry_at.isnot(None),
                    Transaction.next_retry_at <= now,
                    Transaction.retry_count < max_attempts,
                    Transaction.status.in_([s.value for s in RETRYABLE_TRANSACTION_STATUSES]),
                )
                .order_by(Transaction.next_retry_at.asc())
                .limit(limit)
                .with_for_update(skip_locked=True)
                .all()
            )
            for row in rows:
                row.next_retry_at = now + lease
            self.db.flush()
            return rows
        except SQLAlchemyError as e:
            self.logger.error(f"Error claiming transactions for retry: {str(e)}")
            raise RepositoryException(f"Failed to fetch transactions for retry: {str(e)}") from e

    def list_created_between(
        self,
        start: datetime,
        end: datetime,
        tenant_id: Optional[str] = None,
    ) -> Sequence[Transaction]:
        try:
            query = self.db.query(Transaction).filter(
                Transaction.created_at >= start,
                Transaction.created_at < end,
            )
            if tenant_id:
                query = query.filter(Transaction.tenant_id == tenant_id)
            return query.order_by(Transaction.created_at.asc()).all()
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing transactions: {str(e)}")
            raise RepositoryException(f"Failed to list transactions: {str(e)}") from e
