"""Ledger Repository: read-only access for reconciliation."""

from datetime import datetime
import logging
from typing import Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.ledger_entry import LedgerEntry
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class LedgerRepository(BaseRepository[LedgerEntry]):
    def __init__(self, db: Session):
        super().__init__(db, LedgerEntry)

    def list_posted_between(
        self,
        start: datetime,
        end: datetime,
        tenant_id: Optional[str] = None,
    ) -> Sequence[LedgerEntry]:
        try:
            query = self.db.query(LedgerEntry).filter(
                LedgerEntry.posted_at >= start,
                LedgerEntry.posted_at < end,
            )
            if tenant_id:
                query = query.filter(LedgerEntry.tenant_id == tenant_id)
            return query.order_by(LedgerEntry.posted_at.asc()).all()
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing ledger entries: {str(e)}")
            raise RepositoryException(f"Failed to list ledger entries: {str(e)}") from e
