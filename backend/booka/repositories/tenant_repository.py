"""Tenant Repository: read access to tenant deposit policy."""

from decimal import Decimal
import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.tenant import Tenant
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class TenantRepository(BaseRepository[Tenant]):
    def __init__(self, db: Session):
        super().__init__(db, Tenant)

    def get_deposit_pct(self, tenant_id: str) -> Optional[Decimal]:
        """Return the tenant's configured deposit percentage, or None if unset or unknown."""
        try:
            row = self.db.query(Tenant.deposit_pct).filter(Tenant.id == tenant_id).first()
        except SQLAlchemyError as e:
            self.logger.error(f"Error reading deposit policy for tenant {tenant_id}: {str(e)}")
            raise RepositoryException(f"Failed to read tenant deposit policy: {str(e)}") from e
        return row[0] if row else None
