"""Repository for the webhook delivery ledger."""

from __future__ import annotations

from datetime import datetime, timezone
import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.webhook_event import WebhookEvent
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class WebhookEventRepository(BaseRepository[WebhookEvent]):
    """Data access for webhook deliveries."""

    def __init__(self, db: Session):
        super().__init__(db, WebhookEvent)

    def record_delivery(
        self,
        *,
        provider: str,
        event_type: str,
        event_id: str | None,
        payload: dict[str, Any],
        headers: dict[str, Any] | None,
        transaction_id: str | None,
    ) -> WebhookEvent:
        """Insert a delivery row, or bump ``delivery_count`` on a redelivered event id."""
        now = datetime.now(timezone.utc)
        try:
            existing = None
            if event_id:
                existing = (
                    self.db.query(WebhookEvent)
                    .filter(WebhookEvent.provider == provider, WebhookEvent.event_id == event_id)
                    .first()
                )
            if existing is not None:
                existing.delivery_count = (existing.delivery_count or 1) + 1
                existing.last_received_at = now
                existing.transaction_id = transaction_id
                self.db.flush()
                return existing
        except SQLAlchemyError as e:
            self.logger.error(f"Error recording webhook delivery: {str(e)}")
            raise RepositoryException(f"Failed to record webhook delivery: {str(e)}") from e

        return self.create(
            provider=provider,
            event_type=event_type,
            event_id=event_id,
            payload=payload,
            headers=headers,
            transaction_id=transaction_id,
            first_received_at=now,
            last_received_at=now,
        )
