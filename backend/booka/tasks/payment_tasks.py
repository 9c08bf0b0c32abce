# backend/booka/tasks/payment_tasks.py
"""
Celery tasks for payment processing.

Runs the transaction retry batch on the beat schedule. Each run owns its
session. Worker shutdown is left to Celery; rows claimed by an
interrupted run become due again once their lease expires.
"""

import logging
from typing import Any, Dict

from sqlalchemy.orm import Session

from booka.database import SessionLocal
from booka.services.transaction_retry_service import TransactionRetryService
from booka.tasks.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(name="booka.tasks.payment_tasks.retry_failed_transactions", bind=True)
def retry_failed_transactions(self: Any) -> Dict[str, Any]:
    """
    Retry due pending/failed transactions with their payment provider.

    Returns:
        The batch summary (claimed, succeeded, failed, ...)
    """
    db: Session = SessionLocal()
    try:
        service = TransactionRetryService(db)
        result = service.run_batch()
        logger.info(
            f"transaction_retries_processed_total={result.processed} "
            f"transaction_retries_successful_total={result.succeeded} "
            f"transaction_retries_failed_total={result.failed}"
        )
        return result.as_dict()
    finally:
        db.close()
