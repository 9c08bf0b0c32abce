# backend/booka/commands/retry_transactions.py
"""
Retry pending and failed payment transactions.

Claims one batch of due transactions, re-checks each with its payment
provider and logs the outcome counts. SIGTERM/SIGINT stop the batch
after the current transaction.

Usage:
    retry-transactions

Exit codes:
    0 - batch completed (individual failures included)
    1 - due transactions could not be fetched
"""

import argparse
import logging
import sys
from typing import List, Optional

from booka.core.cancellation import CancellationToken
from booka.core.exceptions import InfrastructureException
from booka.database import SessionLocal
from booka.services.transaction_retry_service import TransactionRetryService

logger = logging.getLogger(__name__)


def main(argv: Optional[List[str]] = None) -> int:
    """Run one retry batch."""
    parser = argparse.ArgumentParser(
        description="Retry pending/failed payment transactions with their provider"
    )
    parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    token = CancellationToken()
    token.install_signal_handlers()

    logger.info("Starting transaction retry worker...")
    db = SessionLocal()
    try:
        result = TransactionRetryService(db).run_batch(cancel_token=token)
    except InfrastructureException as exc:
        logger.error(f"Fatal error in retry worker: {exc.message}")
        return 1
    finally:
        db.close()

    logger.info(f"transaction_retries_processed_total {result.processed}")
    logger.info(f"transaction_retries_successful_total {result.succeeded}")
    logger.info(f"transaction_retries_failed_total {result.failed}")
    if result.cancelled:
        logger.info(f"Stopped early ({token.reason})")
    return 0


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
