# backend/booka/services/transaction_retry_service.py
"""
Transaction Retry Service for the Booka booking core.

Re-checks pending and failed transactions with the payment provider on
an exponential backoff. State machine per row:

    pending/failed --retry ok--> success            (terminal)
    pending/failed --retry not ok--> failed, retry_count + 1
    failed with retry_count == max_attempts          (terminal)

A provider that still reports a pending row as in progress keeps it
``pending`` but the attempt still counts against the ceiling. Once a
deposit succeeds, other open checkouts for the same reservation are
closed as ``failed`` with no further retries.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
import logging
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from ..core.cancellation import CancellationToken
from ..core.config import Settings, settings as default_settings
from ..core.currency import to_minor_units
from ..core.enums import PaymentProviderName, TransactionStatus, TransactionType
from ..core.exceptions import DomainException, InfrastructureException, RepositoryException
from ..core.time_utils import now_utc
from ..integrations.payments import PaymentProvider, ProviderStatus, get_payment_provider
from ..models.transaction import Transaction
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)

ProviderResolver = Callable[[PaymentProviderName], PaymentProvider]

OUTCOME_SUCCESS = "success"
OUTCOME_FAILURE = "failure"
OUTCOME_RESUBMITTED = "resubmitted"


@dataclass
class RetryBatchResult:
    """Summary of one retry pass."""

    claimed: int = 0
    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    resubmitted: int = 0
    exhausted: int = 0
    cancelled: bool = False
    errors: List[str] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "claimed": self.claimed,
            "processed": self.processed,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "resubmitted": self.resubmitted,
            "exhausted": self.exhausted,
            "cancelled": self.cancelled,
            "errors": list(self.errors),
        }


def backoff_delay(base_delay_seconds: int, retry_count: int) -> timedelta:
    """Delay before the next attempt: ``base * 2 ** (retry_count - 1)``."""
    exponent = max(retry_count - 1, 0)
    return timedelta(seconds=base_delay_seconds * (2**exponent))


class TransactionRetryService(BaseService):
    """Batch retry of pending/failed transactions against their payment provider."""

    def __init__(
        self,
        db: Session,
        provider_resolver: Optional[ProviderResolver] = None,
        config: Optional[Settings] = None,
        clock: Callable[[], datetime] = now_utc,
    ):
        super().__init__(db)
        self.config = config or default_settings
        self.provider_resolver: ProviderResolver = provider_resolver or (
            lambda name: get_payment_provider(name, config=self.config)
        )
        self.clock = clock
        self.repository = RepositoryFactory.create_transaction_repository(db)

    @property
    def max_attempts(self) -> int:
        return self.config.transaction_retry_max_attempts

    @BaseService.measure_operation("run_retry_batch")
    def run_batch(self, cancel_token: Optional[CancellationToken] = None) -> RetryBatchResult:
        """
        Claim up to ``batch_size`` due transactions and retry each once.

        Raises:
            InfrastructureException: the due transactions could not be fetched
        """
        token = cancel_token or CancellationToken()
        result = RetryBatchResult()

        claimed_ids = self._claim_due()
        result.claimed = len(claimed_ids)
        if not claimed_ids:
            self.logger.info("No transactions eligible for retry")
            return result

        self.logger.info(f"Found {len(claimed_ids)} transactions to retry")
        pause = self.config.transaction_retry_pause_seconds

        for index, transaction_id in enumerate(claimed_ids):
            if token.cancelled:
                result.cancelled = True
                break
            if index > 0 and token.wait(pause):
                result.cancelled = True
                break

            outcome = self._retry_one(transaction_id, result)
            result.processed += 1
            if outcome == OUTCOME_SUCCESS:
                result.succeeded += 1
            elif outcome == OUTCOME_RESUBMITTED:
                result.resubmitted += 1
            else:
                result.failed += 1

        if result.cancelled:
            self.logger.info(
                f"Retry batch cancelled after {result.processed} of {result.claimed} transactions"
            )
        self.logger.info(
            f"Retry worker completed: {result.succeeded} successful, {result.failed} failed",
            extra={"retry_result": result.as_dict()},
        )
        prometheus_metrics.record_transaction_retry(OUTCOME_SUCCESS, result.succeeded)
        prometheus_metrics.record_transaction_retry(OUTCOME_FAILURE, result.failed)
        prometheus_metrics.record_transaction_retry(OUTCOME_RESUBMITTED, result.resubmitted)
        return result

    def _claim_due(self) -> List[str]:
        now = self.clock()
        with self.transaction():
            rows = self.repository.claim_due_for_retry(
                now,
                max_attempts=self.max_attempts,
                limit=self.config.transaction_retry_batch_size,
                lease=timedelta(seconds=self.config.transaction_retry_lease_seconds),
            )
            return [row.id for row in rows]

    def _retry_one(self, transaction_id: str, result: RetryBatchResult) -> str:
        """Retry a single transaction; any error counts as a failure for this row only."""
        try:
            with self.transaction():
                txn = self.repository.get_by_id(transaction_id)
                if txn is None:
                    result.errors.append(f"{transaction_id}: not found")
                    return OUTCOME_FAILURE
                try:
                    outcome = self._attempt(txn)
                except Exception as exc:
                    self.logger.warning(
                        f"Error retrying transaction {txn.id}: {exc}",
                        exc_info=not isinstance(exc, DomainException),
                        extra={"transaction_id": txn.id},
                    )
                    result.errors.append(f"{txn.id}: {type(exc).__name__}")
                    self._record_failure(txn, None)
                    outcome = OUTCOME_FAILURE
                else:
                    if outcome == OUTCOME_FAILURE:
                        result.errors.append(f"{txn.id}: provider reported {txn.status}")
                if outcome == OUTCOME_FAILURE and txn.retry_count >= self.max_attempts:
                    result.exhausted += 1
                return outcome
        except (InfrastructureException, RepositoryException) as exc:
            self.logger.error(f"Could not persist retry of transaction {transaction_id}: {exc}")
            result.errors.append(f"{transaction_id}: {type(exc).__name__}")
            return OUTCOME_FAILURE

    def _attempt(self, txn: Transaction) -> str:
        provider = self.provider_resolver(PaymentProviderName(txn.provider))

        if not txn.provider_reference:
            return self._resubmit(txn, provider)

        status = provider.retry(txn.provider_reference)
        if status.succeeded:
            self._record_success(txn, status)
            self.logger.info(f"Successfully retried transaction {txn.id}")
            return OUTCOME_SUCCESS
        self._record_failure(txn, status)
        self.logger.info(
            f"Transaction {txn.id} still not settled: provider status "
            f"{status.provider_status or status.status.value}"
        )
        return OUTCOME_FAILURE

    def _resubmit(self, txn: Transaction, provider: PaymentProvider) -> str:
        """Create a fresh provider intent for a row that never got a reference."""
        if txn.type == TransactionType.DEPOSIT.value:
            open_checkouts = self.repository.list_pending_deposits(
                txn.tenant_id, txn.reservation_id, exclude_id=txn.id
            )
            if open_checkouts:
                self._close_superseded(txn, open_checkouts[0].id, self.clock())
                self.repository.flush()
                return OUTCOME_FAILURE

        raw = dict(txn.raw or {})
        email = raw.get("email")
        if not email:
            raise ValueError("transaction has no customer email to resubmit with")
        metadata = {
            "type": txn.type or TransactionType.DEPOSIT.value,
            "reservation_id": txn.reservation_id,
            "tenant_id": txn.tenant_id,
        }
        intent = provider.create_deposit_intent(
            to_minor_units(txn.amount, txn.currency), txn.currency, email, metadata
        )
        now = self.clock()
        txn.provider_reference = intent.id
        txn.authorization_url = intent.payment_url
        txn.status = TransactionStatus.PENDING.value
        txn.last_retry_at = now
        txn.next_retry_at = now + timedelta(seconds=self.config.transaction_retry_base_delay_seconds)
        txn.raw = {**raw, "reference": intent.id, "provider_response": intent.raw}
        self.repository.flush()
        self.logger.info(f"Resubmitted transaction {txn.id} as {intent.id}")
        return OUTCOME_RESUBMITTED

    def _record_success(self, txn: Transaction, status: ProviderStatus) -> None:
        now = self.clock()
        txn.status = TransactionStatus.SUCCESS.value
        txn.last_retry_at = now
        txn.next_retry_at = None
        txn.raw = {**(txn.raw or {}), "last_verification": status.raw}
        if txn.type == TransactionType.DEPOSIT.value:
            # The reservation is paid; newer open checkouts for it are closed.
            for other in self.repository.list_pending_deposits(
                txn.tenant_id, txn.reservation_id, exclude_id=txn.id
            ):
                self._close_superseded(other, txn.id, now)
        self.repository.flush()

    def _close_superseded(self, txn: Transaction, superseded_by: str, now: datetime) -> None:
        txn.status = TransactionStatus.FAILED.value
        txn.next_retry_at = None
        txn.last_retry_at = now
        txn.raw = {**(txn.raw or {}), "superseded_by": superseded_by}
        self.logger.info(
            f"Closed deposit {txn.id}; reservation already paid by {superseded_by}",
            extra={"transaction_id": txn.id, "reservation_id": txn.reservation_id},
        )

    def _record_failure(self, txn: Transaction, status: Optional[ProviderStatus]) -> None:
        now = self.clock()
        txn.retry_count = (txn.retry_count or 0) + 1
        txn.last_retry_at = now
        if txn.retry_count >= self.max_attempts:
            txn.status = TransactionStatus.FAILED.value
            txn.next_retry_at = None
            self.logger.warning(
                f"Transaction {txn.id} reached the retry ceiling ({self.max_attempts})",
                extra={"transaction_id": txn.id},
            )
        else:
            # Only a row that is still pending stays pending; failed rows never reopen.
            still_pending = (
                txn.status == TransactionStatus.PENDING.value
                and status is not None
                and status.status == TransactionStatus.PENDING
            )
            txn.status = (
                TransactionStatus.PENDING.value if still_pending else TransactionStatus.FAILED.value
            )
            txn.next_retry_at = now + backoff_delay(
                self.config.transaction_retry_base_delay_seconds, txn.retry_count
            )
        if status is not None:
            txn.raw = {**(txn.raw or {}), "last_verification": status.raw}
        self.repository.flush()
