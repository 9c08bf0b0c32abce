# backend/booka/services/deposit_service.py
"""
Deposit Service for the Booka booking core.

Turns a reservation's base price into a percentage deposit charged
through a payment provider. The tenant's ``deposit_pct`` decides the
amount; a missing, zero or out-of-range percentage means the tenant does
not take deposits and the request is skipped.

At most one active (pending or successful) deposit exists per
reservation. Repeat requests return the existing transaction.
"""

from dataclasses import dataclass
from datetime import timedelta
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
import logging
from typing import Any, Callable, Dict, Optional, Union

from sqlalchemy.orm import Session

from ..core.config import Settings, settings as default_settings
from ..core.currency import minor_unit_factor, normalize_currency
from ..core.enums import (
    PaymentProviderName,
    ReconciliationStatus,
    TransactionStatus,
    TransactionType,
)
from ..core.exceptions import (
    InfrastructureException,
    InvalidStateException,
    NotFoundException,
    RepositoryException,
    RepositoryIntegrityException,
    ValidationException,
)
from ..core.time_utils import now_utc
from ..integrations.payments import PaymentProvider, get_payment_provider
from ..models.transaction import Transaction
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)

SKIP_INVALID_DEPOSIT_PCT = "invalid_deposit_pct"
SKIP_ZERO_AMOUNT = "zero_deposit_amount"

ProviderResolver = Callable[[PaymentProviderName], PaymentProvider]


@dataclass(frozen=True)
class DepositResult:
    """Outcome of ``initiate_deposit``: a transaction, or a skip reason."""

    transaction_id: Optional[str] = None
    authorization_url: Optional[str] = None
    duplicate: bool = False
    skipped: Optional[str] = None
    amount: Optional[Decimal] = None
    currency: Optional[str] = None


def parse_deposit_pct(raw: Any) -> Optional[Decimal]:
    """Return a usable deposit percentage in (0, 100], or None when deposits are disabled."""
    if raw is None or isinstance(raw, bool):
        return None
    try:
        pct = Decimal(str(raw))
    except (InvalidOperation, ValueError):
        return None
    if not pct.is_finite() or pct <= 0 or pct > 100:
        return None
    return pct


def compute_deposit_minor(base_amount_minor: int, pct: Decimal) -> int:
    """``base * pct / 100`` rounded half up to a whole minor unit."""
    deposit = Decimal(base_amount_minor) * pct / Decimal(100)
    return int(deposit.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class DepositService(BaseService):
    """Initiates reservation deposits through a payment provider."""

    def __init__(
        self,
        db: Session,
        provider_resolver: Optional[ProviderResolver] = None,
        config: Optional[Settings] = None,
    ):
        super().__init__(db)
        self.config = config or default_settings
        self.provider_resolver: ProviderResolver = provider_resolver or (
            lambda name: get_payment_provider(name, config=self.config)
        )
        self.reservation_repository = RepositoryFactory.create_reservation_repository(db)
        self.tenant_repository = RepositoryFactory.create_tenant_repository(db)
        self.transaction_repository = RepositoryFactory.create_transaction_repository(db)

    @BaseService.measure_operation("initiate_deposit")
    def initiate_deposit(
        self,
        tenant_id: str,
        reservation_id: str,
        base_amount_minor: int,
        currency: Optional[str] = None,
        email: Optional[str] = None,
        provider: Union[PaymentProviderName, str, PaymentProvider, None] = None,
    ) -> DepositResult:
        """
        Create (or return the existing) deposit for a reservation.

        Raises:
            NotFoundException: the reservation does not exist for this tenant
            InvalidStateException: the reservation is cancelled
            ValidationException: the base amount or email is unusable
            PaymentProviderException: the provider rejected the request; nothing is stored
            InfrastructureException: the database failed
        """
        if base_amount_minor is None or int(base_amount_minor) <= 0:
            raise ValidationException(
                "amount must be greater than 0", code="INVALID_AMOUNT", details={"amount": base_amount_minor}
            )
        if not email:
            raise ValidationException("email is required", code="MISSING_EMAIL")
        currency_code = normalize_currency(currency or self.config.default_currency)

        try:
            reservation = self.reservation_repository.get_for_tenant(tenant_id, reservation_id)
            if reservation is None:
                raise NotFoundException(
                    "Reservation not found",
                    code="RESERVATION_NOT_FOUND",
                    details={"reservation_id": reservation_id},
                )
            if reservation.is_cancelled:
                raise InvalidStateException(
                    "Cannot create deposit for cancelled reservation",
                    code="RESERVATION_CANCELLED",
                    details={"reservation_id": reservation_id},
                )

            pct = parse_deposit_pct(self.tenant_repository.get_deposit_pct(tenant_id))
            if pct is None:
                self.logger.info(
                    "Deposit skipped: tenant has no valid deposit percentage",
                    extra={"tenant_id": tenant_id, "reservation_id": reservation_id},
                )
                prometheus_metrics.record_deposit("none", "skipped")
                return DepositResult(skipped=SKIP_INVALID_DEPOSIT_PCT)

            existing = self.transaction_repository.find_active_deposit(tenant_id, reservation_id)
        except RepositoryException as exc:
            raise InfrastructureException("Unable to prepare deposit") from exc

        deposit_minor = compute_deposit_minor(int(base_amount_minor), pct)
        amount_major = (Decimal(deposit_minor) / Decimal(minor_unit_factor(currency_code))).quantize(
            Decimal("0.01")
        )

        if existing is not None:
            self.logger.info(
                f"Deposit already exists for reservation {reservation_id}",
                extra={"tenant_id": tenant_id, "transaction_id": existing.id},
            )
            prometheus_metrics.record_deposit(existing.provider or "unknown", "duplicate")
            return self._duplicate_result(existing)

        if deposit_minor <= 0:
            return DepositResult(skipped=SKIP_ZERO_AMOUNT)

        adapter = self._resolve_provider(provider)
        metadata: Dict[str, Any] = {
            "type": TransactionType.DEPOSIT.value,
            "reservation_id": reservation_id,
            "tenant_id": tenant_id,
        }
        intent = adapter.create_deposit_intent(deposit_minor, currency_code, email, metadata)

        with self.transaction():
            try:
                txn = self.transaction_repository.create(
                    tenant_id=tenant_id,
                    reservation_id=reservation_id,
                    amount=amount_major,
                    currency=currency_code,
                    type=TransactionType.DEPOSIT.value,
                    status=TransactionStatus.PENDING.value,
                    provider=intent.provider,
                    provider_reference=intent.id,
                    authorization_url=intent.payment_url,
                    retry_count=0,
                    next_retry_at=now_utc()
                    + timedelta(seconds=self.config.transaction_retry_base_delay_seconds),
                    reconciliation_status=ReconciliationStatus.PENDING.value,
                    raw={
                        "provider": intent.provider,
                        "reservation_id": reservation_id,
                        "reference": intent.id,
                        "email": email,
                        "provider_response": intent.raw,
                    },
                )
            except RepositoryIntegrityException:
                # A concurrent request stored its deposit first.
                winner = self.transaction_repository.find_active_deposit(tenant_id, reservation_id)
                if winner is None:
                    raise
                self.logger.warning(
                    "Concurrent deposit detected; provider intent left unused",
                    extra={"reservation_id": reservation_id, "reference": intent.id},
                )
                prometheus_metrics.record_deposit(intent.provider, "duplicate")
                return self._duplicate_result(winner)

        self.log_operation(
            "initiate_deposit",
            tenant_id=tenant_id,
            reservation_id=reservation_id,
            transaction_id=txn.id,
            provider=intent.provider,
        )
        prometheus_metrics.record_deposit(intent.provider, "created")
        return DepositResult(
            transaction_id=txn.id,
            authorization_url=intent.payment_url,
            amount=amount_major,
            currency=currency_code,
        )

    def _resolve_provider(
        self, provider: Union[PaymentProviderName, str, PaymentProvider, None]
    ) -> PaymentProvider:
        if isinstance(provider, PaymentProvider):
            return provider
        name = provider or self.config.default_payment_provider
        try:
            provider_name = PaymentProviderName(name)
        except ValueError as exc:
            raise ValidationException(
                f"Unsupported payment provider: {name}", code="UNSUPPORTED_PROVIDER"
            ) from exc
        return self.provider_resolver(provider_name)

    @staticmethod
    def _duplicate_result(existing: Transaction) -> DepositResult:
        return DepositResult(
            transaction_id=existing.id,
            authorization_url=existing.authorization_url,
            duplicate=True,
            amount=existing.amount,
            currency=existing.currency,
        )
