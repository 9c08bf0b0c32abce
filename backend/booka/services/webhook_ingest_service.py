# backend/booka/services/webhook_ingest_service.py
"""
Webhook Ingest Service for the Booka booking core.

Verifies payment-provider webhooks over the exact raw body and records
each verified delivery as a new transaction row. Ingestion is
append-only: redeliveries produce additional rows and are surfaced by
the reconciliation report as duplicate references. The webhook_events
table keeps a per-event delivery count alongside.
"""

import logging
from typing import Any, Callable, Dict, Mapping, Optional

from sqlalchemy.orm import Session

from ..core.enums import PaymentProviderName, ReconciliationStatus
from ..core.exceptions import (
    SignatureVerificationException,
    ValidationException,
    WebhookNotConfiguredException,
)
from ..integrations.payments import PaymentProvider, get_payment_provider
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)

# Only these headers are kept with the stored delivery.
_SAFE_HEADER_NAMES = ("content-type", "user-agent", "stripe-signature", "x-paystack-signature")

ProviderResolver = Callable[[PaymentProviderName], PaymentProvider]


def sanitize_headers(headers: Optional[Mapping[str, str]]) -> Dict[str, Any]:
    """Keep a small allow-list of headers; signatures are reduced to a presence flag."""
    if not headers:
        return {}
    lowered = {k.lower(): v for k, v in headers.items()}
    kept: Dict[str, Any] = {}
    for name in _SAFE_HEADER_NAMES:
        if name not in lowered:
            continue
        kept[name] = "present" if name.endswith("signature") else lowered[name]
    return kept


class WebhookIngestService(BaseService):
    """Signed webhook ingestion into the transactions table."""

    def __init__(self, db: Session, provider_resolver: Optional[ProviderResolver] = None):
        super().__init__(db)
        self.provider_resolver: ProviderResolver = provider_resolver or get_payment_provider
        self.transaction_repository = RepositoryFactory.create_transaction_repository(db)
        self.webhook_event_repository = RepositoryFactory.create_webhook_event_repository(db)

    @BaseService.measure_operation("ingest_webhook")
    def ingest(
        self,
        provider: PaymentProviderName | str,
        raw_body: bytes,
        signature_header: Optional[str],
        shared_secret: Optional[str],
        headers: Optional[Mapping[str, str]] = None,
    ) -> Dict[str, Any]:
        """
        Verify, normalize and store one webhook delivery.

        Returns ``{"received": True}`` once the transaction row is committed.

        Raises:
            WebhookNotConfiguredException: no signing secret is configured
            SignatureVerificationException: missing or mismatched signature; nothing is written
            ValidationException: the verified payload has an unusable shape or amount
            InfrastructureException: the row could not be stored
        """
        try:
            provider_name = PaymentProviderName(provider)
        except ValueError as exc:
            raise ValidationException(
                f"Unsupported payment provider: {provider}", code="UNSUPPORTED_PROVIDER"
            ) from exc

        if not shared_secret:
            self.logger.error(
                "Webhook secret not configured", extra={"provider": provider_name.value}
            )
            prometheus_metrics.record_webhook(provider_name.value, "not_configured")
            raise WebhookNotConfiguredException(provider_name.value)

        adapter = self.provider_resolver(provider_name)
        try:
            event = adapter.verify_webhook(raw_body, signature_header, shared_secret)
        except SignatureVerificationException:
            # Security event: no signature material or payload in the log.
            self.logger.warning(
                "Rejected webhook with invalid signature",
                extra={"provider": provider_name.value, "security_event": "webhook_signature_invalid"},
            )
            prometheus_metrics.record_webhook(provider_name.value, "invalid_signature")
            raise

        try:
            normalized = adapter.normalize_webhook(event)
        except ValidationException:
            self.logger.warning(
                "Rejected webhook with malformed payload", extra={"provider": provider_name.value}
            )
            prometheus_metrics.record_webhook(provider_name.value, "invalid_payload")
            raise

        with self.transaction():
            txn = self.transaction_repository.create(
                tenant_id=normalized.tenant_id,
                reservation_id=normalized.reservation_id,
                amount=normalized.amount,
                currency=normalized.currency,
                type=normalized.event_type,
                status=normalized.status.value,
                provider=normalized.provider,
                provider_reference=normalized.reference,
                raw=normalized.raw,
                retry_count=0,
                reconciliation_status=ReconciliationStatus.PENDING.value,
            )
            self.webhook_event_repository.record_delivery(
                provider=normalized.provider,
                event_type=normalized.event_type,
                event_id=normalized.event_id,
                payload=normalized.raw,
                headers=sanitize_headers(headers),
                transaction_id=txn.id,
            )

        self.logger.info(
            f"Stored {normalized.provider} webhook {normalized.event_type}",
            extra={
                "provider": normalized.provider,
                "event_type": normalized.event_type,
                "reference": normalized.reference,
                "transaction_id": txn.id,
                "tenant_id": normalized.tenant_id,
            },
        )
        prometheus_metrics.record_webhook(normalized.provider, "stored")
        return {"received": True}
