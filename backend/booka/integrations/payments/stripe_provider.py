"""Stripe payment provider adapter (hosted Checkout Sessions)."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional, cast

from pydantic import SecretStr
import stripe

from ...core.enums import PaymentProviderName, TransactionStatus
from ...core.exceptions import PaymentProviderException, SignatureVerificationException
from .base import (
    DepositIntent,
    NormalizedWebhookEvent,
    PaymentProvider,
    ProviderStatus,
    invalid_webhook_payload,
    metadata_value,
    webhook_amount,
)

logger = logging.getLogger(__name__)

STRIPE_EVENT_STATUS_MAP: Dict[str, TransactionStatus] = {
    "checkout.session.completed": TransactionStatus.SUCCESS,
    "checkout.session.async_payment_succeeded": TransactionStatus.SUCCESS,
    "payment_intent.succeeded": TransactionStatus.SUCCESS,
    "checkout.session.expired": TransactionStatus.FAILED,
    "checkout.session.async_payment_failed": TransactionStatus.FAILED,
    "payment_intent.payment_failed": TransactionStatus.FAILED,
    "payment_intent.canceled": TransactionStatus.FAILED,
}


def stripe_object_to_dict(obj: Any) -> Dict[str, Any]:
    """Plain-dict copy of a StripeObject (its ``str()`` is the JSON representation)."""
    if isinstance(obj, dict) and not isinstance(obj, stripe.StripeObject):
        return dict(obj)
    return cast(Dict[str, Any], json.loads(str(obj)))


def map_checkout_session(session: Dict[str, Any]) -> TransactionStatus:
    if session.get("payment_status") in ("paid", "no_payment_required"):
        return TransactionStatus.SUCCESS
    if session.get("status") == "expired":
        return TransactionStatus.FAILED
    return TransactionStatus.PENDING


def map_payment_intent(intent: Dict[str, Any]) -> TransactionStatus:
    status = intent.get("status")
    if status == "succeeded":
        return TransactionStatus.SUCCESS
    if status == "canceled" or (
        status == "requires_payment_method" and intent.get("last_payment_error")
    ):
        return TransactionStatus.FAILED
    return TransactionStatus.PENDING


class StripeProvider(PaymentProvider):
    """Deposits through Stripe Checkout; status checks via Session or PaymentIntent lookups."""

    name = PaymentProviderName.STRIPE

    def __init__(
        self,
        *,
        secret_key: str | SecretStr,
        success_url: str,
        cancel_url: str,
    ) -> None:
        self._secret_key = (
            secret_key.get_secret_value() if isinstance(secret_key, SecretStr) else secret_key
        )
        self.success_url = success_url
        self.cancel_url = cancel_url

    def _require_key(self) -> str:
        if not self._secret_key:
            raise PaymentProviderException(
                "Stripe secret key is not configured", provider=self.name.value
            )
        return self._secret_key

    def create_deposit_intent(
        self,
        amount_minor: int,
        currency: str,
        email: str,
        metadata: Dict[str, Any],
    ) -> DepositIntent:
        api_key = self._require_key()
        string_metadata = {k: str(v) for k, v in metadata.items() if v is not None}
        try:
            session = stripe.checkout.Session.create(
                api_key=api_key,
                mode="payment",
                customer_email=email,
                line_items=[
                    {
                        "quantity": 1,
                        "price_data": {
                            "currency": currency.lower(),
                            "unit_amount": int(amount_minor),
                            "product_data": {"name": "Reservation deposit"},
                        },
                    }
                ],
                metadata=string_metadata,
                payment_intent_data={"metadata": string_metadata},
                success_url=self.success_url,
                cancel_url=self.cancel_url,
            )
        except stripe.StripeError as exc:
            logger.error("Stripe checkout session creation failed: %s", exc)
            raise PaymentProviderException(
                getattr(exc, "user_message", None) or "Stripe rejected the deposit request",
                provider=self.name.value,
                status_code=getattr(exc, "http_status", None),
            ) from exc

        raw = stripe_object_to_dict(session)
        logger.info("Stripe checkout session created", extra={"reference": raw.get("id")})
        return DepositIntent(
            id=str(raw["id"]),
            status="created",
            provider=self.name.value,
            payment_url=raw.get("url"),
            raw=raw,
        )

    def retry(self, reference: str) -> ProviderStatus:
        api_key = self._require_key()
        try:
            if reference.startswith("pi_"):
                raw = stripe_object_to_dict(stripe.PaymentIntent.retrieve(reference, api_key=api_key))
                status = map_payment_intent(raw)
            else:
                raw = stripe_object_to_dict(
                    stripe.checkout.Session.retrieve(reference, api_key=api_key)
                )
                status = map_checkout_session(raw)
        except stripe.StripeError as exc:
            logger.error("Stripe status lookup failed for %s: %s", reference, exc)
            raise PaymentProviderException(
                "Stripe status lookup failed",
                provider=self.name.value,
                status_code=getattr(exc, "http_status", None),
            ) from exc
        return ProviderStatus(
            status=status,
            provider_status=raw.get("payment_status") or raw.get("status"),
            raw=raw,
        )

    def verify_webhook(self, raw_body: bytes, signature: Optional[str], secret: str) -> Dict[str, Any]:
        if not signature:
            raise SignatureVerificationException("Missing Stripe signature")
        try:
            event = stripe.Webhook.construct_event(raw_body, signature, secret)
        except stripe.SignatureVerificationError as exc:
            raise SignatureVerificationException() from exc
        except ValueError as exc:
            raise SignatureVerificationException("Invalid webhook payload") from exc
        return stripe_object_to_dict(event)

    def normalize_webhook(self, event: Dict[str, Any]) -> NormalizedWebhookEvent:
        event_type = str(event.get("type") or "unknown")
        data = event.get("data") or {}
        if not isinstance(data, dict):
            raise invalid_webhook_payload("data must be an object")
        obj = data.get("object") or {}
        if not isinstance(obj, dict):
            raise invalid_webhook_payload("data.object must be an object")

        status = STRIPE_EVENT_STATUS_MAP.get(event_type)
        if status is None:
            if obj.get("object") == "checkout.session":
                status = map_checkout_session(obj)
                if status == TransactionStatus.PENDING:
                    status = TransactionStatus.UNKNOWN
            else:
                status = TransactionStatus.UNKNOWN

        currency = str(obj.get("currency") or "usd").upper()
        amount_minor = obj.get("amount_total")
        if amount_minor is None:
            amount_minor = obj.get("amount_received") or obj.get("amount") or 0
        metadata = obj.get("metadata")
        return NormalizedWebhookEvent(
            provider=self.name.value,
            event_id=event.get("id"),
            event_type=event_type,
            status=status,
            reference=obj.get("id"),
            amount=webhook_amount(amount_minor, currency),
            currency=currency,
            tenant_id=metadata_value(metadata, "tenant_id"),
            reservation_id=metadata_value(metadata, "reservation_id"),
            raw=event,
        )
