"""Paystack REST client and payment provider adapter."""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
from typing import Any, Dict, Optional, cast

import httpx
from pydantic import SecretStr

from ...core.enums import PaymentProviderName, TransactionStatus
from ...core.exceptions import PaymentProviderException, SignatureVerificationException
from ...core.ulid_helper import generate_ulid
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

PAYSTACK_STATUS_MAP: Dict[str, TransactionStatus] = {
    "success": TransactionStatus.SUCCESS,
    "failed": TransactionStatus.FAILED,
    "abandoned": TransactionStatus.FAILED,
    "reversed": TransactionStatus.FAILED,
}

PAYSTACK_EVENT_STATUS_MAP: Dict[str, TransactionStatus] = {
    "charge.success": TransactionStatus.SUCCESS,
    "charge.failed": TransactionStatus.FAILED,
}


def compute_paystack_signature(raw_body: bytes, secret: str) -> str:
    """Paystack signs the raw request body with HMAC-SHA512 keyed by the secret key."""
    return hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha512).hexdigest()


def map_paystack_status(status: Optional[str]) -> TransactionStatus:
    return PAYSTACK_STATUS_MAP.get((status or "").lower(), TransactionStatus.PENDING)


class PaystackClient:
    """Thin client for the Paystack REST API."""

    def __init__(
        self,
        *,
        secret_key: str | SecretStr,
        base_url: str = "https://api.paystack.co",
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        secret_value = (
            secret_key.get_secret_value() if isinstance(secret_key, SecretStr) else secret_key
        )
        self._secret_key = secret_value
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self._secret_key)

    def initialize_transaction(self, **payload: Any) -> Dict[str, Any]:
        body = {key: value for key, value in payload.items() if value is not None}
        return self.request("POST", "/transaction/initialize", json_body=body)

    def verify_transaction(self, reference: str) -> Dict[str, Any]:
        if not reference:
            raise ValueError("reference must be provided")
        return self.request("GET", f"/transaction/verify/{reference}")

    def request(
        self,
        method: str,
        path: str,
        *,
        json_body: Dict[str, Any] | None = None,
    ) -> Dict[str, Any]:
        """Perform a Paystack API request and return the parsed JSON envelope."""
        if not self._secret_key:
            raise PaymentProviderException(
                "Paystack secret key is not configured", provider=PaymentProviderName.PAYSTACK.value
            )

        url = f"{self._base_url}{path}"
        with httpx.Client(
            timeout=self._timeout,
            transport=self._transport,
            headers={
                "Authorization": f"Bearer {self._secret_key}",
                "Accept": "application/json",
            },
        ) as client:
            try:
                response = client.request(method, url, json=json_body)
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                status = exc.response.status_code
                try:
                    body: Any = exc.response.json()
                except json.JSONDecodeError:
                    body = None
                message = body.get("message") if isinstance(body, dict) else None
                logger.error(
                    "Paystack API error %s for %s %s: %s",
                    status,
                    method,
                    path,
                    exc.response.text[:500],
                )
                raise PaymentProviderException(
                    message or f"Paystack API responded with status {status}",
                    provider=PaymentProviderName.PAYSTACK.value,
                    status_code=status,
                ) from exc
            except httpx.RequestError as exc:
                logger.error("Paystack request failure for %s %s: %s", method, path, str(exc))
                raise PaymentProviderException(
                    "Failed to reach Paystack", provider=PaymentProviderName.PAYSTACK.value
                ) from exc

        try:
            envelope = cast(Dict[str, Any], response.json())
        except json.JSONDecodeError as exc:
            logger.error("Invalid JSON from Paystack for %s %s", method, path)
            raise PaymentProviderException(
                "Received malformed JSON from Paystack", provider=PaymentProviderName.PAYSTACK.value
            ) from exc

        if not envelope.get("status"):
            raise PaymentProviderException(
                envelope.get("message") or "Paystack rejected the request",
                provider=PaymentProviderName.PAYSTACK.value,
                status_code=response.status_code,
            )
        return envelope


class PaystackProvider(PaymentProvider):
    """Hosted-checkout deposits through Paystack's transaction API."""

    name = PaymentProviderName.PAYSTACK

    def __init__(self, client: PaystackClient, *, callback_url: Optional[str] = None) -> None:
        self.client = client
        self.callback_url = callback_url

    def create_deposit_intent(
        self,
        amount_minor: int,
        currency: str,
        email: str,
        metadata: Dict[str, Any],
    ) -> DepositIntent:
        reference = f"booka_dep_{generate_ulid()}"
        envelope = self.client.initialize_transaction(
            amount=int(amount_minor),
            currency=currency.upper(),
            email=email,
            reference=reference,
            callback_url=self.callback_url,
            metadata=metadata,
        )
        data = envelope.get("data") or {}
        logger.info(
            "Paystack transaction initialized",
            extra={"reference": data.get("reference") or reference},
        )
        return DepositIntent(
            id=str(data.get("reference") or reference),
            status="created",
            provider=self.name.value,
            payment_url=data.get("authorization_url"),
            raw=envelope,
        )

    def retry(self, reference: str) -> ProviderStatus:
        envelope = self.client.verify_transaction(reference)
        data = envelope.get("data") or {}
        provider_status = data.get("status")
        return ProviderStatus(
            status=map_paystack_status(provider_status),
            provider_status=provider_status,
            raw=envelope,
        )

    def verify_webhook(self, raw_body: bytes, signature: Optional[str], secret: str) -> Dict[str, Any]:
        if not signature:
            raise SignatureVerificationException("Missing Paystack signature")
        expected = compute_paystack_signature(raw_body, secret)
        if not hmac.compare_digest(expected, signature.strip().lower()):
            raise SignatureVerificationException()
        try:
            event = json.loads(raw_body)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise SignatureVerificationException("Invalid webhook payload") from exc
        if not isinstance(event, dict):
            raise SignatureVerificationException("Invalid webhook payload")
        return cast(Dict[str, Any], event)

    def normalize_webhook(self, event: Dict[str, Any]) -> NormalizedWebhookEvent:
        data = event.get("data")
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise invalid_webhook_payload("data must be an object")
        event_type = str(event.get("event") or "unknown")
        status = PAYSTACK_EVENT_STATUS_MAP.get(event_type)
        if status is None:
            status = (
                map_paystack_status(data.get("status"))
                if data.get("status")
                else TransactionStatus.UNKNOWN
            )
        currency = str(data.get("currency") or "NGN").upper()
        metadata = data.get("metadata")
        event_id = data.get("id")
        return NormalizedWebhookEvent(
            provider=self.name.value,
            event_id=f"{event_type}:{event_id}" if event_id is not None else None,
            event_type=event_type,
            status=status,
            reference=data.get("reference"),
            amount=webhook_amount(data.get("amount") or 0, currency),
            currency=currency,
            tenant_id=metadata_value(metadata, "tenant_id"),
            reservation_id=metadata_value(metadata, "reservation_id"),
            raw=event,
        )
