"""
Payment provider adapters.

Callers pick a provider explicitly by ``PaymentProviderName``; there is no
currency-based auto-selection.
"""

from __future__ import annotations

from typing import Optional

import httpx

from ...core.config import Settings, settings as default_settings
from ...core.enums import PaymentProviderName
from ...core.exceptions import ValidationException
from .base import DepositIntent, NormalizedWebhookEvent, PaymentProvider, ProviderStatus
from .paystack import PaystackClient, PaystackProvider
from .stripe_provider import StripeProvider

__all__ = [
    "DepositIntent",
    "NormalizedWebhookEvent",
    "PaymentProvider",
    "PaystackClient",
    "PaystackProvider",
    "ProviderStatus",
    "StripeProvider",
    "get_payment_provider",
]


def get_payment_provider(
    name: PaymentProviderName | str,
    *,
    config: Optional[Settings] = None,
    transport: httpx.BaseTransport | None = None,
) -> PaymentProvider:
    """Build the adapter for ``name`` from settings."""
    cfg = config or default_settings
    try:
        provider = PaymentProviderName(name)
    except ValueError as exc:
        raise ValidationException(
            f"Unsupported payment provider: {name}", code="UNSUPPORTED_PROVIDER"
        ) from exc

    if provider is PaymentProviderName.PAYSTACK:
        client = PaystackClient(
            secret_key=cfg.paystack_secret_key,
            base_url=cfg.paystack_base_url,
            timeout=cfg.payment_http_timeout,
            transport=transport,
        )
        return PaystackProvider(client, callback_url=cfg.paystack_callback_url)
    return StripeProvider(
        secret_key=cfg.stripe_secret_key,
        success_url=cfg.deposit_success_url,
        cancel_url=cfg.deposit_cancel_url,
    )
