"""
Payment provider interface shared by the Paystack and Stripe adapters.

Adapters translate between Booka's deposit/retry/webhook operations and a
provider's API. They hold no persistent state and never retry on their
own; the retry worker owns retries.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

from ...core.currency import to_major_units
from ...core.enums import PaymentProviderName, TransactionStatus
from ...core.exceptions import ValidationException


@dataclass(frozen=True)
class DepositIntent:
    """A hosted-checkout payment created for a deposit."""

    id: str
    status: str
    provider: str
    payment_url: Optional[str]
    raw: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ProviderStatus:
    """Current provider-side status of a transaction, mapped to ``TransactionStatus``."""

    status: TransactionStatus
    provider_status: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.status == TransactionStatus.SUCCESS


@dataclass(frozen=True)
class NormalizedWebhookEvent:
    """Provider-agnostic view of a verified webhook payload."""

    provider: str
    event_id: Optional[str]
    event_type: str
    status: TransactionStatus
    reference: Optional[str]
    amount: Decimal
    currency: str
    tenant_id: Optional[str]
    reservation_id: Optional[str]
    raw: Dict[str, Any]


class PaymentProvider(ABC):
    """Capability set every payment provider adapter implements."""

    name: PaymentProviderName

    @abstractmethod
    def create_deposit_intent(
        self,
        amount_minor: int,
        currency: str,
        email: str,
        metadata: Dict[str, Any],
    ) -> DepositIntent:
        """
        Create a hosted payment for ``amount_minor`` (kobo, cents).

        Raises:
            PaymentProviderException: if the provider rejects the request or is unreachable
        """

    @abstractmethod
    def retry(self, reference: str) -> ProviderStatus:
        """Re-query the provider for the current status of ``reference``."""

    @abstractmethod
    def verify_webhook(self, raw_body: bytes, signature: Optional[str], secret: str) -> Dict[str, Any]:
        """
        Verify ``signature`` over the exact raw body and return the parsed event.

        Raises:
            SignatureVerificationException: on a missing or mismatched signature
        """

    @abstractmethod
    def normalize_webhook(self, event: Dict[str, Any]) -> NormalizedWebhookEvent:
        """Map a verified provider event onto a ``NormalizedWebhookEvent``."""


def metadata_value(metadata: Any, key: str) -> Optional[str]:
    """Read a string id out of provider metadata, which may be missing or not a dict."""
    if not isinstance(metadata, dict):
        return None
    value = metadata.get(key)
    if value is None or value == "":
        return None
    return str(value)


def invalid_webhook_payload(detail: str) -> ValidationException:
    return ValidationException(
        message="Invalid webhook payload",
        code="INVALID_WEBHOOK_PAYLOAD",
        details={"reason": detail},
    )


def webhook_amount(amount_minor: Any, currency: str) -> Decimal:
    """
    Convert a webhook's minor-unit amount, rejecting anything that is not a number.

    Raises:
        ValidationException: the amount is not an integer or numeric string
    """
    if isinstance(amount_minor, bool) or not isinstance(amount_minor, (int, float, str)):
        raise invalid_webhook_payload("amount must be numeric")
    try:
        amount = to_major_units(amount_minor, currency)
    except (InvalidOperation, ValueError) as exc:
        raise invalid_webhook_payload("amount must be numeric") from exc
    if not amount.is_finite():
        raise invalid_webhook_payload("amount must be numeric")
    return amount
