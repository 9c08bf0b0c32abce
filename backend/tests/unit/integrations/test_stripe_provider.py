"""Tests for the Stripe adapter with the SDK patched out."""

import hashlib
import hmac
import json
import time
from unittest.mock import patch

import pytest
import stripe

from booka.core.enums import TransactionStatus
from booka.core.exceptions import (
    PaymentProviderException,
    SignatureVerificationException,
    ValidationException,
)
from booka.integrations.payments.stripe_provider import (
    StripeProvider,
    map_checkout_session,
    map_payment_intent,
)

WEBHOOK_SECRET = "whsec_test_secret"


@pytest.fixture
def provider():
    return StripeProvider(
        secret_key="sk_test_stripe",
        success_url="https://booka.app/ok",
        cancel_url="https://booka.app/cancel",
    )


class TestCreateDepositIntent:
    def test_creates_checkout_session(self, provider):
        session = stripe.StripeObject.construct_from(
            {"id": "cs_test_1", "object": "checkout.session", "url": "https://checkout.stripe.com/c/1"},
            "sk_test_stripe",
        )
        with patch("stripe.checkout.Session.create", return_value=session) as create:
            intent = provider.create_deposit_intent(
                2500, "USD", "ada@example.com", {"reservation_id": "r1", "tenant_id": "t1", "missing": None}
            )

        kwargs = create.call_args.kwargs
        assert kwargs["api_key"] == "sk_test_stripe"
        assert kwargs["mode"] == "payment"
        assert kwargs["line_items"][0]["price_data"]["currency"] == "usd"
        assert kwargs["line_items"][0]["price_data"]["unit_amount"] == 2500
        assert kwargs["metadata"] == {"reservation_id": "r1", "tenant_id": "t1"}
        assert intent.id == "cs_test_1"
        assert intent.payment_url == "https://checkout.stripe.com/c/1"
        assert intent.provider == "stripe"

    def test_stripe_error_becomes_provider_error(self, provider):
        with patch(
            "stripe.checkout.Session.create",
            side_effect=stripe.InvalidRequestError("bad currency", param="currency"),
        ):
            with pytest.raises(PaymentProviderException):
                provider.create_deposit_intent(2500, "XXX", "ada@example.com", {})

    def test_missing_key(self):
        unconfigured = StripeProvider(secret_key="", success_url="x", cancel_url="y")
        with pytest.raises(PaymentProviderException):
            unconfigured.create_deposit_intent(2500, "USD", "ada@example.com", {})


class TestRetry:
    def test_checkout_session_lookup(self, provider):
        session = stripe.StripeObject.construct_from(
            {"id": "cs_1", "object": "checkout.session", "payment_status": "paid", "status": "complete"},
            "sk_test_stripe",
        )
        with patch("stripe.checkout.Session.retrieve", return_value=session) as retrieve:
            status = provider.retry("cs_1")

        retrieve.assert_called_once_with("cs_1", api_key="sk_test_stripe")
        assert status.succeeded
        assert status.provider_status == "paid"

    def test_payment_intent_lookup(self, provider):
        intent = stripe.StripeObject.construct_from(
            {"id": "pi_1", "object": "payment_intent", "status": "canceled"}, "sk_test_stripe"
        )
        with patch("stripe.PaymentIntent.retrieve", return_value=intent):
            status = provider.retry("pi_1")

        assert status.status == TransactionStatus.FAILED

    @pytest.mark.parametrize(
        "session,expected",
        [
            ({"payment_status": "paid"}, TransactionStatus.SUCCESS),
            ({"payment_status": "unpaid", "status": "expired"}, TransactionStatus.FAILED),
            ({"payment_status": "unpaid", "status": "open"}, TransactionStatus.PENDING),
        ],
    )
    def test_map_checkout_session(self, session, expected):
        assert map_checkout_session(session) == expected

    def test_map_payment_intent_processing_is_pending(self):
        assert map_payment_intent({"status": "processing"}) == TransactionStatus.PENDING


class TestWebhook:
    def _signed(self, payload: bytes, secret: str = WEBHOOK_SECRET) -> str:
        ts = int(time.time())
        digest = hmac.new(secret.encode(), f"{ts}.{payload.decode()}".encode(), hashlib.sha256).hexdigest()
        return f"t={ts},v1={digest}"

    def test_verify_and_normalize(self, provider):
        payload = json.dumps(
            {
                "id": "evt_1",
                "object": "event",
                "type": "payment_intent.payment_failed",
                "data": {
                    "object": {
                        "id": "pi_1",
                        "object": "payment_intent",
                        "amount": 1999,
                        "currency": "usd",
                        "metadata": {"tenant_id": "t1", "reservation_id": "r1"},
                    }
                },
            }
        ).encode()

        event = provider.verify_webhook(payload, self._signed(payload), WEBHOOK_SECRET)
        normalized = provider.normalize_webhook(event)

        assert normalized.event_id == "evt_1"
        assert normalized.status == TransactionStatus.FAILED
        assert str(normalized.amount) == "19.99"
        assert normalized.reservation_id == "r1"

    def test_bad_signature(self, provider):
        payload = b'{"id": "evt_1", "object": "event"}'
        with pytest.raises(SignatureVerificationException):
            provider.verify_webhook(payload, self._signed(payload, "whsec_wrong"), WEBHOOK_SECRET)

    def test_missing_signature(self, provider):
        with pytest.raises(SignatureVerificationException):
            provider.verify_webhook(b"{}", None, WEBHOOK_SECRET)

    def test_unmapped_open_session_is_unknown(self, provider):
        normalized = provider.normalize_webhook(
            {
                "id": "evt_2",
                "type": "checkout.session.updated",
                "data": {"object": {"object": "checkout.session", "payment_status": "unpaid", "amount_total": 500}},
            }
        )
        assert normalized.status == TransactionStatus.UNKNOWN
        assert normalized.currency == "USD"

    @pytest.mark.parametrize("data", [{"object": "pi_1"}, {"object": ["pi_1"]}, "evt_data"])
    def test_non_object_payload_is_a_validation_error(self, provider, data):
        with pytest.raises(ValidationException) as exc_info:
            provider.normalize_webhook({"id": "evt_3", "type": "payment_intent.succeeded", "data": data})
        assert exc_info.value.code == "INVALID_WEBHOOK_PAYLOAD"

    def test_non_numeric_amount_is_a_validation_error(self, provider):
        with pytest.raises(ValidationException):
            provider.normalize_webhook(
                {
                    "id": "evt_4",
                    "type": "payment_intent.succeeded",
                    "data": {"object": {"id": "pi_1", "amount": "12.5.0", "currency": "usd"}},
                }
            )
