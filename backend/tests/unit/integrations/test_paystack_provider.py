"""Tests for the Paystack client and adapter using httpx.MockTransport."""

import json

import httpx
import pytest

from booka.core.enums import TransactionStatus
from booka.core.exceptions import (
    PaymentProviderException,
    SignatureVerificationException,
    ValidationException,
)
from booka.integrations.payments import get_payment_provider
from booka.integrations.payments.paystack import (
    PaystackClient,
    PaystackProvider,
    compute_paystack_signature,
    map_paystack_status,
)

SECRET = "sk_test_paystack"


def make_provider(handler) -> PaystackProvider:
    client = PaystackClient(secret_key=SECRET, transport=httpx.MockTransport(handler))
    return PaystackProvider(client, callback_url="https://booka.app/cb")


class TestCreateDepositIntent:
    def test_initializes_transaction(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(
                200,
                json={
                    "status": True,
                    "message": "Authorization URL created",
                    "data": {
                        "authorization_url": "https://checkout.paystack.com/abc",
                        "access_code": "abc",
                        "reference": seen["body"]["reference"],
                    },
                },
            )

        intent = make_provider(handler).create_deposit_intent(
            2500, "ngn", "ada@example.com", {"reservation_id": "r1", "tenant_id": "t1", "type": "deposit"}
        )

        assert seen["url"] == "https://api.paystack.co/transaction/initialize"
        assert seen["auth"] == f"Bearer {SECRET}"
        assert seen["body"]["amount"] == 2500
        assert seen["body"]["currency"] == "NGN"
        assert seen["body"]["callback_url"] == "https://booka.app/cb"
        assert seen["body"]["metadata"]["reservation_id"] == "r1"
        assert seen["body"]["reference"].startswith("booka_dep_")
        assert intent.id == seen["body"]["reference"]
        assert intent.payment_url == "https://checkout.paystack.com/abc"
        assert intent.provider == "paystack"

    def test_http_error_becomes_provider_error(self):
        def handler(request):
            return httpx.Response(400, json={"status": False, "message": "Invalid key"})

        with pytest.raises(PaymentProviderException) as exc_info:
            make_provider(handler).create_deposit_intent(2500, "NGN", "ada@example.com", {})

        assert exc_info.value.message == "Invalid key"
        assert exc_info.value.status_code == 502

    def test_status_false_envelope_is_an_error(self):
        def handler(request):
            return httpx.Response(200, json={"status": False, "message": "Duplicate reference"})

        with pytest.raises(PaymentProviderException):
            make_provider(handler).create_deposit_intent(2500, "NGN", "ada@example.com", {})

    def test_network_error_becomes_provider_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(PaymentProviderException):
            make_provider(handler).create_deposit_intent(2500, "NGN", "ada@example.com", {})

    def test_missing_secret_key(self):
        client = PaystackClient(secret_key="", transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        with pytest.raises(PaymentProviderException):
            PaystackProvider(client).create_deposit_intent(2500, "NGN", "ada@example.com", {})


class TestRetry:
    @pytest.mark.parametrize(
        "provider_status,expected",
        [
            ("success", TransactionStatus.SUCCESS),
            ("failed", TransactionStatus.FAILED),
            ("abandoned", TransactionStatus.FAILED),
            ("ongoing", TransactionStatus.PENDING),
        ],
    )
    def test_verify_maps_status(self, provider_status, expected):
        def handler(request):
            assert request.url.path == "/transaction/verify/booka_dep_1"
            return httpx.Response(200, json={"status": True, "data": {"status": provider_status}})

        status = make_provider(handler).retry("booka_dep_1")

        assert status.status == expected
        assert status.provider_status == provider_status

    def test_map_unknown_status_is_pending(self):
        assert map_paystack_status(None) == TransactionStatus.PENDING


class TestWebhook:
    def test_signature_round_trip_and_normalize(self):
        provider = make_provider(lambda r: httpx.Response(200))
        body = json.dumps(
            {
                "event": "charge.success",
                "data": {
                    "id": 42,
                    "reference": "booka_dep_1",
                    "amount": 250000,
                    "currency": "NGN",
                    "metadata": {"tenant_id": "t1", "reservation_id": "r1"},
                },
            }
        ).encode()

        event = provider.verify_webhook(body, compute_paystack_signature(body, SECRET).upper(), SECRET)
        normalized = provider.normalize_webhook(event)

        assert normalized.event_id == "charge.success:42"
        assert normalized.status == TransactionStatus.SUCCESS
        assert str(normalized.amount) == "2500.00"
        assert normalized.tenant_id == "t1"
        assert normalized.reference == "booka_dep_1"

    def test_bad_signature(self):
        provider = make_provider(lambda r: httpx.Response(200))
        with pytest.raises(SignatureVerificationException):
            provider.verify_webhook(b"{}", "deadbeef", SECRET)

    def test_unknown_event_without_status_is_unknown(self):
        provider = make_provider(lambda r: httpx.Response(200))
        normalized = provider.normalize_webhook({"event": "transfer.success", "data": {"amount": 100}})
        assert normalized.status == TransactionStatus.UNKNOWN
        assert normalized.event_id is None

    @pytest.mark.parametrize("amount", ["12.5.0", "abc", {"value": 1}, [100], True, "NaN"])
    def test_non_numeric_amount_is_a_validation_error(self, amount):
        provider = make_provider(lambda r: httpx.Response(200))
        with pytest.raises(ValidationException) as exc_info:
            provider.normalize_webhook(
                {"event": "charge.success", "data": {"reference": "booka_dep_1", "amount": amount}}
            )
        assert exc_info.value.code == "INVALID_WEBHOOK_PAYLOAD"

    def test_numeric_string_amount_is_accepted(self):
        provider = make_provider(lambda r: httpx.Response(200))
        normalized = provider.normalize_webhook({"event": "charge.success", "data": {"amount": "1050"}})
        assert str(normalized.amount) == "10.50"

    def test_non_object_data_is_a_validation_error(self):
        provider = make_provider(lambda r: httpx.Response(200))
        with pytest.raises(ValidationException):
            provider.normalize_webhook({"event": "charge.success", "data": ["booka_dep_1"]})


class TestFactory:
    def test_builds_paystack_from_settings(self):
        provider = get_payment_provider("paystack", transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        assert isinstance(provider, PaystackProvider)
