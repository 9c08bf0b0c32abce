"""
Tests for /api/v1/payments: deposit initiation and the signed webhook.
"""

from decimal import Decimal
import json

from fastapi import status

from booka.integrations.payments.paystack import compute_paystack_signature
from booka.models import Transaction, WebhookEvent

DEPOSITS_URL = "/api/v1/payments/deposits"
WEBHOOK_URL = "/api/v1/payments/webhook"
PAYSTACK_SECRET = "sk_test_paystack"


def _deposit_body(**overrides):
    body = {"amount": 10000, "email": "ada@example.com", "reservationId": "r1"}
    body.update(overrides)
    return body


class TestInitiateDeposit:
    def test_creates_deposit(self, client, db, auth_headers, make_tenant, make_reservation, fake_provider):
        make_tenant()
        make_reservation("r1")

        resp = client.post(DEPOSITS_URL, json=_deposit_body(), headers=auth_headers)

        assert resp.status_code == status.HTTP_200_OK
        body = resp.json()
        assert body["success"] is True
        assert body["message"] == "Deposit initialized successfully"
        assert body["authorizationUrl"] == "https://pay.example/ref_1"
        assert "duplicate" not in body
        txn = db.get(Transaction, body["transactionId"])
        assert txn.amount == Decimal("25.00")
        assert txn.status == "pending"
        assert fake_provider.created[0]["amount_minor"] == 2500

    def test_second_request_returns_existing(self, client, auth_headers, make_tenant, make_reservation, fake_provider):
        make_tenant()
        make_reservation("r1")

        first = client.post(DEPOSITS_URL, json=_deposit_body(), headers=auth_headers).json()
        second = client.post(DEPOSITS_URL, json=_deposit_body(), headers=auth_headers).json()

        assert second["duplicate"] is True
        assert second["transactionId"] == first["transactionId"]
        assert second["message"] == "Deposit already exists for this reservation"
        assert len(fake_provider.created) == 1

    def test_tenant_without_deposit_is_skipped(self, client, auth_headers, make_tenant, make_reservation, fake_provider):
        make_tenant(deposit_pct=None)
        make_reservation("r1")

        resp = client.post(DEPOSITS_URL, json=_deposit_body(), headers=auth_headers)

        assert resp.status_code == status.HTTP_200_OK
        assert resp.json() == {
            "success": True,
            "skipped": "invalid_deposit_pct",
            "message": "Tenant does not require a deposit",
        }
        assert fake_provider.created == []

    def test_system_role_may_initiate(self, client, auth_headers, make_tenant, make_reservation):
        make_tenant()
        make_reservation("r1")

        resp = client.post(
            DEPOSITS_URL, json=_deposit_body(), headers={**auth_headers, "X-User-Role": "system"}
        )

        assert resp.status_code == status.HTTP_200_OK

    def test_unknown_reservation_is_404(self, client, auth_headers, make_tenant):
        make_tenant()
        resp = client.post(DEPOSITS_URL, json=_deposit_body(reservationId="missing"), headers=auth_headers)
        assert resp.status_code == status.HTTP_404_NOT_FOUND
        assert resp.json()["detail"]["code"] == "RESERVATION_NOT_FOUND"

    def test_provider_failure_is_502(self, client, db, auth_headers, make_tenant, make_reservation, fake_provider):
        make_tenant()
        make_reservation("r1")
        fake_provider.fail_create = True

        resp = client.post(DEPOSITS_URL, json=_deposit_body(), headers=auth_headers)

        assert resp.status_code == status.HTTP_502_BAD_GATEWAY
        assert db.query(Transaction).count() == 0

    def test_non_positive_amount_is_422(self, client, auth_headers):
        resp = client.post(DEPOSITS_URL, json=_deposit_body(amount=0), headers=auth_headers)
        assert resp.status_code == 422


class TestWebhook:
    def _event(self, event="charge.success", amount=2500):
        return json.dumps(
            {
                "event": event,
                "data": {
                    "id": 987,
                    "reference": "booka_dep_1",
                    "amount": amount,
                    "currency": "NGN",
                    "status": "success",
                    "metadata": {"tenant_id": "t1", "reservation_id": "r1"},
                },
            }
        ).encode()

    def test_valid_paystack_webhook_is_stored(self, client, db):
        body = self._event()
        resp = client.post(
            WEBHOOK_URL,
            content=body,
            headers={
                "Content-Type": "application/json",
                "x-paystack-signature": compute_paystack_signature(body, PAYSTACK_SECRET),
            },
        )

        assert resp.status_code == status.HTTP_200_OK
        assert resp.json() == {"received": True}
        txn = db.query(Transaction).one()
        assert txn.provider_reference == "booka_dep_1"
        assert txn.status == "success"
        assert db.query(WebhookEvent).count() == 1

    def test_bad_signature_is_400_and_nothing_stored(self, client, db):
        body = self._event()
        resp = client.post(
            WEBHOOK_URL,
            content=body,
            headers={"x-paystack-signature": compute_paystack_signature(body, "wrong")},
        )

        assert resp.status_code == status.HTTP_400_BAD_REQUEST
        assert resp.json() == {"error": "Invalid webhook signature", "code": "INVALID_SIGNATURE"}
        assert db.query(Transaction).count() == 0

    def test_missing_signature_is_400(self, client):
        resp = client.post(WEBHOOK_URL, content=self._event())
        assert resp.status_code == status.HTTP_400_BAD_REQUEST
        assert resp.json()["error"] == "Missing webhook signature"

    def test_body_is_verified_byte_for_byte(self, client, db):
        body = self._event()
        signature = compute_paystack_signature(body, PAYSTACK_SECRET)
        reformatted = json.dumps(json.loads(body), indent=2).encode()

        resp = client.post(WEBHOOK_URL, content=reformatted, headers={"x-paystack-signature": signature})

        assert resp.status_code == status.HTTP_400_BAD_REQUEST
        assert db.query(Transaction).count() == 0

    def test_signed_payload_with_malformed_amount_is_400(self, client, db):
        body = self._event(amount="12.5.0")
        resp = client.post(
            WEBHOOK_URL,
            content=body,
            headers={"x-paystack-signature": compute_paystack_signature(body, PAYSTACK_SECRET)},
        )

        assert resp.status_code == status.HTTP_400_BAD_REQUEST
        assert resp.json() == {"error": "Invalid webhook payload", "code": "INVALID_WEBHOOK_PAYLOAD"}
        assert db.query(Transaction).count() == 0
        assert db.query(WebhookEvent).count() == 0
