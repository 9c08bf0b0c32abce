"""Tests for settings and the domain exception hierarchy."""

from pydantic import SecretStr

from booka.core.config import Settings, settings
from booka.core.exceptions import (
    BookingConflictException,
    InfrastructureException,
    InvalidIntervalException,
    InvalidStateException,
    PaymentProviderException,
    SignatureVerificationException,
    WebhookNotConfiguredException,
)


class TestSettings:
    def test_test_environment_loaded(self):
        assert settings.environment == "test"
        assert settings.database_url == "sqlite://"
        assert settings.transaction_retry_pause_seconds == 0

    def test_webhook_secrets_only_lists_configured_providers(self):
        cfg = settings.model_copy(update={"stripe_webhook_secret": SecretStr("")})
        assert cfg.webhook_secrets == {"paystack": "sk_test_paystack"}

    def test_default_currency_is_uppercased(self):
        assert Settings(default_currency=" usd ").default_currency == "USD"


class TestExceptions:
    def test_booking_conflict_maps_to_409(self):
        exc = BookingConflictException().to_http_exception()
        assert exc.status_code == 409
        assert exc.detail["code"] == "BOOKING_CONFLICT"
        assert exc.detail["message"] == "This time slot is no longer available"

    def test_infrastructure_is_retryable(self):
        exc = InfrastructureException().to_http_exception()
        assert exc.status_code == 503
        assert exc.headers == {"Retry-After": "2"}

    def test_status_codes(self):
        assert InvalidIntervalException("b", "a").status_code == 400
        assert InvalidStateException("nope").status_code == 422
        assert PaymentProviderException("down").status_code == 502
        assert SignatureVerificationException().status_code == 400
        assert WebhookNotConfiguredException("stripe").status_code == 500

    def test_provider_details(self):
        exc = PaymentProviderException("down", provider="paystack", status_code=503)
        assert exc.details == {"provider": "paystack", "provider_status": 503}
        assert exc.code == "PAYMENT_PROVIDER_ERROR"
