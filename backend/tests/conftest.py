# backend/tests/conftest.py
"""
Pytest configuration for the Booka test suite.

Tests run against an in-memory SQLite database. Environment variables
are set BEFORE any booka import so the module-level settings and engine
pick them up.
"""

import os

os.environ["CI"] = "true"
os.environ["ENVIRONMENT"] = "test"
os.environ["IS_TESTING"] = "true"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["PAYSTACK_SECRET_KEY"] = "sk_test_paystack"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_stripe"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_secret"
os.environ["TRANSACTION_RETRY_PAUSE_SECONDS"] = "0"

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

from fastapi.testclient import TestClient
import pytest
from sqlalchemy.orm import Session

from booka.api.dependencies.database import get_db as api_get_db
from booka.api.dependencies.services import get_deposit_service
from booka.core.config import Settings, settings
from booka.core.enums import PaymentProviderName, ReservationStatus, TransactionStatus
from booka.core.exceptions import PaymentProviderException
from booka.database import Base, SessionLocal, engine
from booka.integrations.payments import (
    DepositIntent,
    NormalizedWebhookEvent,
    PaymentProvider,
    ProviderStatus,
)
from booka.main import app
import booka.models  # noqa: F401
from booka.models import Reservation, Tenant
from booka.services.deposit_service import DepositService

BASE_TIME = datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc)


class FakePaymentProvider(PaymentProvider):
    """In-memory provider: records calls and returns canned answers."""

    name = PaymentProviderName.PAYSTACK

    def __init__(
        self,
        *,
        retry_status: TransactionStatus = TransactionStatus.SUCCESS,
        fail_create: bool = False,
        retry_error: Optional[Exception] = None,
    ) -> None:
        self.retry_status = retry_status
        self.fail_create = fail_create
        self.retry_error = retry_error
        self.created: List[Dict[str, Any]] = []
        self.retried: List[str] = []

    def create_deposit_intent(
        self, amount_minor: int, currency: str, email: str, metadata: Dict[str, Any]
    ) -> DepositIntent:
        if self.fail_create:
            raise PaymentProviderException("Provider unavailable", provider=self.name.value)
        reference = f"ref_{len(self.created) + 1}"
        self.created.append(
            {"amount_minor": amount_minor, "currency": currency, "email": email, "metadata": metadata}
        )
        return DepositIntent(
            id=reference,
            status="created",
            provider=self.name.value,
            payment_url=f"https://pay.example/{reference}",
            raw={"reference": reference},
        )

    def retry(self, reference: str) -> ProviderStatus:
        self.retried.append(reference)
        if self.retry_error is not None:
            raise self.retry_error
        return ProviderStatus(status=self.retry_status, provider_status=self.retry_status.value)

    def verify_webhook(self, raw_body: bytes, signature: Optional[str], secret: str) -> Dict[str, Any]:
        raise NotImplementedError

    def normalize_webhook(self, event: Dict[str, Any]) -> NormalizedWebhookEvent:
        raise NotImplementedError


@pytest.fixture
def db() -> Session:
    """Fresh schema per test on the shared in-memory connection."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def test_settings() -> Settings:
    return settings.model_copy(
        update={
            "transaction_retry_pause_seconds": 0.0,
            "transaction_retry_base_delay_seconds": 300,
            "transaction_retry_max_attempts": 3,
        }
    )


@pytest.fixture
def fake_provider() -> FakePaymentProvider:
    return FakePaymentProvider()


@pytest.fixture
def make_tenant(db: Session) -> Callable[..., Tenant]:
    def _make(tenant_id: str = "t1", deposit_pct: Any = Decimal("25"), **kwargs: Any) -> Tenant:
        kwargs.setdefault("name", f"Tenant {tenant_id}")
        tenant = Tenant(id=tenant_id, deposit_pct=deposit_pct, **kwargs)
        db.add(tenant)
        db.commit()
        return tenant

    return _make


@pytest.fixture
def make_reservation(db: Session) -> Callable[..., Reservation]:
    def _make(
        reservation_id: Optional[str] = None,
        *,
        tenant_id: str = "t1",
        staff_id: Optional[str] = "s1",
        start_at: datetime = BASE_TIME,
        minutes: int = 60,
        status: str = ReservationStatus.CONFIRMED.value,
    ) -> Reservation:
        kwargs: Dict[str, Any] = {}
        if reservation_id:
            kwargs["id"] = reservation_id
        reservation = Reservation(
            tenant_id=tenant_id,
            staff_id=staff_id,
            service_id="svc-1",
            customer_name="Ada Obi",
            customer_email="ada@example.com",
            start_at=start_at,
            end_at=start_at + timedelta(minutes=minutes),
            status=status,
            **kwargs,
        )
        db.add(reservation)
        db.commit()
        return reservation

    return _make


@pytest.fixture
def auth_headers() -> Dict[str, str]:
    return {"X-Tenant-ID": "t1", "X-User-ID": "u1", "X-User-Role": "staff"}


@pytest.fixture
def client(db: Session, fake_provider: FakePaymentProvider):
    """TestClient sharing the test session; deposits go through the fake provider."""

    def _override_get_db():
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise

    app.dependency_overrides[api_get_db] = _override_get_db
    app.dependency_overrides[get_deposit_service] = lambda: DepositService(
        db, provider_resolver=lambda name: fake_provider
    )
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()
