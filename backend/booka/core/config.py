# backend/booka/core/config.py
import logging
import os
from pathlib import Path
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = Path(__file__).parent.parent.parent / ".env"  # Goes up to backend/.env
    logger.debug(f"[CONFIG] Looking for .env at: {env_path}")
    load_dotenv(env_path)


class Settings(BaseSettings):
    environment: Literal["development", "test", "staging", "production"] = Field(
        default="development",
        description="Deployment environment name",
    )
    is_testing: bool = Field(default=False, description="Set by the test harness")

    database_url: str = Field(
        default="postgresql://localhost:5432/booka",
        description="SQLAlchemy database URL",
    )
    redis_url: str = Field(
        default="redis://localhost:6379",
        description="Redis URL used as Celery broker",
    )

    # Paystack
    paystack_secret_key: SecretStr = Field(
        default=SecretStr(""),
        description="Paystack secret key (also signs webhooks)",
    )
    paystack_base_url: str = Field(
        default="https://api.paystack.co",
        description="Paystack REST API base URL",
    )
    paystack_callback_url: Optional[str] = Field(
        default=None,
        description="URL Paystack redirects customers to after checkout",
    )

    # Stripe
    stripe_secret_key: SecretStr = Field(
        default=SecretStr(""),
        description="Stripe secret key",
    )
    stripe_webhook_secret: SecretStr = Field(
        default=SecretStr(""),
        description="Stripe webhook signing secret (whsec_...)",
    )
    deposit_success_url: str = Field(
        default="https://booka.app/booking/deposit/success",
        description="Hosted checkout success redirect",
    )
    deposit_cancel_url: str = Field(
        default="https://booka.app/booking/deposit/cancelled",
        description="Hosted checkout cancel redirect",
    )

    payment_http_timeout: float = Field(
        default=30.0,
        description="Timeout in seconds for outbound payment provider calls",
    )
    default_currency: str = Field(default="NGN", description="Currency used when none is given")
    default_payment_provider: Literal["paystack", "stripe"] = Field(
        default="paystack",
        description="Provider used when a deposit request does not name one",
    )

    # Transaction retry worker
    transaction_retry_max_attempts: int = Field(
        default=3, ge=1, description="Retry ceiling; at this count a transaction is terminal"
    )
    transaction_retry_batch_size: int = Field(
        default=50, ge=1, description="Maximum transactions picked per retry run"
    )
    transaction_retry_base_delay_seconds: int = Field(
        default=300,
        ge=1,
        description="First backoff delay; doubled on every further attempt",
    )
    transaction_retry_pause_seconds: float = Field(
        default=1.0,
        ge=0,
        description="Courtesy pause between provider calls in a retry batch",
    )
    transaction_retry_lease_seconds: int = Field(
        default=600,
        ge=1,
        description="How long a claimed transaction is hidden from other workers",
    )

    reconciliation_epsilon: float = Field(
        default=0.01,
        description="Balance difference treated as matched by the reconciliation report",
    )

    model_config = SettingsConfigDict(
        env_file=".env" if not os.getenv("CI") else None,
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("default_currency")
    @classmethod
    def _upper_currency(cls, v: str) -> str:
        return v.strip().upper()

    def get_database_url(self) -> str:
        """Get the database URL for the current context."""
        return self.database_url

    @property
    def webhook_secrets(self) -> dict[str, str]:
        """Configured webhook signing secrets keyed by provider name."""
        secrets: dict[str, str] = {}
        if self.paystack_secret_key.get_secret_value():
            secrets["paystack"] = self.paystack_secret_key.get_secret_value()
        if self.stripe_webhook_secret.get_secret_value():
            secrets["stripe"] = self.stripe_webhook_secret.get_secret_value()
        return secrets


settings = Settings()
