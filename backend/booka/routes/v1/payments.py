# backend/booka/routes/v1/payments.py
"""
Payment routes - API v1

Endpoints:
    POST /deposits - Initiate (or return the existing) reservation deposit
    POST /webhook - Signed payment-provider webhook (Paystack or Stripe)
"""

import logging
from typing import Dict, NoReturn, Optional, Tuple

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from ...api.dependencies import (
    TenantContext,
    get_deposit_service,
    get_webhook_ingest_service,
    require_policy,
)
from ...api.dependencies.authz import INITIATE_DEPOSIT
from ...core.config import settings
from ...core.enums import PaymentProviderName
from ...core.exceptions import (
    DomainException,
    InfrastructureException,
    SignatureVerificationException,
    ValidationException,
    WebhookNotConfiguredException,
)
from ...schemas.deposit import DepositRequest, DepositResponse
from ...schemas.webhook import WebhookAck, WebhookError
from ...services.deposit_service import SKIP_ZERO_AMOUNT, DepositService
from ...services.webhook_ingest_service import WebhookIngestService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["payments-v1"])

DEPOSIT_CREATED_MESSAGE = "Deposit initialized successfully"
DEPOSIT_DUPLICATE_MESSAGE = "Deposit already exists for this reservation"
DEPOSIT_SKIPPED_MESSAGE = "Tenant does not require a deposit"
DEPOSIT_ZERO_MESSAGE = "Computed deposit amount is zero"

# Signature header -> provider; first match wins.
SIGNATURE_HEADERS: Tuple[Tuple[str, PaymentProviderName], ...] = (
    ("x-paystack-signature", PaymentProviderName.PAYSTACK),
    ("stripe-signature", PaymentProviderName.STRIPE),
)


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    raise exc.to_http_exception()


def _webhook_error(exc: DomainException) -> JSONResponse:
    body: Dict[str, Optional[str]] = {"error": exc.message}
    if not isinstance(exc, WebhookNotConfiguredException):
        body["code"] = exc.code
    return JSONResponse(status_code=exc.status_code, content=body)


@router.post(
    "/deposits",
    response_model=DepositResponse,
    response_model_exclude_none=True,
)
def initiate_deposit(
    payload: DepositRequest,
    ctx: TenantContext = Depends(require_policy(INITIATE_DEPOSIT)),
    deposit_service: DepositService = Depends(get_deposit_service),
) -> DepositResponse:
    """
    Start a deposit for a reservation.

    ``amount`` is the reservation's base amount in minor units; the
    tenant's deposit percentage decides what is actually charged.
    """
    try:
        result = deposit_service.initiate_deposit(
            ctx.tenant_id,
            payload.reservation_id,
            payload.amount,
            currency=payload.currency,
            email=str(payload.email),
            provider=payload.provider,
        )
    except DomainException as exc:
        handle_domain_exception(exc)

    if result.skipped:
        message = DEPOSIT_ZERO_MESSAGE if result.skipped == SKIP_ZERO_AMOUNT else DEPOSIT_SKIPPED_MESSAGE
        return DepositResponse(success=True, skipped=result.skipped, message=message)
    if result.duplicate:
        return DepositResponse(
            success=True,
            duplicate=True,
            transaction_id=result.transaction_id,
            authorization_url=result.authorization_url,
            message=DEPOSIT_DUPLICATE_MESSAGE,
        )
    return DepositResponse(
        success=True,
        transaction_id=result.transaction_id,
        authorization_url=result.authorization_url,
        message=DEPOSIT_CREATED_MESSAGE,
    )


@router.post(
    "/webhook",
    response_model=WebhookAck,
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": WebhookError},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": WebhookError},
    },
)
async def payment_webhook(
    request: Request,
    ingest_service: WebhookIngestService = Depends(get_webhook_ingest_service),
):
    """
    Receive a payment-provider webhook.

    The signature header selects the provider. The signature is checked
    against the exact raw body, so the body is read before any parsing.

    Note:
        This endpoint has no authentication as it uses webhook signature verification
    """
    payload = await request.body()

    provider: Optional[PaymentProviderName] = None
    signature: Optional[str] = None
    for header_name, candidate in SIGNATURE_HEADERS:
        value = request.headers.get(header_name)
        if value:
            provider, signature = candidate, value
            break

    if provider is None:
        logger.warning(
            "Webhook received without signature",
            extra={"security_event": "webhook_signature_missing"},
        )
        return _webhook_error(SignatureVerificationException("Missing webhook signature"))

    secret = settings.webhook_secrets.get(provider.value)
    try:
        await run_in_threadpool(
            ingest_service.ingest,
            provider,
            payload,
            signature,
            secret,
            dict(request.headers),
        )
    except (
        SignatureVerificationException,
        WebhookNotConfiguredException,
        ValidationException,
        InfrastructureException,
    ) as exc:
        return _webhook_error(exc)

    return WebhookAck(received=True)
