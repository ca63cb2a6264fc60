"""Billing API endpoints: checkout, status, gateway webhook, card validation, polling, retries and PIX"""
import hmac
import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request

from app import config
from app.features.billing.card_validation_service import CardValidationService
from app.features.billing.pix_service import PixPaymentService
from app.features.billing.repositories import BillingRepositories
from app.features.billing.retry_service import PaymentRetryService
from app.features.billing.schemas import (
    BillingAlertsResponse,
    BillingInfo,
    CheckStatusRequest,
    CheckStatusResponse,
    CreatePixRequest,
    CreatePixResponse,
    CreateSubscriptionRequest,
    CreateSubscriptionResponse,
    RetryPaymentsResponse,
    ValidateCardRequest,
    ValidateCardResponse,
    WebhookResponse,
)
from app.features.billing.status_service import BillingStatusService
from app.features.billing.subscription_service import SubscriptionCheckoutService
from app.features.billing.webhook_service import (
    PaymentWebhookService,
    parse_notification,
    verify_mercadopago_signature,
)
from app.infra.supabase import get_supabase_client
from app.middleware.auth import AuthenticatedUser, get_current_user, get_current_user_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/billing", tags=["billing"])


def get_billing_repositories() -> BillingRepositories:
    return BillingRepositories(get_supabase_client())


# ============================================================================
# GATEWAY WEBHOOK
# ============================================================================

@router.post("/webhook", response_model=WebhookResponse)
async def payment_webhook(
    request: Request,
    x_signature: Optional[str] = Header(None, alias="x-signature"),
    x_request_id: Optional[str] = Header(None, alias="x-request-id"),
    repos: BillingRepositories = Depends(get_billing_repositories),
):
    """
    Mercado Pago payment notifications

    Always answers 200 with ``{received, processed}`` so the gateway stops
    redelivering, except when gateway credentials are missing (500) or the
    signature is invalid (400).
    """
    raw = await request.body()
    try:
        body = json.loads(raw) if raw else {}
    except ValueError:
        logger.warning(f"Webhook body is not JSON ({len(raw)} bytes), ignoring")
        return WebhookResponse(processed=False, message="Invalid payload")

    query = dict(request.query_params)

    if config.MERCADOPAGO_WEBHOOK_SECRET:
        data_id = query.get("data.id") or parse_notification(body, query).payment_id
        if not verify_mercadopago_signature(x_signature, x_request_id, data_id, config.MERCADOPAGO_WEBHOOK_SECRET):
            logger.error(f"Invalid webhook signature for data.id={data_id}")
            raise HTTPException(status_code=400, detail="Invalid signature")

    logger.debug(f"Webhook payload: {json.dumps(body, default=str)}")
    return await PaymentWebhookService(repos).handle_notification(body, query)


# ============================================================================
# CHECKOUT
# ============================================================================

@router.post("/subscriptions", response_model=CreateSubscriptionResponse)
async def create_subscription(
    req: CreateSubscriptionRequest,
    request: Request,
    user: AuthenticatedUser = Depends(get_current_user),
    repos: BillingRepositories = Depends(get_billing_repositories),
):
    """
    Start a platform subscription and take its first payment

    Card payments are captured right away; PIX and boleto return the data
    needed to pay and activate later through the webhook.
    """
    forwarded = request.headers.get("x-forwarded-for") or request.headers.get("x-real-ip")
    client_ip = forwarded.split(",")[0].strip() if forwarded else None
    logger.info(f"Creating {req.billing_cycle} {req.plan_id} subscription for user {user.id} via {req.payment_method}")
    return await SubscriptionCheckoutService(repos).create_subscription(
        user.id, req, payer_email=user.email, client_ip=client_ip
    )


# ============================================================================
# SUBSCRIPTION STATUS
# ============================================================================

@router.get("/status", response_model=Optional[BillingInfo])
async def get_billing_status(
    user_id: str = Depends(get_current_user_id),
    repos: BillingRepositories = Depends(get_billing_repositories),
):
    """Resolved billing state of the caller's latest subscription, null when none"""
    return await BillingStatusService(repos).get_billing_info(user_id)


@router.get("/alerts", response_model=BillingAlertsResponse)
async def get_billing_alerts(
    user_id: str = Depends(get_current_user_id),
    repos: BillingRepositories = Depends(get_billing_repositories),
):
    """Alert copy per billing state plus grace/compensation settings"""
    return await BillingStatusService(repos).get_alerts()


@router.post("/check-status", response_model=CheckStatusResponse)
async def check_subscription_status(
    req: Optional[CheckStatusRequest] = None,
    user_id: str = Depends(get_current_user_id),
    repos: BillingRepositories = Depends(get_billing_repositories),
):
    """
    Poll the gateway for the caller's pending payment

    Used right after checkout, when the UI cannot wait for the webhook.
    """
    subscription_id = req.subscription_id if req else None
    logger.info(f"Checking subscription status for user {user_id} (subscription {subscription_id})")
    return await BillingStatusService(repos).check_status(user_id, subscription_id)


# ============================================================================
# PAYMENT METHODS
# ============================================================================

@router.post("/validate-card", response_model=ValidateCardResponse)
async def validate_card(
    req: ValidateCardRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    repos: BillingRepositories = Depends(get_billing_repositories),
):
    """Validate a tokenized card with a R$ 1.00 authorization that is never captured"""
    logger.info(f"Validating card for user {user.id}")
    return await CardValidationService(repos).validate_card(user.id, req, payer_email=user.email)


@router.post("/pix", response_model=CreatePixResponse)
async def create_pix_charge(
    req: CreatePixRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    repos: BillingRepositories = Depends(get_billing_repositories),
):
    """Create a PIX QR charge for the caller's unpaid subscription"""
    return await PixPaymentService(repos).create_pix_charge(user.id, req, payer_email=user.email)


# ============================================================================
# SCHEDULED JOBS
# ============================================================================

def verify_cron_secret(x_cron_secret: Optional[str] = Header(None, alias="X-Cron-Secret")) -> None:
    if not config.BILLING_CRON_SECRET:
        logger.error("BILLING_CRON_SECRET is not configured, refusing scheduled job")
        raise HTTPException(status_code=500, detail="Scheduled jobs are not configured")

    if not x_cron_secret or not hmac.compare_digest(x_cron_secret, config.BILLING_CRON_SECRET):
        raise HTTPException(status_code=401, detail="Invalid cron secret")


@router.post("/retry-payments", response_model=RetryPaymentsResponse, dependencies=[Depends(verify_cron_secret)])
async def retry_payments(
    repos: BillingRepositories = Depends(get_billing_repositories),
):
    """Advance delinquent subscriptions along their retry schedule, suspending expired ones"""
    result = await PaymentRetryService(repos).run()
    logger.info(f"Retry sweep processed {result.processed} subscriptions")
    return result
