"""PIX QR charges for subscription payments"""
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import HTTPException

from app.config import FALLBACK_PAYER_EMAIL
from app.features.billing.domain import (
    BillingCycle,
    PIX_EXPIRATION_MINUTES,
    PaymentStatus,
    SubscriptionStatus,
    plan_display_name,
)
from app.features.billing.models.payment import PaymentCreate
from app.features.billing.models.subscription import Subscription
from app.features.billing.models.subscription_log import SubscriptionLogCreate
from app.features.billing.repositories import BillingRepositories
from app.features.billing.schemas import CreatePixRequest, CreatePixResponse
from app.infra.gateways import build_gateway_client

logger = logging.getLogger(__name__)

# Subscriptions that still owe a payment
PAYABLE_STATUSES = [
    SubscriptionStatus.PENDING,
    SubscriptionStatus.PAYMENT_PENDING,
    SubscriptionStatus.PAYMENT_FAILED,
    SubscriptionStatus.PAST_DUE,
    SubscriptionStatus.INADIMPLENT,
]


def subscription_amount(subscription: Subscription) -> float:
    """Amount due for one billing period, rounded to cents"""
    if subscription.billing_cycle == BillingCycle.ANNUAL and subscription.total_amount:
        amount = subscription.total_amount
    else:
        amount = subscription.monthly_price or subscription.total_amount
    return round(float(amount or 0), 2)


class PixPaymentService:
    def __init__(self, repos: BillingRepositories):
        self.repos = repos

    async def create_pix_charge(
        self,
        user_id: str,
        req: CreatePixRequest,
        payer_email: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> CreatePixResponse:
        """
        Create a PIX charge for the user's unpaid subscription and record it
        as a pending payment. The webhook or poller settles it later.

        Raises:
            HTTPException: 404 without a payable subscription, 400 on a zero amount
            GatewayConfigurationError: The chosen gateway is not configured
            GatewayError: The gateway refused or failed to create the charge
        """
        now = now or datetime.now(timezone.utc)

        subscription = await self.repos.subscriptions.find_latest_for_user(
            user_id, subscription_id=req.subscription_id, statuses=PAYABLE_STATUSES
        )
        if subscription is None:
            raise HTTPException(status_code=404, detail="No subscription awaiting payment")

        amount = subscription_amount(subscription)
        if amount <= 0:
            raise HTTPException(status_code=400, detail="Invalid amount")

        gateway_name = req.gateway or subscription.gateway
        credentials = await self.repos.gateways.find_default_active()
        client = build_gateway_client(credentials, gateway_name)

        expires_at = now + timedelta(minutes=PIX_EXPIRATION_MINUTES)
        idempotency_key = f"{subscription.id}-{int(now.timestamp() * 1000)}-{uuid.uuid4()}"
        description = f"Assinatura {plan_display_name(subscription.plan_id)}".strip()

        charge = await client.create_pix_payment(
            amount=amount,
            description=description,
            payer_email=payer_email or FALLBACK_PAYER_EMAIL,
            reference=subscription.id,
            expires_at=expires_at,
            idempotency_key=idempotency_key,
        )
        logger.info(
            f"PixPaymentService: Created {gateway_name} PIX charge {charge.gateway_payment_id} "
            f"for subscription {subscription.id} (R$ {amount:.2f})"
        )

        payment = await self.repos.payments.create(PaymentCreate(
            subscription_id=subscription.id,
            user_id=user_id,
            gateway=gateway_name,
            gateway_payment_id=charge.gateway_payment_id,
            status=PaymentStatus.PENDING.value,
            gateway_status="pending",
            gateway_response=charge.raw,
            payment_method="pix",
            amount=amount,
            idempotency_key=idempotency_key,
            pix_qr_code=charge.qr_code,
            pix_qr_code_base64=charge.qr_code_base64,
            pix_expires_at=charge.expires_at,
        ))

        await self.repos.logs.append(SubscriptionLogCreate(
            subscription_id=subscription.id,
            user_id=user_id,
            payment_id=payment.id,
            event_type="pix_generated",
            event_description=f"PIX charge of R$ {amount:.2f} created via {gateway_name}",
            metadata={"gateway_payment_id": charge.gateway_payment_id, "expires_at": expires_at.isoformat()},
        ))

        return CreatePixResponse(
            payment_id=payment.id,
            subscription_id=subscription.id,
            gateway=gateway_name,
            gateway_payment_id=charge.gateway_payment_id,
            amount=amount,
            qr_code=charge.qr_code,
            qr_code_base64=charge.qr_code_base64,
            expires_at=expires_at,
        )
