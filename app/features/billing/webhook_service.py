"""Webhook service for gateway payment notifications

A notification only tells us *which* payment changed. The state itself is
always re-read from the gateway and reconciled, so redelivered or reordered
notifications are harmless.
"""
import hashlib
import hmac
import logging
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel

from app.features.billing.exceptions import ConcurrentUpdateError, GatewayError
from app.features.billing.reconciler_service import PaymentReconcilerService
from app.features.billing.repositories import BillingRepositories
from app.features.billing.schemas import WebhookResponse

logger = logging.getLogger(__name__)

PAYMENT_TOPICS = ("payment", "merchant_order")


class WebhookNotification(BaseModel):
    topic: Optional[str] = None
    payment_id: Optional[str] = None
    is_test: bool = False


def parse_notification(body: Dict[str, Any], query: Optional[Mapping[str, str]] = None) -> WebhookNotification:
    """
    Extract topic and gateway payment id from the shapes Mercado Pago sends:

    - ``{"type": "payment", "data": {"id": "123"}}`` (webhooks)
    - ``{"topic": "payment", "id": "123"}`` (IPN)
    - ``{"topic": "merchant_order", "resource": "https://.../merchant_orders/456"}``

    Query string parameters (``type``/``topic``, ``data.id``/``id``) are used
    when the body does not carry them.
    """
    query = query or {}
    body = body if isinstance(body, dict) else {}

    topic = body.get("type") or body.get("topic") or query.get("type") or query.get("topic")
    is_test = topic == "test" or body.get("action") == "test"

    payment_id = None
    data = body.get("data")
    if isinstance(data, dict) and data.get("id") is not None:
        payment_id = data["id"]
    elif topic == "payment" and body.get("id") is not None:
        payment_id = body["id"]
    elif body.get("resource"):
        payment_id = str(body["resource"]).rstrip("/").split("/")[-1]
    elif query.get("data.id"):
        payment_id = query["data.id"]
    elif topic == "payment" and query.get("id"):
        payment_id = query["id"]

    return WebhookNotification(
        topic=topic,
        payment_id=str(payment_id) if payment_id not in (None, "") else None,
        is_test=is_test,
    )


def verify_mercadopago_signature(
    signature_header: Optional[str],
    request_id: Optional[str],
    data_id: Optional[str],
    secret: str,
) -> bool:
    """Check the ``x-signature: ts=...,v1=...`` header against the webhook secret"""
    if not signature_header:
        return False

    parts = {}
    for part in signature_header.split(","):
        key, _, value = part.strip().partition("=")
        parts[key] = value

    ts, received = parts.get("ts"), parts.get("v1")
    if not ts or not received:
        return False

    manifest = ""
    if data_id:
        # Alphanumeric ids are signed lowercased
        manifest += f"id:{str(data_id).lower()};"
    if request_id:
        manifest += f"request-id:{request_id};"
    manifest += f"ts:{ts};"

    expected = hmac.new(secret.encode(), manifest.encode(), hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, received)


class PaymentWebhookService:
    """Handles payment notifications pushed by the gateway"""

    def __init__(self, repos: BillingRepositories, reconciler: Optional[PaymentReconcilerService] = None):
        self.repos = repos
        self.reconciler = reconciler or PaymentReconcilerService(repos)

    async def handle_notification(
        self,
        body: Dict[str, Any],
        query: Optional[Mapping[str, str]] = None,
    ) -> WebhookResponse:
        """
        Process one notification. Unknown shapes, unknown payments and gateway
        hiccups all answer ``processed=False``; only missing gateway
        credentials escape as GatewayConfigurationError.
        """
        notification = parse_notification(body, query)
        logger.info(
            f"PaymentWebhookService: Notification topic={notification.topic} payment_id={notification.payment_id}"
        )

        if notification.is_test:
            return WebhookResponse(processed=False, message="Test notification")

        if notification.topic not in PAYMENT_TOPICS:
            return WebhookResponse(processed=False, message=f"Ignored topic: {notification.topic}")

        if not notification.payment_id:
            return WebhookResponse(processed=False, message="No payment id in notification")

        payment = await self.repos.payments.find_by_gateway_payment_id(notification.payment_id)
        if payment is None:
            logger.info(f"PaymentWebhookService: No local payment for gateway id {notification.payment_id}")
            return WebhookResponse(processed=False, message="Payment not found")

        subscription = await self.repos.subscriptions.find_by_id(payment.subscription_id)

        try:
            gateway_payment = await self.reconciler.fetch_gateway_payment(payment)
        except GatewayError as e:
            if e.is_transient:
                logger.warning(
                    f"PaymentWebhookService: Gateway unavailable for payment {notification.payment_id} "
                    f"({payment.gateway}), awaiting redelivery: {e}"
                )
                message = "Gateway unavailable"
            else:
                logger.error(
                    f"PaymentWebhookService: {payment.gateway} refused lookup of payment {notification.payment_id}: {e}"
                )
                message = f"Gateway refused lookup (HTTP {e.status_code})"
            return WebhookResponse(
                processed=False,
                message=message,
                payment_id=payment.id,
                subscription_id=payment.subscription_id,
                payment_status=payment.status,
            )

        try:
            outcome = await self.reconciler.apply(payment, subscription, gateway_payment)
        except ConcurrentUpdateError as e:
            return WebhookResponse(
                processed=False,
                message=f"Conflict: {e}",
                payment_id=payment.id,
                subscription_id=payment.subscription_id,
                payment_status=payment.status,
            )

        result = outcome.reconciliation
        return WebhookResponse(
            processed=not outcome.subscription_conflict,
            message="Conflict: subscription changed concurrently" if outcome.subscription_conflict else None,
            payment_id=outcome.payment.id,
            subscription_id=outcome.payment.subscription_id,
            payment_status=result.payment_status,
            decline_type=result.decline_type,
        )
