"""Fetches gateway state for a payment, reconciles it and persists the result"""
import logging
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel

from app.features.billing.exceptions import ConcurrentUpdateError
from app.features.billing.models.payment import Payment
from app.features.billing.models.subscription import Subscription
from app.features.billing.reconciliation import Reconciliation, reconcile
from app.features.billing.repositories import BillingRepositories
from app.infra.gateways import GatewayPayment, build_gateway_client

logger = logging.getLogger(__name__)


class ReconcileOutcome(BaseModel):
    payment: Payment
    subscription: Optional[Subscription] = None
    reconciliation: Reconciliation
    subscription_conflict: bool = False


class PaymentReconcilerService:
    """Shared by the webhook handler and the status poller

    Every write is a conditional update guarded by the status read before the
    gateway call, so a concurrent webhook/poller pair cannot both apply a
    transition.
    """

    def __init__(self, repos: BillingRepositories):
        self.repos = repos

    async def fetch_gateway_payment(self, payment: Payment) -> GatewayPayment:
        """
        Ask the payment's gateway for its current state

        Raises:
            GatewayConfigurationError: No active default gateway credentials
            GatewayError: The gateway call failed
        """
        credentials = await self.repos.gateways.find_default_active()
        client = build_gateway_client(credentials, payment.gateway)
        return await client.get_payment(payment.gateway_payment_id)

    async def apply(
        self,
        payment: Payment,
        subscription: Optional[Subscription],
        gateway_payment: GatewayPayment,
        now: Optional[datetime] = None,
    ) -> ReconcileOutcome:
        """
        Reconcile and persist

        Raises:
            ConcurrentUpdateError: The payment row moved away from the status
                it was read with; nothing was written.
        """
        now = now or datetime.now(timezone.utc)
        settings = await self.repos.settings.get_settings()
        result = reconcile(payment, subscription, gateway_payment, now=now, settings=settings)

        updated_payment = await self.repos.payments.update_if_status(
            payment.id, payment.status, result.payment_update
        )
        if updated_payment is None:
            logger.warning(
                f"PaymentReconcilerService: Payment {payment.id} changed concurrently "
                f"(expected '{payment.status}'), skipping"
            )
            raise ConcurrentUpdateError("master_subscription_payments", payment.id, payment.status)

        log_entries = result.log_entries
        updated_subscription = subscription
        conflict = False

        if subscription is not None and result.subscription_update is not None:
            updated_subscription = await self.repos.subscriptions.update_if_status(
                subscription.id, subscription.status, result.subscription_update
            )
            if updated_subscription is None:
                logger.warning(
                    f"PaymentReconcilerService: Subscription {subscription.id} changed concurrently "
                    f"(expected '{subscription.status}'), dropping its transition"
                )
                conflict = True
                log_entries = result.payment_logs
                updated_subscription = await self.repos.subscriptions.find_by_id(subscription.id)
            else:
                logger.info(
                    f"PaymentReconcilerService: Subscription {subscription.id} "
                    f"{subscription.status} -> {result.subscription_status}"
                )

        if log_entries:
            await self.repos.logs.append_many(log_entries)

        if result.payment_changed:
            logger.info(
                f"PaymentReconcilerService: Payment {payment.id} "
                f"{result.previous_payment_status} -> {result.payment_status}"
            )

        return ReconcileOutcome(
            payment=updated_payment,
            subscription=updated_subscription,
            reconciliation=result,
            subscription_conflict=conflict,
        )
