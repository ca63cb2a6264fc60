"""Billing status queries and the client-invoked status poller"""
import logging
from datetime import datetime, timezone
from typing import Optional

from app.features.billing.domain import PaymentStatus
from app.features.billing.exceptions import ConcurrentUpdateError, GatewayConfigurationError, GatewayError
from app.features.billing.reconciler_service import PaymentReconcilerService
from app.features.billing.repositories import BillingRepositories
from app.features.billing.schemas import BillingAlertsResponse, BillingInfo, CheckStatusResponse
from app.features.billing.status_resolver import build_billing_info

logger = logging.getLogger(__name__)


class BillingStatusService:
    """Read side of billing plus the poller fallback for missed webhooks"""

    def __init__(self, repos: BillingRepositories, reconciler: Optional[PaymentReconcilerService] = None):
        self.repos = repos
        self.reconciler = reconciler or PaymentReconcilerService(repos)

    async def get_billing_info(self, user_id: str, now: Optional[datetime] = None) -> Optional[BillingInfo]:
        """Resolved billing state of the user's latest subscription, None if they never subscribed"""
        subscription = await self.repos.subscriptions.find_latest_for_user(user_id)
        if subscription is None:
            return None
        return build_billing_info(subscription, now or datetime.now(timezone.utc))

    async def get_alerts(self) -> BillingAlertsResponse:
        settings = await self.repos.settings.get_settings()
        alerts = await self.repos.settings.get_active_alerts()
        return BillingAlertsResponse(alerts=alerts, settings=settings)

    async def check_status(self, user_id: str, subscription_id: Optional[str] = None) -> CheckStatusResponse:
        """
        Re-read the subscription and its latest payment; a pending payment is
        refreshed from the gateway first.

        Gateway trouble never fails the request: the stored values are returned.
        """
        subscription = await self.repos.subscriptions.find_latest_for_user(user_id, subscription_id=subscription_id)
        if subscription is None:
            return CheckStatusResponse(found=False, message="Subscription not found")

        payment = await self.repos.payments.find_latest_for_subscription(subscription.id)

        if payment is not None and payment.status == PaymentStatus.PENDING and payment.gateway_payment_id:
            try:
                gateway_payment = await self.reconciler.fetch_gateway_payment(payment)
                outcome = await self.reconciler.apply(payment, subscription, gateway_payment)
                payment = outcome.payment
                subscription = outcome.subscription or subscription
            except GatewayConfigurationError as e:
                logger.error(f"BillingStatusService: Cannot poll payment {payment.id}: {e}")
            except GatewayError as e:
                logger.warning(f"BillingStatusService: Gateway error polling payment {payment.id}: {e}")
            except ConcurrentUpdateError:
                # Another writer reconciled it; return what is stored now
                payment = await self.repos.payments.find_by_id(payment.id) or payment
                subscription = await self.repos.subscriptions.find_by_id(subscription.id) or subscription

        return CheckStatusResponse(
            found=True,
            subscription=subscription,
            latest_payment=payment,
            billing=build_billing_info(subscription),
        )
