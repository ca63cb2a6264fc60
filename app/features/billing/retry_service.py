"""Payment retry sweep for delinquent subscriptions

Run by the scheduler. It advances each delinquent subscription along its
retry schedule and suspends it once the grace period is over. It does not
charge the card itself.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from app.features.billing.domain import (
    DELINQUENT_STATUSES,
    NO_SAVED_CARD_MESSAGE,
    SubscriptionStatus,
    grace_period_days,
    max_retry_count,
    retry_schedule,
)
from app.features.billing.exceptions import ConcurrentUpdateError
from app.features.billing.models.billing_settings import BillingSettings
from app.features.billing.models.subscription import Subscription, SubscriptionUpdate
from app.features.billing.models.subscription_log import SubscriptionLogCreate
from app.features.billing.repositories import BillingRepositories
from app.features.billing.schemas import RetryPaymentsResponse, RetryResult

logger = logging.getLogger(__name__)


def _utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class PaymentRetryService:
    def __init__(self, repos: BillingRepositories):
        self.repos = repos

    async def run(self, now: Optional[datetime] = None) -> RetryPaymentsResponse:
        now = now or datetime.now(timezone.utc)
        settings = await self.repos.settings.get_settings()
        subscriptions = await self.repos.subscriptions.find_by_statuses(DELINQUENT_STATUSES)

        # no_charge / requires_card_update are nullable; "neq true" in SQL drops NULL rows
        candidates = [s for s in subscriptions if not s.no_charge and not s.requires_card_update]
        logger.info(f"PaymentRetryService: {len(candidates)} of {len(subscriptions)} delinquent subscriptions eligible")

        results: List[RetryResult] = []
        for subscription in candidates:
            try:
                results.append(await self.process_subscription(subscription, settings, now))
            except ConcurrentUpdateError as e:
                logger.warning(f"PaymentRetryService: {e}")
                results.append(RetryResult(subscription_id=subscription.id, action="skipped", reason="conflict"))
            except Exception as e:
                logger.error(f"PaymentRetryService: Failed to process subscription {subscription.id}: {e}", exc_info=True)
                results.append(RetryResult(subscription_id=subscription.id, action="error", reason=str(e)))

        return RetryPaymentsResponse(success=True, processed=len(results), results=results)

    async def process_subscription(
        self,
        subscription: Subscription,
        settings: BillingSettings,
        now: datetime,
    ) -> RetryResult:
        retry_count = subscription.retry_count or 0
        max_retries = max_retry_count(subscription.billing_cycle)

        if retry_count >= max_retries:
            return RetryResult(
                subscription_id=subscription.id,
                action="skipped",
                reason="max_retries_reached",
                retry_count=retry_count,
            )

        grace_days = grace_period_days(
            subscription.billing_cycle,
            settings.grace_period_days_monthly,
            settings.grace_period_days_annual,
        )
        if subscription.grace_period_ends_at is not None:
            grace_end = _utc(subscription.grace_period_ends_at)
            grace_start = grace_end - timedelta(days=grace_days)
        else:
            grace_start = _utc(subscription.current_period_end or now)
            grace_end = grace_start + timedelta(days=grace_days)

        if now > grace_end:
            return await self._suspend(subscription, grace_end, now)

        schedule = retry_schedule(subscription.billing_cycle)
        retry_at = grace_start + timedelta(days=schedule[min(retry_count, len(schedule) - 1)])
        if now < retry_at:
            return RetryResult(
                subscription_id=subscription.id,
                action="skipped",
                reason="not_yet_time",
                retry_count=retry_count,
                next_retry_at=retry_at,
            )

        new_count = retry_count + 1
        next_retry_at = None
        if new_count < min(max_retries, len(schedule)):
            next_retry_at = grace_start + timedelta(days=schedule[new_count])

        if not subscription.card_token and not subscription.gateway_customer_id:
            await self._update(subscription, SubscriptionUpdate(
                requires_card_update=True,
                last_decline_message=NO_SAVED_CARD_MESSAGE,
                retry_count=new_count,
                last_retry_at=now,
                grace_period_ends_at=grace_end,
                updated_at=now,
            ))
            logger.info(f"PaymentRetryService: Subscription {subscription.id} has no saved card")
            return RetryResult(
                subscription_id=subscription.id,
                action="skipped",
                reason="no_saved_card",
                retry_count=new_count,
            )

        await self._update(subscription, SubscriptionUpdate(
            retry_count=new_count,
            last_retry_at=now,
            next_retry_at=next_retry_at,
            grace_period_ends_at=grace_end,
            updated_at=now,
        ))
        await self.repos.logs.append(SubscriptionLogCreate(
            subscription_id=subscription.id,
            user_id=subscription.user_id,
            event_type="payment_retry_attempted",
            event_description=f"Retry {new_count} of {max_retries}",
            metadata={
                "retry_count": new_count,
                "max_retries": max_retries,
                "next_retry_at": next_retry_at.isoformat() if next_retry_at else None,
                "grace_period_ends_at": grace_end.isoformat(),
            },
        ))
        logger.info(f"PaymentRetryService: Subscription {subscription.id} retry {new_count}/{max_retries} scheduled")

        return RetryResult(
            subscription_id=subscription.id,
            action="retry_scheduled",
            retry_count=new_count,
            next_retry_at=next_retry_at,
        )

    async def _suspend(self, subscription: Subscription, grace_end: datetime, now: datetime) -> RetryResult:
        await self._update(subscription, SubscriptionUpdate(
            status=SubscriptionStatus.SUSPENDED.value,
            next_retry_at=None,
            updated_at=now,
        ))
        await self.repos.logs.append(SubscriptionLogCreate(
            subscription_id=subscription.id,
            user_id=subscription.user_id,
            event_type="subscription_suspended",
            event_description="Grace period expired without payment",
            metadata={
                "previous_status": subscription.status,
                "new_status": SubscriptionStatus.SUSPENDED.value,
                "grace_period_ends_at": grace_end.isoformat(),
                "retry_count": subscription.retry_count or 0,
            },
        ))
        logger.info(f"PaymentRetryService: Subscription {subscription.id} suspended, grace ended {grace_end}")
        return RetryResult(subscription_id=subscription.id, action="suspended", retry_count=subscription.retry_count)

    async def _update(self, subscription: Subscription, data: SubscriptionUpdate) -> Subscription:
        updated = await self.repos.subscriptions.update_if_status(subscription.id, subscription.status, data)
        if updated is None:
            raise ConcurrentUpdateError("master_subscriptions", subscription.id, subscription.status)
        return updated
