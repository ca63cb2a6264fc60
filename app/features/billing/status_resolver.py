"""Maps a stored subscription onto the billing state shown to the merchant

Pure functions only; callers fetch the subscription and pass ``now``.
"""
import math
from datetime import datetime, timezone
from typing import Optional

from app.features.billing.domain import BillingStatus, SubscriptionStatus, plan_display_name
from app.features.billing.models.subscription import Subscription
from app.features.billing.schemas import BillingInfo

SECONDS_PER_DAY = 24 * 60 * 60


def _utc(value: datetime) -> datetime:
    # Naive timestamps coming back from Postgres are UTC
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def resolve_billing_status(
    status: Optional[str],
    grace_period_ends_at: Optional[datetime],
    previous_plan_id: Optional[str],
    no_charge: Optional[bool] = False,
    now: Optional[datetime] = None,
) -> BillingStatus:
    """
    Resolve the displayed billing status. First matching rule wins:

    1. no_charge                               -> active
    2. active with a previous plan             -> downgraded
    3. past_due with grace end in the future   -> in_grace_period
    4. pending / payment_pending               -> processing
    5. past_due / payment_failed               -> past_due
    6. suspended                               -> suspended
    7. cancelled                               -> cancelled
    8. anything else (inadimplent included)    -> active
    """
    now = _utc(now or datetime.now(timezone.utc))

    if no_charge:
        return BillingStatus.ACTIVE

    if status == SubscriptionStatus.ACTIVE and previous_plan_id:
        return BillingStatus.DOWNGRADED

    if (
        status == SubscriptionStatus.PAST_DUE
        and grace_period_ends_at is not None
        and _utc(grace_period_ends_at) > now
    ):
        return BillingStatus.IN_GRACE_PERIOD

    if status in (SubscriptionStatus.PENDING, SubscriptionStatus.PAYMENT_PENDING):
        return BillingStatus.PROCESSING

    if status in (SubscriptionStatus.PAST_DUE, SubscriptionStatus.PAYMENT_FAILED):
        return BillingStatus.PAST_DUE

    if status == SubscriptionStatus.SUSPENDED:
        return BillingStatus.SUSPENDED

    if status == SubscriptionStatus.CANCELLED:
        return BillingStatus.CANCELLED

    return BillingStatus.ACTIVE


def calculate_days_remaining(grace_period_ends_at: Optional[datetime], now: Optional[datetime] = None) -> int:
    """Whole days left in the grace period, rounded up and floored at 0"""
    if grace_period_ends_at is None:
        return 0

    now = _utc(now or datetime.now(timezone.utc))
    seconds = (_utc(grace_period_ends_at) - now).total_seconds()
    return max(0, math.ceil(seconds / SECONDS_PER_DAY))


def build_billing_info(subscription: Subscription, now: Optional[datetime] = None) -> BillingInfo:
    now = _utc(now or datetime.now(timezone.utc))
    no_charge = bool(subscription.no_charge)

    status = resolve_billing_status(
        subscription.status,
        subscription.grace_period_ends_at,
        subscription.previous_plan_id,
        no_charge=no_charge,
        now=now,
    )

    return BillingInfo(
        status=status,
        billing_cycle=subscription.billing_cycle,
        plan_id=subscription.plan_id,
        plan_name=plan_display_name(subscription.plan_id),
        grace_period_ends_at=None if no_charge else subscription.grace_period_ends_at,
        days_remaining=0 if no_charge else calculate_days_remaining(subscription.grace_period_ends_at, now),
        previous_plan_id=None if no_charge else subscription.previous_plan_id,
        downgrade_reason=None if no_charge else subscription.downgrade_reason,
        requires_card_update=bool(subscription.requires_card_update),
        no_charge=no_charge,
    )
