"""Payment/subscription reconciliation against authoritative gateway state

``reconcile`` is pure: it takes the stored rows plus what the gateway reports
and returns the updates and audit entries to persist. The webhook handler and
the status poller both go through it.
"""
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from pydantic import BaseModel, Field

from app.features.billing.domain import (
    GATEWAY_TO_PAYMENT_STATUS,
    BillingCycle,
    DeclineType,
    PaymentStatus,
    SubscriptionStatus,
    charge_decline_message,
    grace_period_days,
    is_hard_decline,
    max_retry_count,
    retry_schedule,
)
from app.features.billing.models.billing_settings import BillingSettings
from app.features.billing.models.payment import Payment, PaymentUpdate
from app.features.billing.models.subscription import Subscription, SubscriptionUpdate
from app.features.billing.models.subscription_log import SubscriptionLogCreate
from app.infra.gateways.base import GatewayPayment


class Reconciliation(BaseModel):
    """Result of reconciling one payment"""
    previous_payment_status: str
    payment_status: str
    payment_update: PaymentUpdate
    previous_subscription_status: Optional[str] = None
    subscription_status: Optional[str] = None
    subscription_update: Optional[SubscriptionUpdate] = None
    decline_type: Optional[str] = None
    log_entries: List[SubscriptionLogCreate] = Field(default_factory=list)

    @property
    def payment_changed(self) -> bool:
        return self.payment_status != self.previous_payment_status

    @property
    def subscription_changed(self) -> bool:
        return self.subscription_update is not None

    @property
    def payment_logs(self) -> List[SubscriptionLogCreate]:
        return [entry for entry in self.log_entries if entry.event_type.startswith("payment_")]


def target_subscription_status(payment_status: str, billing_cycle: Optional[str]) -> Optional[SubscriptionStatus]:
    """Subscription status implied by a payment status, None when the payment does not drive it"""
    if payment_status == PaymentStatus.PAID:
        return SubscriptionStatus.ACTIVE

    if payment_status == PaymentStatus.FAILED:
        if billing_cycle == BillingCycle.MONTHLY:
            return SubscriptionStatus.INADIMPLENT
        return SubscriptionStatus.CANCELLED

    return None


def next_retry_date(
    subscription: Subscription,
    grace_period_ends_at: datetime,
    grace_days: int,
) -> Optional[datetime]:
    """Next date on the retry schedule for the cycle, None once retries are exhausted"""
    retry_count = subscription.retry_count or 0
    if retry_count >= max_retry_count(subscription.billing_cycle):
        return None

    schedule = retry_schedule(subscription.billing_cycle)
    if retry_count >= len(schedule):
        return None

    grace_start = grace_period_ends_at - timedelta(days=grace_days)
    return grace_start + timedelta(days=schedule[retry_count])


def reconcile(
    payment: Payment,
    subscription: Optional[Subscription],
    gateway_payment: GatewayPayment,
    now: Optional[datetime] = None,
    settings: Optional[BillingSettings] = None,
) -> Reconciliation:
    now = now or datetime.now(timezone.utc)
    settings = settings or BillingSettings()

    mapped = GATEWAY_TO_PAYMENT_STATUS.get(gateway_payment.status)
    new_status = mapped.value if mapped else payment.status
    failed = new_status == PaymentStatus.FAILED

    decline_type = None
    if failed:
        decline_type = (DeclineType.HARD if is_hard_decline(gateway_payment.status_detail) else DeclineType.SOFT).value

    payment_update = PaymentUpdate(
        status=new_status,
        gateway_status=gateway_payment.status,
        gateway_response=gateway_payment.raw,
        updated_at=now,
    )
    if failed:
        payment_update.decline_code = gateway_payment.status_detail
        payment_update.decline_type = decline_type
        payment_update.user_message = charge_decline_message(gateway_payment.status_detail)
    if new_status == PaymentStatus.PAID and payment.paid_at is None:
        payment_update.paid_at = gateway_payment.date_approved or now
    if new_status == PaymentStatus.REFUNDED and payment.refunded_at is None:
        payment_update.refunded_at = now

    result = Reconciliation(
        previous_payment_status=payment.status,
        payment_status=new_status,
        payment_update=payment_update,
        decline_type=decline_type,
    )

    if result.payment_changed:
        result.log_entries.append(SubscriptionLogCreate(
            subscription_id=payment.subscription_id,
            user_id=payment.user_id,
            payment_id=payment.id,
            event_type=f"payment_{new_status}",
            event_description=f"Payment {payment.gateway_payment_id} changed from {payment.status} to {new_status}",
            metadata={
                "previous_status": payment.status,
                "new_status": new_status,
                "gateway": payment.gateway,
                "gateway_status": gateway_payment.status,
                "status_detail": gateway_payment.status_detail,
            },
        ))

    if subscription is None:
        return result

    result.previous_subscription_status = subscription.status
    target = target_subscription_status(new_status, subscription.billing_cycle)
    if target is None or target == subscription.status:
        return result

    subscription_update = SubscriptionUpdate(status=target.value, updated_at=now)

    if target == SubscriptionStatus.ACTIVE:
        if subscription.started_at is None:
            subscription_update.started_at = now
        subscription_update.grace_period_ends_at = None
        subscription_update.requires_card_update = False
        subscription_update.decline_type = None
        subscription_update.last_decline_code = None
        subscription_update.last_decline_message = None
        subscription_update.retry_count = 0
        subscription_update.next_retry_at = None
    else:
        hard = decline_type == DeclineType.HARD
        subscription_update.decline_type = decline_type
        subscription_update.last_decline_code = gateway_payment.status_detail
        subscription_update.last_decline_message = charge_decline_message(gateway_payment.status_detail)
        subscription_update.requires_card_update = hard

        if target == SubscriptionStatus.INADIMPLENT:
            grace_days = grace_period_days(
                subscription.billing_cycle,
                settings.grace_period_days_monthly,
                settings.grace_period_days_annual,
            )
            grace_end = subscription.grace_period_ends_at or now + timedelta(days=grace_days)
            subscription_update.grace_period_ends_at = grace_end
            subscription_update.next_retry_at = None if hard else next_retry_date(subscription, grace_end, grace_days)
        elif subscription.cancelled_at is None:
            subscription_update.cancelled_at = now

    result.subscription_status = target.value
    result.subscription_update = subscription_update
    result.log_entries.append(SubscriptionLogCreate(
        subscription_id=subscription.id,
        user_id=subscription.user_id,
        payment_id=payment.id,
        event_type=f"subscription_{target.value}",
        event_description=f"Subscription changed from {subscription.status} to {target.value} after payment {new_status}",
        metadata={
            "previous_status": subscription.status,
            "new_status": target.value,
            "payment_status": new_status,
            "decline_type": decline_type,
            "decline_code": gateway_payment.status_detail if decline_type else None,
        },
    ))
    return result
