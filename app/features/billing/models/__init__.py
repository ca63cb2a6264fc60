"""Billing feature models"""
from .subscription import Subscription, SubscriptionCreate, SubscriptionUpdate
from .payment import Payment, PaymentCreate, PaymentUpdate
from .subscription_log import SubscriptionLog, SubscriptionLogCreate
from .gateway_credentials import GatewayCredentials
from .profile import Profile, ProfileCardUpdate
from .billing_settings import BillingSettings, BillingAlertContent
from .plan import Plan

__all__ = [
    "Subscription",
    "SubscriptionCreate",
    "SubscriptionUpdate",
    "Payment",
    "PaymentCreate",
    "PaymentUpdate",
    "SubscriptionLog",
    "SubscriptionLogCreate",
    "GatewayCredentials",
    "Profile",
    "ProfileCardUpdate",
    "BillingSettings",
    "BillingAlertContent",
    "Plan",
]
