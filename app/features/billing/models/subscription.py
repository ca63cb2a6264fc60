"""Subscription domain model (master_subscriptions)"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class SubscriptionBase(BaseModel):
    """Base subscription fields"""
    user_id: str
    plan_id: str
    billing_cycle: str = "monthly"
    status: str = "pending"
    gateway: str = "mercadopago"
    monthly_price: float = 0
    total_amount: float = 0
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    started_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    grace_period_ends_at: Optional[datetime] = None
    previous_plan_id: Optional[str] = None
    downgrade_reason: Optional[str] = None
    downgraded_at: Optional[datetime] = None
    no_charge: Optional[bool] = False
    requires_card_update: Optional[bool] = False
    decline_type: Optional[str] = None
    last_decline_code: Optional[str] = None
    last_decline_message: Optional[str] = None
    retry_count: Optional[int] = 0
    last_retry_at: Optional[datetime] = None
    next_retry_at: Optional[datetime] = None
    card_token: Optional[str] = None
    card_brand: Optional[str] = None
    card_last_four: Optional[str] = None
    card_holder_name: Optional[str] = None
    card_expiry: Optional[str] = None
    gateway_customer_id: Optional[str] = None
    discount_percent: Optional[float] = 0
    origin: Optional[str] = None
    recurring_consent_accepted: Optional[bool] = False
    recurring_consent_accepted_at: Optional[datetime] = None
    recurring_consent_ip: Optional[str] = None


class SubscriptionCreate(SubscriptionBase):
    """Subscription creation model"""
    pass


class SubscriptionUpdate(BaseModel):
    """Subscription update model - only explicitly set fields are written"""
    status: Optional[str] = None
    started_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    grace_period_ends_at: Optional[datetime] = None
    requires_card_update: Optional[bool] = None
    decline_type: Optional[str] = None
    last_decline_code: Optional[str] = None
    last_decline_message: Optional[str] = None
    retry_count: Optional[int] = None
    last_retry_at: Optional[datetime] = None
    next_retry_at: Optional[datetime] = None
    card_token: Optional[str] = None
    card_brand: Optional[str] = None
    card_last_four: Optional[str] = None
    card_holder_name: Optional[str] = None
    card_expiry: Optional[str] = None
    gateway_customer_id: Optional[str] = None
    updated_at: Optional[datetime] = None


class Subscription(SubscriptionBase):
    """Complete subscription model from database"""
    id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
