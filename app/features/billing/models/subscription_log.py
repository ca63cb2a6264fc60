"""Subscription audit log model (master_subscription_logs)"""
from datetime import datetime
from typing import Optional, Any, Dict
from pydantic import BaseModel


class SubscriptionLogBase(BaseModel):
    """Base audit log fields"""
    subscription_id: Optional[str] = None
    user_id: Optional[str] = None
    payment_id: Optional[str] = None
    event_type: str
    event_description: Optional[str] = None
    ip_address: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


class SubscriptionLogCreate(SubscriptionLogBase):
    """Audit log creation model"""
    pass


class SubscriptionLog(SubscriptionLogBase):
    """Complete audit log row; rows are never updated"""
    id: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
