"""Subscription payment domain model (master_subscription_payments)"""
from datetime import datetime
from typing import Optional, Any, Dict
from pydantic import BaseModel


class PaymentBase(BaseModel):
    """Base payment fields"""
    subscription_id: str
    user_id: str
    gateway: str = "mercadopago"
    gateway_payment_id: Optional[str] = None
    status: str = "pending"
    gateway_status: Optional[str] = None
    gateway_response: Optional[Dict[str, Any]] = None
    payment_method: str = "credit_card"
    amount: float
    paid_at: Optional[datetime] = None
    refunded_at: Optional[datetime] = None
    decline_code: Optional[str] = None
    decline_type: Optional[str] = None
    user_message: Optional[str] = None
    attempt_number: Optional[int] = None
    idempotency_key: Optional[str] = None
    pix_qr_code: Optional[str] = None
    pix_qr_code_base64: Optional[str] = None
    pix_expires_at: Optional[datetime] = None
    boleto_url: Optional[str] = None
    boleto_barcode: Optional[str] = None
    boleto_digitable_line: Optional[str] = None
    boleto_expires_at: Optional[datetime] = None


class PaymentCreate(PaymentBase):
    """Payment creation model"""
    pass


class PaymentUpdate(BaseModel):
    """Payment update model - only explicitly set fields are written"""
    status: Optional[str] = None
    gateway_status: Optional[str] = None
    gateway_response: Optional[Dict[str, Any]] = None
    paid_at: Optional[datetime] = None
    refunded_at: Optional[datetime] = None
    decline_code: Optional[str] = None
    decline_type: Optional[str] = None
    user_message: Optional[str] = None
    updated_at: Optional[datetime] = None


class Payment(PaymentBase):
    """Complete payment model from database"""
    id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
