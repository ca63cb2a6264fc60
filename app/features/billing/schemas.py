"""Request and response schemas for Billing feature"""
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, ConfigDict

from app.features.billing.domain import BillingStatus
from app.features.billing.models.billing_settings import BillingAlertContent, BillingSettings
from app.features.billing.models.payment import Payment
from app.features.billing.models.subscription import Subscription


class BillingInfo(BaseModel):
    """Billing state of the merchant's subscription as displayed in the dashboard"""
    status: BillingStatus
    billing_cycle: Optional[str] = None
    plan_id: Optional[str] = None
    plan_name: str = ""
    grace_period_ends_at: Optional[datetime] = None
    days_remaining: int = 0
    previous_plan_id: Optional[str] = None
    downgrade_reason: Optional[str] = None
    requires_card_update: bool = False
    no_charge: bool = False


class BillingAlertsResponse(BaseModel):
    alerts: Dict[str, BillingAlertContent]
    settings: BillingSettings


class WebhookResponse(BaseModel):
    """Always returned with HTTP 200 so the gateway stops redelivering"""
    received: bool = True
    processed: bool = False
    message: Optional[str] = None
    payment_id: Optional[str] = None
    subscription_id: Optional[str] = None
    payment_status: Optional[str] = None
    decline_type: Optional[str] = None


class ValidateCardRequest(BaseModel):
    """Request model for card validation"""
    model_config = ConfigDict(populate_by_name=True)

    card_token: Optional[str] = Field(None, alias="cardToken")
    payment_method_id: Optional[str] = Field(None, alias="paymentMethodId")
    holder_name: Optional[str] = Field(None, alias="holderName")
    expiration_month: Optional[str] = Field(None, alias="expirationMonth")
    expiration_year: Optional[str] = Field(None, alias="expirationYear")
    last_four_digits: Optional[str] = Field(None, alias="lastFourDigits")


class CardInfo(BaseModel):
    brand: Optional[str] = None
    last_four: Optional[str] = None
    holder_name: Optional[str] = None
    expiry: Optional[str] = None


class ValidateCardResponse(BaseModel):
    """``status`` is one of success, rejected, error"""
    success: bool
    status: str
    message: Optional[str] = None
    error: Optional[str] = None
    card_info: Optional[CardInfo] = None


class CheckStatusRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    subscription_id: Optional[str] = Field(None, alias="subscriptionId")


class CheckStatusResponse(BaseModel):
    found: bool
    message: Optional[str] = None
    subscription: Optional[Subscription] = None
    latest_payment: Optional[Payment] = None
    billing: Optional[BillingInfo] = None


class RetryResult(BaseModel):
    """Outcome of the retry sweep for one subscription"""
    subscription_id: str
    action: str
    reason: Optional[str] = None
    retry_count: Optional[int] = None
    next_retry_at: Optional[datetime] = None


class RetryPaymentsResponse(BaseModel):
    success: bool = True
    processed: int
    results: List[RetryResult]


class CreatePixRequest(BaseModel):
    """Request model for a PIX subscription charge"""
    model_config = ConfigDict(populate_by_name=True)

    subscription_id: Optional[str] = Field(None, alias="subscriptionId")
    gateway: Optional[str] = None  # "mercadopago" or "pagbank"; subscription gateway when omitted


class CreatePixResponse(BaseModel):
    payment_id: str
    subscription_id: str
    gateway: str
    gateway_payment_id: str
    amount: float
    qr_code: str
    qr_code_base64: Optional[str] = None
    expires_at: datetime


class CreateSubscriptionRequest(BaseModel):
    """Checkout request for a new platform subscription"""
    model_config = ConfigDict(populate_by_name=True)

    plan_id: Optional[str] = Field(None, alias="planId")
    billing_cycle: Optional[str] = Field(None, alias="billingCycle")
    payment_method: Optional[str] = Field(None, alias="paymentMethod")
    card_token: Optional[str] = Field(None, alias="cardToken")
    payment_method_id: Optional[str] = Field(None, alias="paymentMethodId")
    card_brand: Optional[str] = Field(None, alias="cardBrand")
    card_last_four: Optional[str] = Field(None, alias="cardLastFour")
    installments: Optional[int] = None
    recurring_consent: bool = Field(False, alias="recurringConsent")
    origin: Optional[str] = None


class SubscriptionSummary(BaseModel):
    id: str
    plan_id: str
    billing_cycle: str
    status: str
    total_amount: float


class SubscriptionPaymentResult(BaseModel):
    """First charge of a new subscription; PIX and boleto fields only for those methods"""
    success: bool
    status: str
    payment_method: str
    status_detail: Optional[str] = None
    payment_id: Optional[str] = None
    gateway_payment_id: Optional[str] = None
    amount: Optional[float] = None
    pix_qr_code: Optional[str] = None
    pix_qr_code_base64: Optional[str] = None
    pix_expires_at: Optional[datetime] = None
    boleto_url: Optional[str] = None
    boleto_barcode: Optional[str] = None
    boleto_digitable_line: Optional[str] = None
    boleto_expires_at: Optional[datetime] = None


class CreateSubscriptionResponse(BaseModel):
    success: bool = True
    subscription: SubscriptionSummary
    payment: SubscriptionPaymentResult
    message: str
