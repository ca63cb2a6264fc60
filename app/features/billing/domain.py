"""Domain constants and enums for the Billing feature"""

from enum import Enum
from typing import Dict, List, Optional


class BillingCycle(str, Enum):
    """Billing cycle of a subscription"""
    MONTHLY = "monthly"
    ANNUAL = "annual"


class SubscriptionStatus(str, Enum):
    """Raw status stored on master_subscriptions"""
    ACTIVE = "active"
    PENDING = "pending"
    PAYMENT_PENDING = "payment_pending"
    PAST_DUE = "past_due"
    PAYMENT_FAILED = "payment_failed"
    # Written on a failed monthly charge. Kept verbatim: existing rows and
    # the storefront UI already use this spelling.
    INADIMPLENT = "inadimplent"
    SUSPENDED = "suspended"
    CANCELLED = "cancelled"


class BillingStatus(str, Enum):
    """User-facing billing state derived from a subscription"""
    ACTIVE = "active"
    PAST_DUE = "past_due"
    IN_GRACE_PERIOD = "in_grace_period"
    PROCESSING = "processing"
    DOWNGRADED = "downgraded"
    SUSPENDED = "suspended"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    """Local status of a subscription payment"""
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class DeclineType(str, Enum):
    HARD = "hard"
    SOFT = "soft"


class PaymentMethod(str, Enum):
    CREDIT_CARD = "credit_card"
    PIX = "pix"
    BOLETO = "boleto"


class GatewayName(str, Enum):
    MERCADOPAGO = "mercadopago"
    PAGBANK = "pagbank"


# Gateway payment status -> local payment status
GATEWAY_TO_PAYMENT_STATUS: Dict[str, PaymentStatus] = {
    "approved": PaymentStatus.PAID,
    "pending": PaymentStatus.PENDING,
    "in_process": PaymentStatus.PENDING,
    "rejected": PaymentStatus.FAILED,
    "cancelled": PaymentStatus.CANCELLED,
    "refunded": PaymentStatus.REFUNDED,
}

# Statuses the retry sweep works on
DELINQUENT_STATUSES = [SubscriptionStatus.PAST_DUE, SubscriptionStatus.INADIMPLENT]

# Subscriptions a validated card is attached to
CARD_ELIGIBLE_STATUSES = [
    SubscriptionStatus.ACTIVE,
    SubscriptionStatus.PENDING,
    SubscriptionStatus.PAYMENT_FAILED,
    SubscriptionStatus.PAST_DUE,
    SubscriptionStatus.INADIMPLENT,
]

# A user holding one of these cannot start another subscription
OPEN_SUBSCRIPTION_STATUSES = [
    SubscriptionStatus.ACTIVE,
    SubscriptionStatus.PENDING,
    SubscriptionStatus.INADIMPLENT,
]

DEFAULT_ANNUAL_DISCOUNT_PERCENT = 30
PIX_EXPIRATION_MINUTES = 30
BOLETO_EXPIRATION_DAYS = 3

DEFAULT_GRACE_PERIOD_DAYS_MONTHLY = 7
DEFAULT_GRACE_PERIOD_DAYS_ANNUAL = 14
DEFAULT_MAX_COMPENSATION_HOURS = 48

# Days after the start of the grace period on which a charge is retried
RETRY_SCHEDULE_DAYS_MONTHLY = [0, 1, 3, 6]
RETRY_SCHEDULE_DAYS_ANNUAL = [0, 2, 5, 9, 12, 14]
MAX_RETRY_COUNT_MONTHLY = 4
MAX_RETRY_COUNT_ANNUAL = 6

# Declines that will not succeed on an automatic retry
HARD_DECLINE_CODES = frozenset({
    "cc_rejected_card_disabled",
    "cc_rejected_card_type_not_allowed",
    "cc_rejected_duplicated_payment",
    "cc_rejected_high_risk",
    "cc_rejected_max_attempts",
    "cc_rejected_other_reason",
    "cc_rejected_blacklist",
    "cc_rejected_bad_filled_card_number",
    "cc_rejected_bad_filled_date",
    "cc_rejected_bad_filled_security_code",
    "cc_rejected_bad_filled_other",
    "cc_amount_rate_limit_exceeded",
    "expired_token",
    "invalid_installments",
    "invalid_payment_type",
})

# Messages shown on a failed subscription charge
CHARGE_DECLINE_MESSAGES: Dict[str, str] = {
    "cc_rejected_card_disabled": "Cartão bloqueado ou desativado. Atualize os dados do cartão.",
    "cc_rejected_insufficient_amount": "Saldo insuficiente. Tente novamente ou atualize o cartão.",
    "cc_rejected_bad_filled_card_number": "Número do cartão incorreto. Atualize os dados do cartão.",
    "cc_rejected_bad_filled_date": "Data de validade incorreta. Atualize os dados do cartão.",
    "cc_rejected_bad_filled_security_code": "Código de segurança incorreto. Tente novamente.",
    "cc_rejected_high_risk": "Pagamento recusado por segurança. Contate seu banco.",
    "cc_rejected_call_for_authorize": "Autorização necessária. Contate seu banco.",
    "cc_rejected_max_attempts": "Limite de tentativas excedido. Aguarde ou use outro cartão.",
    "cc_rejected_duplicated_payment": "Pagamento duplicado detectado.",
    "expired_token": "Sessão expirada. Atualize os dados do cartão.",
}
DEFAULT_CHARGE_DECLINE_MESSAGE = (
    "Pagamento recusado pelo emissor. Atualize seu cartão para evitar a suspensão do plano."
)

# Messages shown when a card fails the validation authorization
CARD_VALIDATION_MESSAGES: Dict[str, str] = {
    "cc_rejected_insufficient_amount": "Saldo insuficiente no cartão",
    "cc_rejected_bad_filled_card_number": "Número do cartão inválido",
    "cc_rejected_bad_filled_date": "Data de validade inválida",
    "cc_rejected_bad_filled_security_code": "Código de segurança inválido",
    "cc_rejected_card_disabled": "Cartão desabilitado",
    "cc_rejected_high_risk": "Pagamento recusado por segurança",
}
# Messages shown when the first charge of a new subscription is declined
CHECKOUT_DECLINE_MESSAGES: Dict[str, str] = {
    "cc_rejected_card_disabled": "Cartão bloqueado ou desativado. Verifique os dados do cartão.",
    "cc_rejected_insufficient_amount": "Saldo insuficiente. Tente novamente ou use outro cartão.",
    "cc_rejected_bad_filled_card_number": "Número do cartão incorreto. Verifique os dados.",
    "cc_rejected_bad_filled_date": "Data de validade incorreta. Verifique os dados.",
    "cc_rejected_bad_filled_security_code": "Código de segurança incorreto. Tente novamente.",
    "cc_rejected_high_risk": "Pagamento recusado por segurança. Contate seu banco.",
    "cc_rejected_call_for_authorize": "Autorização necessária. Contate seu banco.",
    "expired_token": "Sessão expirada. Tente novamente.",
}
DEFAULT_CHECKOUT_DECLINE_MESSAGE = "Pagamento recusado pelo emissor. Verifique os dados do cartão."

DEFAULT_CARD_VALIDATION_MESSAGE = "O banco emissor não autorizou. Tente outro cartão."
CARD_VALIDATION_ERROR_MESSAGE = "Não foi possível validar o cartão. Verifique os dados."
CARD_VALIDATION_SUCCESS_MESSAGE = "Cartão validado com sucesso"
NO_SAVED_CARD_MESSAGE = "Nenhum cartão cadastrado. Adicione um cartão para continuar."

PLAN_DISPLAY_NAMES: Dict[str, str] = {
    "gratis": "Grátis",
    "free": "Grátis",
    "pro": "PRO",
    "premium": "Premium",
}


def is_hard_decline(status_detail: Optional[str]) -> bool:
    """Whether a gateway decline code should stop automatic retries"""
    if not status_detail:
        return False
    return status_detail in HARD_DECLINE_CODES


def charge_decline_message(status_detail: Optional[str]) -> str:
    return CHARGE_DECLINE_MESSAGES.get(status_detail or "", DEFAULT_CHARGE_DECLINE_MESSAGE)


def checkout_decline_message(status_detail: Optional[str]) -> str:
    return CHECKOUT_DECLINE_MESSAGES.get(status_detail or "", DEFAULT_CHECKOUT_DECLINE_MESSAGE)


def card_validation_message(status_detail: Optional[str]) -> str:
    return CARD_VALIDATION_MESSAGES.get(status_detail or "", DEFAULT_CARD_VALIDATION_MESSAGE)


def plan_display_name(plan_id: Optional[str]) -> str:
    if not plan_id:
        return ""
    return PLAN_DISPLAY_NAMES.get(plan_id.lower(), plan_id)


def grace_period_days(billing_cycle: Optional[str], monthly: int, annual: int) -> int:
    return monthly if billing_cycle == BillingCycle.MONTHLY.value else annual


def retry_schedule(billing_cycle: Optional[str]) -> List[int]:
    if billing_cycle == BillingCycle.MONTHLY.value:
        return RETRY_SCHEDULE_DAYS_MONTHLY
    return RETRY_SCHEDULE_DAYS_ANNUAL


def max_retry_count(billing_cycle: Optional[str]) -> int:
    if billing_cycle == BillingCycle.MONTHLY.value:
        return MAX_RETRY_COUNT_MONTHLY
    return MAX_RETRY_COUNT_ANNUAL
