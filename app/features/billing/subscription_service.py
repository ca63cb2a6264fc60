"""Checkout: create a platform subscription and take its first payment

Monthly plans are card-only and need recurring-charge consent. Annual plans
can be paid by card (captured immediately), PIX or boleto. PIX and boleto
leave the subscription pending; the webhook or the poller activates it once
the gateway reports the payment approved.
"""
import calendar
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import HTTPException

from app.config import FALLBACK_PAYER_EMAIL
from app.features.billing.domain import (
    BOLETO_EXPIRATION_DAYS,
    OPEN_SUBSCRIPTION_STATUSES,
    PIX_EXPIRATION_MINUTES,
    BillingCycle,
    DeclineType,
    GatewayName,
    PaymentMethod,
    PaymentStatus,
    SubscriptionStatus,
    checkout_decline_message,
    is_hard_decline,
)
from app.features.billing.exceptions import GatewayError
from app.features.billing.models.payment import Payment, PaymentCreate
from app.features.billing.models.plan import Plan
from app.features.billing.models.subscription import Subscription, SubscriptionCreate, SubscriptionUpdate
from app.features.billing.models.subscription_log import SubscriptionLogCreate
from app.features.billing.repositories import BillingRepositories
from app.features.billing.schemas import (
    CreateSubscriptionRequest,
    CreateSubscriptionResponse,
    SubscriptionPaymentResult,
    SubscriptionSummary,
)
from app.infra.gateways import MercadoPagoClient, build_gateway_client

logger = logging.getLogger(__name__)

ACTIVATED_MESSAGE = "Assinatura ativada com sucesso!"
PENDING_MESSAGES = {
    PaymentMethod.PIX.value: "PIX gerado! Escaneie o QR Code para pagar.",
    PaymentMethod.BOLETO.value: "Boleto gerado! Pague até a data de vencimento.",
}
PROCESSING_MESSAGE = "Processando pagamento..."


def add_months(value: datetime, months: int) -> datetime:
    """Same day ``months`` later, clamped to the last day of a shorter month"""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def period_end(start: datetime, billing_cycle: str) -> datetime:
    return add_months(start, 1 if billing_cycle == BillingCycle.MONTHLY.value else 12)


class SubscriptionCheckoutService:
    def __init__(self, repos: BillingRepositories, gateway: Optional[MercadoPagoClient] = None):
        self.repos = repos
        self._gateway = gateway

    async def _get_gateway(self) -> MercadoPagoClient:
        if self._gateway is None:
            credentials = await self.repos.gateways.find_default_active()
            self._gateway = build_gateway_client(credentials, GatewayName.MERCADOPAGO.value)
        return self._gateway

    @staticmethod
    def _validate_request(req: CreateSubscriptionRequest) -> None:
        if not req.plan_id or not req.billing_cycle or not req.payment_method:
            raise HTTPException(status_code=400, detail="Dados incompletos para criação da assinatura")

        if req.billing_cycle not in (BillingCycle.MONTHLY.value, BillingCycle.ANNUAL.value):
            raise HTTPException(status_code=400, detail=f"Invalid billing cycle: {req.billing_cycle}")

        if req.payment_method not in [m.value for m in PaymentMethod]:
            raise HTTPException(status_code=400, detail=f"Invalid payment method: {req.payment_method}")

        if req.billing_cycle == BillingCycle.MONTHLY.value:
            if not req.recurring_consent:
                raise HTTPException(status_code=400, detail="Consentimento para cobrança recorrente é obrigatório")
            if req.payment_method != PaymentMethod.CREDIT_CARD.value:
                raise HTTPException(status_code=400, detail="Plano mensal aceita apenas cartão de crédito")

        if req.payment_method == PaymentMethod.CREDIT_CARD.value and not req.card_token:
            raise HTTPException(status_code=400, detail="Token do cartão é obrigatório")

    async def create_subscription(
        self,
        user_id: str,
        req: CreateSubscriptionRequest,
        payer_email: Optional[str] = None,
        client_ip: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> CreateSubscriptionResponse:
        """
        Raises:
            HTTPException: 400 on an invalid request or a declined card,
                404 for an unknown plan, 409 when the user already has an open subscription
            GatewayConfigurationError: No Mercado Pago credentials configured
            GatewayError: The gateway could not be reached or refused the PIX/boleto charge
        """
        self._validate_request(req)
        now = now or datetime.now(timezone.utc)

        plan = await self.repos.plans.find_active(req.plan_id)
        if plan is None:
            raise HTTPException(status_code=404, detail="Plano não encontrado")

        existing = await self.repos.subscriptions.find_latest_for_user(user_id, statuses=OPEN_SUBSCRIPTION_STATUSES)
        if existing is not None:
            raise HTTPException(status_code=409, detail={
                "error": "Você já possui uma assinatura ativa. Cancele-a primeiro para criar uma nova.",
                "existing_subscription_id": existing.id,
            })

        gateway = await self._get_gateway()
        profile = await self.repos.profiles.find_by_id(user_id)

        subscription = await self._create_pending(user_id, req, plan, client_ip, now)
        amount = subscription.total_amount
        idempotency_key = f"sub-{user_id}-{req.plan_id}-{req.billing_cycle}-{int(now.timestamp() * 1000)}"
        payer = {
            "payer_email": (profile.email if profile else None) or payer_email or FALLBACK_PAYER_EMAIL,
            "payer_name": (profile.full_name if profile else None) or "Cliente",
            "payer_tax_id": (profile.cpf_cnpj if profile else None) or "",
        }
        prefix = "Assinatura Anual" if req.billing_cycle == BillingCycle.ANNUAL.value else "Assinatura"
        description = f"{prefix} {plan.display_name or plan.plan_id}"

        if req.payment_method == PaymentMethod.CREDIT_CARD.value:
            result = await self._charge_card(gateway, subscription, req, amount, description, idempotency_key, payer, now)
        elif req.payment_method == PaymentMethod.PIX.value:
            result = await self._generate_pix(gateway, subscription, amount, description, idempotency_key, payer, now)
        else:
            result = await self._generate_boleto(gateway, subscription, amount, description, idempotency_key, payer, now)

        current = await self.repos.subscriptions.find_by_id(subscription.id) or subscription
        if result.status == "approved":
            message = ACTIVATED_MESSAGE
        else:
            message = PENDING_MESSAGES.get(result.payment_method, PROCESSING_MESSAGE)

        return CreateSubscriptionResponse(
            subscription=SubscriptionSummary(
                id=current.id,
                plan_id=current.plan_id,
                billing_cycle=current.billing_cycle,
                status=current.status,
                total_amount=current.total_amount,
            ),
            payment=result,
            message=message,
        )

    async def _create_pending(
        self,
        user_id: str,
        req: CreateSubscriptionRequest,
        plan: Plan,
        client_ip: Optional[str],
        now: datetime,
    ) -> Subscription:
        annual = req.billing_cycle == BillingCycle.ANNUAL.value
        subscription = await self.repos.subscriptions.create(SubscriptionCreate(
            user_id=user_id,
            plan_id=plan.plan_id,
            billing_cycle=req.billing_cycle,
            monthly_price=round(float(plan.monthly_price), 2),
            total_amount=plan.price_for(req.billing_cycle),
            discount_percent=plan.discount_percent if annual else 0,
            status=SubscriptionStatus.PENDING.value,
            gateway=GatewayName.MERCADOPAGO.value,
            origin=req.origin or "checkout",
            current_period_start=now,
            current_period_end=period_end(now, req.billing_cycle),
            recurring_consent_accepted=req.recurring_consent,
            recurring_consent_accepted_at=now if req.recurring_consent else None,
            recurring_consent_ip=client_ip,
            card_brand=req.card_brand,
            card_last_four=req.card_last_four,
        ))
        logger.info(
            f"SubscriptionCheckoutService: Created pending {plan.plan_id} {req.billing_cycle} "
            f"subscription {subscription.id} for user {user_id} (R$ {subscription.total_amount:.2f})"
        )

        await self.repos.logs.append(SubscriptionLogCreate(
            subscription_id=subscription.id,
            user_id=user_id,
            event_type="subscription_created",
            event_description=f"Subscription {plan.plan_id.upper()} {req.billing_cycle} created",
            ip_address=client_ip,
            metadata={
                "plan_id": plan.plan_id,
                "billing_cycle": req.billing_cycle,
                "payment_method": req.payment_method,
                "origin": req.origin,
            },
        ))
        return subscription

    async def _charge_card(
        self,
        gateway: MercadoPagoClient,
        subscription: Subscription,
        req: CreateSubscriptionRequest,
        amount: float,
        description: str,
        idempotency_key: str,
        payer: dict,
        now: datetime,
    ) -> SubscriptionPaymentResult:
        installments = 1
        if subscription.billing_cycle == BillingCycle.ANNUAL.value:
            installments = req.installments or 1

        try:
            charge = await gateway.create_card_payment(
                card_token=req.card_token,
                payment_method_id=req.payment_method_id or "visa",
                amount=amount,
                description=description,
                reference=subscription.id,
                idempotency_key=idempotency_key,
                installments=installments,
                **payer,
            )
        except GatewayError as e:
            if e.is_transient:
                # Outcome unknown; leave the subscription pending rather than cancel a possibly paid charge
                logger.error(f"SubscriptionCheckoutService: Card charge for {subscription.id} did not complete: {e}")
                raise
            detail = e.body.get("status_detail") if isinstance(e.body, dict) else None
            await self._decline(subscription, detail or "unknown_error", e.body, now)

        if charge.status == "rejected":
            await self._decline(subscription, charge.status_detail or "unknown_error", charge.raw, now)

        approved = charge.status == "approved"
        payment = await self.repos.payments.create(PaymentCreate(
            subscription_id=subscription.id,
            user_id=subscription.user_id,
            gateway=GatewayName.MERCADOPAGO.value,
            gateway_payment_id=charge.id,
            status=PaymentStatus.PAID.value if approved else PaymentStatus.PENDING.value,
            gateway_status=charge.status,
            gateway_response=charge.raw,
            payment_method=PaymentMethod.CREDIT_CARD.value,
            amount=amount,
            paid_at=(charge.date_approved or now) if approved else None,
            attempt_number=1,
            idempotency_key=idempotency_key,
        ))
        logger.info(
            f"SubscriptionCheckoutService: Card charge {charge.id} for subscription {subscription.id} "
            f"returned {charge.status} ({charge.status_detail})"
        )

        if approved:
            payer_id = (charge.raw.get("payer") or {}).get("id")
            await self._activate(subscription, payment, payer_id, now)

        return SubscriptionPaymentResult(
            success=approved,
            status=charge.status,
            status_detail=charge.status_detail,
            payment_method=PaymentMethod.CREDIT_CARD.value,
            payment_id=payment.id,
            gateway_payment_id=charge.id,
            amount=amount,
        )

    async def _decline(self, subscription: Subscription, status_detail: str, gateway_body, now: datetime) -> None:
        """Cancel the new subscription after a declined first charge and answer 400"""
        decline_type = DeclineType.HARD if is_hard_decline(status_detail) else DeclineType.SOFT
        user_message = checkout_decline_message(status_detail)

        await self.repos.subscriptions.update(subscription.id, SubscriptionUpdate(
            status=SubscriptionStatus.CANCELLED.value,
            cancelled_at=now,
            decline_type=decline_type.value,
            last_decline_code=status_detail,
            last_decline_message=user_message,
            updated_at=now,
        ))
        await self.repos.logs.append(SubscriptionLogCreate(
            subscription_id=subscription.id,
            user_id=subscription.user_id,
            event_type="payment_failed",
            event_description=f"First charge rejected: {status_detail}",
            metadata={
                "decline_type": decline_type.value,
                "user_message": user_message,
                "gateway_response": gateway_body,
            },
        ))
        logger.info(f"SubscriptionCheckoutService: Subscription {subscription.id} cancelled, card declined ({status_detail})")

        raise HTTPException(status_code=400, detail={
            "error": user_message,
            "status_detail": status_detail,
            "decline_type": decline_type.value,
        })

    async def _activate(self, subscription: Subscription, payment: Payment, payer_id, now: datetime) -> None:
        update = SubscriptionUpdate(status=SubscriptionStatus.ACTIVE.value, started_at=now, updated_at=now)
        if payer_id is not None:
            update.gateway_customer_id = str(payer_id)

        activated = await self.repos.subscriptions.update_if_status(
            subscription.id, SubscriptionStatus.PENDING.value, update
        )
        if activated is None:
            logger.info(f"SubscriptionCheckoutService: Subscription {subscription.id} already moved on, not activating")
            return

        await self.repos.logs.append(SubscriptionLogCreate(
            subscription_id=subscription.id,
            user_id=subscription.user_id,
            payment_id=payment.id,
            event_type="subscription_activated",
            event_description="Subscription activated",
            metadata={"gateway_payment_id": payment.gateway_payment_id},
        ))

    async def _generate_pix(
        self,
        gateway: MercadoPagoClient,
        subscription: Subscription,
        amount: float,
        description: str,
        idempotency_key: str,
        payer: dict,
        now: datetime,
    ) -> SubscriptionPaymentResult:
        expires_at = now + timedelta(minutes=PIX_EXPIRATION_MINUTES)
        charge = await gateway.create_pix_payment(
            amount=amount,
            description=description,
            reference=subscription.id,
            expires_at=expires_at,
            idempotency_key=idempotency_key,
            **payer,
        )

        payment = await self.repos.payments.create(PaymentCreate(
            subscription_id=subscription.id,
            user_id=subscription.user_id,
            gateway=GatewayName.MERCADOPAGO.value,
            gateway_payment_id=charge.gateway_payment_id,
            status=PaymentStatus.PENDING.value,
            gateway_status=charge.raw.get("status"),
            gateway_response=charge.raw,
            payment_method=PaymentMethod.PIX.value,
            amount=amount,
            attempt_number=1,
            idempotency_key=idempotency_key,
            pix_qr_code=charge.qr_code,
            pix_qr_code_base64=charge.qr_code_base64,
            pix_expires_at=expires_at,
        ))
        await self.repos.logs.append(SubscriptionLogCreate(
            subscription_id=subscription.id,
            user_id=subscription.user_id,
            payment_id=payment.id,
            event_type="pix_generated",
            event_description="PIX generated, awaiting payment",
            metadata={"gateway_payment_id": charge.gateway_payment_id, "expires_at": expires_at.isoformat()},
        ))

        return SubscriptionPaymentResult(
            success=True,
            status=PaymentStatus.PENDING.value,
            payment_method=PaymentMethod.PIX.value,
            payment_id=payment.id,
            gateway_payment_id=charge.gateway_payment_id,
            amount=amount,
            pix_qr_code=charge.qr_code,
            pix_qr_code_base64=charge.qr_code_base64,
            pix_expires_at=expires_at,
        )

    async def _generate_boleto(
        self,
        gateway: MercadoPagoClient,
        subscription: Subscription,
        amount: float,
        description: str,
        idempotency_key: str,
        payer: dict,
        now: datetime,
    ) -> SubscriptionPaymentResult:
        expires_at = now + timedelta(days=BOLETO_EXPIRATION_DAYS)
        charge = await gateway.create_boleto_payment(
            amount=amount,
            description=description,
            reference=subscription.id,
            expires_at=expires_at,
            idempotency_key=idempotency_key,
            **payer,
        )

        payment = await self.repos.payments.create(PaymentCreate(
            subscription_id=subscription.id,
            user_id=subscription.user_id,
            gateway=GatewayName.MERCADOPAGO.value,
            gateway_payment_id=charge.gateway_payment_id,
            status=PaymentStatus.PENDING.value,
            gateway_status=charge.status,
            gateway_response=charge.raw,
            payment_method=PaymentMethod.BOLETO.value,
            amount=amount,
            attempt_number=1,
            idempotency_key=idempotency_key,
            boleto_url=charge.url,
            boleto_barcode=charge.barcode,
            boleto_digitable_line=charge.digitable_line,
            boleto_expires_at=expires_at,
        ))
        await self.repos.logs.append(SubscriptionLogCreate(
            subscription_id=subscription.id,
            user_id=subscription.user_id,
            payment_id=payment.id,
            event_type="boleto_generated",
            event_description="Boleto generated, awaiting payment",
            metadata={"gateway_payment_id": charge.gateway_payment_id, "expires_at": expires_at.isoformat()},
        ))

        return SubscriptionPaymentResult(
            success=True,
            status=PaymentStatus.PENDING.value,
            payment_method=PaymentMethod.BOLETO.value,
            payment_id=payment.id,
            gateway_payment_id=charge.gateway_payment_id,
            amount=amount,
            boleto_url=charge.url,
            boleto_barcode=charge.barcode,
            boleto_digitable_line=charge.digitable_line,
            boleto_expires_at=expires_at,
        )
