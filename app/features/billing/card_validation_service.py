"""Card validation through a zero-capture authorization"""
import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import HTTPException

from app.config import CARD_VALIDATION_DESCRIPTION, FALLBACK_PAYER_EMAIL
from app.features.billing.domain import (
    CARD_ELIGIBLE_STATUSES,
    CARD_VALIDATION_ERROR_MESSAGE,
    CARD_VALIDATION_SUCCESS_MESSAGE,
    GatewayName,
    card_validation_message,
)
from app.features.billing.exceptions import GatewayError
from app.features.billing.models.profile import ProfileCardUpdate
from app.features.billing.models.subscription import SubscriptionUpdate
from app.features.billing.models.subscription_log import SubscriptionLogCreate
from app.features.billing.repositories import BillingRepositories
from app.features.billing.schemas import CardInfo, ValidateCardRequest, ValidateCardResponse
from app.infra.gateways import MercadoPagoClient, build_gateway_client

logger = logging.getLogger(__name__)

VALIDATION_AMOUNT = 1.00
AUTHORIZED_STATUSES = ("authorized", "approved")


def format_card_expiry(month: Optional[str], year: Optional[str]) -> Optional[str]:
    """MM/YY, or None when either part is missing"""
    if not month or not year:
        return None
    return f"{str(month).zfill(2)}/{str(year)[-2:]}"


class CardValidationService:
    """Confirms a card is chargeable without moving funds

    R$ 1.00 is authorized with ``capture=false`` and the authorization is
    cancelled right away.
    """

    def __init__(self, repos: BillingRepositories, gateway: Optional[MercadoPagoClient] = None):
        self.repos = repos
        self._gateway = gateway

    async def _get_gateway(self) -> MercadoPagoClient:
        if self._gateway is None:
            credentials = await self.repos.gateways.find_default_active()
            self._gateway = build_gateway_client(credentials, GatewayName.MERCADOPAGO.value)
        return self._gateway

    async def validate_card(
        self,
        user_id: str,
        req: ValidateCardRequest,
        payer_email: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> ValidateCardResponse:
        """
        Raises:
            HTTPException: 400 when the card token or payment method is missing
            GatewayConfigurationError: No Mercado Pago credentials configured
        """
        if not req.card_token or not req.payment_method_id:
            raise HTTPException(status_code=400, detail="cardToken and paymentMethodId are required")

        now = now or datetime.now(timezone.utc)
        gateway = await self._get_gateway()
        idempotency_key = f"validate-{user_id}-{int(now.timestamp() * 1000)}"

        try:
            authorization = await gateway.authorize_card(
                card_token=req.card_token,
                payment_method_id=req.payment_method_id,
                amount=VALIDATION_AMOUNT,
                description=CARD_VALIDATION_DESCRIPTION,
                payer_email=payer_email or FALLBACK_PAYER_EMAIL,
                idempotency_key=idempotency_key,
            )
        except GatewayError as e:
            logger.error(f"CardValidationService: Authorization request failed for user {user_id}: {e} {e.body}")
            return ValidateCardResponse(success=False, status="error", error=CARD_VALIDATION_ERROR_MESSAGE)

        logger.info(
            f"CardValidationService: Authorization {authorization.id} for user {user_id} "
            f"returned {authorization.status} ({authorization.status_detail})"
        )

        if authorization.status == "rejected":
            return ValidateCardResponse(
                success=False,
                status="rejected",
                error=card_validation_message(authorization.status_detail),
            )

        if authorization.status not in AUTHORIZED_STATUSES:
            return ValidateCardResponse(success=False, status="error", error=CARD_VALIDATION_ERROR_MESSAGE)

        try:
            await gateway.cancel_payment(authorization.id)
        except GatewayError as e:
            # The hold expires on its own; the card is still valid
            logger.warning(f"CardValidationService: Failed to cancel authorization {authorization.id}: {e}")

        card_info = CardInfo(
            brand=req.payment_method_id,
            last_four=req.last_four_digits,
            holder_name=req.holder_name,
            expiry=format_card_expiry(req.expiration_month, req.expiration_year),
        )
        await self._store_card(user_id, req.card_token, card_info, now)

        return ValidateCardResponse(
            success=True,
            status="success",
            message=CARD_VALIDATION_SUCCESS_MESSAGE,
            card_info=card_info,
        )

    async def _store_card(self, user_id: str, card_token: str, card_info: CardInfo, now: datetime) -> None:
        """Attach card metadata to the latest eligible subscription and to the profile"""
        subscription = await self.repos.subscriptions.find_latest_for_user(
            user_id, statuses=CARD_ELIGIBLE_STATUSES
        )

        if subscription is None:
            logger.info(f"CardValidationService: No eligible subscription for user {user_id}, card kept on profile only")
        else:
            await self.repos.subscriptions.update(subscription.id, SubscriptionUpdate(
                card_token=card_token,
                card_brand=card_info.brand,
                card_last_four=card_info.last_four,
                card_holder_name=card_info.holder_name,
                card_expiry=card_info.expiry,
                requires_card_update=False,
                updated_at=now,
            ))
            await self.repos.logs.append(SubscriptionLogCreate(
                subscription_id=subscription.id,
                user_id=user_id,
                event_type="card_updated",
                event_description=f"Card {card_info.brand} ending in {card_info.last_four} validated",
                metadata={
                    "card_brand": card_info.brand,
                    "card_last_four": card_info.last_four,
                    "previous_card_last_four": subscription.card_last_four,
                },
            ))

        try:
            await self.repos.profiles.update_payment_card(user_id, ProfileCardUpdate(
                payment_card_last_four=card_info.last_four,
                payment_card_brand=card_info.brand,
                payment_card_holder=card_info.holder_name,
                payment_card_expiry=card_info.expiry,
                payment_card_validated_at=now,
            ))
        except Exception:
            logger.error(f"CardValidationService: Failed to store card on profile {user_id}", exc_info=True)
