"""Order confirmation and support ticket emails"""
import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import HTTPException

from app import config
from app.features.notifications.email_service import EmailSender
from app.features.notifications.exceptions import EmailDeliveryError
from app.features.notifications.models import TicketResponseCreate, TicketUpdate
from app.features.notifications.repositories import (
    MerchantRepository,
    TicketRepository,
    TicketResponseRepository,
)
from app.features.notifications.schemas import (
    OrderConfirmationRequest,
    OrderConfirmationResponse,
    TicketReplyRequest,
    TicketReplyResponse,
)
from app.features.notifications.templates import (
    render_customer_confirmation,
    render_merchant_new_order,
    render_ticket_response,
)

logger = logging.getLogger(__name__)

TICKET_STATUS_AWAITING_CUSTOMER = "aguardando_cliente"
RESPONSE_TYPE_EMAIL = "email_enviado"
DELIVERY_SENT = "enviado"
DELIVERY_FAILED = "falha"
TICKET_REPLY_SENT_MESSAGE = "E-mail enviado com sucesso!"


class NotificationService:
    def __init__(
        self,
        sender: EmailSender,
        merchants: MerchantRepository,
        tickets: TicketRepository,
        ticket_responses: TicketResponseRepository,
    ):
        self.sender = sender
        self.merchants = merchants
        self.tickets = tickets
        self.ticket_responses = ticket_responses

    async def send_order_confirmation(self, req: OrderConfirmationRequest) -> OrderConfirmationResponse:
        """Email the customer a confirmation and the merchant a new-order notice"""
        profile = await self.merchants.get_profile(req.store_owner_id)
        if profile is None:
            raise HTTPException(status_code=404, detail="Store owner not found")

        merchant_email = await self.merchants.get_email(req.store_owner_id)
        if not merchant_email:
            raise HTTPException(status_code=404, detail="Store owner email not found")

        store_name = profile.store_name or profile.full_name or ""

        customer_email_id = self.sender.send(
            config.ORDER_EMAIL_FROM,
            [req.customer_email],
            f"Pedido Confirmado - {store_name}",
            render_customer_confirmation(
                req.order_id, req.customer_name, store_name, req.order_items, req.total_amount
            ),
        )
        store_owner_email_id = self.sender.send(
            config.MERCHANT_EMAIL_FROM,
            [merchant_email],
            f"Novo Pedido Recebido - {store_name}",
            render_merchant_new_order(
                req.order_id,
                profile.full_name or store_name,
                req.customer_name,
                req.customer_email,
                req.order_items,
                req.total_amount,
            ),
        )

        logger.info(f"NotificationService: Order {req.order_id} notifications sent")
        return OrderConfirmationResponse(
            success=True,
            customer_email_id=customer_email_id,
            store_owner_email_id=store_owner_email_id,
        )

    async def reply_to_ticket(
        self,
        ticket_id: str,
        req: TicketReplyRequest,
        sent_by: Optional[str] = None,
    ) -> TicketReplyResponse:
        """
        Email a support reply, record the attempt and move the ticket to
        awaiting-customer.

        Raises:
            EmailDeliveryError: The provider refused the message (the failed
                attempt is still recorded)
        """
        ticket = await self.tickets.find_by_id(ticket_id)
        if ticket is None:
            raise HTTPException(status_code=404, detail="Ticket not found")

        protocol = req.ticket_protocol or ticket.protocolo or ticket_id[:8]
        record = TicketResponseCreate(
            ticket_id=ticket_id,
            tipo=RESPONSE_TYPE_EMAIL,
            assunto=req.subject,
            mensagem=req.message,
            enviado_por=sent_by,
            email_destinatario=req.to,
            status_envio=DELIVERY_SENT,
        )

        try:
            email_id = self.sender.send(
                config.SUPPORT_EMAIL_FROM,
                [req.to],
                req.subject,
                render_ticket_response(req.subject, req.message, protocol),
            )
        except EmailDeliveryError:
            record.status_envio = DELIVERY_FAILED
            await self.ticket_responses.create(record)
            raise

        # The email is out; bookkeeping failures must not turn this into an error
        try:
            await self.ticket_responses.create(record)
        except Exception:
            logger.error(f"NotificationService: Failed to record response for ticket {ticket_id}", exc_info=True)

        try:
            await self.tickets.update(ticket_id, TicketUpdate(
                status=TICKET_STATUS_AWAITING_CUSTOMER,
                updated_at=datetime.now(timezone.utc),
            ))
        except Exception:
            logger.error(f"NotificationService: Failed to update status of ticket {ticket_id}", exc_info=True)

        return TicketReplyResponse(success=True, email_id=email_id, message=TICKET_REPLY_SENT_MESSAGE)
