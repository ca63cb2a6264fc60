"""Notification API endpoints"""
import logging

from fastapi import APIRouter, Depends

from app.features.notifications.email_service import EmailSender
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
from app.features.notifications.service import NotificationService
from app.infra.supabase import get_supabase_client
from app.middleware.auth import get_current_user_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


def get_notification_service() -> NotificationService:
    client = get_supabase_client()
    return NotificationService(
        sender=EmailSender(),
        merchants=MerchantRepository(client),
        tickets=TicketRepository(client),
        ticket_responses=TicketResponseRepository(client),
    )


@router.post("/order-confirmation", response_model=OrderConfirmationResponse)
async def send_order_confirmation(
    req: OrderConfirmationRequest,
    service: NotificationService = Depends(get_notification_service),
):
    """Send the customer confirmation and merchant new-order emails for a placed order"""
    logger.info(f"Sending order notifications for order {req.order_id}")
    return await service.send_order_confirmation(req)


@router.post("/tickets/{ticket_id}/respond", response_model=TicketReplyResponse)
async def respond_to_ticket(
    ticket_id: str,
    req: TicketReplyRequest,
    user_id: str = Depends(get_current_user_id),
    service: NotificationService = Depends(get_notification_service),
):
    return await service.reply_to_ticket(ticket_id, req, sent_by=user_id)
