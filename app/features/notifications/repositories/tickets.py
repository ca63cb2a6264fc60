"""Support ticket repositories"""
from supabase import Client  # type: ignore

from app.features.notifications.models import (
    Ticket,
    TicketResponse,
    TicketResponseCreate,
    TicketUpdate,
)
from app.infra.supabase.repositories.base import BaseRepository


class TicketRepository(BaseRepository[Ticket, Ticket, TicketUpdate]):
    def __init__(self, client: Client):
        super().__init__(client, "tickets_landing_page", Ticket)


class TicketResponseRepository(BaseRepository[TicketResponse, TicketResponseCreate, TicketResponseCreate]):
    """Insert-only record of replies sent for a ticket"""

    def __init__(self, client: Client):
        super().__init__(client, "ticket_landing_responses", TicketResponse)
