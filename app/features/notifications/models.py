"""Support ticket models (tickets_landing_page, ticket_landing_responses)"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class Ticket(BaseModel):
    id: str
    protocolo: Optional[str] = None
    nome: Optional[str] = None
    email: Optional[str] = None
    status: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
        extra = "ignore"


class TicketUpdate(BaseModel):
    status: Optional[str] = None
    updated_at: Optional[datetime] = None


class TicketResponseCreate(BaseModel):
    """One email sent (or attempted) in reply to a ticket"""
    ticket_id: str
    tipo: str
    assunto: str
    mensagem: str
    enviado_por: Optional[str] = None
    email_destinatario: str
    status_envio: str


class TicketResponse(TicketResponseCreate):
    id: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
