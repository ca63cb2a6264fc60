"""Request and response schemas for Notifications feature"""
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class OrderItem(BaseModel):
    product_name: str
    quantity: int
    product_price: float
    subtotal: float


class OrderConfirmationRequest(BaseModel):
    """Sent by checkout once an order is placed"""
    model_config = ConfigDict(populate_by_name=True)

    order_id: str = Field(..., alias="orderId")
    customer_email: str = Field(..., alias="customerEmail")
    customer_name: str = Field(..., alias="customerName")
    store_owner_id: str = Field(..., alias="storeOwnerId")
    total_amount: float = Field(..., alias="totalAmount")
    order_items: List[OrderItem] = Field(default_factory=list, alias="orderItems")


class OrderConfirmationResponse(BaseModel):
    success: bool
    customer_email_id: Optional[str] = None
    store_owner_email_id: Optional[str] = None


class TicketReplyRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    to: str = Field(..., min_length=3)
    subject: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)
    ticket_protocol: Optional[str] = Field(None, alias="ticketProtocolo")


class TicketReplyResponse(BaseModel):
    success: bool
    email_id: Optional[str] = None
    message: str
