"""Platform payment gateway credentials (master_payment_gateways)"""
from typing import Optional
from pydantic import BaseModel


class GatewayCredentials(BaseModel):
    """Active gateway configuration used for subscription charges"""
    id: str
    gateway_name: str = "mercadopago"
    display_name: Optional[str] = None
    environment: Optional[str] = None
    is_active: bool = True
    is_default: bool = False
    mercadopago_access_token: Optional[str] = None
    mercadopago_public_key: Optional[str] = None
    pagbank_token: Optional[str] = None
    pagbank_email: Optional[str] = None

    class Config:
        from_attributes = True
