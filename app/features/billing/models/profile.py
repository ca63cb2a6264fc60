"""Merchant profile model (profiles), billing-relevant columns only"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class Profile(BaseModel):
    id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    store_name: Optional[str] = None
    cpf_cnpj: Optional[str] = None
    payment_card_last_four: Optional[str] = None
    payment_card_brand: Optional[str] = None
    payment_card_holder: Optional[str] = None
    payment_card_expiry: Optional[str] = None
    payment_card_validated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
        extra = "ignore"


class ProfileCardUpdate(BaseModel):
    """Card metadata written after a successful card validation"""
    payment_card_last_four: Optional[str] = None
    payment_card_brand: Optional[str] = None
    payment_card_holder: Optional[str] = None
    payment_card_expiry: Optional[str] = None
    payment_card_validated_at: Optional[datetime] = None
