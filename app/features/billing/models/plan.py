"""Sellable platform plan (master_plans)"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel

from app.features.billing.domain import DEFAULT_ANNUAL_DISCOUNT_PERCENT


class Plan(BaseModel):
    id: Optional[str] = None
    plan_id: str
    display_name: Optional[str] = None
    monthly_price: float
    annual_discount_percent: Optional[float] = None
    is_active: bool = True
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
        extra = "ignore"

    @property
    def discount_percent(self) -> float:
        # 0 and NULL both fall back to the default discount
        return self.annual_discount_percent or DEFAULT_ANNUAL_DISCOUNT_PERCENT

    def price_for(self, billing_cycle: str) -> float:
        """Amount charged per billing period; annual plans are billed 12 discounted months upfront"""
        monthly = float(self.monthly_price)
        if billing_cycle == "monthly":
            return round(monthly, 2)
        return round(monthly * (1 - self.discount_percent / 100) * 12, 2)
