"""Subscription payment repository"""
from typing import Optional

from supabase import Client  # type: ignore

from app.features.billing.models.payment import Payment, PaymentCreate, PaymentUpdate
from app.infra.supabase.repositories.base import BaseRepository


class PaymentRepository(BaseRepository[Payment, PaymentCreate, PaymentUpdate]):
    """Repository for master_subscription_payments"""

    def __init__(self, client: Client):
        super().__init__(client, "master_subscription_payments", Payment)

    async def find_by_gateway_payment_id(self, gateway_payment_id: str) -> Optional[Payment]:
        """Find the local payment a gateway notification refers to"""
        return await self.find_one({"gateway_payment_id": gateway_payment_id})

    async def find_latest_for_subscription(self, subscription_id: str) -> Optional[Payment]:
        """Most recent payment attempt of a subscription"""
        return await self.find_one({"subscription_id": subscription_id})

    async def update_if_status(
        self,
        payment_id: str,
        expected_status: str,
        data: PaymentUpdate,
    ) -> Optional[Payment]:
        """Update only while the row still has ``expected_status``; None if another writer got there first"""
        return await self.update_where(payment_id, data, expected={"status": expected_status})
