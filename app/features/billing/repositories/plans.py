"""Plan catalog repository"""
from typing import Optional

from supabase import Client  # type: ignore

from app.features.billing.models.plan import Plan
from app.infra.supabase.repositories.base import BaseRepository


class PlanRepository(BaseRepository[Plan, Plan, Plan]):
    """Repository for master_plans (read-only from the billing core)"""

    def __init__(self, client: Client):
        super().__init__(client, "master_plans", Plan)

    async def find_active(self, plan_id: str) -> Optional[Plan]:
        return await self.find_one({"plan_id": plan_id, "is_active": True}, order_by=None)
