"""Subscription repository"""
from typing import List, Optional, Sequence

from supabase import Client  # type: ignore

from app.features.billing.models.subscription import (
    Subscription,
    SubscriptionCreate,
    SubscriptionUpdate,
)
from app.infra.supabase.repositories.base import BaseRepository


class SubscriptionRepository(BaseRepository[Subscription, SubscriptionCreate, SubscriptionUpdate]):
    """Repository for master_subscriptions"""

    def __init__(self, client: Client):
        super().__init__(client, "master_subscriptions", Subscription)

    async def find_latest_for_user(
        self,
        user_id: str,
        subscription_id: Optional[str] = None,
        statuses: Optional[Sequence[str]] = None,
    ) -> Optional[Subscription]:
        """Most recently created subscription of a user, optionally narrowed by id or status"""
        filters = {"user_id": user_id}
        if subscription_id:
            filters["id"] = subscription_id
        if statuses:
            filters["status"] = [str(getattr(s, "value", s)) for s in statuses]
        return await self.find_one(filters)

    async def find_by_statuses(self, statuses: Sequence[str]) -> List[Subscription]:
        """All subscriptions currently in one of the given statuses"""
        return await self.find_by_filters(
            {"status": [str(getattr(s, "value", s)) for s in statuses]},
            order_by="created_at",
        )

    async def update_if_status(
        self,
        subscription_id: str,
        expected_status: str,
        data: SubscriptionUpdate,
    ) -> Optional[Subscription]:
        """Update only while the row still has ``expected_status``; None if another writer got there first"""
        return await self.update_where(subscription_id, data, expected={"status": expected_status})
