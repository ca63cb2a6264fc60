"""Append-only subscription audit log repository"""
from typing import List

from supabase import Client  # type: ignore

from app.features.billing.models.subscription_log import SubscriptionLog, SubscriptionLogCreate
from app.infra.supabase.repositories.base import BaseRepository


class SubscriptionLogRepository(BaseRepository[SubscriptionLog, SubscriptionLogCreate, SubscriptionLogCreate]):
    """Repository for master_subscription_logs. Rows are inserted, never updated or deleted."""

    def __init__(self, client: Client):
        super().__init__(client, "master_subscription_logs", SubscriptionLog)

    async def append(self, entry: SubscriptionLogCreate) -> SubscriptionLog:
        return await self.create(entry)

    async def append_many(self, entries: List[SubscriptionLogCreate]) -> List[SubscriptionLog]:
        if not entries:
            return []

        rows = [entry.model_dump(exclude_unset=True, mode='json') for entry in entries]
        response = self._client.table(self._table_name).insert(rows).execute()
        return self._to_models(response.data or [])

    async def update(self, id, data):
        raise NotImplementedError("master_subscription_logs is append-only")

    async def update_where(self, id, data, expected=None):
        raise NotImplementedError("master_subscription_logs is append-only")
