"""Merchant contact lookup (profile + auth user email)"""
import logging
from typing import Optional

from supabase import Client  # type: ignore

from app.features.billing.models.profile import Profile

logger = logging.getLogger(__name__)


class MerchantRepository:
    def __init__(self, client: Client):
        self._client = client

    async def get_profile(self, user_id: str) -> Optional[Profile]:
        response = self._client.table("profiles").select("*").eq("id", user_id).execute()
        if not response.data:
            return None
        return Profile(**response.data[0])

    async def get_email(self, user_id: str) -> Optional[str]:
        """Login email from Supabase Auth (admin API, service-role client)"""
        response = self._client.auth.admin.get_user_by_id(user_id)
        user = getattr(response, "user", None)
        return getattr(user, "email", None)
