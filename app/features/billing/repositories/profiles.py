"""Merchant profile repository"""
from typing import Optional

from supabase import Client  # type: ignore

from app.features.billing.models.profile import Profile, ProfileCardUpdate
from app.infra.supabase.repositories.base import BaseRepository


class ProfileRepository(BaseRepository[Profile, Profile, ProfileCardUpdate]):
    """Repository for profiles"""

    def __init__(self, client: Client):
        super().__init__(client, "profiles", Profile)

    async def update_payment_card(self, user_id: str, data: ProfileCardUpdate) -> Optional[Profile]:
        """Store validated card metadata on the merchant profile"""
        return await self.update(user_id, data)
