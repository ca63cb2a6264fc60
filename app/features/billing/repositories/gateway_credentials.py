"""Platform gateway credentials repository"""
from typing import Optional

from supabase import Client  # type: ignore

from app.features.billing.models.gateway_credentials import GatewayCredentials
from app.infra.supabase.repositories.base import BaseRepository


class GatewayCredentialsRepository(BaseRepository[GatewayCredentials, GatewayCredentials, GatewayCredentials]):
    """Repository for master_payment_gateways (read-only from the billing core)"""

    def __init__(self, client: Client):
        super().__init__(client, "master_payment_gateways", GatewayCredentials)

    async def find_default_active(self) -> Optional[GatewayCredentials]:
        """The gateway configuration used for subscription charges"""
        return await self.find_one({"is_active": True, "is_default": True}, order_by=None)
