"""Billing feature repositories"""
from supabase import Client  # type: ignore

from .subscriptions import SubscriptionRepository
from .payments import PaymentRepository
from .subscription_logs import SubscriptionLogRepository
from .gateway_credentials import GatewayCredentialsRepository
from .profiles import ProfileRepository
from .billing_settings import BillingSettingsRepository
from .plans import PlanRepository


class BillingRepositories:
    """Lazily built repositories sharing one Supabase client"""

    def __init__(self, client: Client):
        self._client = client
        self._subscriptions: SubscriptionRepository = None
        self._payments: PaymentRepository = None
        self._logs: SubscriptionLogRepository = None
        self._gateways: GatewayCredentialsRepository = None
        self._profiles: ProfileRepository = None
        self._settings: BillingSettingsRepository = None
        self._plans: PlanRepository = None

    @property
    def subscriptions(self) -> SubscriptionRepository:
        if self._subscriptions is None:
            self._subscriptions = SubscriptionRepository(self._client)
        return self._subscriptions

    @property
    def payments(self) -> PaymentRepository:
        if self._payments is None:
            self._payments = PaymentRepository(self._client)
        return self._payments

    @property
    def logs(self) -> SubscriptionLogRepository:
        if self._logs is None:
            self._logs = SubscriptionLogRepository(self._client)
        return self._logs

    @property
    def gateways(self) -> GatewayCredentialsRepository:
        if self._gateways is None:
            self._gateways = GatewayCredentialsRepository(self._client)
        return self._gateways

    @property
    def profiles(self) -> ProfileRepository:
        if self._profiles is None:
            self._profiles = ProfileRepository(self._client)
        return self._profiles

    @property
    def settings(self) -> BillingSettingsRepository:
        if self._settings is None:
            self._settings = BillingSettingsRepository(self._client)
        return self._settings

    @property
    def plans(self) -> PlanRepository:
        if self._plans is None:
            self._plans = PlanRepository(self._client)
        return self._plans


__all__ = [
    "BillingRepositories",
    "SubscriptionRepository",
    "PaymentRepository",
    "SubscriptionLogRepository",
    "GatewayCredentialsRepository",
    "ProfileRepository",
    "BillingSettingsRepository",
    "PlanRepository",
]
