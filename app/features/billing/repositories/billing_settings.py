"""Billing settings and alert copy repository"""
import logging
from typing import Dict

from supabase import Client  # type: ignore

from app.features.billing.models.billing_settings import BillingAlertContent, BillingSettings

logger = logging.getLogger(__name__)


class BillingSettingsRepository:
    """Reads billing_alert_settings and cms_billing_alerts"""

    def __init__(self, client: Client):
        self._client = client

    async def get_settings(self) -> BillingSettings:
        """Billing rules; falls back to defaults when the table cannot be read"""
        try:
            response = self._client.table("billing_alert_settings").select("*").execute()
        except Exception as e:
            logger.error(f"BillingSettingsRepository: Failed to read billing settings, using defaults: {e}")
            return BillingSettings()

        return BillingSettings.from_rows(response.data or [])

    async def get_active_alerts(self) -> Dict[str, BillingAlertContent]:
        """Active alert copy keyed by alert_key"""
        try:
            response = self._client.table("cms_billing_alerts").select("*").eq("is_active", True).execute()
        except Exception as e:
            logger.error(f"BillingSettingsRepository: Failed to read billing alerts: {e}")
            return {}

        alerts: Dict[str, BillingAlertContent] = {}
        for row in response.data or []:
            alert = BillingAlertContent(**{k: row.get(k) for k in BillingAlertContent.model_fields})
            alerts[alert.alert_key] = alert
        return alerts
