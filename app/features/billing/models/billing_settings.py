"""Billing alert settings and CMS alert copy"""
from typing import Dict, List, Optional
from pydantic import BaseModel

from app.features.billing.domain import (
    DEFAULT_GRACE_PERIOD_DAYS_ANNUAL,
    DEFAULT_GRACE_PERIOD_DAYS_MONTHLY,
    DEFAULT_MAX_COMPENSATION_HOURS,
)


class BillingSettings(BaseModel):
    """Billing rules read from billing_alert_settings (key/value rows)"""
    enabled: bool = True
    grace_period_days_monthly: int = DEFAULT_GRACE_PERIOD_DAYS_MONTHLY
    grace_period_days_annual: int = DEFAULT_GRACE_PERIOD_DAYS_ANNUAL
    max_compensation_hours: int = DEFAULT_MAX_COMPENSATION_HOURS

    @classmethod
    def from_rows(cls, rows: List[Dict[str, Optional[str]]]) -> "BillingSettings":
        values = {row.get("setting_key"): row.get("setting_value") for row in rows}

        def as_int(key: str, default: int) -> int:
            raw = values.get(key)
            try:
                return int(raw) if raw is not None else default
            except (TypeError, ValueError):
                return default

        return cls(
            enabled=values.get("enabled") != "false",
            grace_period_days_monthly=as_int("grace_period_days_monthly", DEFAULT_GRACE_PERIOD_DAYS_MONTHLY),
            grace_period_days_annual=as_int("grace_period_days_annual", DEFAULT_GRACE_PERIOD_DAYS_ANNUAL),
            max_compensation_hours=as_int("max_compensation_hours", DEFAULT_MAX_COMPENSATION_HOURS),
        )


class BillingAlertContent(BaseModel):
    """Alert copy shown for a billing state (cms_billing_alerts)"""
    alert_key: str
    title: str
    message: str
    cta_text: str
    cta_url: str
