from unittest.mock import AsyncMock, MagicMock, patch

from app.features.billing.exceptions import GatewayError
from app.features.billing.status_service import BillingStatusService

BUILD_CLIENT = "app.features.billing.reconciler_service.build_gateway_client"


async def test_no_subscription(repos):
    response = await BillingStatusService(repos).check_status("user-1")

    assert response.found is False


async def test_pending_payment_is_reconciled(
    repos, fake_db, gateway_credentials, make_subscription, make_payment, make_gateway_payment
):
    subscription = make_subscription(status="pending")
    make_payment(subscription, gateway_payment_id="mp-1001")
    client = MagicMock()
    client.get_payment = AsyncMock(return_value=make_gateway_payment("approved"))

    with patch(BUILD_CLIENT, return_value=client):
        response = await BillingStatusService(repos).check_status("user-1")

    client.get_payment.assert_awaited_once_with("mp-1001")
    assert response.found is True
    assert response.latest_payment.status == "paid"
    assert response.subscription.status == "active"
    assert response.billing.status == "active"
    assert len(fake_db.rows("master_subscription_logs")) == 2


async def test_only_latest_payment_is_polled(
    repos, gateway_credentials, make_subscription, make_payment, make_gateway_payment
):
    subscription = make_subscription(status="active")
    make_payment(subscription, gateway_payment_id="mp-old", status="pending")
    make_payment(subscription, gateway_payment_id="mp-new", status="paid")
    client = MagicMock()
    client.get_payment = AsyncMock(return_value=make_gateway_payment("approved"))

    with patch(BUILD_CLIENT, return_value=client):
        response = await BillingStatusService(repos).check_status("user-1")

    client.get_payment.assert_not_awaited()
    assert response.latest_payment.gateway_payment_id == "mp-new"


async def test_gateway_error_returns_stored_values(
    repos, fake_db, gateway_credentials, make_subscription, make_payment
):
    subscription = make_subscription(status="pending")
    make_payment(subscription, gateway_payment_id="mp-1001")
    client = MagicMock()
    client.get_payment = AsyncMock(side_effect=GatewayError("down"))

    with patch(BUILD_CLIENT, return_value=client):
        response = await BillingStatusService(repos).check_status("user-1")

    assert response.found is True
    assert response.latest_payment.status == "pending"
    assert response.billing.status == "processing"
    assert fake_db.writes == []


async def test_missing_credentials_return_stored_values(repos, fake_db, make_subscription, make_payment):
    subscription = make_subscription(status="pending")
    make_payment(subscription, gateway_payment_id="mp-1001")

    response = await BillingStatusService(repos).check_status("user-1", subscription["id"])

    assert response.found is True
    assert response.latest_payment.status == "pending"
    assert fake_db.writes == []


async def test_billing_info_for_latest_subscription(repos, make_subscription):
    make_subscription(status="cancelled", plan_id="premium")
    make_subscription(status="active", plan_id="gratis", previous_plan_id="premium")

    info = await BillingStatusService(repos).get_billing_info("user-1")

    assert info.status == "downgraded"
    assert info.plan_name == "Grátis"


async def test_billing_info_without_subscription(repos):
    assert await BillingStatusService(repos).get_billing_info("someone") is None


async def test_alerts_fall_back_to_default_settings(repos, fake_db):
    fake_db.failing_tables.add("billing_alert_settings")
    fake_db.seed(
        "cms_billing_alerts",
        alert_key="past_due",
        title="Pagamento pendente",
        message="Atualize seu cartão",
        cta_text="Atualizar",
        cta_url="/lojista/financeiro",
        is_active=True,
    )

    response = await BillingStatusService(repos).get_alerts()

    assert response.settings.enabled is True
    assert response.settings.grace_period_days_monthly == 7
    assert response.settings.grace_period_days_annual == 14
    assert response.settings.max_compensation_hours == 48
    assert response.alerts["past_due"].title == "Pagamento pendente"


async def test_settings_rows_are_parsed(repos, fake_db):
    fake_db.seed("billing_alert_settings", setting_key="grace_period_days_monthly", setting_value="10")
    fake_db.seed("billing_alert_settings", setting_key="enabled", setting_value="false")

    settings = await repos.settings.get_settings()

    assert settings.grace_period_days_monthly == 10
    assert settings.enabled is False
