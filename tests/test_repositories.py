import pytest

from app.features.billing.models.payment import PaymentUpdate
from app.features.billing.models.subscription_log import SubscriptionLogCreate


async def test_find_latest_for_user_filters_by_status(repos, make_subscription):
    older = make_subscription(status="active")
    make_subscription(status="suspended")

    found = await repos.subscriptions.find_latest_for_user("user-1", statuses=["active", "pending"])

    assert found.id == older["id"]


async def test_find_latest_for_user_by_id(repos, make_subscription):
    first = make_subscription(status="active")
    make_subscription(status="active")

    found = await repos.subscriptions.find_latest_for_user("user-1", subscription_id=first["id"])

    assert found.id == first["id"]


async def test_guarded_update_applies_when_status_matches(repos, fake_db, make_subscription, make_payment):
    payment = make_payment(make_subscription(), status="pending")

    updated = await repos.payments.update_if_status(payment["id"], "pending", PaymentUpdate(status="paid"))

    assert updated.status == "paid"
    assert fake_db.row("master_subscription_payments", payment["id"])["status"] == "paid"


async def test_guarded_update_misses_when_status_moved(repos, fake_db, make_subscription, make_payment):
    payment = make_payment(make_subscription(), status="paid")

    updated = await repos.payments.update_if_status(payment["id"], "pending", PaymentUpdate(status="failed"))

    assert updated is None
    assert fake_db.row("master_subscription_payments", payment["id"])["status"] == "paid"


async def test_update_only_writes_set_fields(repos, fake_db, make_subscription, make_payment):
    payment = make_payment(make_subscription(), status="pending", decline_code="old")

    await repos.payments.update(payment["id"], PaymentUpdate(gateway_status="in_process"))

    row = fake_db.row("master_subscription_payments", payment["id"])
    assert row["gateway_status"] == "in_process"
    assert row["decline_code"] == "old"


async def test_find_by_gateway_payment_id(repos, make_subscription, make_payment):
    payment = make_payment(make_subscription(), gateway_payment_id="mp-42")

    found = await repos.payments.find_by_gateway_payment_id("mp-42")

    assert found.id == payment["id"]
    assert await repos.payments.find_by_gateway_payment_id("mp-43") is None


async def test_default_gateway_requires_active_and_default(repos, fake_db):
    fake_db.seed("master_payment_gateways", is_active=False, is_default=True, mercadopago_access_token="old")
    fake_db.seed("master_payment_gateways", is_active=True, is_default=False, mercadopago_access_token="other")
    assert await repos.gateways.find_default_active() is None

    fake_db.seed("master_payment_gateways", is_active=True, is_default=True, mercadopago_access_token="live")
    assert (await repos.gateways.find_default_active()).mercadopago_access_token == "live"


async def test_logs_are_append_only(repos, fake_db):
    entries = [
        SubscriptionLogCreate(subscription_id="sub-1", event_type="payment_paid"),
        SubscriptionLogCreate(subscription_id="sub-1", event_type="subscription_active"),
    ]

    created = await repos.logs.append_many(entries)

    assert [log.event_type for log in created] == ["payment_paid", "subscription_active"]
    assert await repos.logs.append_many([]) == []
    with pytest.raises(NotImplementedError):
        await repos.logs.update(created[0].id, entries[0])
