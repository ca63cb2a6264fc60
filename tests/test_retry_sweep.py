from datetime import timedelta

from app.features.billing.retry_service import PaymentRetryService


def _by_subscription(response):
    return {result.subscription_id: result for result in response.results}


async def test_only_eligible_delinquent_subscriptions_are_swept(repos, make_subscription, now):
    eligible = make_subscription(status="past_due", card_token="card-1", current_period_end=now.isoformat())
    make_subscription(status="past_due", no_charge=True)
    make_subscription(status="inadimplent", requires_card_update=True)
    make_subscription(status="active")
    # NULL flags count as false
    nullable = make_subscription(status="inadimplent", no_charge=None, requires_card_update=None,
                                 card_token="card-2", current_period_end=now.isoformat())

    response = await PaymentRetryService(repos).run(now=now)

    assert response.success is True
    assert set(_by_subscription(response)) == {eligible["id"], nullable["id"]}


async def test_first_retry_is_scheduled(repos, fake_db, make_subscription, now):
    grace_end = now + timedelta(days=7)
    subscription = make_subscription(
        status="inadimplent",
        billing_cycle="monthly",
        card_token="card-1",
        grace_period_ends_at=grace_end.isoformat(),
    )

    response = await PaymentRetryService(repos).run(now=now)

    result = response.results[0]
    assert result.action == "retry_scheduled"
    assert result.retry_count == 1
    # monthly schedule [0, 1, 3, 6]: second attempt one day into the grace period
    assert result.next_retry_at == now + timedelta(days=1)

    stored = fake_db.row("master_subscriptions", subscription["id"])
    assert stored["retry_count"] == 1
    assert [row["event_type"] for row in fake_db.rows("master_subscription_logs")] == ["payment_retry_attempted"]


async def test_not_yet_time(repos, fake_db, make_subscription, now):
    grace_end = now + timedelta(days=6, hours=12)
    make_subscription(
        status="past_due",
        card_token="card-1",
        retry_count=1,
        grace_period_ends_at=grace_end.isoformat(),
    )

    response = await PaymentRetryService(repos).run(now=now)

    result = response.results[0]
    assert result.action == "skipped"
    assert result.reason == "not_yet_time"
    assert fake_db.writes == []


async def test_max_retries_reached(repos, make_subscription, now):
    make_subscription(status="past_due", billing_cycle="monthly", retry_count=4, card_token="card-1",
                      grace_period_ends_at=(now + timedelta(days=1)).isoformat())
    make_subscription(status="past_due", billing_cycle="annual", retry_count=5, card_token="card-1",
                      grace_period_ends_at=(now + timedelta(days=1)).isoformat())

    response = await PaymentRetryService(repos).run(now=now)

    reasons = sorted((r.reason or r.action) for r in response.results)
    assert reasons.count("max_retries_reached") == 1


async def test_expired_grace_suspends(repos, fake_db, make_subscription, now):
    subscription = make_subscription(
        status="inadimplent",
        card_token="card-1",
        retry_count=2,
        grace_period_ends_at=(now - timedelta(minutes=1)).isoformat(),
    )

    response = await PaymentRetryService(repos).run(now=now)

    assert response.results[0].action == "suspended"
    assert fake_db.row("master_subscriptions", subscription["id"])["status"] == "suspended"
    logs = fake_db.rows("master_subscription_logs")
    assert [row["event_type"] for row in logs] == ["subscription_suspended"]
    assert logs[0]["metadata"]["previous_status"] == "inadimplent"


async def test_no_saved_card_requires_update(repos, fake_db, make_subscription, now):
    subscription = make_subscription(
        status="past_due",
        grace_period_ends_at=(now + timedelta(days=7)).isoformat(),
    )

    response = await PaymentRetryService(repos).run(now=now)

    result = response.results[0]
    assert result.reason == "no_saved_card"
    stored = fake_db.row("master_subscriptions", subscription["id"])
    assert stored["requires_card_update"] is True
    assert stored["retry_count"] == 1
    assert stored["last_decline_message"] == "Nenhum cartão cadastrado. Adicione um cartão para continuar."
    assert fake_db.rows("master_subscription_logs") == []


async def test_grace_start_falls_back_to_period_end(repos, fake_db, make_subscription, now):
    subscription = make_subscription(
        status="past_due",
        billing_cycle="annual",
        gateway_customer_id="cus-1",
        current_period_end=(now - timedelta(days=3)).isoformat(),
    )

    response = await PaymentRetryService(repos).run(now=now)

    assert response.results[0].action == "retry_scheduled"
    stored = fake_db.row("master_subscriptions", subscription["id"])
    # annual grace is 14 days from the period end
    assert stored["grace_period_ends_at"].startswith((now + timedelta(days=11)).date().isoformat())
