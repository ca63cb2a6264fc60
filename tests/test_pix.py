from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import HTTPException

from app.features.billing.pix_service import PixPaymentService, subscription_amount
from app.features.billing.models.subscription import Subscription
from app.features.billing.schemas import CreatePixRequest
from app.infra.gateways import PixCharge

NOW = datetime(2026, 5, 10, 15, 0, tzinfo=timezone.utc)
BUILD_CLIENT = "app.features.billing.pix_service.build_gateway_client"


def _client():
    client = MagicMock()
    client.create_pix_payment = AsyncMock(side_effect=lambda **kw: PixCharge(
        gateway_payment_id="ORDE_9",
        qr_code="000201...",
        qr_code_base64="https://pagbank/qr.png",
        expires_at=kw["expires_at"],
        raw={"id": "ORDE_9"},
    ))
    return client


def test_subscription_amount():
    monthly = Subscription(id="s", user_id="u", plan_id="pro", monthly_price=49.899, total_amount=598.8)
    annual = Subscription(id="s", user_id="u", plan_id="pro", billing_cycle="annual", monthly_price=49.9, total_amount=538.92)

    assert subscription_amount(monthly) == 49.9
    assert subscription_amount(annual) == 538.92


async def test_pix_charge_creates_pending_payment(repos, fake_db, gateway_credentials, make_subscription):
    subscription = make_subscription(status="pending", gateway="pagbank")
    client = _client()

    with patch(BUILD_CLIENT, return_value=client) as build:
        response = await PixPaymentService(repos).create_pix_charge("user-1", CreatePixRequest(), now=NOW)

    assert build.call_args.args[1] == "pagbank"
    assert response.expires_at == NOW + timedelta(minutes=30)
    assert response.amount == 49.9

    payment = fake_db.row("master_subscription_payments", response.payment_id)
    assert payment["status"] == "pending"
    assert payment["payment_method"] == "pix"
    assert payment["gateway_payment_id"] == "ORDE_9"
    assert payment["subscription_id"] == subscription["id"]
    assert [row["event_type"] for row in fake_db.rows("master_subscription_logs")] == ["pix_generated"]


async def test_requested_gateway_overrides_subscription(repos, gateway_credentials, make_subscription):
    make_subscription(status="past_due", gateway="pagbank")

    with patch(BUILD_CLIENT, return_value=_client()) as build:
        await PixPaymentService(repos).create_pix_charge("user-1", CreatePixRequest(gateway="mercadopago"), now=NOW)

    assert build.call_args.args[1] == "mercadopago"


async def test_no_payable_subscription(repos, make_subscription):
    make_subscription(status="active")

    with pytest.raises(HTTPException) as exc:
        await PixPaymentService(repos).create_pix_charge("user-1", CreatePixRequest(), now=NOW)
    assert exc.value.status_code == 404


async def test_zero_amount_is_rejected(repos, make_subscription):
    make_subscription(status="pending", monthly_price=0, total_amount=0)

    with pytest.raises(HTTPException) as exc:
        await PixPaymentService(repos).create_pix_charge("user-1", CreatePixRequest(), now=NOW)
    assert exc.value.status_code == 400
