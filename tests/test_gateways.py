import json
from datetime import datetime, timezone

import httpx
import pytest

from app.features.billing.models.gateway_credentials import GatewayCredentials
from app.infra.gateways import (
    GatewayConfigurationError,
    GatewayError,
    MercadoPagoClient,
    PagBankClient,
    build_gateway_client,
)
from app.infra.gateways.pagbank import normalize_order_status

EXPIRES = datetime(2026, 5, 10, 15, 30, tzinfo=timezone.utc)


def _transport(handler):
    requests = []

    def _record(request: httpx.Request):
        requests.append(request)
        return handler(request)

    return httpx.MockTransport(_record), requests


class TestMercadoPagoClient:
    async def test_get_payment(self):
        transport, requests = _transport(lambda r: httpx.Response(200, json={
            "id": 1001,
            "status": "approved",
            "status_detail": "accredited",
            "date_approved": "2026-05-10T12:00:00.000-04:00",
            "transaction_amount": 49.9,
        }))
        client = MercadoPagoClient("APP_USR-token", transport=transport)

        payment = await client.get_payment("1001")

        assert requests[0].url.path == "/v1/payments/1001"
        assert requests[0].headers["Authorization"] == "Bearer APP_USR-token"
        assert payment.id == "1001"
        assert payment.status == "approved"
        assert payment.date_approved == datetime(2026, 5, 10, 16, 0, tzinfo=timezone.utc)

    async def test_authorize_card_never_captures(self):
        transport, requests = _transport(lambda r: httpx.Response(201, json={"id": 5, "status": "authorized"}))
        client = MercadoPagoClient("token", transport=transport)

        result = await client.authorize_card("tok", "visa", 1.0, "Validação", "a@b.com", "validate-u-1")

        body = json.loads(requests[0].content)
        assert body["capture"] is False
        assert body["transaction_amount"] == 1.0
        assert requests[0].headers["X-Idempotency-Key"] == "validate-u-1"
        assert result.status == "authorized"

    async def test_card_payment_is_captured_with_full_payer(self):
        transport, requests = _transport(lambda r: httpx.Response(201, json={
            "id": 7, "status": "approved", "status_detail": "accredited", "payer": {"id": 99},
        }))
        client = MercadoPagoClient("token", transport=transport)

        result = await client.create_card_payment(
            card_token="tok",
            payment_method_id="master",
            amount=419.16,
            description="Assinatura Anual PRO",
            reference="sub-1",
            idempotency_key="sub-key",
            payer_email="maria@loja.com",
            payer_name="Maria da Silva",
            payer_tax_id="123.456.789-09",
            installments=3,
        )

        body = json.loads(requests[0].content)
        assert body["capture"] is True
        assert body["installments"] == 3
        assert body["external_reference"] == "sub-1"
        assert body["payer"]["first_name"] == "Maria"
        assert body["payer"]["last_name"] == "da Silva"
        assert body["payer"]["identification"] == {"type": "CPF", "number": "12345678909"}
        assert result.status == "approved"
        assert result.raw["payer"]["id"] == 99

    async def test_boleto_payment(self):
        transport, requests = _transport(lambda r: httpx.Response(201, json={
            "id": 8,
            "status": "pending",
            "barcode": {"content": "23791234"},
            "transaction_details": {
                "external_resource_url": "https://mp.example/boleto/8",
                "digitable_line": "2379.1234",
            },
        }))
        client = MercadoPagoClient("token", transport=transport)

        boleto = await client.create_boleto_payment(
            amount=419.16,
            description="Assinatura Anual PRO",
            reference="sub-1",
            expires_at=EXPIRES,
            idempotency_key="sub-key",
            payer_email="maria@loja.com",
        )

        body = json.loads(requests[0].content)
        assert body["payment_method_id"] == "bolbradesco"
        assert body["payer"]["identification"]["number"] == "00000000000"
        assert body["payer"]["address"]["federal_unit"] == "SP"
        assert boleto.gateway_payment_id == "8"
        assert boleto.url == "https://mp.example/boleto/8"
        assert boleto.barcode == "23791234"
        assert boleto.digitable_line == "2379.1234"

    async def test_cancel_payment(self):
        transport, requests = _transport(lambda r: httpx.Response(200, json={"id": 5, "status": "cancelled"}))

        await MercadoPagoClient("token", transport=transport).cancel_payment("5")

        assert requests[0].method == "PUT"
        assert json.loads(requests[0].content) == {"status": "cancelled"}

    async def test_server_error_is_transient(self):
        transport, _ = _transport(lambda r: httpx.Response(503, json={"message": "unavailable"}))

        with pytest.raises(GatewayError) as exc:
            await MercadoPagoClient("token", transport=transport).get_payment("1")

        assert exc.value.status_code == 503
        assert exc.value.is_transient

    async def test_client_error_is_not_transient(self):
        transport, _ = _transport(lambda r: httpx.Response(404, json={"message": "not found"}))

        with pytest.raises(GatewayError) as exc:
            await MercadoPagoClient("token", transport=transport).get_payment("1")

        assert not exc.value.is_transient
        assert exc.value.body == {"message": "not found"}

    async def test_network_error(self):
        def _fail(request):
            raise httpx.ConnectError("connection refused", request=request)

        transport, _ = _transport(_fail)

        with pytest.raises(GatewayError) as exc:
            await MercadoPagoClient("token", transport=transport).get_payment("1")

        assert exc.value.status_code is None

    async def test_create_pix_payment(self):
        transport, requests = _transport(lambda r: httpx.Response(201, json={
            "id": 77,
            "status": "pending",
            "point_of_interaction": {"transaction_data": {"qr_code": "000201...", "qr_code_base64": "iVBOR"}},
        }))

        charge = await MercadoPagoClient("token", transport=transport).create_pix_payment(
            49.9, "Assinatura PRO", "a@b.com", "sub-1", EXPIRES, "key-1"
        )

        assert json.loads(requests[0].content)["payment_method_id"] == "pix"
        assert charge.gateway_payment_id == "77"
        assert charge.qr_code == "000201..."
        assert charge.qr_code_base64 == "iVBOR"


class TestPagBankClient:
    @pytest.mark.parametrize("charge_status,expected", [
        ("PAID", "approved"),
        ("WAITING", "pending"),
        ("IN_ANALYSIS", "pending"),
        ("DECLINED", "rejected"),
        ("CANCELED", "cancelled"),
    ])
    def test_status_normalization(self, charge_status, expected):
        assert normalize_order_status({"charges": [{"status": charge_status}]}) == expected

    def test_order_without_charges_is_pending(self):
        assert normalize_order_status({"id": "ORDE_1", "qr_codes": [{"id": "QRCO_1"}]}) == "pending"

    async def test_create_pix_payment_uses_cents(self):
        transport, requests = _transport(lambda r: httpx.Response(201, json={
            "id": "ORDE_1",
            "qr_codes": [{
                "text": "00020101...",
                "links": [{"rel": "QRCODE.PNG", "href": "https://pagbank/qr.png"}],
            }],
        }))

        charge = await PagBankClient("pb-token", transport=transport).create_pix_payment(
            49.9, "Assinatura PRO", "a@b.com", "sub-1", EXPIRES, "key-1"
        )

        body = json.loads(requests[0].content)
        assert requests[0].url.path == "/orders"
        assert body["qr_codes"][0]["amount"]["value"] == 4990
        assert charge.gateway_payment_id == "ORDE_1"
        assert charge.qr_code_base64 == "https://pagbank/qr.png"

    async def test_get_payment(self):
        transport, _ = _transport(lambda r: httpx.Response(200, json={
            "id": "ORDE_1",
            "charges": [{"status": "PAID", "paid_at": "2026-05-10T12:00:00-03:00", "amount": {"value": 4990}}],
        }))

        payment = await PagBankClient("pb-token", transport=transport).get_payment("ORDE_1")

        assert payment.status == "approved"
        assert payment.transaction_amount == 49.9


class TestBuildGatewayClient:
    def test_no_credentials(self):
        with pytest.raises(GatewayConfigurationError):
            build_gateway_client(None)

    def test_missing_token(self):
        credentials = GatewayCredentials(id="gw-1", mercadopago_access_token=None, pagbank_token="pb")
        with pytest.raises(GatewayConfigurationError):
            build_gateway_client(credentials, "mercadopago")
        assert isinstance(build_gateway_client(credentials, "pagbank"), PagBankClient)

    def test_unknown_gateway(self):
        credentials = GatewayCredentials(id="gw-1", mercadopago_access_token="t")
        with pytest.raises(GatewayConfigurationError):
            build_gateway_client(credentials, "stone")
