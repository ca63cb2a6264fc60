"""Mercado Pago payments API client"""
import logging
from datetime import datetime
from typing import Any, Dict, Optional

import httpx

from app.config import MERCADOPAGO_API_URL, STATEMENT_DESCRIPTOR
from app.infra.gateways.base import BoletoCharge, GatewayError, GatewayHttpClient, GatewayPayment, PixCharge

logger = logging.getLogger(__name__)

BOLETO_PAYMENT_METHOD_ID = "bolbradesco"

# Boleto registration requires a payer address; the platform does not collect one
BOLETO_PAYER_ADDRESS = {
    "zip_code": "01310100",
    "street_name": "Avenida Paulista",
    "street_number": "1000",
    "neighborhood": "Bela Vista",
    "city": "São Paulo",
    "federal_unit": "SP",
}


def build_payer(email: str, full_name: Optional[str] = None, tax_id: Optional[str] = None) -> Dict[str, Any]:
    """Payer block with first/last name and CPF"""
    parts = (full_name or "Cliente").split()
    first_name = parts[0] if parts else "Cliente"
    digits = "".join(ch for ch in (tax_id or "") if ch.isdigit())
    return {
        "email": email,
        "first_name": first_name,
        "last_name": " ".join(parts[1:]) or first_name,
        "identification": {"type": "CPF", "number": digits or "00000000000"},
    }


def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.warning(f"MercadoPagoClient: Unparseable date {value!r}")
        return None


class MercadoPagoClient(GatewayHttpClient):
    """Client for the Mercado Pago /v1/payments resource"""

    gateway_name = "mercadopago"

    def __init__(
        self,
        access_token: str,
        base_url: str = MERCADOPAGO_API_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(base_url, access_token, transport=transport)

    @staticmethod
    def to_gateway_payment(data: Dict[str, Any]) -> GatewayPayment:
        if data.get("id") is None:
            raise GatewayError("mercadopago payment response without id", body=data)

        return GatewayPayment(
            id=str(data["id"]),
            status=data.get("status") or "unknown",
            status_detail=data.get("status_detail"),
            date_approved=_parse_datetime(data.get("date_approved")),
            transaction_amount=data.get("transaction_amount"),
            raw=data,
        )

    async def get_payment(self, payment_id: str) -> GatewayPayment:
        """Fetch the authoritative state of a payment"""
        data = await self._request("GET", f"/v1/payments/{payment_id}")
        return self.to_gateway_payment(data)

    async def authorize_card(
        self,
        card_token: str,
        payment_method_id: str,
        amount: float,
        description: str,
        payer_email: str,
        idempotency_key: str,
    ) -> GatewayPayment:
        """Authorize an amount on a card without capturing it"""
        payload = {
            "transaction_amount": amount,
            "token": card_token,
            "description": description,
            "installments": 1,
            "payment_method_id": payment_method_id,
            "capture": False,
            "statement_descriptor": STATEMENT_DESCRIPTOR,
            "payer": {"email": payer_email},
        }
        data = await self._request("POST", "/v1/payments", json=payload, idempotency_key=idempotency_key)
        return self.to_gateway_payment(data)

    async def cancel_payment(self, payment_id: str) -> GatewayPayment:
        """Cancel a pending or authorized (uncaptured) payment"""
        data = await self._request("PUT", f"/v1/payments/{payment_id}", json={"status": "cancelled"})
        return self.to_gateway_payment(data)

    async def create_pix_payment(
        self,
        amount: float,
        description: str,
        payer_email: str,
        reference: str,
        expires_at: datetime,
        idempotency_key: str,
        payer_name: str = "Cliente",
        payer_tax_id: str = "00000000000",
    ) -> PixCharge:
        payload = {
            "transaction_amount": amount,
            "description": description,
            "payment_method_id": "pix",
            "external_reference": reference,
            "payer": build_payer(payer_email, payer_name, payer_tax_id),
            "date_of_expiration": expires_at.isoformat(timespec="milliseconds"),
        }
        data = await self._request("POST", "/v1/payments", json=payload, idempotency_key=idempotency_key)

        transaction_data = (data.get("point_of_interaction") or {}).get("transaction_data") or {}
        if data.get("id") is None or not transaction_data.get("qr_code"):
            raise GatewayError("mercadopago PIX response without QR code", body=data)

        return PixCharge(
            gateway_payment_id=str(data["id"]),
            qr_code=transaction_data["qr_code"],
            qr_code_base64=transaction_data.get("qr_code_base64"),
            expires_at=expires_at,
            raw=data,
        )

    async def create_card_payment(
        self,
        card_token: str,
        payment_method_id: str,
        amount: float,
        description: str,
        reference: str,
        idempotency_key: str,
        payer_email: str,
        payer_name: str = "Cliente",
        payer_tax_id: str = "00000000000",
        installments: int = 1,
    ) -> GatewayPayment:
        """Charge and capture a card in one step

        A declined card comes back as a normal payment with status
        ``rejected``; only transport and API errors raise GatewayError.
        """
        payload = {
            "transaction_amount": amount,
            "token": card_token,
            "description": description,
            "payment_method_id": payment_method_id,
            "installments": installments,
            "payer": build_payer(payer_email, payer_name, payer_tax_id),
            "statement_descriptor": STATEMENT_DESCRIPTOR,
            "external_reference": reference,
            "capture": True,
        }
        data = await self._request("POST", "/v1/payments", json=payload, idempotency_key=idempotency_key)
        return self.to_gateway_payment(data)

    async def create_boleto_payment(
        self,
        amount: float,
        description: str,
        reference: str,
        expires_at: datetime,
        idempotency_key: str,
        payer_email: str,
        payer_name: str = "Cliente",
        payer_tax_id: str = "00000000000",
    ) -> BoletoCharge:
        payer = build_payer(payer_email, payer_name, payer_tax_id)
        payer["address"] = BOLETO_PAYER_ADDRESS
        payload = {
            "transaction_amount": amount,
            "description": description,
            "payment_method_id": BOLETO_PAYMENT_METHOD_ID,
            "external_reference": reference,
            "payer": payer,
            "date_of_expiration": expires_at.isoformat(timespec="milliseconds"),
        }
        data = await self._request("POST", "/v1/payments", json=payload, idempotency_key=idempotency_key)

        if data.get("id") is None:
            raise GatewayError("mercadopago boleto response without id", body=data)

        details = data.get("transaction_details") or {}
        return BoletoCharge(
            gateway_payment_id=str(data["id"]),
            status=data.get("status") or "pending",
            url=details.get("external_resource_url"),
            barcode=(data.get("barcode") or {}).get("content"),
            digitable_line=details.get("digitable_line"),
            expires_at=expires_at,
            raw=data,
        )
