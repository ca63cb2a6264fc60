"""PagBank orders API client (PIX QR codes)"""
import logging
from datetime import datetime
from typing import Any, Dict, Optional

import httpx

from app.config import PAGBANK_API_URL
from app.infra.gateways.base import GatewayError, GatewayHttpClient, GatewayPayment, PixCharge

logger = logging.getLogger(__name__)

# PagBank charge status -> Mercado Pago vocabulary used by GatewayPayment
PAGBANK_STATUS_MAP: Dict[str, str] = {
    "PAID": "approved",
    "AUTHORIZED": "authorized",
    "WAITING": "pending",
    "IN_ANALYSIS": "pending",
    "DECLINED": "rejected",
    "CANCELED": "cancelled",
}


def normalize_order_status(order: Dict[str, Any]) -> str:
    """Status of an order: first charge if any, else first QR code, else pending"""
    charges = order.get("charges") or []
    if charges:
        return PAGBANK_STATUS_MAP.get((charges[0].get("status") or "").upper(), "pending")

    qr_codes = order.get("qr_codes") or []
    if qr_codes and qr_codes[0].get("status"):
        return PAGBANK_STATUS_MAP.get(qr_codes[0]["status"].upper(), "pending")

    return "pending"


class PagBankClient(GatewayHttpClient):
    """Client for the PagBank /orders resource"""

    gateway_name = "pagbank"

    def __init__(
        self,
        token: str,
        account_email: Optional[str] = None,
        base_url: str = PAGBANK_API_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(base_url, token, transport=transport)
        self.account_email = account_email

    async def get_payment(self, order_id: str) -> GatewayPayment:
        data = await self._request("GET", f"/orders/{order_id}")

        charges = data.get("charges") or []
        charge = charges[0] if charges else {}
        paid_at = charge.get("paid_at")
        amount = (charge.get("amount") or {}).get("value")

        return GatewayPayment(
            id=str(data.get("id") or order_id),
            status=normalize_order_status(data),
            status_detail=(charge.get("payment_response") or {}).get("code"),
            date_approved=datetime.fromisoformat(paid_at.replace("Z", "+00:00")) if paid_at else None,
            transaction_amount=amount / 100 if amount is not None else None,
            raw=data,
        )

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
        # PagBank amounts are in cents
        cents = int(round(amount * 100))
        payload = {
            "reference_id": reference,
            "customer": {
                "name": payer_name,
                "email": payer_email or self.account_email,
                "tax_id": payer_tax_id,
            },
            "items": [{"name": description, "quantity": 1, "unit_amount": cents}],
            "qr_codes": [
                {
                    "amount": {"value": cents},
                    "expiration_date": expires_at.isoformat(timespec="seconds"),
                }
            ],
        }
        data = await self._request("POST", "/orders", json=payload, idempotency_key=idempotency_key)

        qr_codes = data.get("qr_codes") or []
        qr_code = qr_codes[0] if qr_codes else {}
        if not data.get("id") or not qr_code.get("text"):
            raise GatewayError("pagbank order response without QR code", body=data)

        image = next(
            (link.get("href") for link in qr_code.get("links") or [] if link.get("rel") == "QRCODE.PNG"),
            None,
        )
        return PixCharge(
            gateway_payment_id=str(data["id"]),
            qr_code=qr_code["text"],
            qr_code_base64=image,
            expires_at=expires_at,
            raw=data,
        )
