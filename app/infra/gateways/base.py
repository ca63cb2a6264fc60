"""Gateway-neutral payment types and errors shared by the gateway clients"""
import logging
from datetime import datetime
from typing import Any, Dict, Optional

import httpx
from pydantic import BaseModel, Field

from app.config import GATEWAY_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)


class GatewayError(Exception):
    """A gateway call failed (network error or non-success response)"""

    def __init__(self, message: str, status_code: Optional[int] = None, body: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body

    @property
    def is_transient(self) -> bool:
        """Network failures and 5xx responses are worth retrying"""
        return self.status_code is None or self.status_code >= 500


class GatewayConfigurationError(Exception):
    """No usable gateway credentials are configured"""
    pass


class GatewayPayment(BaseModel):
    """Authoritative payment state as reported by a gateway.

    ``status`` always uses the Mercado Pago vocabulary
    (approved, pending, in_process, rejected, cancelled, refunded, authorized).
    """
    id: str
    status: str
    status_detail: Optional[str] = None
    date_approved: Optional[datetime] = None
    transaction_amount: Optional[float] = None
    raw: Dict[str, Any] = Field(default_factory=dict)


class PixCharge(BaseModel):
    """QR code data of a freshly created PIX charge"""
    gateway_payment_id: str
    qr_code: str
    qr_code_base64: Optional[str] = None
    expires_at: datetime
    raw: Dict[str, Any] = Field(default_factory=dict)


class BoletoCharge(BaseModel):
    """Payment slip data of a freshly created boleto charge"""
    gateway_payment_id: str
    status: str
    url: Optional[str] = None
    barcode: Optional[str] = None
    digitable_line: Optional[str] = None
    expires_at: datetime
    raw: Dict[str, Any] = Field(default_factory=dict)


class GatewayHttpClient:
    """Bearer-token JSON client; one short-lived httpx.AsyncClient per call"""

    gateway_name = ""

    def __init__(
        self,
        base_url: str,
        token: str,
        timeout: float = GATEWAY_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not token:
            raise GatewayConfigurationError(f"{self.gateway_name} access token not configured")

        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self.headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }

    async def _request(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        idempotency_key: Optional[str] = None,
    ) -> Dict[str, Any]:
        headers = dict(self.headers)
        if idempotency_key:
            headers["X-Idempotency-Key"] = idempotency_key

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                response = await client.request(method, f"{self.base_url}{path}", headers=headers, json=json)
            except httpx.HTTPError as e:
                logger.error(f"{self.gateway_name}: {method} {path} failed: {e}")
                raise GatewayError(f"{self.gateway_name} request failed: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = {"raw": response.text}

        if response.is_error:
            logger.warning(f"{self.gateway_name}: {method} {path} returned {response.status_code}: {body}")
            raise GatewayError(
                f"{self.gateway_name} returned HTTP {response.status_code}",
                status_code=response.status_code,
                body=body,
            )

        return body
