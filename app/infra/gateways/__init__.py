"""Payment gateway clients"""
from typing import Any, Optional, Union

from app.infra.gateways.base import (
    BoletoCharge,
    GatewayConfigurationError,
    GatewayError,
    GatewayPayment,
    PixCharge,
)
from app.infra.gateways.mercadopago import MercadoPagoClient
from app.infra.gateways.pagbank import PagBankClient

GatewayClient = Union[MercadoPagoClient, PagBankClient]


def build_gateway_client(
    credentials: Optional[Any],
    gateway: str = "mercadopago",
) -> GatewayClient:
    """Build the client for ``gateway`` from the platform credentials

    Raises:
        GatewayConfigurationError: No credentials row, or no token for that gateway
    """
    if credentials is None:
        raise GatewayConfigurationError("Payment gateway not configured")

    if gateway == "pagbank":
        if not credentials.pagbank_token:
            raise GatewayConfigurationError("PagBank not configured")
        return PagBankClient(credentials.pagbank_token, account_email=credentials.pagbank_email)

    if gateway == "mercadopago":
        if not credentials.mercadopago_access_token:
            raise GatewayConfigurationError("Mercado Pago not configured")
        return MercadoPagoClient(credentials.mercadopago_access_token)

    raise GatewayConfigurationError(f"Unsupported payment gateway: {gateway}")


__all__ = [
    "BoletoCharge",
    "GatewayClient",
    "GatewayConfigurationError",
    "GatewayError",
    "GatewayPayment",
    "PixCharge",
    "MercadoPagoClient",
    "PagBankClient",
    "build_gateway_client",
]
