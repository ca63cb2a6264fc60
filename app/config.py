import os
from dotenv import load_dotenv

load_dotenv(dotenv_path=".env")

# Supabase
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_SERVICE_ROLE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY")

# Payment gateways
MERCADOPAGO_API_URL = os.getenv("MERCADOPAGO_API_URL", "https://api.mercadopago.com")
PAGBANK_API_URL = os.getenv("PAGBANK_API_URL", "https://api.pagseguro.com")
GATEWAY_TIMEOUT_SECONDS = float(os.getenv("GATEWAY_TIMEOUT_SECONDS", "15"))
MERCADOPAGO_WEBHOOK_SECRET = os.getenv("MERCADOPAGO_WEBHOOK_SECRET")

# Card validation charge descriptors
CARD_VALIDATION_DESCRIPTION = os.getenv("CARD_VALIDATION_DESCRIPTION", "Validação de cartão")
STATEMENT_DESCRIPTOR = os.getenv("STATEMENT_DESCRIPTOR", "STOREFRONT")
FALLBACK_PAYER_EMAIL = os.getenv("FALLBACK_PAYER_EMAIL", "usuario@storefront.com.br")

# Shared secret for the scheduler that triggers the retry sweep
BILLING_CRON_SECRET = os.getenv("BILLING_CRON_SECRET")

# Email (Resend)
RESEND_API_KEY = os.getenv("RESEND_API_KEY", "").strip()
ORDER_EMAIL_FROM = os.getenv("ORDER_EMAIL_FROM", "Confirmação de Pedido <pedidos@storefront.com.br>")
MERCHANT_EMAIL_FROM = os.getenv("MERCHANT_EMAIL_FROM", "Novo Pedido <pedidos@storefront.com.br>")
SUPPORT_EMAIL_FROM = os.getenv("SUPPORT_EMAIL_FROM", "Suporte <suporte@storefront.com.br>")

# HTTP
CORS_ORIGINS = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()]
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
