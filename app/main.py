import logging

from app.config import LOG_LEVEL

# Log configuration (before other imports)
# ruff: noqa: E402
logging.basicConfig(
    level=LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    force=True
)

from fastapi import FastAPI, Request  # noqa: E402
from fastapi.middleware.cors import CORSMiddleware  # noqa: E402
from fastapi.responses import JSONResponse  # noqa: E402

from app.api.base import api_router  # noqa: E402
from app.config import CORS_ORIGINS  # noqa: E402
from app.features.billing.exceptions import GatewayConfigurationError, GatewayError  # noqa: E402
from app.features.notifications.exceptions import EmailConfigurationError, EmailDeliveryError  # noqa: E402

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Storefront Billing API",
    description="Subscription billing, payment gateway reconciliation and transactional email for the storefront platform",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(GatewayConfigurationError)
@app.exception_handler(EmailConfigurationError)
async def configuration_error_handler(request: Request, exc: Exception):
    logger.error(f"Configuration error on {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"error": str(exc)})


@app.exception_handler(GatewayError)
@app.exception_handler(EmailDeliveryError)
async def upstream_error_handler(request: Request, exc: Exception):
    logger.error(f"Upstream provider error on {request.url.path}: {exc}")
    return JSONResponse(status_code=502, content={"error": str(exc)})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


app.include_router(api_router)


@app.get("/")
def read_root():
    return {
        "message": "Storefront Billing API",
        "docs": "/docs",
        "version": "1.0.0"
    }
