"""Health check endpoints"""
import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from app.infra.supabase import get_supabase_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/health", tags=["health"])


@router.get("/")
async def health_check():
    """Basic health check endpoint"""
    return {
        "status": "healthy",
        "service": "storefront-billing",
    }


@router.get("/database")
async def database_health():
    """Round-trip to Supabase with a one-row read of the settings table"""
    try:
        get_supabase_client().table("billing_alert_settings").select("setting_key").limit(1).execute()
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return JSONResponse(status_code=503, content={"status": "unhealthy", "error": str(e)})

    return {"status": "healthy"}
