from fastapi import APIRouter
from app.api import health
from app.features.billing import api as billing_api
from app.features.notifications import api as notifications_api

api_router = APIRouter()

api_router.include_router(health.router)
api_router.include_router(billing_api.router)
api_router.include_router(notifications_api.router)
