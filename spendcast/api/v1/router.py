from fastapi import APIRouter
from spendcast.api.v1.endpoints import health, forecast

api_router = APIRouter()

api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(forecast.router, prefix="/forecast", tags=["forecast"])
