from fastapi import APIRouter, Depends
from datetime import datetime, timezone
from typing import Dict, Any

from spendcast.api.dependencies import get_forecast_service
from spendcast.core.config import settings
from spendcast.ml.forecast_service import ForecastService

router = APIRouter()


@router.get("/", response_model=Dict[str, Any])
async def health_check():
    return {
        "status": "healthy",
        "service": settings.PROJECT_NAME,
        "version": settings.VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/ready", response_model=Dict[str, Any])
def readiness_check(service: ForecastService = Depends(get_forecast_service)):
    """Ready once every analysis component answers for an empty history."""
    try:
        service.expense_classifier.classify([])
        service.spender_profiler.classify([])
        holidays = len(service.pattern_analyzer.analyze([]).holiday_multipliers)
        return {
            "status": "ready",
            "service": settings.PROJECT_NAME,
            "version": settings.VERSION,
            "holiday_windows": holidays,
            "cache": "enabled" if service.cache is not None else "disabled",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
    except Exception as e:
        return {
            "status": "not_ready",
            "service": settings.PROJECT_NAME,
            "version": settings.VERSION,
            "error": str(e),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }


@router.get("/live", response_model=Dict[str, Any])
async def liveness_check():
    return {
        "status": "alive",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
