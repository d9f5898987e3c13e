from functools import lru_cache

from spendcast.ml.forecast_service import ForecastService


@lru_cache()
def get_forecast_service() -> ForecastService:
    """Single forecast service shared by all requests; owns the result cache."""
    return ForecastService()
