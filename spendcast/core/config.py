from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List
from functools import lru_cache


class Settings(BaseSettings):
    PROJECT_NAME: str = "Spendcast Forecast Service"
    VERSION: str = "1.0.0"
    DEBUG: bool = False

    HOST: str = "0.0.0.0"
    PORT: int = 8000

    ALLOWED_ORIGINS: str = "http://localhost:5173,http://localhost:8080"

    @property
    def allowed_origins_list(self) -> List[str]:
        if isinstance(self.ALLOWED_ORIGINS, list):
            return self.ALLOWED_ORIGINS
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",")]

    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"

    # Fixed expense detection
    FIXED_SINGLE_OCCURRENCE_CONFIDENCE: float = 0.50  # Known merchant seen only once

    # Forecast defaults
    FORECAST_DEFAULT_HORIZON_DAYS: int = 30
    FORECAST_HISTORICAL_MONTHS: int = 3

    # Performance Configuration
    ENABLE_CACHING: bool = True
    CACHE_TTL_SECONDS: int = 300  # 5 minutes cache TTL
    CACHE_MAX_ENTRIES: int = 10

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
