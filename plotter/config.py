"""Application configuration."""
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Literal


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str
    DB_ECHO: bool = False

    # Application
    APP_ENV: str = "development"
    SECRET_KEY: str
    API_V1_PREFIX: str = "/api"
    LOG_LEVEL: str = "INFO"

    # "Today" for projection limits is computed in this zone
    APP_TIMEZONE: str = "Europe/Warsaw"

    # Frontend
    FRONTEND_URL: str = "http://localhost:3000"

    # Rate limiting
    RATE_LIMIT_DEFAULT: str = "120/minute"

    # Recurrence expansion
    # "skip": monthly series with day_of_month=31 have no April occurrence
    # "clamp": the occurrence moves to the last day of the month
    MONTHLY_SHORT_MONTH_POLICY: Literal["skip", "clamp"] = "skip"

    # Query limits
    PROJECTION_HORIZON_YEARS: int = 10
    OCCURRENCE_MAX_RANGE_DAYS: int = 3650
    OCCURRENCE_PAGE_DEFAULT: int = 100
    OCCURRENCE_PAGE_MAX: int = 1000
    ENTRY_PAGE_DEFAULT: int = 50
    ENTRY_PAGE_MAX: int = 100

    # CORS
    @property
    def ALLOWED_ORIGINS(self) -> List[str]:
        if self.APP_ENV == "development":
            return ["*"]
        return [self.FRONTEND_URL, "http://localhost:3000"]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True
    )


settings = Settings()
