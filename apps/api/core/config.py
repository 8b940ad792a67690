"""
Centralized configuration management with validation.

All environment variables are loaded and validated here.
This ensures consistent configuration across the dashboard core and its API.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from typing import Optional
from dotenv import load_dotenv

load_dotenv()


WEEKDAY_NAMES = (
    "monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday",
)


def weekday_index(name: str) -> int:
    """Map a weekday name to Python's weekday number (Monday=0 ... Sunday=6)."""
    return WEEKDAY_NAMES.index(name.strip().lower())


class Settings(BaseSettings):
    """Application settings with validation."""

    # Pydantic v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore"
    )

    # Logging Configuration
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FORMAT: str = Field(default="json")  # json or text

    # Environment
    ENVIRONMENT: str = Field(default="development")
    DEBUG: bool = Field(default=False)

    # CORS - comma-separated list of allowed origins for production
    CORS_ORIGINS: Optional[str] = Field(default=None)

    # Week anchors. The dashboard counts weeks from Sunday, the training
    # block calendar from Monday. They are independent on purpose.
    DASHBOARD_WEEK_START: str = Field(default="sunday")
    CALENDAR_WEEK_START: str = Field(default="monday")

    # Windows
    TRAINING_BLOCK_DAYS: int = Field(default=14, ge=1, le=70)
    VOLUME_CHART_WEEKS: int = Field(default=8, ge=1, le=52)
    PACE_TREND_LIMIT: int = Field(default=15, ge=1, le=200)
    CONSISTENCY_LOOKBACK_WEEKS: int = Field(default=4, ge=1, le=52)

    # IANA zone used for day boundaries. None = host local time.
    TIMEZONE: Optional[str] = Field(default=None)

    @field_validator("DASHBOARD_WEEK_START", "CALENDAR_WEEK_START")
    @classmethod
    def validate_weekday(cls, v: str) -> str:
        if v.strip().lower() not in WEEKDAY_NAMES:
            raise ValueError(f"week start must be one of {', '.join(WEEKDAY_NAMES)}")
        return v.strip().lower()

    @property
    def dashboard_week_start(self) -> int:
        return weekday_index(self.DASHBOARD_WEEK_START)

    @property
    def calendar_week_start(self) -> int:
        return weekday_index(self.CALENDAR_WEEK_START)


# Global settings instance
settings = Settings()
