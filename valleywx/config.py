"""
Application configuration using Pydantic settings.

This module contains all configuration settings for the application,
loaded from environment variables with sensible defaults. The forecast
correction tuning knobs live here so they can be overridden per deployment.
"""

import os
from typing import List, Optional, Union

from pydantic import Field, field_validator, ValidationInfo, ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden with environment variables.
    """

    # API Configuration
    API_V1_STR: str = "/api/v1"
    SERVER_NAME: str = "Valley Weather"
    DEBUG: bool = False

    # CORS Configuration
    BACKEND_CORS_ORIGINS: Union[str, List[str]] = ""

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(
        cls, v: Union[str, List[str]]
    ) -> List[str]:
        """
        Parse CORS origins from environment variable.

        Supports:
        - Comma-separated string: "http://localhost,http://example.com"
        - Already parsed list: ["http://localhost"]
        - Empty string: returns empty list
        """
        if v is None or v == "":
            return []
        if isinstance(v, str):
            return [i.strip() for i in v.split(",") if i.strip()]
        elif isinstance(v, list):
            return v
        raise ValueError(f"Invalid CORS origins format: {v}")

    # Database Configuration
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_USER: str = "valleywx"
    POSTGRES_PASSWORD: str = "valleywx"
    POSTGRES_DB: str = "valleywx.db"
    POSTGRES_PORT: int = 5432

    SQLALCHEMY_DATABASE_URI: Optional[str] = None

    @field_validator("SQLALCHEMY_DATABASE_URI", mode="before")
    @classmethod
    def assemble_db_connection(cls, v: Optional[str], info: ValidationInfo) -> str:
        """Assemble database connection string from individual components."""
        # Explicit URI first, then a Render/Railway/Heroku style DATABASE_URL
        database_url = v if isinstance(v, str) and v else os.getenv('DATABASE_URL')
        if database_url:
            if database_url.startswith('postgres://'):
                database_url = database_url.replace('postgres://', 'postgresql+asyncpg://', 1)
            elif database_url.startswith('postgresql://'):
                database_url = database_url.replace('postgresql://', 'postgresql+asyncpg://', 1)
            return database_url

        values = info.data
        db_name = values.get('POSTGRES_DB')

        # Local SQLite database (ends with .db)
        if db_name and db_name.endswith('.db'):
            return f"sqlite+aiosqlite:///{db_name}"

        return (
            f"postgresql+asyncpg://{values.get('POSTGRES_USER')}:"
            f"{values.get('POSTGRES_PASSWORD')}@"
            f"{values.get('POSTGRES_SERVER')}:"
            f"{values.get('POSTGRES_PORT')}/"
            f"{db_name}"
        )

    # Rate Limiting
    RATE_LIMIT_REQUESTS: int = 100
    RATE_LIMIT_WINDOW: int = 60  # seconds

    # Valley location
    TIMEZONE: str = "Australia/Melbourne"

    # Bias correction
    BIAS_WINDOW_DAYS: int = 30
    MIN_BIAS_SAMPLES: int = 7
    MIN_REGIME_SAMPLES: int = 15
    MAX_BIAS_CORRECTION: float = 6.0  # °C
    MAX_TOTAL_CORRECTION: float = 10.0  # °C
    MAX_LEAD_DAY: int = 14

    # Nowcast
    NOWCAST_ENABLED: bool = Field(
        default=False,
        description="Morning nowcast adjustment; off until enough nowcast_log data validates it"
    )
    NOWCAST_ALPHA: float = 0.7
    MAX_NOWCAST_ADJUSTMENT: float = 4.0  # °C
    NOWCAST_START_HOUR: int = 10
    NOWCAST_WINDOW_START_HOUR: int = 9
    NOWCAST_WINDOW_END_HOUR: int = 11
    NOWCAST_MIN_READINGS: int = 6
    NOWCAST_MORNING_RATIO: float = 0.7

    # Inversion detection
    INVERSION_STRENGTH_THRESHOLD: float = 2.0  # °C above expected lapse
    OVERNIGHT_INVERSION_THRESHOLD: float = 1.0  # °C upper min above valley min
    LAPSE_RATE_PER_KM: float = 6.5

    # Observation freshness
    STALE_OBSERVATION_MINUTES: int = 60

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"

    model_config = ConfigDict(
        env_file=".env",
        case_sensitive=True,
    )


# Create global settings instance
settings = Settings()
