"""
Application configuration.

All configuration is loaded from environment variables.
Never hardcode secrets or connection strings in code.
"""

import os
from decimal import Decimal
from functools import lru_cache

from dotenv import load_dotenv

# Load .env file into environment variables
load_dotenv()


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"


class Settings:
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "Financial Transaction Management System"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = _env_bool("DEBUG")

    # Server
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "8000"))

    # Database
    DATABASE_URL: str = os.getenv(
        "DATABASE_URL",
        "postgresql://localhost:5432/ftms"
    )

    # Environment
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_FORMAT: str = os.getenv("LOG_FORMAT", "json")

    # Swagger UI and the OpenAPI document are only served when enabled
    ENABLE_API_DOCS: bool = _env_bool("ENABLE_API_DOCS")

    # Reference-data cache TTL, in seconds. Never below 30.
    REFRESH_INTERVAL: int = max(30, int(os.getenv("REFRESH_INTERVAL", "300")))

    # HR system
    HR_API_EMPLOYEES_URL: str = os.getenv("HR_API_EMPLOYEES_URL", "")
    HR_API_TIMEOUT_SECONDS: float = float(
        os.getenv("HR_API_TIMEOUT_SECONDS", "15")
    )
    HR_API_MAX_RETRIES: int = int(os.getenv("HR_API_MAX_RETRIES", "3"))

    # Operations system
    OP_API_BASE_URL: str = os.getenv("OP_API_BASE_URL", "")
    OP_BUS_TRIPS_ENDPOINT: str = os.getenv(
        "OP_BUS_TRIPS_ENDPOINT", "/api/bus-trips"
    )
    OP_API_TIMEOUT_SECONDS: float = float(
        os.getenv("OP_API_TIMEOUT_SECONDS", "30")
    )

    # How a remittance shortage is charged to the crew, in percent
    DRIVER_SHARE_PERCENTAGE: Decimal = Decimal(
        os.getenv("DRIVER_SHARE_PERCENTAGE", "50")
    )
    CONDUCTOR_SHARE_PERCENTAGE: Decimal = Decimal(
        os.getenv("CONDUCTOR_SHARE_PERCENTAGE", "50")
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Return cached settings instance.

    The Settings object is created once and reused, so environment
    variables are only read at first use.
    """
    return Settings()
