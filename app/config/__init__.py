"""
Application Settings
Load from environment variables
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class Settings(BaseSettings):
    """Application settings from environment"""

    # ======================
    # Database
    # ======================
    DATABASE_URL: str = "sqlite+aiosqlite:///./macro_engines.db"
    AUTO_CREATE_TABLES: bool = True

    # ======================
    # Application
    # ======================
    APP_ENV: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    CONFIG_DIR: Optional[str] = None
    CORS_ORIGINS: str = "http://localhost:3000,http://127.0.0.1:3000"

    # ======================
    # Macro Data
    # ======================
    FRED_API_KEY: Optional[str] = None
    FRED_BASE_URL: str = "https://api.stlouisfed.org/fred"
    COINGECKO_BASE_URL: str = "https://api.coingecko.com/api/v3"
    HTTP_TIMEOUT_SECONDS: float = 10.0
    MOCK_MACRO_DATA: bool = False

    # ======================
    # Scheduler
    # ======================
    SCHEDULER_ENABLED: bool = False
    MACRO_REFRESH_MINUTES: int = 5
    TIMEZONE: str = "America/New_York"

    # ======================
    # Portfolio Store
    # ======================
    PORTFOLIO_STORE_KEY: str = "portfolio_v1"

    # ======================
    # Pydantic v2 config
    # ======================
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="forbid",
    )

    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]


settings = Settings()
