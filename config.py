"""
Configuration management for CareLedger
"""

from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application
    APP_NAME: str = "CareLedger"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENV: str = "development"

    # API
    API_PREFIX: str = "/api/v1"
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Database
    DATABASE_URL: str = "sqlite:///./care_ledger.db"
    DATABASE_ECHO: bool = False
    DATABASE_TIMEOUT_SECONDS: int = 10

    # Security
    SECRET_KEY: str = "your-secret-key-change-in-production"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24  # 24 hours

    # CORS
    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://localhost:5173"]

    # Background scans
    SCANS_ENABLED: bool = True

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


class SchedulingConfig:
    """Tunables for dose generation, reminders and recurring scans"""

    # Generation
    GENERATION_HORIZON_DAYS: int = 7

    # Reminders
    REMINDER_LOOKAHEAD_HOURS: int = 24
    REMINDER_MEDIUM_WINDOW_MINUTES: int = 30
    SNOOZE_DEFAULT_MINUTES: int = 15
    ALERT_LOOKBACK_DAYS: int = 7

    # Ledger
    MISSED_DOSE_GRACE_MINUTES: int = 240
    INTAKE_MATCH_WINDOW_MINUTES: int = 120

    # Scans
    DUE_SCAN_INTERVAL_SECONDS: int = 60
    DUE_SCAN_LOOKAHEAD_MINUTES: int = 30
    GENERATION_SCAN_INTERVAL_SECONDS: int = 24 * 60 * 60
    SCAN_TIMEOUT_SECONDS: float = 30.0


settings = get_settings()
scheduling_config = SchedulingConfig()
