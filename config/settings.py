"""Application settings and configuration management."""
from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or defaults."""

    DB_PATH: str = Field(default="data/mock_interviews.db")
    APP_CONFIG_PATH: str = "app_config.json"
    STAGE_CATALOG_PATH: str = "config/stages.yaml"

    APP_URL: str = "http://localhost:5173"
    EMAIL_FROM: str = "Interviews <noreply@example.com>"
    RESEND_API_KEY_ENV: str = "RESEND_API_KEY"
    RESEND_BASE_URL: str = "https://api.resend.com"
    EMAIL_TIMEOUT_S: float = Field(default=10.0, ge=0.1)
    NOTIFICATIONS_ENABLED: bool = True

    LOG_LEVEL: str = "INFO"
    ENABLE_FILE_LOGS: bool = True
    LOG_FILE: str = "logs/mock_interview.log"
    LOG_MAX_BYTES: int = Field(default=5_242_880, ge=1024)
    LOG_BACKUP_COUNT: int = Field(default=5, ge=0)

    model_config = SettingsConfigDict(env_file=".env", validate_assignment=True)


settings = Settings()
