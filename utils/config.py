"""
Configuration Utility - Environment Variables Management

Centralized configuration loading from .env files using pydantic-settings.
Type-safe access to all environment variables with validation.

Usage:
    from utils.config import settings

    database_url = settings.DATABASE_URL
    resources_dir = settings.SQL_RESOURCES_DIR
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Database Configuration
    DATABASE_URL: str = Field(
        default="mssql+pyodbc://localhost/TestingDemoDev"
        "?driver=ODBC+Driver+18+for+SQL+Server&TrustServerCertificate=yes&trusted_connection=yes"
    )
    DB_CONNECT_TIMEOUT: int = Field(default=30)
    DB_CONNECT_RETRIES: int = Field(default=3, ge=1)

    # SQL Resources
    SQL_RESOURCES_DIR: str | None = Field(default=None)
    SQL_RESOURCES_PACKAGE: str = Field(default="apps.synchronizer.sql")
    SQL_DEFAULT_SCHEMA: str = Field(default="dbo")

    # Sync Behaviour
    SYNC_SCHEDULE_CRON: str = Field(default="")
    SYNC_FAIL_ON_ERRORS: bool = Field(default=True)
    SYNC_REPORT_PATH: str | None = Field(default=None)

    # Logging Configuration
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FORMAT: str = Field(default="json")

    # Application Metadata
    ENVIRONMENT: str = Field(default="production")
    APP_NAME: str = Field(default="sql-object-sync")
    APP_VERSION: str = Field(default="0.1.0")

    @field_validator("LOG_FORMAT")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Only 'json' and 'text' renderers exist."""
        v = v.strip().lower()
        if v not in ("json", "text"):
            raise ValueError("LOG_FORMAT must be 'json' or 'text'")
        return v

    @field_validator("SQL_DEFAULT_SCHEMA")
    @classmethod
    def validate_default_schema(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("SQL_DEFAULT_SCHEMA must not be empty")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Singleton Settings instance
    """
    return Settings()


# Global settings instance
settings = get_settings()
