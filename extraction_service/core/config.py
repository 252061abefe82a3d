"""
Extraction Service application configuration.
Manages all configurations through environment variables.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class Settings(BaseSettings):
    """Application settings using Pydantic Settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    # Application Settings
    APP_NAME: str = "Extraction Service"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"
    LOG_TO_FILE: bool = True

    # Full SQLAlchemy URL; when unset the PostgreSQL parts below are used
    DATABASE_URL: Optional[str] = None

    # PostgreSQL Configuration
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "password"
    POSTGRES_DATABASE: str = "extraction"

    # Database Pool Settings
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 3600

    # Extraction Settings
    RAW_FETCH_BATCH_SIZE: int = 500  # Raw rows pulled per round trip while streaming a scope
    CHANGELOG_PAGE_SIZE: int = 100  # Page size the collector requests for embedded changelogs
    LOCK_DIR: Optional[str] = None  # Defaults to <tmp>/extraction_locks

    @property
    def postgres_connection_string(self) -> str:
        """Builds the PostgreSQL connection string with proper UTF-8 encoding."""
        return f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DATABASE}?client_encoding=utf8"

    @property
    def database_url(self) -> str:
        """SQLAlchemy URL for the extraction database."""
        return self.DATABASE_URL or self.postgres_connection_string


# Global settings instance (lazy initialization)
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Returns the settings instance with lazy initialization.

    Configuration precedence:
    1) Environment variables (highest priority)
    2) Local .env file
    3) Defaults declared on Settings
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
