"""
Configuration module for the Inventory service.

Uses Pydantic Settings to manage environment variables and configuration.
"""

from pathlib import Path
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database Configuration
    database_url: Optional[str] = Field(
        default=None,
        description="PostgreSQL connection string (DATABASE_URL)"
    )
    database_sslmode: Optional[str] = Field(
        default=None,
        description="libpq sslmode passed to the driver, e.g. 'require' for hosted Postgres"
    )

    # Connection Pool
    db_pool_size: int = Field(
        default=5,
        gt=0,
        description="Number of pooled connections kept open"
    )
    db_max_overflow: int = Field(
        default=10,
        ge=0,
        description="Extra connections allowed beyond the pool size"
    )
    db_pool_timeout: int = Field(
        default=30,
        gt=0,
        description="Seconds to wait for a pooled connection"
    )
    db_pool_pre_ping: bool = Field(
        default=True,
        description="Test connections for liveness on checkout"
    )

    # Schema
    auto_init_schema: bool = Field(
        default=False,
        description="Create missing tables when the API starts"
    )

    # Logging Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )
    log_file: Optional[Path] = Field(
        default=Path("./logs/inventory.log"),
        description="Log file path"
    )

    # API Configuration
    api_host: str = Field(
        default="0.0.0.0",
        description="API server host"
    )
    api_port: int = Field(
        default=3000,
        gt=0,
        le=65535,
        description="API server port"
    )
    api_workers: int = Field(
        default=1,
        gt=0,
        description="Number of API worker processes"
    )
    cors_origins: List[str] = Field(
        default=["*"],
        description="Origins allowed by the CORS middleware"
    )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get application settings singleton.

    Returns:
        Settings: Application configuration object
    """
    global _settings
    if _settings is None:
        _settings = Settings()

        # Ensure log directory exists
        if _settings.log_file:
            _settings.log_file.parent.mkdir(parents=True, exist_ok=True)

    return _settings


def reload_settings() -> Settings:
    """
    Force reload of settings (useful for testing).

    Returns:
        Settings: Fresh application configuration object
    """
    global _settings
    _settings = None
    return get_settings()
