"""
Configuration management using Pydantic Settings.

Loads configuration from environment variables and .env files
with validation and type conversion.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables and .env files.

    Settings are loaded in this order of precedence:
    1. Environment variables (prefixed with IMPACTWRAP_)
    2. .env file in current directory
    3. Default values
    """

    model_config = SettingsConfigDict(
        env_prefix="IMPACTWRAP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Database Configuration
    database_url: Optional[str] = Field(
        default=None,
        description="Database connection string (PostgreSQL or SQLite). "
                    "When unset, an in-memory store is used."
    )

    db_pool_size: int = Field(
        default=5,
        ge=1,
        le=20,
        description="Database connection pool size"
    )

    db_echo: bool = Field(
        default=False,
        description="Echo SQL statements to the log"
    )

    # Logging Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    log_format: str = Field(
        default="json",
        description="Log output format (json, text)"
    )

    # Service-specific Configuration
    service_name: str = Field(
        default="impactwrap",
        description="Service name for logging and monitoring"
    )

    environment: str = Field(
        default="development",
        description="Environment name (development, staging, production)"
    )

    # Ingestion
    token_length: int = Field(
        default=12,
        ge=8,
        le=32,
        description="Length of generated impact tokens"
    )

    max_upload_rows: int = Field(
        default=50000,
        ge=1,
        description="Maximum number of donor rows accepted per upload"
    )

    seed_default_organization: bool = Field(
        default=True,
        description="Create a default organization in the in-memory store"
    )

    # API
    api_host: str = Field(
        default="127.0.0.1",
        description="Host interface for the HTTP API"
    )

    api_port: int = Field(
        default=8000,
        ge=1,
        le=65535,
        description="Port for the HTTP API"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level is one of the standard levels."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid_levels:
            raise ValueError(f"log_level must be one of: {', '.join(sorted(valid_levels))}")
        return v.upper()

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v):
        """Validate log format is supported."""
        valid_formats = {"json", "text"}
        if v.lower() not in valid_formats:
            raise ValueError(f"log_format must be one of: {', '.join(sorted(valid_formats))}")
        return v.lower()

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v):
        """Validate environment name."""
        valid_envs = {"development", "staging", "production", "test"}
        if v.lower() not in valid_envs:
            raise ValueError(f"environment must be one of: {', '.join(sorted(valid_envs))}")
        return v.lower()

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v):
        """Validate database URL format if provided."""
        if v is None:
            return v

        v = v.strip()
        if not v:
            return None

        # SQLAlchemy 2.x no longer accepts the bare postgres:// scheme
        if v.startswith("postgres://"):
            v = "postgresql+psycopg://" + v[len("postgres://"):]
        elif v.startswith("postgresql://"):
            v = "postgresql+psycopg://" + v[len("postgresql://"):]

        if not v.startswith(("postgresql+psycopg://", "sqlite://")):
            raise ValueError("database_url must be a PostgreSQL or SQLite connection string")

        return v

    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    def uses_database(self) -> bool:
        """Check if a relational database is configured."""
        return self.database_url is not None


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses LRU cache to avoid re-reading configuration files
    on every function call.

    Returns:
        Settings instance with loaded configuration
    """
    return Settings()


# Convenience function to get settings
def settings() -> Settings:
    """Get application settings."""
    return get_settings()
