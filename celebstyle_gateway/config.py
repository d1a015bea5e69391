"""
Configuration management with environment variable validation.
Loads and validates all configuration from environment variables.
"""
import json
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="celebstyle-gateway")
    app_version: str = Field(default="1.0.0")
    environment: str = Field(default="development")
    debug: bool = Field(default=False)

    # Server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=5000)

    # Security
    api_key_salt: str = Field(default="")
    api_key_prefix: str = Field(default="csk_")
    admin_password: str = Field(default="change-this-immediately")
    expose_key_on_dashboard: bool = Field(default=True)

    # Database
    database_url: str = Field(default="sqlite:///./celebstyle_gateway.db")
    database_echo: bool = Field(default=False)

    # Rate limiting for key-minting endpoints
    rate_limit_enabled: bool = Field(default=True)
    rate_limit_storage_uri: str = Field(default="memory://")
    register_rate_limit: str = Field(default="5/minute")
    regenerate_rate_limit: str = Field(default="5/minute")

    # Logging
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json")
    log_file_enabled: bool = Field(default=False)
    log_file_path: str = Field(default="logs/gateway.log")
    log_file_max_size: int = Field(default=10485760)  # 10MB
    log_file_backup_count: int = Field(default=5)

    # CORS
    cors_enabled: bool = Field(default=True)
    cors_origins: str = Field(default="http://localhost:3000")

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment value."""
        allowed = ["development", "staging", "test", "production"]
        if v not in allowed:
            raise ValueError(f"environment must be one of: {allowed}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in allowed:
            raise ValueError(f"log_level must be one of: {allowed}")
        return v.upper()

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Validate log format."""
        allowed = ["json", "console"]
        if v not in allowed:
            raise ValueError(f"log_format must be one of: {allowed}")
        return v

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        if not v.startswith(("sqlite://", "postgresql://", "postgresql+psycopg2://")):
            raise ValueError("DATABASE_URL must be a SQLite or PostgreSQL connection string")
        return v

    @property
    def cors_origin_list(self) -> List[str]:
        """Parse CORS origins from a JSON list or a comma separated string."""
        try:
            origins = json.loads(self.cors_origins)
        except json.JSONDecodeError:
            origins = self.cors_origins.split(",")
        if isinstance(origins, str):
            origins = [origins]
        return [origin.strip() for origin in origins if origin.strip()]


def validate_environment() -> Settings:
    """
    Validate environment configuration on startup.
    Raises ValueError if required variables are missing or invalid.
    """
    settings = Settings()

    if settings.environment == "production":
        if settings.debug:
            raise ValueError("DEBUG must be False in production")
        if settings.database_echo:
            raise ValueError("DATABASE_ECHO must be False in production")
        if len(settings.api_key_salt) < 32:
            raise ValueError("API_KEY_SALT must be at least 32 characters long in production")
        if settings.admin_password in ("change-this-immediately", "password", "secret"):
            raise ValueError("ADMIN_PASSWORD must be set to a secure value in production")

    return settings


# Global settings instance
settings = validate_environment()
