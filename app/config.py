"""
Application configuration with Pydantic Settings for validation and type safety.
Supports environment-specific configurations and .env file loading.
"""

from decimal import Decimal
from enum import Enum
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator


class Environment(str, Enum):
    """Application environment types"""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class Settings(BaseSettings):
    """
    Ordering engine settings with validation.
    Settings are loaded from environment variables or .env file.
    """

    # Application settings
    app_name: str = Field(default="ordering-core", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: Environment = Field(
        default=Environment.DEVELOPMENT, description="Application environment"
    )
    debug: bool = Field(default=False, description="Debug mode")

    # Local key-value storage
    database_url: str = Field(
        default="sqlite:///./data/ordering.db",
        description="SQLAlchemy URL of the key-value store",
    )
    db_echo: bool = Field(default=False, description="SQLAlchemy echo SQL statements")

    # Pricing
    tax_rate: Decimal = Field(
        default=Decimal("0.06"),
        ge=0,
        lt=1,
        description="Sales tax applied to the discounted subtotal",
    )
    fallback_coupon_value: Decimal = Field(
        default=Decimal("2"),
        ge=0,
        description="Value of the generic fixed coupon minted for unmatched rewards",
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(
        default="%(asctime)s %(levelname)s %(name)s: %(message)s",
        description="Log format string",
    )

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    @field_validator("environment", mode="before")
    @classmethod
    def validate_environment(cls, v):
        """Validate and normalize environment value"""
        if isinstance(v, str):
            return Environment(v.lower())
        return v


# Global settings instance
settings = Settings()
