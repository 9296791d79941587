"""
Application settings.

Loads configuration from environment variables using pydantic-settings.
"""

from decimal import Decimal

from loguru import logger
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from rewards_engine.config.constants import (
    DEFAULT_TRUST_SCORE,
    REFERRAL_SIGNUP_BONUS,
    WALLET_API_TIMEOUT,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str
    database_echo: bool = False
    database_pool_size: int = Field(
        default=10, ge=1, le=100, description="Connection pool size"
    )

    # Wallet balance-update endpoint
    wallet_api_url: str = "http://localhost:8080/api/wallet/update-balance"
    wallet_api_timeout: float = Field(
        default=WALLET_API_TIMEOUT,
        gt=0,
        le=60,
        description="Timeout for wallet balance-update calls in seconds",
    )
    wallet_enabled: bool = Field(
        default=True,
        description="Push commissions to the wallet balance endpoint",
    )

    # Scoring / incentives
    trust_default_score: int = Field(
        default=DEFAULT_TRUST_SCORE,
        ge=0,
        le=100,
        description="Score assumed for users without a rewards summary row",
    )
    referral_signup_bonus: Decimal = Field(
        default=REFERRAL_SIGNUP_BONUS,
        ge=0,
        description="One-time bonus credited when a referral is verified",
    )

    # Application
    environment: str = "production"
    debug: bool = False
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator('database_url')
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Validate database URL."""
        if not v.startswith(('postgresql://', 'postgresql+asyncpg://')):
            raise ValueError(
                'DATABASE_URL must start with postgresql:// or postgresql+asyncpg://'
            )
        return v

    @field_validator('wallet_api_url')
    @classmethod
    def validate_wallet_api_url(cls, v: str) -> str:
        """Validate wallet endpoint URL."""
        if not v.startswith(('http://', 'https://')):
            raise ValueError('WALLET_API_URL must be an http(s) URL')
        return v

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize log level name."""
        level = v.upper()
        allowed = {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}
        if level not in allowed:
            raise ValueError(f'LOG_LEVEL must be one of {sorted(allowed)}')
        return level

    @model_validator(mode='after')
    def validate_production(self) -> 'Settings':
        """Validate production-specific requirements."""
        if self.environment == 'production':
            if self.debug:
                raise ValueError(
                    'DEBUG must be False in production environment. '
                    'Set DEBUG=false in your .env file.'
                )
            if self.wallet_enabled and self.wallet_api_url.startswith('http://localhost'):
                logger.warning(
                    'WALLET_API_URL points to localhost in production. '
                    'Commissions will fail if no wallet service runs there.'
                )
        return self


# Global settings instance
settings = Settings()
