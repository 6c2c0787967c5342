"""Application configuration using Pydantic settings."""

from functools import lru_cache
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "MFA Guard"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"  # development, staging, production

    # Database
    DATABASE_URL: str
    DB_ECHO: bool = False
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10

    # Session tokens
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    # At-rest encryption of TOTP secrets (Fernet keys)
    MASTER_ENCRYPTION_KEY: str
    ENCRYPTION_CURRENT_VERSION: int = 1
    ENCRYPTION_KEY_V1: Optional[str] = None  # Previous key, decrypt-only after rotation

    # Two-factor authentication
    TOTP_ISSUER_NAME: str = "PhoenixGRC"  # Shown inside authenticator apps
    BACKUP_CODE_COUNT: int = 10
    BACKUP_CODE_LENGTH: int = 10

    # CORS
    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://localhost:5173"]

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "text"  # 'text' or 'json' (json for production)

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    @field_validator("SECRET_KEY")
    @classmethod
    def validate_secret_key(cls, v: str) -> str:
        """Validate SECRET_KEY is not using insecure defaults in production."""
        insecure_defaults = [
            "dev-secret-key-change-in-production",
            "your-secret-key-here",
            "change-me",
            "secret",
        ]

        # Read ENVIRONMENT directly, the model is not fully initialized yet
        import os

        environment = os.getenv("ENVIRONMENT", "development")

        if environment == "production" and (v in insecure_defaults or len(v) < 32):
            raise ValueError(
                "Insecure SECRET_KEY detected in production! "
                "Generate a secure key with: openssl rand -hex 32"
            )

        return v

    @field_validator("TOTP_ISSUER_NAME")
    @classmethod
    def default_blank_issuer(cls, v: str) -> str:
        """Fall back to the product name when the issuer is configured blank."""
        return v.strip() or "PhoenixGRC"

    @field_validator("BACKUP_CODE_COUNT", "BACKUP_CODE_LENGTH")
    @classmethod
    def validate_backup_code_policy(cls, v: int) -> int:
        """Backup code policy values must be positive."""
        if v < 1:
            raise ValueError("Backup code count and length must be at least 1")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
