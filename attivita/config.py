"""
Configuration and settings for the attivita backend.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service.

    Environment variable names are the upper-cased field names
    (``DATABASE_URL``, ``JWT_SECRET``, ...).
    """

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")

    # Database (any SQLAlchemy URL; unset means in-memory)
    database_url: Optional[str] = Field(default=None)

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)

    # Bearer tokens
    jwt_secret: str = Field(
        default="dev-jwt-secret-change-in-production-0123456789"
    )
    jwt_issuer: str = Field(default="attivita")
    jwt_audience: str = Field(default="attivita-frontend")
    jwt_ttl_seconds: int = Field(default=3600, gt=0)

    # Password hashing cost factor
    bcrypt_rounds: int = Field(default=12, ge=4, le=31)

    cors_allow_origins: list[str] = Field(default_factory=lambda: ["*"])
    log_level: str = Field(default="INFO")

    # Off by default: the stock contract lets any authenticated caller
    # create, update and delete on behalf of any existing user.
    enforce_owner_scope: bool = Field(default=False)
    reject_duplicate_emails: bool = Field(default=False)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
