"""
Configuration and settings for the storefront backend.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")
    log_level: str = Field(default="INFO")

    # Comma-separated list, or "*"
    allowed_origins: str = Field(default="http://localhost:5173")

    # Database (Postgres expected, any SQLAlchemy URL works)
    database_url: Optional[str] = Field(default=None)

    # S3-compatible storage for product images
    s3_endpoint: Optional[str] = Field(default=None)
    s3_region: Optional[str] = Field(default=None)
    s3_bucket: Optional[str] = Field(default=None)
    aws_access_key_id: Optional[str] = Field(default=None)
    aws_secret_access_key: Optional[str] = Field(default=None)
    upload_url_expires_seconds: int = Field(default=900)
    image_url_expires_seconds: int = Field(default=3600)

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)

    # Change feed (Redis)
    redis_url: Optional[str] = Field(default=None)
    change_feed_prefix: str = Field(default="storefront:changes")

    # Sessions
    auth_secret: str = Field(default="dev-only-secret-change-me")
    session_ttl_seconds: int = Field(default=60 * 60 * 24 * 30)
    anonymous_sign_in_enabled: bool = Field(default=False)

    # Admin credential pair checked before password sign-in
    admin_email: Optional[str] = Field(default=None)
    admin_password: Optional[str] = Field(default=None)

    def get_allowed_origins(self) -> list[str]:
        if self.allowed_origins.strip() == "*":
            return ["*"]
        return [
            origin.strip()
            for origin in self.allowed_origins.split(",")
            if origin.strip()
        ]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
