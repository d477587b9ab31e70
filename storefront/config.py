"""
Configuration and settings for the storefront service.
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
    log_level: str = Field(default="INFO", env="LOG_LEVEL")

    # Database (Postgres expected)
    database_url: Optional[str] = Field(default=None, env="DATABASE_URL")

    # S3-compatible object storage for product images
    storage_bucket: Optional[str] = Field(default=None, env="STORAGE_BUCKET")
    storage_endpoint: Optional[str] = Field(default=None, env="STORAGE_ENDPOINT")
    storage_region: Optional[str] = Field(default=None, env="STORAGE_REGION")
    storage_public_base_url: Optional[str] = Field(
        default=None, env="STORAGE_PUBLIC_BASE_URL"
    )
    aws_access_key_id: Optional[str] = Field(
        default=None, env="AWS_ACCESS_KEY_ID"
    )
    aws_secret_access_key: Optional[str] = Field(
        default=None, env="AWS_SECRET_ACCESS_KEY"
    )
    max_upload_bytes: int = Field(default=10 * 1024 * 1024, env="MAX_UPLOAD_BYTES")
    upload_fetch_timeout_seconds: int = Field(
        default=30, env="UPLOAD_FETCH_TIMEOUT_SECONDS"
    )

    # Development toggles
    use_in_memory_backends: bool = Field(
        default=False, env="USE_IN_MEMORY_BACKENDS"
    )

    # Session cookies
    session_secret: Optional[str] = Field(default=None, env="SESSION_SECRET")
    legacy_cookie_enabled: bool = Field(default=True, env="LEGACY_COOKIE_ENABLED")
    cookie_secure: bool = Field(default=False, env="COOKIE_SECURE")
    session_max_age: int = Field(default=86400, env="SESSION_MAX_AGE")
    remember_me_max_age: int = Field(default=2592000, env="REMEMBER_ME_MAX_AGE")

    # Page routing
    admin_path_prefix: str = Field(default="/Admin", env="ADMIN_PATH_PREFIX")
    login_path: str = Field(default="/Login", env="LOGIN_PATH")
    home_path: str = Field(default="/", env="HOME_PATH")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
