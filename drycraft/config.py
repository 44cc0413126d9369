"""
Configuration and settings for the Dry Craft API.
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

    # MongoDB
    mongodb_uri: Optional[str] = Field(default=None)
    mongodb_db_name: str = Field(default="drycraft")

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)

    # Tokens and credentials
    jwt_secret: str = Field(default="default-secret")
    jwt_algorithm: str = Field(default="HS256")
    jwt_expires_hours: int = Field(default=24, ge=1)
    bcrypt_rounds: int = Field(default=12, ge=4, le=31)

    # Comma separated, "*" allows every origin.
    cors_allowed_origins: str = Field(default="*")

    # S3-compatible media bucket
    s3_bucket: Optional[str] = Field(default=None)
    s3_region: Optional[str] = Field(default=None)
    s3_endpoint: Optional[str] = Field(default=None)
    aws_access_key_id: Optional[str] = Field(default=None)
    aws_secret_access_key: Optional[str] = Field(default=None)
    media_max_image_mb: int = Field(default=5, ge=1)
    media_max_video_mb: int = Field(default=30, ge=1)

    @property
    def cors_origins(self) -> list[str]:
        origins = [o.strip() for o in self.cors_allowed_origins.split(",")]
        return [o for o in origins if o] or ["*"]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
