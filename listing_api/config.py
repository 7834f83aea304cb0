"""
Configuration management using Pydantic settings.
Handles database URL, gateway backend selection, JWT secrets, media storage and listing defaults.
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings
from typing import List
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables or a .env file."""

    # Application configuration
    app_name: str = "Property Catalog API"
    app_version: str = "1.0.0"
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    # Persistence configuration
    database_url: str = "sqlite+aiosqlite:///./property_catalog.db"
    gateway_backend: str = "sql"

    # JWT configuration
    jwt_secret_key: str = "your-secret-key-change-in-production"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60
    password_reset_expire_minutes: int = 30
    password_reset_url: str = "http://localhost:3000/reset-password"

    # Media storage configuration
    media_dir: str = "./media"
    media_base_url: str = "http://localhost:8000/media-files"
    max_file_size: int = 10 * 1024 * 1024  # 10MB
    allowed_media_types: List[str] = [
        "image/jpeg",
        "image/png",
        "image/webp",
        "image/gif",
        "video/mp4",
        "video/quicktime",
        "video/x-msvideo",
    ]

    # Listing configuration
    listing_page_size: int = 12
    region_match: str = "partial"
    description_max_length: int = 2000
    placeholder_image_url: str = "https://placehold.co/600x400?text=No+Image"

    # API configuration
    api_v1_prefix: str = "/api/v1"
    cors_origins: List[str] = ["http://localhost:3000", "http://localhost:5173", "http://localhost:8000"]

    # Server configuration
    host: str = "0.0.0.0"
    port: int = 8000

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v):
        """Ensure an async driver is used."""
        if v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        if v.startswith("sqlite://"):
            return v.replace("sqlite://", "sqlite+aiosqlite://", 1)
        return v

    @field_validator("jwt_secret_key")
    @classmethod
    def validate_jwt_secret_key(cls, v):
        """Validate JWT secret key strength."""
        if not v:
            raise ValueError("JWT_SECRET_KEY is required")
        if len(v) < 32 and v != "your-secret-key-change-in-production":
            raise ValueError("JWT_SECRET_KEY must be at least 32 characters long")
        return v

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v):
        """Validate environment setting."""
        allowed_envs = ["development", "testing", "staging", "production"]
        if v not in allowed_envs:
            raise ValueError(f"Environment must be one of: {allowed_envs}")
        return v

    @field_validator("gateway_backend")
    @classmethod
    def validate_gateway_backend(cls, v):
        """Validate the data gateway backend name."""
        allowed_backends = ["sql", "memory"]
        if v not in allowed_backends:
            raise ValueError(f"Gateway backend must be one of: {allowed_backends}")
        return v

    @field_validator("region_match")
    @classmethod
    def validate_region_match(cls, v):
        if v not in ("exact", "partial"):
            raise ValueError("Region match must be 'exact' or 'partial'")
        return v

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    This ensures we only create one instance of settings throughout the app lifecycle.
    """
    return Settings()


# Global settings instance
settings = get_settings()
