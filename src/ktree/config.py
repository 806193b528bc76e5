"""Configuration settings for the Knowledge Tree service."""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="KT_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # Application
    app_name: str = "Knowledge Tree Service"
    debug: bool = False
    environment: str = "development"
    log_level: str = "INFO"

    # Database
    # Default to Postgres; tests override via KT_DB_URL
    db_url: str = "postgresql+asyncpg://localhost/knowledge_tree"
    db_pool_size: int = 10
    db_max_overflow: int = 20

    # Promote pre-history drafts into submissions on startup
    migrate_legacy_drafts: bool = True

    # Auth
    jwt_issuer: str = "auth.knowledge-tree.local"
    jwt_audience: str = "knowledge-tree"
    jwt_algorithm: str = "RS256"
    jwt_public_key: Optional[str] = None

    # CORS
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # Rate Limiting
    rate_limit_requests: int = 120
    rate_limit_window: int = 60  # seconds

    # Blob storage for code images
    blob_storage_base: str = "http://localhost:54321"
    blob_storage_key: Optional[str] = None
    blob_storage_bucket: str = "code-images"
    blob_storage_prefix: str = "student-code"
    blob_storage_timeout: float = 30.0
    max_code_image_bytes: int = 5 * 1024 * 1024


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
