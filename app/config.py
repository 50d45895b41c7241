"""Application configuration via pydantic-settings."""

from __future__ import annotations

from functools import lru_cache
from typing import List, Literal, Optional

from pydantic import Field, computed_field
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
    app_name: str = "Summit Portal"
    app_version: str = "1.0.0"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    api_prefix: str = "/api/v1"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    workers: int = 4

    # Database
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "summit"
    postgres_password: str = Field(default="summit_secret")
    postgres_db: str = "summit_portal"
    db_pool_size: int = 20
    db_max_overflow: int = 10
    db_echo: bool = False

    # Overrides the postgres_* fields when set (e.g. sqlite+aiosqlite in tests)
    database_url_override: Optional[str] = None

    @computed_field
    @property
    def database_url(self) -> str:
        """Async PostgreSQL connection URL."""
        if self.database_url_override:
            return self.database_url_override
        return (
            f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @computed_field
    @property
    def sync_database_url(self) -> str:
        """Sync PostgreSQL connection URL for Alembic."""
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    # Redis
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: Optional[str] = None
    redis_db: int = 0

    @computed_field
    @property
    def redis_url(self) -> str:
        """Redis connection URL."""
        auth = f":{self.redis_password}@" if self.redis_password else ""
        return f"redis://{auth}{self.redis_host}:{self.redis_port}/{self.redis_db}"

    # JWT (tokens are issued by the auth provider, only verified here)
    jwt_secret_key: str = Field(default="your-super-secret-key-change-in-production")
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60

    # Object storage (DigitalOcean Spaces / S3)
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    aws_region: str = "fra1"
    s3_bucket_name: str = "summit-payment-proofs"
    s3_endpoint_url: Optional[str] = None  # Spaces or MinIO endpoint
    storage_timeout_seconds: float = 10.0
    proof_folder: str = "payment-proofs"

    # Payment gateway
    payment_gateway: Literal["paystack", "manual"] = "manual"
    paystack_secret_key: Optional[str] = None
    paystack_base_url: str = "https://api.paystack.co"
    gateway_timeout_seconds: float = 10.0
    payment_reference_prefix: str = "NAPPS"

    # Revalidation hook (frontend cache refresh)
    revalidate_url: Optional[str] = None
    revalidate_secret: Optional[str] = None
    revalidate_timeout_seconds: float = 5.0

    # Config cache
    config_cache_ttl_seconds: int = 300
    conference_cache_ttl_seconds: int = 3600
    config_fresh_ttl_seconds: int = 60

    # Conference
    conference_timezone: str = "Africa/Lagos"
    default_registration_amount: int = 20000  # in naira

    # Rate Limiting
    rate_limit_per_minute: int = 100
    scan_rate_limit_per_minute: int = 60

    # CORS
    cors_origins: List[str] = ["http://localhost:3000"]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
