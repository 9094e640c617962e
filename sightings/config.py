"""
Application configuration using pydantic-settings.
Loads from environment variables with .env file support.
"""

from functools import lru_cache
from typing import List

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from sightings.kernel.permissions.roles import Role


class BootstrapRoleAssignment(BaseModel):
    """Roles granted to a user id straight from configuration."""

    user_id: str
    roles: List[Role] = Field(default_factory=list)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = "sqlite+aiosqlite:///./sightings.db"

    # Application
    debug: bool = False
    environment: str = "development"
    log_level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR
    slow_request_ms: float = 1000.0

    # API Settings
    api_v1_prefix: str = "/api/v1"
    project_name: str = "Sightings"
    version: str = "0.4.0"

    # Identity: the upstream provider forwards the verified user id in this header
    identity_header: str = "X-User-Id"
    # e.g. BOOTSTRAP_ROLES='[{"user_id": "admin", "roles": ["security-admin", "moderator"]}]'
    bootstrap_roles: List[BootstrapRoleAssignment] = Field(default_factory=list)

    # Blob storage (MinIO / S3 compatible)
    blob_endpoint: str = "localhost:9000"
    blob_access_key: str = "minioadmin"
    blob_secret_key: str = "minioadmin"
    blob_secure: bool = False
    blob_bucket: str = "sightings-images"
    image_url_ttl_seconds: int = 3600

    # Search
    search_max_limit: int = 1000
    near_default_max_distance_m: float = 10000.0


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
