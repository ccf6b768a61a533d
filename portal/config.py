"""
Application configuration using Pydantic settings.

Usage:
    from portal.config import get_settings
    settings = get_settings()
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Unified application settings loaded from environment variables and .env file.

    Required for production:
        - LINEAR_API_KEY (issue tracker access)
        - REDIS_HOST / REDIS_PASSWORD (backing key-value store)
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # App settings
    app_name: str = Field(default="Client Portal", validation_alias="APP_NAME")
    api_prefix: str = "/api"
    debug: bool = Field(default=False, validation_alias="DEBUG")

    # Redis (backing key-value store)
    redis_host: str = Field(default="localhost", validation_alias="REDIS_HOST")
    redis_port: int = Field(default=6379, validation_alias="REDIS_PORT")
    redis_db: int = Field(default=0, validation_alias="REDIS_DB")
    redis_password: Optional[str] = Field(default=None, validation_alias="REDIS_PASSWORD")
    kv_namespace: str = Field(default="portal", validation_alias="KV_NAMESPACE")

    @property
    def redis_url(self) -> str:
        """Construct Redis URL from components."""
        auth = f":{self.redis_password}@" if self.redis_password else ""
        return f"redis://{auth}{self.redis_host}:{self.redis_port}/{self.redis_db}"

    # Issue tracker
    linear_api_url: str = Field(
        default="https://api.linear.app/graphql", validation_alias="LINEAR_API_URL"
    )
    linear_api_key: Optional[str] = Field(default=None, validation_alias="LINEAR_API_KEY")
    linear_timeout_seconds: float = Field(default=10.0, validation_alias="LINEAR_TIMEOUT_SECONDS")
    linear_max_retries: int = Field(default=3, validation_alias="LINEAR_MAX_RETRIES")
    linear_max_concurrent: int = Field(default=5, validation_alias="LINEAR_MAX_CONCURRENT")
    linear_page_size: int = Field(default=100, validation_alias="LINEAR_PAGE_SIZE")

    # In-process cache (TTLs in seconds)
    cache_default_ttl: float = Field(default=300, validation_alias="CACHE_DEFAULT_TTL")
    cache_max_entries: int = Field(default=100, validation_alias="CACHE_MAX_ENTRIES")
    ownership_cache_ttl: float = Field(default=300, validation_alias="OWNERSHIP_CACHE_TTL")
    issue_detail_ttl: float = Field(default=120, validation_alias="ISSUE_DETAIL_TTL")
    issues_by_state_ttl: float = Field(default=300, validation_alias="ISSUES_BY_STATE_TTL")
    team_catalog_ttl: float = Field(default=300, validation_alias="TEAM_CATALOG_TTL")

    # Hierarchy / aggregation
    hierarchy_max_depth: int = Field(default=50, validation_alias="HIERARCHY_MAX_DEPTH")
    issues_by_state_partial: bool = Field(default=False, validation_alias="ISSUES_BY_STATE_PARTIAL")

    # Scheduler
    enable_cache_cleanup: bool = Field(default=True, validation_alias="ENABLE_CACHE_CLEANUP")
    cache_cleanup_interval: int = Field(default=60, validation_alias="CACHE_CLEANUP_INTERVAL")

    @field_validator(
        "cache_default_ttl",
        "ownership_cache_ttl",
        "issue_detail_ttl",
        "issues_by_state_ttl",
        "team_catalog_ttl",
        "linear_timeout_seconds",
    )
    @classmethod
    def validate_positive(cls, v: float) -> float:
        """TTLs and timeouts must be positive; a zero timeout would block forever."""
        if v <= 0:
            raise ValueError("must be greater than zero")
        return v

    @field_validator("cache_max_entries", "hierarchy_max_depth", "linear_max_concurrent")
    @classmethod
    def validate_at_least_one(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    def validate_production_config(self) -> tuple[list[str], list[str]]:
        """
        Validate configuration for production deployment.

        Returns:
            Tuple of (errors, warnings) - errors are fatal, warnings are advisory
        """
        errors = []
        warnings = []

        if not self.linear_api_key:
            errors.append("LINEAR_API_KEY is required for issue tracker access")

        if not self.redis_password:
            warnings.append("REDIS_PASSWORD not set - backing store connection is unauthenticated")

        if self.issues_by_state_partial:
            warnings.append(
                "ISSUES_BY_STATE_PARTIAL is enabled - boards may render with missing columns"
            )

        return errors, warnings


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()


__all__ = ["Settings", "get_settings"]
