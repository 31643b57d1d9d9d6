"""Application configuration using pydantic-settings.

All environment variables should be accessed through the settings object
rather than using os.getenv() directly.
"""

from functools import lru_cache
from typing import List, Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra env vars
    )

    # Database - local SQLite file by default, override via env for Postgres
    database_url: str = "sqlite:///./foodcost.db"

    # Connection pool for server databases (ignored by SQLite except recycle)
    db_pool_size: int = 20
    db_max_overflow: int = 40
    db_pool_recycle: int = 1800  # seconds

    # Server
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # API
    api_v1_prefix: str = "/api/v1"

    # Worker pools for batch explosion / batch matching
    explosion_max_workers: int = 4
    match_max_workers: int = 4

    # Receipt statuses that count as goods actually received
    receipt_statuses: str = "locked,completed"

    # Yield applied to inventory items created from an approved order guide
    default_yield_percent: float = 95.0

    @field_validator("explosion_max_workers", "match_max_workers")
    @classmethod
    def validate_pool_size(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Worker pool size must be at least 1")
        return v

    @field_validator("db_pool_size", "db_pool_recycle")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Must be at least 1")
        return v

    @field_validator("db_max_overflow")
    @classmethod
    def validate_overflow(cls, v: int) -> int:
        if v < 0:
            raise ValueError("db_max_overflow cannot be negative")
        return v

    @field_validator("default_yield_percent")
    @classmethod
    def validate_default_yield(cls, v: float) -> float:
        if not 0 < v <= 100:
            raise ValueError("default_yield_percent must be in (0, 100]")
        return v

    @property
    def receipt_statuses_list(self) -> List[str]:
        """Parse receipt statuses into a list."""
        return [s.strip().lower() for s in self.receipt_statuses.split(",") if s.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
