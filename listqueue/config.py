"""
Application configuration using Pydantic Settings.
Loads configuration from environment variables with sensible defaults.
"""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Store
    redis_url: str = "redis://localhost:6379/0"
    store_backend: Literal["redis", "memory"] = "redis"
    pending_queue: str = "pending"
    in_flight_queue: str = "in-flight"

    # Locking
    lock_sentinel: str = "locked"
    lock_ttl_seconds: int = 10
    lock_poll_interval_seconds: float = 5.0

    # Dispatcher Configuration
    worker_id: str | None = None
    max_concurrency: int = 3
    dispatch_interval_seconds: float = 300.0

    # Sweeper Configuration
    sweep_interval_seconds: float = 600.0
    stale_threshold_seconds: float = 600.0
    max_attempts: int = 3
    sweep_batch_size: int = 1
    requeue_clears_claimed_at: bool = False

    # API Configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # Observability
    otel_exporter_otlp_endpoint: str = "http://localhost:4317"
    otel_service_name: str = "listqueue"
    log_level: str = "INFO"
    log_format: str = "json"  # json or console


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
