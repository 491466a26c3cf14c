"""
Application configuration using Pydantic Settings.
Loads configuration from environment variables with sensible defaults.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = "postgresql+asyncpg://localhost/tasks"
    database_pool_size: int = 10
    database_max_overflow: int = 20

    # API Configuration
    api_host: str = "0.0.0.0"
    api_port: int = 3000
    api_embedded_workers: int = 1

    # Worker Configuration
    worker_id: str | None = None
    worker_count: int = 1
    worker_batch_size: int = 5
    worker_idle_interval_seconds: float = 0.5
    worker_iteration_timeout_seconds: float = 30.0
    worker_restart_delay_seconds: float = 1.0
    worker_claim_eligible_only: bool = True

    # Observability
    otel_exporter_otlp_endpoint: str | None = None
    otel_service_name: str = "taskqueue"
    log_level: str = "INFO"
    log_format: str = "json"  # json or console


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
