"""
Service settings, read from the environment (prefix ``RANCH_``) and ``.env``.
"""
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Deployment settings for the ranch service."""

    model_config = SettingsConfigDict(
        env_prefix="RANCH_",
        env_file=".env",
        case_sensitive=False,
    )

    app_name: str = "Ranch Land & Herd Allocation Service"
    app_version: str = "1.0.0"
    log_level: str = Field(default="INFO", description="Root logging level")

    # Persistence backend
    persistence_backend: str = Field(
        default="memory",
        description="'memory' for the process-local store, 'http' for the REST backend",
    )
    persistence_api_base_url: str = "http://localhost:8080"
    persistence_api_key: str = ""
    persistence_timeout_seconds: float = Field(
        default=10.0,
        description="Upper bound for any single persistence or image call",
    )

    # HTTP backend retries (tenacity, exponential backoff)
    max_retry_attempts: int = Field(default=3, description="Attempts per request, including the first")
    retry_backoff_multiplier: int = 1
    retry_min_wait: int = Field(default=1, description="Seconds")
    retry_max_wait: int = Field(default=5, description="Seconds")

    image_service_base_url: str = "http://localhost:8090"

    # Listing and dashboards
    default_page_size: int = 10
    max_page_size: int = 100
    recent_events_limit: int = Field(default=10, description="Events shown on a dashboard")
    default_period_days: int = Field(default=30, description="Production window in days")

    # HTTP surface
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])
    rate_limit_requests: int = Field(default=100, description="Per client, per minute")


settings = Settings()
