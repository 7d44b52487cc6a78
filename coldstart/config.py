"""Registry configuration."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Registry settings loaded from environment variables."""

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"  # "json" or "text"

    # Lifecycle timeouts (seconds, None = wait indefinitely)
    start_timeout: float | None = None
    stop_timeout: float | None = None

    # Prometheus instrumentation
    metrics_enabled: bool = True

    class Config:
        env_prefix = "COLDSTART_"


settings = Settings()
