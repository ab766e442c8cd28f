"""Application configuration using pydantic-settings."""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, HttpUrl, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    app_name: str = "Pick List"  # Reported as service.name on every span
    app_version: str = "0.1.0"
    debug: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "info"
    shutdown_drain_timeout_seconds: int | None = None  # None waits for all requests

    # Tracing (Honeycomb via OTLP/HTTP protobuf)
    telemetry_enabled: bool = True
    otlp_endpoint: HttpUrl = Field(
        default="https://api.honeycomb.io/v1/traces", validate_default=True
    )
    otlp_timeout_seconds: float = 3.0
    trace_sample_rate: float = Field(default=1.0, ge=0.0, le=1.0)
    trace_console_export: bool = False

    # Credential
    honeycomb_api_key: SecretStr | None = None  # Overrides the key file
    honeycomb_api_key_file: Path = Path("config/.honeycomb_api_key")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
