"""Application configuration management."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # Server settings
    app_host: str = Field(default="0.0.0.0", description="Server bind host")
    app_port: int = Field(default=8080, description="Server bind port")

    # Upstream API settings
    api_key: str = Field(default="", description="OpenWeatherMap API key")
    upstream_url: str = Field(
        default="https://api.openweathermap.org/data/2.5/weather",
        description="OpenWeatherMap current weather endpoint",
    )
    upstream_lang: str = Field(
        default="en",
        description="Language for condition descriptions",
    )
    upstream_connect_timeout_seconds: float = Field(
        default=10.0,
        description="Upstream connect timeout in seconds",
        ge=0.1,
        le=60.0,
    )
    upstream_receive_timeout_seconds: float = Field(
        default=10.0,
        description="Upstream send/receive timeout in seconds",
        ge=0.1,
        le=60.0,
    )

    # Connectivity settings
    connectivity_probe_url: str = Field(
        default="https://api.openweathermap.org/",
        description="URL probed to decide whether the network is reachable",
    )
    connectivity_probe_timeout_seconds: float = Field(
        default=2.0,
        description="Connectivity probe timeout in seconds",
        ge=0.1,
        le=30.0,
    )

    # Storage settings
    storage_path: str | None = Field(
        default=None,
        description="JSON file backing the weather cache (memory when unset)",
    )
    storage_max_entries: int = Field(
        default=10000,
        description="Maximum keys held by the in-memory storage",
        ge=1,
        le=1000000,
    )

    # Logging settings
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    log_format: str = Field(
        default="json",
        description="Log format (json or text)",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
