"""Central configuration management using pydantic-settings.

All configuration is loaded from environment variables with sensible defaults.
Create a .env file for local development. Channels are given as a JSON list:

    YT_CHANNELS='[{"id": "UC...", "name": "Some Channel", "keep": 5}]'
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from tubecast.models import ChannelSpec


class YouTubeSettings(BaseSettings):
    """YouTube ingestion configuration."""

    model_config = SettingsConfigDict(env_prefix="YT_")

    channels: list[ChannelSpec] = Field(default_factory=list, description="Watched channels")
    keep_per_channel: int = Field(default=10, ge=1, description="Default entries kept per channel")
    check_interval: float = Field(default=3600, gt=0, description="Seconds between cycles")
    root_url: str = Field(default="http://localhost:8080/yt/media", description="Base URL for enclosures")
    files_location: str = Field(default="./var/yt", description="Directory for downloaded audio")
    rss_location: str = Field(default="./var/rss", description="Directory for generated feeds")


class Settings(BaseSettings):
    """Main application settings aggregating all config sections."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Environment
    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Deployment environment"
    )
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", description="Logging level"
    )
    json_logs: bool = Field(default=False, description="Render logs as JSON")

    youtube: YouTubeSettings = Field(default_factory=YouTubeSettings)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings: Application settings loaded from environment.
    """
    return Settings()
