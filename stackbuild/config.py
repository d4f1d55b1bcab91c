"""Configuration settings for stackbuild.

Uses pydantic-settings for config parsing from environment variables
and defaults. Configuration precedence: CLI flags > env vars > defaults.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_cache_dir() -> Path:
    """Return the default cache directory."""
    return Path.home() / ".cache" / "stackbuild"


class Settings(BaseSettings):
    """Application settings.

    Settings are loaded from environment variables with the STACKBUILD_ prefix.
    CLI flags can override these at runtime.
    """

    model_config = SettingsConfigDict(
        env_prefix="STACKBUILD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Paths
    cache_dir: Path = Field(
        default_factory=_default_cache_dir,
        description="Root directory for the git cache and downloaded sources",
    )

    # Remote artifact cache
    remote_cache_url: str | None = Field(
        default=None,
        description="Base URL of the S3-compatible bucket holding cached sources",
    )

    # Operational modes
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    # Concurrency
    max_concurrent_fetches: int = Field(
        default=4,
        ge=1,
        le=32,
        description="Maximum concurrent remote cache transfers",
    )

    # Timeouts (in seconds)
    download_timeout: int = Field(
        default=3600,
        ge=10,
        description="Timeout for source downloads and remote cache transfers",
    )

    @property
    def git_cache_dir(self) -> Path:
        """Root of the per-install-directory git stores."""
        return self.cache_dir / "git_cache"

    @property
    def download_dir(self) -> Path:
        """Directory where source artifacts are downloaded."""
        return self.cache_dir / "downloads"


def get_settings() -> Settings:
    """Get the application settings.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()


def print_settings_json(settings: Settings | None = None) -> str:
    """Render effective settings as JSON.

    Args:
        settings: Optional settings instance; uses default if not provided.

    Returns:
        JSON string of effective settings.
    """
    if settings is None:
        settings = get_settings()
    return settings.model_dump_json(indent=2)


__all__ = ["Settings", "get_settings", "print_settings_json"]
