"""Tests for configuration module."""

import json
import os
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from stackbuild.config import Settings, get_settings, print_settings_json


class TestSettings:
    """Test Settings class."""

    def test_default_settings(self) -> None:
        """Settings should have sensible defaults."""
        env = {k: v for k, v in os.environ.items() if not k.startswith("STACKBUILD_")}
        with patch.dict(os.environ, env, clear=True):
            settings = Settings(_env_file=None)

        assert settings.cache_dir == Path.home() / ".cache" / "stackbuild"
        assert settings.remote_cache_url is None
        assert settings.log_level == "INFO"
        assert settings.max_concurrent_fetches == 4
        assert settings.download_timeout == 3600

    def test_derived_directories(self) -> None:
        """Git cache and downloads should live under the cache dir."""
        settings = Settings(cache_dir=Path("/var/cache/sb"))

        assert settings.git_cache_dir == Path("/var/cache/sb/git_cache")
        assert settings.download_dir == Path("/var/cache/sb/downloads")

    def test_settings_from_env(self) -> None:
        """Settings should be loadable from environment variables."""
        with patch.dict(
            os.environ,
            {
                "STACKBUILD_REMOTE_CACHE_URL": "https://cache.example.com",
                "STACKBUILD_LOG_LEVEL": "DEBUG",
                "STACKBUILD_MAX_CONCURRENT_FETCHES": "8",
            },
        ):
            settings = Settings()
            assert settings.remote_cache_url == "https://cache.example.com"
            assert settings.log_level == "DEBUG"
            assert settings.max_concurrent_fetches == 8

    def test_settings_cache_dir_from_env(self) -> None:
        """Cache dir should be configurable via env."""
        with patch.dict(os.environ, {"STACKBUILD_CACHE_DIR": "/tmp/test-cache"}):
            settings = Settings()
            assert settings.cache_dir == Path("/tmp/test-cache")

    def test_invalid_log_level(self) -> None:
        """Unknown log levels should be rejected."""
        with pytest.raises(ValidationError):
            Settings(log_level="VERBOSE")

    @pytest.mark.parametrize("value", [0, 33])
    def test_fetch_concurrency_bounds(self, value) -> None:
        """Concurrent fetches should be between 1 and 32."""
        with pytest.raises(ValidationError):
            Settings(max_concurrent_fetches=value)

    def test_download_timeout_minimum(self) -> None:
        """Download timeout should not be unreasonably short."""
        with pytest.raises(ValidationError):
            Settings(download_timeout=1)


class TestGetSettings:
    """Test get_settings function."""

    def test_get_settings_returns_settings(self) -> None:
        """get_settings should return a Settings instance."""
        settings = get_settings()
        assert isinstance(settings, Settings)

    def test_get_settings_reads_env(self) -> None:
        """get_settings should reflect the current environment."""
        with patch.dict(os.environ, {"STACKBUILD_LOG_LEVEL": "ERROR"}):
            assert get_settings().log_level == "ERROR"


class TestPrintSettingsJson:
    """Test print_settings_json function."""

    def test_print_settings_json(self) -> None:
        """print_settings_json should return valid JSON."""
        settings = Settings()
        json_str = print_settings_json(settings)

        # Should be valid JSON
        parsed = json.loads(json_str)

        # Should contain expected keys
        assert "cache_dir" in parsed
        assert "remote_cache_url" in parsed
        assert "log_level" in parsed
        assert "max_concurrent_fetches" in parsed
        assert "download_timeout" in parsed

    def test_print_settings_json_default(self) -> None:
        """print_settings_json without args should use default settings."""
        json_str = print_settings_json()
        parsed = json.loads(json_str)
        assert "cache_dir" in parsed
