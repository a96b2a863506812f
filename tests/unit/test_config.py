"""Unit tests for configuration module."""

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from src.core.config import Settings, get_settings

BASE_ENV = {
    "SUPABASE_URL": "https://test.supabase.co",
    "SUPABASE_SECRET_KEY": "test-secret",
}


class TestSettings:
    """Tests for Settings class."""

    def test_settings_loads_from_environment(self) -> None:
        """Test that Settings loads values from environment variables."""
        env_vars = {
            **BASE_ENV,
            "APP_NAME": "test-app",
            "APP_ENV": "testing",
            "PORT": "9000",
            "APPLICATION_TAG": "Shop",
            "GATEWAY_TIMEOUT_SECONDS": "2.5",
        }

        with patch.dict(os.environ, env_vars, clear=False):
            settings = Settings()

            assert settings.app_name == "test-app"
            assert settings.port == 9000
            assert settings.application_tag == "Shop"
            assert settings.gateway_timeout_seconds == 2.5

    def test_client_callback_secret_falls_back_to_key_secret(self) -> None:
        """Test checkout callbacks are verified with the key secret by default."""
        env_vars = {**BASE_ENV, "GATEWAY_KEY_SECRET": "key-secret", "CLIENT_CALLBACK_SECRET": ""}

        with patch.dict(os.environ, env_vars, clear=False):
            settings = Settings()

            assert settings.client_callback_secret == "key-secret"

    def test_dedicated_client_callback_secret_wins(self) -> None:
        env_vars = {**BASE_ENV, "GATEWAY_KEY_SECRET": "key-secret", "CLIENT_CALLBACK_SECRET": "cb-secret"}

        with patch.dict(os.environ, env_vars, clear=False):
            assert Settings().client_callback_secret == "cb-secret"

    def test_settings_cors_origins_list(self) -> None:
        """Test that CORS origins are correctly parsed into a list."""
        env_vars = {**BASE_ENV, "CORS_ORIGINS": "http://localhost:3000, http://example.com , "}

        with patch.dict(os.environ, env_vars, clear=False):
            assert Settings().cors_origins_list == ["http://localhost:3000", "http://example.com"]

    def test_is_gateway_configured(self) -> None:
        env_vars = {**BASE_ENV, "GATEWAY_KEY_ID": "", "GATEWAY_KEY_SECRET": ""}

        with patch.dict(os.environ, env_vars, clear=False):
            assert Settings().is_gateway_configured is False

    def test_ownership_cache_disabled_by_default(self) -> None:
        with patch.dict(os.environ, {**BASE_ENV, "OWNERSHIP_CACHE_TTL_SECONDS": "0"}, clear=False):
            assert Settings().ownership_cache_ttl_seconds == 0

    def test_rejects_non_positive_timeout(self) -> None:
        with patch.dict(os.environ, {**BASE_ENV, "GATEWAY_TIMEOUT_SECONDS": "0"}, clear=False):
            with pytest.raises(ValidationError):
                Settings()

    def test_settings_missing_required_fields(self) -> None:
        """Test that missing Supabase settings raise a validation error."""
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(ValidationError):
                Settings(_env_file=None)


class TestGetSettings:
    """Tests for get_settings function."""

    def test_get_settings_returns_cached_instance(self) -> None:
        get_settings.cache_clear()
        assert get_settings() is get_settings()
        get_settings.cache_clear()
