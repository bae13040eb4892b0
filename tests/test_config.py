"""Tests for configuration loading."""

import logging

import pytest
from pydantic import ValidationError

from payfastacy.config import MatchPolicy, Settings, configure_logging, normalize_database_url

ENV_VARS = [
    "DB_URL",
    "DATABASE_URL",
    "APP_KEY",
    "SEPAY_API_KEY",
    "SEPAY_API_URL",
    "SEPAY_TIMEOUT",
    "CONTENT_LENGTH",
    "CONTENT_MAX_ATTEMPTS",
    "MIN_AMOUNT",
    "MATCH_POLICY",
    "MATCH_WHOLE_TOKEN",
    "CALLBACK_RATE_LIMIT",
    "LOG_LEVEL",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestSettings:
    """Tests for Settings."""

    def test_defaults(self):
        settings = Settings()

        assert settings.database_url == "sqlite+aiosqlite:///./payfastacy.db"
        assert settings.content_length == 11
        assert settings.content_max_attempts == 10
        assert settings.match_policy is MatchPolicy.FIRST
        assert settings.match_whole_token is False
        assert settings.app_key is None

    def test_from_env(self, clean_env):
        clean_env.setenv("DB_URL", "postgres://user:pw@db:5432/pay")
        clean_env.setenv("APP_KEY", "secret")
        clean_env.setenv("SEPAY_API_KEY", "sepay")
        clean_env.setenv("CONTENT_LENGTH", "12")
        clean_env.setenv("MATCH_POLICY", "strict")
        clean_env.setenv("MATCH_WHOLE_TOKEN", "true")
        clean_env.setenv("LOG_LEVEL", "debug")

        settings = Settings.from_env()

        assert settings.database_url == "postgresql+asyncpg://user:pw@db:5432/pay"
        assert settings.app_key == "secret"
        assert settings.sepay_api_key == "sepay"
        assert settings.content_length == 12
        assert settings.match_policy is MatchPolicy.STRICT
        assert settings.match_whole_token is True
        assert settings.log_level == "DEBUG"

    def test_database_url_fallback(self, clean_env):
        clean_env.setenv("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
        assert Settings.from_env().database_url == "sqlite+aiosqlite:///:memory:"

    def test_empty_values_use_defaults(self, clean_env):
        clean_env.setenv("CONTENT_LENGTH", "")
        assert Settings.from_env().content_length == 11

    @pytest.mark.parametrize("length", [3, 21])
    def test_content_length_bounds(self, length):
        """Tokens must fit the content column."""
        with pytest.raises(ValidationError):
            Settings(content_length=length)

    def test_invalid_policy(self):
        with pytest.raises(ValidationError):
            Settings(match_policy="random")


class TestHelpers:
    @pytest.mark.parametrize(
        "url, expected",
        [
            ("postgresql://h/db", "postgresql+asyncpg://h/db"),
            ("postgres://h/db", "postgresql+asyncpg://h/db"),
            ("postgresql+asyncpg://h/db", "postgresql+asyncpg://h/db"),
            ("sqlite+aiosqlite:///x.db", "sqlite+aiosqlite:///x.db"),
        ],
    )
    def test_normalize_database_url(self, url, expected):
        assert normalize_database_url(url) == expected

    def test_configure_logging_does_not_fail(self):
        configure_logging("warning")
        assert logging.getLogger().handlers
