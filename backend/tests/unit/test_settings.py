"""
Unit tests for Pydantic Settings configuration.

Tests settings loading and validation.
"""

import pytest

from app.config.settings import Settings


class TestSettings:
    """Tests for Settings configuration."""

    def test_settings_has_defaults(self):
        """Settings should load without any environment variables."""
        settings = Settings(_env_file=None)

        assert settings.environment == "development"
        assert settings.aggregate_ranking_policy == "average_rank"
        assert settings.strict_section_totals is False
        assert settings.admin_api_key is None
        assert settings.database_pool_size >= 1

    def test_configuration_keys(self):
        """Every key the service reads, and nothing else."""
        assert set(Settings.model_fields) == {
            "environment",
            "debug",
            "log_level",
            "allowed_origins",
            "admin_api_key",
            "aggregate_ranking_policy",
            "strict_section_totals",
            "database_url",
            "database_pool_size",
            "database_max_overflow",
            "database_pool_timeout",
            "database_echo",
        }

    def test_allowed_origins_includes_localhost(self):
        settings = Settings(_env_file=None)

        assert "http://localhost:5173" in settings.allowed_origins
        assert "http://localhost:3000" in settings.allowed_origins

    @pytest.mark.parametrize("url", [
        "postgres://user:pw@db:5432/portal",
        "postgresql://user:pw@db:5432/portal",
    ])
    def test_postgres_url_uses_asyncpg(self, url):
        settings = Settings(_env_file=None, database_url=url)

        assert settings.database_url == "postgresql+asyncpg://user:pw@db:5432/portal"

    def test_sqlite_url_untouched(self):
        url = "sqlite+aiosqlite:///./portal.db"
        assert Settings(_env_file=None, database_url=url).database_url == url

    def test_env_overrides(self, monkeypatch):
        """Environment variables are read case-insensitively."""
        monkeypatch.setenv("AGGREGATE_RANKING_POLICY", "average_score")
        monkeypatch.setenv("STRICT_SECTION_TOTALS", "true")

        settings = Settings(_env_file=None)

        assert settings.aggregate_ranking_policy == "average_score"
        assert settings.strict_section_totals is True

    def test_rejects_unknown_policy(self, monkeypatch):
        from pydantic import ValidationError

        monkeypatch.setenv("AGGREGATE_RANKING_POLICY", "best_of")
        with pytest.raises(ValidationError):
            Settings(_env_file=None)
