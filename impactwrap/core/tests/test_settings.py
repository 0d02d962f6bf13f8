"""Tests for settings validation."""

import pytest
from pydantic import ValidationError

from ..settings import Settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep developer environment variables out of these tests."""
    for name in ["DATABASE_URL", "LOG_LEVEL", "LOG_FORMAT", "ENVIRONMENT", "TOKEN_LENGTH"]:
        monkeypatch.delenv(f"IMPACTWRAP_{name}", raising=False)


def make_settings(**kwargs):
    return Settings(_env_file=None, **kwargs)


class TestDefaults:
    """Tests for default values."""

    def test_defaults(self):
        config = make_settings()
        assert config.database_url is None
        assert config.log_level == "INFO"
        assert config.log_format == "json"
        assert config.service_name == "impactwrap"
        assert config.token_length == 12
        assert config.uses_database() is False
        assert config.is_production() is False


class TestValidators:
    """Tests for field validators."""

    def test_log_level_uppercased(self):
        assert make_settings(log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level(self):
        with pytest.raises(ValidationError, match="log_level"):
            make_settings(log_level="loud")

    def test_log_format_lowercased(self):
        assert make_settings(log_format="TEXT").log_format == "text"

    def test_invalid_environment(self):
        with pytest.raises(ValidationError):
            make_settings(environment="qa")

    def test_production(self):
        assert make_settings(environment="Production").is_production()

    @pytest.mark.parametrize("url,expected", [
        ("postgres://u:p@db:5432/impact", "postgresql+psycopg://u:p@db:5432/impact"),
        ("postgresql://u:p@db/impact", "postgresql+psycopg://u:p@db/impact"),
        ("postgresql+psycopg://u:p@db/impact", "postgresql+psycopg://u:p@db/impact"),
        ("sqlite:///impact.db", "sqlite:///impact.db"),
        ("  ", None),
    ])
    def test_database_url_normalized(self, url, expected):
        assert make_settings(database_url=url).database_url == expected

    def test_unsupported_database(self):
        with pytest.raises(ValidationError):
            make_settings(database_url="mysql://u:p@db/impact")

    @pytest.mark.parametrize("length", [7, 33])
    def test_token_length_bounds(self, length):
        with pytest.raises(ValidationError):
            make_settings(token_length=length)

    def test_reads_prefixed_environment(self, monkeypatch):
        monkeypatch.setenv("IMPACTWRAP_TOKEN_LENGTH", "16")
        assert make_settings().token_length == 16
