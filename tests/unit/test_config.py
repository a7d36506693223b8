"""Unit tests for the config module."""

from pathlib import Path

from pydantic import ValidationError
import pytest

from record_search.config import Settings


pytestmark = pytest.mark.unit


class TestConfig:
    """Test configuration loading and validation."""

    def test_config_defaults_are_applied(self, monkeypatch):
        for key in list(Settings.model_fields):
            monkeypatch.delenv(f"RECORD_SEARCH_{key.upper()}", raising=False)

        settings = Settings(_env_file=None)

        assert settings.index_backend == "memory"
        assert settings.sqlite_path is None
        assert settings.reindex_on_search is True
        assert settings.eager_reindex is False
        assert settings.qualifier_case_sensitive is True
        assert settings.json_logs is True
        assert settings.service_name == "record-search"
        assert settings.is_sqlite_backend() is False

    def test_values_come_from_prefixed_environment(self, monkeypatch):
        monkeypatch.setenv("RECORD_SEARCH_EAGER_REINDEX", "1")
        monkeypatch.setenv("RECORD_SEARCH_QUALIFIER_CASE_SENSITIVE", "false")
        monkeypatch.setenv("RECORD_SEARCH_LOG_LEVEL", "debug")

        settings = Settings(_env_file=None)

        assert settings.eager_reindex is True
        assert settings.qualifier_case_sensitive is False
        assert settings.log_level == "debug"

    def test_sqlite_backend_requires_a_path(self, monkeypatch):
        monkeypatch.setenv("RECORD_SEARCH_INDEX_BACKEND", "sqlite")

        with pytest.raises(ValidationError, match="RECORD_SEARCH_SQLITE_PATH"):
            Settings(_env_file=None)

    def test_sqlite_backend_with_path(self, monkeypatch, tmp_path):
        monkeypatch.setenv("RECORD_SEARCH_INDEX_BACKEND", "sqlite")
        monkeypatch.setenv("RECORD_SEARCH_SQLITE_PATH", str(tmp_path / "index.db"))

        settings = Settings(_env_file=None)

        assert settings.is_sqlite_backend()
        assert settings.sqlite_path == Path(tmp_path / "index.db")

    def test_unknown_backend_is_rejected(self, monkeypatch):
        monkeypatch.setenv("RECORD_SEARCH_INDEX_BACKEND", "redis")

        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    def test_env_file_is_read(self, monkeypatch, tmp_path):
        monkeypatch.delenv("RECORD_SEARCH_SERVICE_NAME", raising=False)
        env_file = tmp_path / ".env"
        env_file.write_text("RECORD_SEARCH_SERVICE_NAME=from-dotenv\n", encoding="utf-8")

        settings = Settings(_env_file=env_file)

        assert settings.service_name == "from-dotenv"

    def test_explicit_arguments_override_environment(self):
        settings = Settings(_env_file=None, reindex_on_search=False)

        assert settings.reindex_on_search is False
