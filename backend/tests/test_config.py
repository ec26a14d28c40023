"""Tests for settings validation and the logging helpers."""

import json
import logging

import pytest

from foldertree.core.config import ConfigurationError, Environment, Settings
from foldertree.core.logging_config import _JsonFormatter, redact
from foldertree.database import create_db_engine


def _secure(**overrides) -> Settings:
    values = dict(
        environment=Environment.PRODUCTION,
        jwt_secret_key="a" * 64,
        auth_enabled=True,
        cors_allowed_origins="https://folders.example.com",
    )
    values.update(overrides)
    return Settings(**values)


class TestSettings:

    def test_defaults(self):
        s = Settings(_env_file=None)
        assert s.tree_max_depth == 1000
        assert s.tree_max_nodes == 100_000
        assert s.root_label == "Dashboard"
        assert s.root_href == "/dashboard"

    def test_log_level_normalized(self):
        assert Settings(log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level_rejected(self):
        with pytest.raises(ValueError):
            Settings(log_level="LOUD")

    @pytest.mark.parametrize("field", ["tree_max_depth", "tree_max_nodes"])
    def test_caps_must_be_positive(self, field):
        with pytest.raises(ValueError):
            Settings(**{field: 0})

    def test_cors_origins_parsed(self):
        s = Settings(cors_allowed_origins="https://a.example, https://b.example ,")
        assert s.get_cors_origins() == ["https://a.example", "https://b.example"]

    def test_wildcard_cors_rejected(self):
        with pytest.raises(ValueError):
            Settings(cors_allowed_origins="*").get_cors_origins()

    def test_is_postgresql(self):
        assert Settings(database_url="postgresql://u:p@db/folders").is_postgresql
        assert not Settings(database_url="sqlite:///./x.db").is_postgresql

    def test_sqlite_engine_built_for_non_postgresql_url(self, tmp_path):
        db_engine = create_db_engine(Settings(database_url=f"sqlite:///{tmp_path / 'folders.db'}"))
        assert db_engine.dialect.name == "sqlite"
        db_engine.dispose()


class TestProductionValidation:

    def test_secure_production_config_passes(self):
        _secure().validate_production_config()

    def test_default_secret_blocks_production(self):
        with pytest.raises(ConfigurationError, match="JWT_SECRET_KEY"):
            _secure(jwt_secret_key="dev-insecure-key-change-me").validate_production_config()

    def test_auth_disabled_blocks_production(self):
        with pytest.raises(ConfigurationError, match="AUTH_ENABLED"):
            _secure(auth_enabled=False).validate_production_config()

    def test_localhost_cors_blocks_production(self):
        with pytest.raises(ConfigurationError, match="localhost"):
            _secure(cors_allowed_origins="http://localhost:3000").validate_production_config()

    def test_development_tolerates_insecure_defaults(self):
        Settings(environment=Environment.DEVELOPMENT, auth_enabled=False).validate_production_config()


class TestLogging:

    def test_bearer_token_redacted(self):
        line = redact("Authorization header: Bearer abcdefghijklmnopqrstuvwxyz012345")
        assert "abcdefghijklmnopqrstuvwxyz012345" not in line
        assert "***REDACTED***" in line

    def test_key_value_secret_redacted(self):
        assert "hunter2hunter2" not in redact("password=hunter2hunter2")

    def test_plain_text_untouched(self):
        assert redact("Folder moved under parent abc") == "Folder moved under parent abc"

    def test_json_formatter_merges_extra_fields(self):
        record = logging.LogRecord("foldertree.test", logging.INFO, __file__, 1, "Folder created", (), None)
        record.folder_id = "f1"
        record.request_id = "req-1"
        payload = json.loads(_JsonFormatter().format(record))
        assert payload["message"] == "Folder created"
        assert payload["level"] == "INFO"
        assert payload["folder_id"] == "f1"
        assert payload["request_id"] == "req-1"
