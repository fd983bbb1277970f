"""Tests for settings assembly and the settings models."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from dirconfig.models.schemas import CacheRecord, CacheSettings, ServiceSettings
from dirconfig.settings import SettingsError, deep_merge, load_settings


class TestServiceSettings:
    """Test cases for the settings models."""

    def test_defaults(self):
        settings = ServiceSettings()

        assert settings.config_dir == Path("config")
        assert settings.files is None
        assert settings.excluded_files == ["routes.py", "services.py"]
        assert settings.cache.file == Path("var/cache/config.cache")
        assert settings.cache.ttl == 60
        assert settings.log_level == "INFO"

    def test_log_level_is_case_insensitive(self):
        assert ServiceSettings(log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level(self):
        with pytest.raises(ValidationError):
            ServiceSettings(log_level="LOUD")

    def test_excluded_files_must_be_names(self):
        with pytest.raises(ValidationError):
            ServiceSettings(excluded_files=["nested/routes.py"])

    def test_unknown_field_is_rejected(self):
        with pytest.raises(ValidationError):
            CacheSettings(path="var/cache")

    def test_assignment_is_validated(self):
        settings = CacheSettings()
        with pytest.raises(ValidationError):
            settings.ttl = "forever"

    def test_cache_record_requires_signature(self):
        with pytest.raises(ValidationError):
            CacheRecord(signature="", data={})


class TestDeepMerge:
    def test_nested_values_merge(self):
        base = {"cache": {"file": "a.cache", "ttl": 60}, "config_dir": "config"}

        result = deep_merge(base, {"cache": {"ttl": 5}})

        assert result == {"cache": {"file": "a.cache", "ttl": 5}, "config_dir": "config"}
        assert base["cache"]["ttl"] == 60


class TestLoadSettings:
    """Test cases for load_settings precedence."""

    def test_defaults_only(self):
        settings = load_settings(environ={})

        assert settings == ServiceSettings()

    def test_settings_file(self, tmp_path):
        settings_file = tmp_path / "dirconfig.yaml"
        settings_file.write_text(
            "config_dir: /srv/app/config\n"
            "excluded_files: [routes.py]\n"
            "cache:\n"
            "  ttl: 0\n"
        )

        settings = load_settings(settings_file, environ={})

        assert settings.config_dir == Path("/srv/app/config")
        assert settings.excluded_files == ["routes.py"]
        assert settings.cache.ttl == 0
        assert settings.cache.file == Path("var/cache/config.cache")

    def test_environment_overrides_file(self, tmp_path):
        settings_file = tmp_path / "dirconfig.json"
        settings_file.write_text('{"config_dir": "from-file", "cache": {"ttl": 10}}')

        settings = load_settings(
            settings_file,
            environ={"DIRCONFIG_CACHE__TTL": "20", "DIRCONFIG_FILES": "app.py,db.json"},
        )

        assert settings.config_dir == Path("from-file")
        assert settings.cache.ttl == 20
        assert settings.files == ["app.py", "db.json"]

    def test_overrides_win(self):
        settings = load_settings(
            environ={"DIRCONFIG_CONFIG_DIR": "from-env", "DIRCONFIG_LOG_LEVEL": "warning"},
            overrides={"config_dir": "from-cli", "log_level": None, "cache": {"ttl": None}},
        )

        assert settings.config_dir == Path("from-cli")
        assert settings.log_level == "WARNING"
        assert settings.cache.ttl == 60

    def test_missing_settings_file(self, tmp_path):
        with pytest.raises(SettingsError):
            load_settings(tmp_path / "absent.yaml", environ={})

    def test_unsupported_settings_file(self, tmp_path):
        settings_file = tmp_path / "dirconfig.txt"
        settings_file.write_text("config_dir=config")

        with pytest.raises(SettingsError):
            load_settings(settings_file, environ={})

    def test_bad_environment_value(self):
        with pytest.raises(SettingsError, match="DIRCONFIG_CACHE__TTL"):
            load_settings(environ={"DIRCONFIG_CACHE__TTL": "soon"})

    def test_invalid_settings(self, tmp_path):
        settings_file = tmp_path / "dirconfig.yaml"
        settings_file.write_text("cache:\n  location: /tmp\n")

        with pytest.raises(SettingsError):
            load_settings(settings_file, environ={})
