"""
Unit tests for YAML configuration loading.
"""

import pytest

from flow_query import ConfigError
from flow_query.config import CONFIG_ENV_VAR, Settings, load_settings


@pytest.fixture
def config_file(tmp_path):
    """Write a complete configuration file."""
    path = tmp_path / "config.yaml"
    path.write_text(
        "warehouse:\n"
        "  table: unsw_flows\n"
        "dashboard:\n"
        "  bucket_minutes: 15\n"
        "  flow_limit: 500\n"
        "  top_talkers_limit: 5\n"
        "filters:\n"
        "  validate_custom: false\n"
        "logging:\n"
        "  level: debug\n"
    )
    return path


class TestLoadSettings:
    """Test cases for load_settings."""

    def test_defaults_without_path(self, monkeypatch):
        """Test defaults are used when no file is named."""
        monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
        assert load_settings() == Settings()

    def test_missing_file_defaults(self, tmp_path):
        """Test a missing file falls back to defaults."""
        assert load_settings(str(tmp_path / "nope.yaml")) == Settings()

    def test_full_file(self, config_file):
        """Test every value is read."""
        settings = load_settings(str(config_file))

        assert settings.table == "unsw_flows"
        assert settings.bucket_minutes == 15
        assert settings.flow_limit == 500
        assert settings.top_talkers_limit == 5
        assert settings.validate_custom is False
        assert settings.log_level == "DEBUG"

    def test_env_var(self, config_file, monkeypatch):
        """Test the environment variable names the file."""
        monkeypatch.setenv(CONFIG_ENV_VAR, str(config_file))
        assert load_settings().table == "unsw_flows"

    def test_partial_file(self, tmp_path):
        """Test omitted sections keep their defaults."""
        path = tmp_path / "partial.yaml"
        path.write_text("dashboard:\n  bucket_minutes: 30\n")
        settings = load_settings(str(path))

        assert settings.bucket_minutes == 30
        assert settings.table == "flows"

    def test_empty_file(self, tmp_path):
        """Test an empty file yields defaults."""
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_settings(str(path)) == Settings()

    def test_invalid_yaml(self, tmp_path):
        """Test malformed YAML raises ConfigError."""
        path = tmp_path / "bad.yaml"
        path.write_text("warehouse: [unclosed\n")
        with pytest.raises(ConfigError):
            load_settings(str(path))

    def test_wrong_shape(self, tmp_path):
        """Test a non-mapping document raises ConfigError."""
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError):
            load_settings(str(path))

    def test_bad_section(self, tmp_path):
        """Test a scalar section raises ConfigError."""
        path = tmp_path / "section.yaml"
        path.write_text("dashboard: 5\n")
        with pytest.raises(ConfigError, match="dashboard"):
            load_settings(str(path))

    def test_bad_value(self, tmp_path):
        """Test a non-numeric bucket size raises ConfigError."""
        path = tmp_path / "value.yaml"
        path.write_text("dashboard:\n  bucket_minutes: hourly\n")
        with pytest.raises(ConfigError):
            load_settings(str(path))

    def test_bad_table(self, tmp_path):
        """Test an unsafe table name raises ConfigError."""
        path = tmp_path / "table.yaml"
        path.write_text("warehouse:\n  table: 'flows; DROP'\n")
        with pytest.raises(ConfigError, match="table"):
            load_settings(str(path))
