"""Unit tests for icsbusy.config_loader."""

import json

import pytest

from icsbusy.config_loader import Config, apply_env_overrides, load_config

pytestmark = pytest.mark.unit


class TestConfigFromDict:
    """Tests for Config.from_dict()."""

    def test_defaults(self):
        """Test an empty mapping yields defaults."""
        cfg = Config.from_dict({})
        assert cfg == Config()
        assert cfg.default_timezone == "America/New_York"
        assert cfg.max_occurrences_per_rule == 1000
        assert cfg.recurrence_horizon_days == 365
        assert cfg.exdate_tolerance_seconds == 60
        assert cfg.series_uid_patterns == []
        assert cfg.log_level == "INFO"

    def test_none_is_defaults(self):
        """Test None is treated as an empty mapping."""
        assert Config.from_dict(None) == Config()

    def test_numeric_strings_coerced(self):
        """Test numeric strings are converted to int."""
        cfg = Config.from_dict({"max_occurrences_per_rule": "250", "recurrence_horizon_days": "30"})
        assert cfg.max_occurrences_per_rule == 250
        assert cfg.recurrence_horizon_days == 30

    def test_values_clamped(self, caplog):
        """Test out-of-range values are clamped with a warning."""
        cfg = Config.from_dict({"max_occurrences_per_rule": 0, "recurrence_horizon_days": 99999})
        assert cfg.max_occurrences_per_rule == 1
        assert cfg.recurrence_horizon_days == 3660
        assert "below minimum" in caplog.text
        assert "above maximum" in caplog.text

    def test_non_numeric_uses_default(self):
        """Test garbage numeric values fall back to defaults."""
        assert Config.from_dict({"max_occurrences_per_rule": "lots"}).max_occurrences_per_rule == 1000

    def test_invalid_timezone_falls_back(self):
        """Test an unknown default_timezone is replaced."""
        assert Config.from_dict({"default_timezone": "Mars/Olympus"}).default_timezone == "America/New_York"

    def test_valid_timezone_kept(self):
        """Test a valid IANA zone is accepted."""
        assert Config.from_dict({"default_timezone": "Europe/Paris"}).default_timezone == "Europe/Paris"

    def test_windows_timezone_name_mapped(self):
        """Test Windows zone names are mapped to IANA identifiers."""
        assert Config.from_dict({"default_timezone": "Pacific Standard Time"}).default_timezone == (
            "America/Los_Angeles"
        )

    def test_single_pattern_wrapped(self):
        """Test a scalar series_uid_patterns value becomes a list."""
        assert Config.from_dict({"series_uid_patterns": "-copy$"}).series_uid_patterns == ["-copy$"]

    def test_log_level_upper_cased(self):
        """Test log level names are normalized."""
        assert Config.from_dict({"log_level": "debug"}).log_level == "DEBUG"


class TestLoadConfig:
    """Tests for load_config()."""

    def test_missing_file_returns_defaults(self, tmp_path):
        """Test a missing file yields defaults."""
        assert load_config(str(tmp_path / "absent.yaml")) == Config()

    def test_yaml_file(self, tmp_path):
        """Test YAML configuration is loaded."""
        path = tmp_path / "icsbusy.yaml"
        path.write_text(
            "default_timezone: Europe/London\n"
            "max_occurrences_per_rule: 50\n"
            "series_uid_patterns:\n"
            "  - '-copy$'\n",
            encoding="utf-8",
        )
        cfg = load_config(str(path))
        assert cfg.default_timezone == "Europe/London"
        assert cfg.max_occurrences_per_rule == 50
        assert cfg.series_uid_patterns == ["-copy$"]

    def test_json_file(self, tmp_path):
        """Test JSON configuration is loaded."""
        path = tmp_path / "icsbusy.json"
        path.write_text(json.dumps({"recurrence_horizon_days": 90}), encoding="utf-8")
        assert load_config(str(path)).recurrence_horizon_days == 90

    def test_empty_file_returns_defaults(self, tmp_path):
        """Test an empty file yields defaults."""
        path = tmp_path / "icsbusy.yaml"
        path.write_text("", encoding="utf-8")
        assert load_config(str(path)) == Config()

    def test_non_mapping_raises(self, tmp_path):
        """Test a non-mapping document is rejected."""
        path = tmp_path / "icsbusy.yaml"
        path.write_text("- just\n- a list\n", encoding="utf-8")
        with pytest.raises(ValueError, match="mapping"):
            load_config(str(path))

    def test_default_path_in_cwd(self, tmp_path, monkeypatch):
        """Test ./icsbusy.yaml is used when no path is given."""
        (tmp_path / "icsbusy.yaml").write_text("log_level: warning\n", encoding="utf-8")
        monkeypatch.chdir(tmp_path)
        assert load_config().log_level == "WARNING"


class TestApplyEnvOverrides:
    """Tests for apply_env_overrides()."""

    def test_no_env_returns_equal_config(self):
        """Test nothing changes without ICSBUSY_* variables."""
        cfg = Config(max_occurrences_per_rule=7)
        assert apply_env_overrides(cfg) == cfg

    def test_overrides_applied(self, monkeypatch):
        """Test each recognised variable overrides its field."""
        monkeypatch.setenv("ICSBUSY_DEFAULT_TIMEZONE", "Asia/Tokyo")
        monkeypatch.setenv("ICSBUSY_MAX_OCCURRENCES", "20")
        monkeypatch.setenv("ICSBUSY_LOG_LEVEL", "debug")
        cfg = apply_env_overrides(Config())
        assert cfg.default_timezone == "Asia/Tokyo"
        assert cfg.max_occurrences_per_rule == 20
        assert cfg.log_level == "DEBUG"

    def test_invalid_env_values_ignored(self, monkeypatch):
        """Test invalid variables keep the configured values."""
        monkeypatch.setenv("ICSBUSY_DEFAULT_TIMEZONE", "Mars/Olympus")
        monkeypatch.setenv("ICSBUSY_MAX_OCCURRENCES", "many")
        cfg = apply_env_overrides(Config(default_timezone="Europe/Paris"))
        assert cfg.default_timezone == "Europe/Paris"
        assert cfg.max_occurrences_per_rule == 1000

    def test_original_not_mutated(self, monkeypatch):
        """Test overrides return a new Config."""
        monkeypatch.setenv("ICSBUSY_MAX_OCCURRENCES", "20")
        cfg = Config()
        apply_env_overrides(cfg)
        assert cfg.max_occurrences_per_rule == 1000
