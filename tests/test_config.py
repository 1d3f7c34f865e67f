"""Tests for config loading, validation, and env var overrides."""

from pathlib import Path

import pytest

from githarvest.config.defaults import DEFAULT_TOML
from githarvest.config.loader import CONFIG_FILENAME, ConfigError, load_config


class TestConfigLoading:
    def test_default_config(self, tmp_path: Path):
        cfg = load_config(tmp_path)
        assert cfg.log.max_count == 50
        assert cfg.diff.context_lines == 3
        assert cfg.diff.lookahead == 5
        assert cfg.process.max_concurrency == 6
        assert cfg.logging.format == "console"

    def test_custom_toml(self, tmp_path: Path):
        (tmp_path / CONFIG_FILENAME).write_text(
            'version = "1.0"\n'
            '[log]\n'
            'max_count = 10\n'
            '[diff]\n'
            'ignore_whitespace = false\n'
            'diff_filter = "AM"\n'
        )
        cfg = load_config(tmp_path)
        assert cfg.log.max_count == 10
        assert cfg.diff.ignore_whitespace is False
        assert cfg.diff.diff_filter == "AM"

    def test_unknown_keys_ignored(self, tmp_path: Path):
        (tmp_path / CONFIG_FILENAME).write_text('[process]\nmax_concurrency = 2\nbogus = 1\n')
        cfg = load_config(tmp_path)
        assert cfg.process.max_concurrency == 2

    def test_starter_template_loads(self, tmp_path: Path):
        (tmp_path / CONFIG_FILENAME).write_text(DEFAULT_TOML)
        cfg = load_config(tmp_path)
        assert cfg.process.backoff_factor == 1.5
        assert cfg.diff.large_change_min_lines == 20

    def test_config_override_path(self, tmp_path: Path):
        custom = tmp_path / "custom.toml"
        custom.write_text('[log]\nmax_count = 7\n')
        cfg = load_config(tmp_path, config_override=str(custom))
        assert cfg.log.max_count == 7

    def test_missing_override_raises(self, tmp_path: Path):
        with pytest.raises(ConfigError):
            load_config(tmp_path, config_override="/nonexistent/config.toml")

    def test_invalid_toml_raises(self, tmp_path: Path):
        (tmp_path / CONFIG_FILENAME).write_text("this is not valid [toml")
        with pytest.raises(ConfigError):
            load_config(tmp_path)

    def test_invalid_value_raises(self, tmp_path: Path):
        (tmp_path / CONFIG_FILENAME).write_text('[diff]\nlarge_change_ratio = 2.0\n')
        with pytest.raises(ConfigError):
            load_config(tmp_path)

    def test_non_positive_max_count_raises(self, tmp_path: Path):
        (tmp_path / CONFIG_FILENAME).write_text('[log]\nmax_count = 0\n')
        with pytest.raises(ConfigError):
            load_config(tmp_path)


class TestEnvVarOverrides:
    def test_max_count_override(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("GITHARVEST_MAX_COUNT", "5")
        cfg = load_config(tmp_path)
        assert cfg.log.max_count == 5

    def test_env_wins_over_file(self, tmp_path: Path, monkeypatch):
        (tmp_path / CONFIG_FILENAME).write_text('[process]\nmax_concurrency = 2\n')
        monkeypatch.setenv("GITHARVEST_MAX_CONCURRENCY", "3")
        cfg = load_config(tmp_path)
        assert cfg.process.max_concurrency == 3

    def test_timeout_override(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("GITHARVEST_TIMEOUT", "2.5")
        cfg = load_config(tmp_path)
        assert cfg.process.timeout == 2.5

    def test_whitespace_override(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("GITHARVEST_IGNORE_WHITESPACE", "0")
        cfg = load_config(tmp_path)
        assert cfg.diff.ignore_whitespace is False

    def test_logging_overrides(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("GITHARVEST_LOG_LEVEL", "debug")
        monkeypatch.setenv("GITHARVEST_LOG_FORMAT", "json")
        cfg = load_config(tmp_path)
        assert cfg.logging.level == "DEBUG"
        assert cfg.logging.format == "json"

    @pytest.mark.parametrize("name,value", [
        ("GITHARVEST_MAX_COUNT", "lots"),
        ("GITHARVEST_MAX_COUNT", "-4"),
        ("GITHARVEST_TIMEOUT", "soon"),
        ("GITHARVEST_IGNORE_WHITESPACE", "maybe"),
        ("GITHARVEST_LOG_LEVEL", "LOUD"),
    ])
    def test_invalid_env_ignored(self, tmp_path: Path, monkeypatch, name, value):
        monkeypatch.setenv(name, value)
        cfg = load_config(tmp_path)
        assert cfg.log.max_count == 50
        assert cfg.process.timeout == 0
        assert cfg.diff.ignore_whitespace is True
        assert cfg.logging.level == "INFO"
