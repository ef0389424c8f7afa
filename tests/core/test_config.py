"""
Tests for TOML configuration loading and saving.
"""

import tomllib

import pytest

from beatmap_exporter.core.config import (
    Config,
    SerializedFilter,
    config_from_toml,
    get_config_dir,
    get_data_dir,
    load_config,
    render_config,
    save_config,
)


class TestLoadConfig:
    """Test loading configuration files."""

    def test_missing_file_creates_default(self, tmp_path):
        path = tmp_path / "nested" / "config.toml"
        config = load_config(path)
        assert config == Config()
        assert path.exists()

    def test_partial_sections_use_defaults(self):
        config = config_from_toml({"export": {"export_format": "AUDIO"}})
        assert config.export.export_format == "audio"
        assert config.export.export_path == "lazerexport"
        assert config.collections.merge is True

    def test_invalid_export_format(self):
        with pytest.raises(ValueError, match="Invalid export format"):
            config_from_toml({"export": {"export_format": "video"}})

    def test_invalid_log_level(self):
        with pytest.raises(ValueError, match="Invalid log level"):
            config_from_toml({"logging": {"level": "chatty"}})

    def test_malformed_saved_filters_skipped(self):
        config = config_from_toml(
            {"filters": {"applied": [{"type": "stars", "input": "6.3"}, {"input": "no type"}]}}
        )
        assert config.filters.applied == [SerializedFilter("stars", "6.3", False)]

    def test_invalid_toml(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text("[export\nexport_path = ")
        with pytest.raises(tomllib.TOMLDecodeError):
            load_config(path)


class TestSaveConfig:
    """Test rendering and saving configuration."""

    def test_round_trip(self, tmp_path):
        config = Config()
        config.library.database_path = "C:\\Users\\me\\AppData\\Roaming\\osu"
        config.export.export_path = 'exports "new"'
        config.export.export_format = "collection"
        config.export.compression_enabled = True
        config.filters.match_all = False
        config.filters.applied = [
            SerializedFilter("stars", "6.3"),
            SerializedFilter("collection", "Favorites, Stream", True),
        ]
        config.collections.case_insensitive = False
        config.logging.level = "DEBUG"

        path = tmp_path / "config.toml"
        assert save_config(config, path)
        assert load_config(path) == config

    def test_render_is_valid_toml(self):
        config = Config()
        config.filters.applied = [SerializedFilter("author", "RLC, Nathan")]
        data = tomllib.loads(render_config(config))
        assert data["filters"]["match_all"] is True
        assert data["filters"]["applied"] == [{"type": "author", "input": "RLC, Nathan", "negated": False}]

    def test_save_failure_returns_false(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("")
        assert save_config(Config(), blocker / "config.toml") is False


class TestDirectories:
    """Test XDG directory resolution."""

    def test_xdg_overrides(self, tmp_path, monkeypatch):
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
        monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
        assert get_config_dir() == tmp_path / "config" / "beatmap-exporter"
        assert get_data_dir() == tmp_path / "data" / "beatmap-exporter"
