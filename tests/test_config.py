"""
Tests for the Config module
"""

import json
import os
import tempfile
from pathlib import Path

import pytest

from keysort import config as config_module
from keysort.config import (
    IMAGE_EXTENSIONS,
    Config,
    Settings,
    find_config_file,
    get_user_config_dir,
    load_config,
    save_config_template,
)


class TestConfig:
    """Test cases for Config class"""

    def test_default_config(self):
        """Test default configuration values"""
        config = Config()

        assert isinstance(config.settings, Settings)
        assert config.image_extensions == IMAGE_EXTENSIONS
        assert config.settings.debounce_ms == 1000

    def test_is_image(self):
        """Test image extension matching"""
        config = Config()

        assert config.is_image("IMG_0001.JPG")
        assert config.is_image("scan.webp")
        assert not config.is_image("notes.txt")
        assert not config.is_image("README")

    def test_preferences_path_default(self):
        """Test relative preference files live in the user config dir"""
        config = Config()
        assert config.preferences_path() == get_user_config_dir() / "preferences.json"

    def test_preferences_path_absolute(self):
        """Test absolute preference paths are kept"""
        config = Config()
        config.settings.preferences_file = "/tmp/keysort-prefs.json"
        assert config.preferences_path() == Path("/tmp/keysort-prefs.json")


class TestSettings:
    """Test cases for Settings dataclass"""

    def test_default_settings(self):
        """Test default settings values"""
        settings = Settings()

        assert settings.debounce_ms == 1000
        assert settings.error_display_ms == 3000
        assert settings.ping_ms == 500
        assert settings.skip_hidden is True
        assert settings.show_progress is False
        assert settings.preferences_poll_ms == 1000
        assert settings.watch_preferences is True
        assert settings.verbose is False

    def test_seconds_conversion(self):
        """Test millisecond settings convert to seconds"""
        settings = Settings(debounce_ms=750, error_display_ms=2000, ping_ms=250)

        assert settings.debounce == 0.75
        assert settings.error_display == 2.0
        assert settings.ping == 0.25
        assert Settings(preferences_poll_ms=2500).preferences_poll == 2.5


class TestLoadConfig:
    """Test cases for config loading"""

    def test_load_from_json_file(self):
        """Test loading from JSON config file"""
        with tempfile.NamedTemporaryFile(mode='w', suffix='.json', delete=False) as f:
            json.dump({
                "settings": {
                    "debounce_ms": 600,
                    "unknown_key": "ignored"
                },
                "image_extensions": ["JPG", ".heic"]
            }, f)
            f.flush()

            try:
                config = load_config(f.name)

                assert config.settings.debounce_ms == 600
                assert not hasattr(config.settings, "unknown_key")
                assert config.image_extensions == {".jpg", ".heic"}
            finally:
                os.unlink(f.name)

    def test_load_invalid_path(self):
        """Test loading from non-existent file"""
        with pytest.raises(FileNotFoundError):
            load_config("/nonexistent/path/config.json")

    def test_load_invalid_json(self):
        """Test loading from invalid JSON file"""
        with tempfile.NamedTemporaryFile(mode='w', suffix='.json', delete=False) as f:
            f.write("not valid json {{{")
            f.flush()

            try:
                with pytest.raises(ValueError):
                    load_config(f.name)
            finally:
                os.unlink(f.name)


class TestFindConfigFile:
    """Test cases for config file discovery"""

    def setup_method(self):
        """Set up test fixtures"""
        self.settings = {"settings": {"debounce_ms": 800}}

    @pytest.fixture(autouse=True)
    def isolate(self, tmp_path, monkeypatch):
        monkeypatch.delenv(config_module.CONFIG_ENV_VAR, raising=False)
        self.user_config = tmp_path / "home" / ".keysort" / "config.json"
        monkeypatch.setattr(config_module, "get_user_config_path", lambda: self.user_config)

    def write(self, path):
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.settings))
        return path

    def test_env_var_wins(self, tmp_path, monkeypatch):
        """Test $KEYSORT_CONFIG is used before any other location"""
        explicit = self.write(tmp_path / "elsewhere.json")
        self.write(tmp_path / "tree" / "keysort.json")
        monkeypatch.setenv(config_module.CONFIG_ENV_VAR, str(explicit))

        assert find_config_file(str(tmp_path / "tree")) == explicit

    def test_tree_config_found_from_subfolder(self, tmp_path):
        """Test the search walks up from the start folder"""
        found = self.write(tmp_path / "tree" / ".keysort.json")
        self.write(self.user_config)
        start = tmp_path / "tree" / "trips" / "beach"
        start.mkdir(parents=True)

        assert find_config_file(str(start)) == found

    def test_user_config_fallback(self, tmp_path):
        """Test the user config is used when the tree has none"""
        self.write(self.user_config)
        start = tmp_path / "tree"
        start.mkdir()

        assert find_config_file(str(start)) == self.user_config

    def test_load_config_from_start_path(self, tmp_path):
        """Test load_config reads the config beside the tree"""
        self.write(tmp_path / "tree" / "keysort.json")

        config = load_config(start_path=str(tmp_path / "tree"))
        assert config.settings.debounce_ms == 800


class TestSaveConfigTemplate:
    """Test cases for config template generation"""

    def test_save_template(self):
        """Test saving config template"""
        with tempfile.NamedTemporaryFile(mode='w', suffix='.json', delete=False) as f:
            path = f.name

        try:
            save_config_template(path)

            assert os.path.exists(path)

            with open(path, 'r') as f:
                data = json.load(f)

            assert "settings" in data
            assert "image_extensions" in data

            config = load_config(path)
            assert config.settings.debounce_ms == 1000
            assert config.image_extensions == IMAGE_EXTENSIONS
        finally:
            if os.path.exists(path):
                os.unlink(path)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
