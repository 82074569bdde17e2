"""
Unit tests for configuration file loading.
"""

import logging

import pytest
import toml

from rair.config.loader import (
    DEFAULT_CONFIG_FILE,
    find_config_file,
    load_config_file,
    load_session_config_file,
    load_toml_file,
)
from rair.validation import ConfigurationError


@pytest.fixture
def config_file(temp_dir):
    path = temp_dir / DEFAULT_CONFIG_FILE
    with open(path, "w") as f:
        toml.dump({"debounce_ms": 50, "run": ["./server", "--port", "8080"], "pre_run": [["echo", "hi"]]}, f)
    return path


@pytest.mark.unit
class TestLoader:
    """Test cases for loading configuration files."""

    def test_load_toml_file(self, config_file):
        data = load_toml_file(config_file)
        assert data["debounce_ms"] == 50

    def test_load_toml_file_missing(self, temp_dir):
        with pytest.raises(FileNotFoundError):
            load_toml_file(temp_dir / "missing.toml")

    def test_load_config_file(self, config_file):
        config = load_config_file(config_file)

        assert config.debounce_ms == 50
        assert config.run == ["./server", "--port", "8080"]
        assert config.pre_run == [["echo", "hi"]]

    def test_malformed_file_is_configuration_error(self, temp_dir):
        path = temp_dir / "bad.toml"
        path.write_text("debounce_ms = = 3\n")

        with pytest.raises(ConfigurationError):
            load_config_file(path)

    def test_invalid_value_is_configuration_error(self, temp_dir):
        path = temp_dir / "bad.toml"
        with open(path, "w") as f:
            toml.dump({"debounce_ms": -1}, f)

        with pytest.raises(ConfigurationError) as exc_info:
            load_config_file(path)
        assert "debounce_ms" in str(exc_info.value)

    def test_find_config_file(self, config_file, temp_dir):
        assert find_config_file(temp_dir) == config_file

    def test_find_config_file_absent(self, temp_dir):
        assert find_config_file(temp_dir) is None


@pytest.mark.unit
class TestSessionConfigFile:
    """Explicit files must load; the implicit default is best-effort."""

    def test_implicit_default_loaded(self, config_file, temp_dir):
        config = load_session_config_file(None, temp_dir)
        assert config.debounce_ms == 50

    def test_no_default_file(self, temp_dir):
        assert load_session_config_file(None, temp_dir) is None

    def test_broken_default_ignored(self, temp_dir, caplog):
        caplog.set_level(logging.WARNING, logger="rair")
        (temp_dir / DEFAULT_CONFIG_FILE).write_text("[[[")

        assert load_session_config_file(None, temp_dir) is None
        assert any("ignored" in r.getMessage() for r in caplog.records)

    def test_explicit_missing_file_is_fatal(self, temp_dir):
        with pytest.raises(ConfigurationError):
            load_session_config_file(temp_dir / "nope.toml", temp_dir)

    def test_explicit_file_wins_over_default(self, config_file, temp_dir):
        other = temp_dir / "other.toml"
        with open(other, "w") as f:
            toml.dump({"debounce_ms": 900}, f)

        assert load_session_config_file(other, temp_dir).debounce_ms == 900
