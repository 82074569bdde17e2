"""
Unit tests for configuration validation functionality.

Tests conversion of raw TOML tables and command-line values into validated
PartialConfig instances, including error reporting for invalid fields.
"""

import logging

import pytest

from rair.config.validators import validate_cli_config, validate_file_config
from rair.models.config import PartialConfig
from rair.validation import ValidationError


@pytest.fixture
def sample_file_data():
    return {
        "watch": ["src", "assets"],
        "ignore": ["**/target/**"],
        "include_ext": ["rs"],
        "debounce_ms": 100,
        "clear": False,
        "grace_seconds": 2.5,
        "release": True,
        "features": ["tls", "metrics"],
        "pre_build": [["cargo", "fmt"]],
        "on_build_fail": [["notify-send", "build failed"]],
    }


@pytest.mark.unit
class TestFileConfigValidation:
    """Test cases for validate_file_config."""

    def test_valid_file_config(self, sample_file_data):
        config = validate_file_config(sample_file_data)

        assert config.watch == ["src", "assets"]
        assert config.debounce_ms == 100
        assert config.clear is False
        assert config.grace_seconds == 2.5
        assert config.release is True
        assert config.pre_build == [["cargo", "fmt"]]
        assert config.run is None

    def test_empty_table(self):
        assert validate_file_config({}) == PartialConfig()

    def test_unknown_keys_warned_and_skipped(self, caplog):
        caplog.set_level(logging.WARNING, logger="rair")
        config = validate_file_config({"debounce": 10, "release": True})

        assert config.release is True
        assert any("debounce" in r.getMessage() for r in caplog.records)

    @pytest.mark.parametrize("key,value", [
        ("debounce_ms", -1),
        ("debounce_ms", "fast"),
        ("debounce_ms", True),
        ("grace_seconds", -0.5),
        ("clear", "maybe"),
        ("watch", "src"),
        ("build", []),
        ("run", [1, 2]),
        ("pre_build", ["cargo", "fmt"]),
        ("ignore", ["src/[abc"]),
    ])
    def test_invalid_values(self, key, value):
        with pytest.raises(ValidationError) as exc_info:
            validate_file_config({key: value})

        assert exc_info.value.field_name is not None
        assert key in str(exc_info.value)

    def test_integer_grace_accepted(self):
        assert validate_file_config({"grace_seconds": 3}).grace_seconds == 3.0

    def test_non_table_rejected(self):
        with pytest.raises(ValidationError):
            validate_file_config(["not", "a", "table"])


@pytest.mark.unit
class TestCliConfigValidation:
    """Test cases for validate_cli_config."""

    def test_clear_string_converted(self):
        config = validate_cli_config(PartialConfig(clear="false"))
        assert config.clear is False

    def test_unset_fields_untouched(self):
        assert validate_cli_config(PartialConfig()) == PartialConfig()

    def test_field_names_use_flag_spelling(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_cli_config(PartialConfig(debounce_ms=-5))
        assert exc_info.value.field_name == "--debounce-ms"
