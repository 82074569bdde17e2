"""
Configuration validation utilities.

Turns the raw dictionary parsed from a TOML file into a PartialConfig,
checking the type of every recognised key.
"""

import logging
from typing import Any, Callable, Dict

from ..models.config import PartialConfig
from ..validation import (
    ValidationError,
    validate_argv,
    validate_bool,
    validate_glob_pattern,
    validate_hook_list,
    validate_positive_float,
    validate_positive_integer,
    validate_string,
    validate_string_list,
)

logger = logging.getLogger(__name__)


def _validate_globs(value: Any, field_name: str):
    globs = validate_string_list(value, field_name=field_name)
    return [validate_glob_pattern(g, field_name=f"{field_name} item {i}") for i, g in enumerate(globs)]


_FIELD_VALIDATORS: Dict[str, Callable[[Any, str], Any]] = {
    "watch": validate_string_list,
    "ignore": _validate_globs,
    "include_ext": validate_string_list,
    "exclude_ext": validate_string_list,
    "debounce_ms": lambda v, name: validate_positive_integer(v, min_value=0, max_value=600_000, field_name=name),
    "clear": validate_bool,
    "grace_seconds": lambda v, name: validate_positive_float(v, min_value=0.0, max_value=3600.0, field_name=name),
    "build": validate_argv,
    "run": validate_argv,
    "manifest_path": validate_string,
    "package": validate_string,
    "bin": validate_string,
    "features": validate_string_list,
    "all_features": validate_bool,
    "no_default_features": validate_bool,
    "workspace": validate_bool,
    "release": validate_bool,
    "pre_build": validate_hook_list,
    "post_build": validate_hook_list,
    "pre_run": validate_hook_list,
    "post_run": validate_hook_list,
    "on_build_fail": validate_hook_list,
}


def validate_file_config(data: Dict[str, Any]) -> PartialConfig:
    """
    Validate and create a PartialConfig from raw configuration data.

    Unknown keys are reported and skipped.

    Args:
        data: Raw configuration from TOML

    Returns:
        Validated PartialConfig instance

    Raises:
        ValidationError: If a recognised key has an invalid value
    """
    if not isinstance(data, dict):
        raise ValidationError("configuration must be a table", value=data)

    values = {}
    for key, raw in data.items():
        validator = _FIELD_VALIDATORS.get(key)
        if validator is None:
            logger.warning(f"Unknown configuration key '{key}' ignored")
            continue
        values[key] = validator(raw, key)

    return PartialConfig(**values)


def validate_cli_config(config: PartialConfig) -> PartialConfig:
    """Apply the same field validation to a PartialConfig assembled from CLI flags."""
    for key, validator in _FIELD_VALIDATORS.items():
        value = getattr(config, key)
        if value is not None:
            setattr(config, key, validator(value, f"--{key.replace('_', '-')}"))
    return config
