"""
Configuration management for the rair package.

This module loads the optional `.rair.toml` file, validates it, merges it
with command-line values and produces the immutable per-session snapshot.
"""

from .loader import (
    DEFAULT_CONFIG_FILE,
    find_config_file,
    load_config_file,
    load_session_config_file,
    load_toml_file,
)
from .manager import (
    DEFAULT_DEBOUNCE_MS,
    DEFAULT_GRACE_SECONDS,
    DEFAULT_IGNORE,
    DEFAULT_INCLUDE_EXT,
    build_mode,
    build_plan,
    cycle_plan,
    default_build_argv,
    effective_config,
    files_mode_config,
    normalize_extension,
    run_plan,
    single_file_output_path,
)
from .validators import validate_cli_config, validate_file_config

__all__ = [
    # Loading
    "DEFAULT_CONFIG_FILE",
    "find_config_file",
    "load_config_file",
    "load_session_config_file",
    "load_toml_file",
    # Assembly
    "DEFAULT_DEBOUNCE_MS",
    "DEFAULT_GRACE_SECONDS",
    "DEFAULT_IGNORE",
    "DEFAULT_INCLUDE_EXT",
    "build_mode",
    "build_plan",
    "cycle_plan",
    "default_build_argv",
    "effective_config",
    "files_mode_config",
    "normalize_extension",
    "run_plan",
    "single_file_output_path",
    # Validation
    "validate_cli_config",
    "validate_file_config",
]
