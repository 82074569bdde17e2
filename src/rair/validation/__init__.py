"""
Validation and error handling for the rair package.

This module provides input validation, the error taxonomy of a watch session,
and helpers for consistent error reporting across the application.
"""

from .exceptions import (
    ArtifactNotFound,
    BuildFailure,
    ConfigurationError,
    ErrorSeverity,
    HookFailure,
    RairError,
    SpawnFailure,
    TerminationTimeout,
    ValidationError,
    WatchSourceFailure,
    handle_cli_error,
    handle_config_error,
    handle_error,
)

from .validators import (
    validate_argv,
    validate_bool,
    validate_glob_pattern,
    validate_hook_list,
    validate_positive_float,
    validate_positive_integer,
    validate_string,
    validate_string_list,
)

__all__ = [
    # Errors
    "ArtifactNotFound",
    "BuildFailure",
    "ConfigurationError",
    "ErrorSeverity",
    "HookFailure",
    "RairError",
    "SpawnFailure",
    "TerminationTimeout",
    "ValidationError",
    "WatchSourceFailure",
    # Handlers
    "handle_cli_error",
    "handle_config_error",
    "handle_error",
    # Validators
    "validate_argv",
    "validate_bool",
    "validate_glob_pattern",
    "validate_hook_list",
    "validate_positive_float",
    "validate_positive_integer",
    "validate_string",
    "validate_string_list",
]
