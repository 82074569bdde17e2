"""
Configuration file loading utilities.

This module handles the low-level loading and parsing of the TOML
configuration file (`.rair.toml` by default).
"""

import logging
import tomllib
from pathlib import Path
from typing import Any, Dict, Optional

from ..models.config import PartialConfig
from ..validation import ConfigurationError, ErrorSeverity, ValidationError, handle_config_error
from .validators import validate_file_config

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = ".rair.toml"


def load_toml_file(file_path: Path, description: str = "configuration file") -> Dict[str, Any]:
    """
    Load and parse a TOML file with error handling.

    Args:
        file_path: Path to the TOML file to load
        description: Human-readable description for error messages

    Returns:
        Parsed TOML data as a dictionary

    Raises:
        FileNotFoundError: If the file doesn't exist
        tomllib.TOMLDecodeError: If the file is malformed
    """
    logger.info(f"Loading {description} from: {file_path}")

    if not file_path.exists():
        raise FileNotFoundError(f"{description} not found: {file_path}")

    try:
        with open(file_path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        handle_config_error(
            error=e,
            context=f"parsing {description}",
            severity=ErrorSeverity.ERROR,
            reraise=True,
            logger=logger
        )
        raise


def load_config_file(config_path: Path) -> PartialConfig:
    """
    Load and validate a configuration file.

    Raises:
        ConfigurationError: If the file is missing, malformed or invalid
    """
    try:
        data = load_toml_file(config_path)
        return validate_file_config(data)
    except (OSError, tomllib.TOMLDecodeError, ValidationError) as e:
        raise ConfigurationError(f"failed to load {config_path}: {e}") from e


def find_config_file(working_dir: Path) -> Optional[Path]:
    """Return the default config file in `working_dir` if there is one."""
    candidate = working_dir / DEFAULT_CONFIG_FILE
    return candidate if candidate.is_file() else None


def load_session_config_file(explicit_path: Optional[Path], working_dir: Path) -> Optional[PartialConfig]:
    """
    Load the configuration file for a session.

    An explicitly requested file must load; the implicit default file is
    best-effort, a broken one is reported and ignored.

    Raises:
        ConfigurationError: If an explicitly given file fails to load
    """
    if explicit_path is not None:
        return load_config_file(explicit_path)

    default_path = find_config_file(working_dir)
    if default_path is None:
        logger.debug(f"No {DEFAULT_CONFIG_FILE} in {working_dir}")
        return None

    try:
        return load_config_file(default_path)
    except ConfigurationError as e:
        handle_config_error(
            error=e,
            context=f"loading {default_path} (ignored)",
            severity=ErrorSeverity.WARNING,
            reraise=False,
            logger=logger
        )
        return None
