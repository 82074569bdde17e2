"""
Value validators used by the configuration layer.

Each validator returns the normalized value or raises ValidationError naming
the offending field.
"""

from typing import Any, List, Optional

from .exceptions import ValidationError


def validate_positive_integer(
    value: Any,
    min_value: int = 1,
    max_value: Optional[int] = None,
    field_name: str = "value"
) -> int:
    """
    Validate that a value is an integer within bounds.

    Args:
        value: Value to validate
        min_value: Minimum allowed value (inclusive)
        max_value: Maximum allowed value (inclusive), None for no limit
        field_name: Name of the field being validated

    Returns:
        Validated integer value

    Raises:
        ValidationError: If validation fails
    """
    if isinstance(value, bool):
        raise ValidationError(
            f"{field_name} must be a valid integer, got {value}",
            field_name=field_name,
            value=value
        )
    try:
        int_value = int(value)
    except (ValueError, TypeError):
        raise ValidationError(
            f"{field_name} must be a valid integer, got {value}",
            field_name=field_name,
            value=value
        )
    if int_value < min_value:
        raise ValidationError(
            f"{field_name} must be >= {min_value}, got {int_value}",
            field_name=field_name,
            value=value
        )
    if max_value is not None and int_value > max_value:
        raise ValidationError(
            f"{field_name} must be <= {max_value}, got {int_value}",
            field_name=field_name,
            value=value
        )
    return int_value


def validate_positive_float(
    value: Any,
    min_value: float = 0.0,
    max_value: Optional[float] = None,
    field_name: str = "value"
) -> float:
    """
    Validate that a value is a number within bounds.

    Raises:
        ValidationError: If validation fails
    """
    if isinstance(value, bool):
        raise ValidationError(
            f"{field_name} must be a valid number, got {value}",
            field_name=field_name,
            value=value
        )
    try:
        float_value = float(value)
    except (ValueError, TypeError):
        raise ValidationError(
            f"{field_name} must be a valid number, got {value}",
            field_name=field_name,
            value=value
        )
    if float_value < min_value:
        raise ValidationError(
            f"{field_name} must be >= {min_value}, got {float_value}",
            field_name=field_name,
            value=value
        )
    if max_value is not None and float_value > max_value:
        raise ValidationError(
            f"{field_name} must be <= {max_value}, got {float_value}",
            field_name=field_name,
            value=value
        )
    return float_value


def validate_bool(value: Any, field_name: str = "value") -> bool:
    """Validate a boolean. Accepts real booleans and 'true'/'false' strings."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    raise ValidationError(
        f"{field_name} must be a boolean, got {value!r}",
        field_name=field_name,
        value=value
    )


def validate_string(value: Any, field_name: str = "value") -> str:
    """Validate a non-empty string."""
    if not isinstance(value, str) or not value:
        raise ValidationError(
            f"{field_name} must be a non-empty string",
            field_name=field_name,
            value=value
        )
    return value


def validate_string_list(value: Any, field_name: str = "value") -> List[str]:
    """Validate a list of strings (may be empty)."""
    if not isinstance(value, (list, tuple)):
        raise ValidationError(
            f"{field_name} must be a list of strings, got {type(value).__name__}",
            field_name=field_name,
            value=value
        )
    for i, item in enumerate(value):
        if not isinstance(item, str):
            raise ValidationError(
                f"{field_name} item {i} must be a string, got {item!r}",
                field_name=field_name,
                value=value
            )
    return list(value)


def validate_argv(value: Any, field_name: str = "command") -> List[str]:
    """
    Validate a single command argv.

    Raises:
        ValidationError: If the argv is not a non-empty list of strings
    """
    argv = validate_string_list(value, field_name=field_name)
    if not argv or not argv[0]:
        raise ValidationError(
            f"{field_name} argv is empty",
            field_name=field_name,
            value=value
        )
    return argv


def validate_hook_list(value: Any, field_name: str = "hook") -> List[List[str]]:
    """Validate a hook: a list of argv lists, each non-empty."""
    if not isinstance(value, (list, tuple)):
        raise ValidationError(
            f"{field_name} must be a list of commands, got {type(value).__name__}",
            field_name=field_name,
            value=value
        )
    return [
        validate_argv(argv, field_name=f"{field_name}[{i}]")
        for i, argv in enumerate(value)
    ]


def validate_glob_pattern(pattern: Any, field_name: str = "glob") -> str:
    """
    Validate an ignore glob.

    fnmatch accepts almost anything, so only unbalanced character classes are
    rejected here.
    """
    pattern = validate_string(pattern, field_name=field_name)
    depth = 0
    for ch in pattern:
        if ch == "[":
            depth += 1
        elif ch == "]" and depth:
            depth -= 1
    if depth:
        raise ValidationError(
            f"{field_name} is not a valid glob (unclosed '['): {pattern}",
            field_name=field_name,
            value=pattern
        )
    return pattern
