"""
Exception types and error handling helpers.

This module defines the error taxonomy of a watch session together with the
small set of logging helpers used to report errors consistently. Soft
failures (hooks, builds, spawns) are absorbed by the orchestrator; fatal
failures (configuration, watch source) end the session.
"""

import logging
import sys
from enum import Enum
from typing import Any, Optional, Sequence, Union

logger = logging.getLogger(__name__)

class ErrorSeverity(Enum):
    """Severity levels for error handling."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class RairError(Exception):
    """Base class for all errors raised by rair."""


class ValidationError(RairError):
    """
    Exception raised when validation of a single value fails.

    The configuration layer converts these into ConfigurationError before
    they leave the config package.
    """

    def __init__(self, message: str, field_name: Optional[str] = None,
                 value: Any = None, severity: ErrorSeverity = ErrorSeverity.ERROR):
        super().__init__(message)
        self.field_name = field_name
        self.value = value
        self.severity = severity


class ConfigurationError(RairError):
    """Configuration could not be loaded or is inconsistent. Fatal."""


class WatchSourceFailure(RairError):
    """The filesystem watch source died or could not be started. Fatal."""


class HookFailure(RairError):
    """A hook step exited nonzero or could not be spawned."""

    def __init__(self, hook: str, step_index: int, exit_status: Optional[int] = None,
                 reason: str = "", argv: Sequence[str] = ()):
        self.hook = hook
        self.step_index = step_index
        self.exit_status = exit_status
        self.reason = reason
        self.argv = list(argv)
        if exit_status is None:
            detail = f"could not be started: {reason}"
        else:
            detail = f"exited with status {exit_status}"
        super().__init__(f"hook {hook}[{step_index}] {detail}")


class BuildFailure(RairError):
    """The build exited nonzero, could not be spawned, or produced no artifact."""

    def __init__(self, exit_status: Optional[int] = None, resolver_miss: bool = False,
                 reason: str = ""):
        self.exit_status = exit_status
        self.resolver_miss = resolver_miss
        self.reason = reason
        if resolver_miss:
            message = f"build artifact not found: {reason}"
        elif exit_status is None:
            message = f"build could not be started: {reason}"
        else:
            message = f"build exited with status {exit_status}"
        super().__init__(message)


class ArtifactNotFound(RairError):
    """The artifact path resolver could not locate the built executable."""


class SpawnFailure(RairError):
    """The run artifact could not be started."""

    def __init__(self, reason: str, argv: Sequence[str] = ()):
        self.reason = reason
        self.argv = list(argv)
        super().__init__(f"failed to start {list(argv)}: {reason}")


class TerminationTimeout(RairError):
    """A process group outlived its grace window and had to be force-killed."""

    def __init__(self, pid: int, grace: float, survivors: int):
        self.pid = pid
        self.grace = grace
        self.survivors = survivors
        super().__init__(
            f"process group {pid} still had {survivors} live process(es) "
            f"after {grace:.1f}s grace, escalating to forced kill"
        )


def handle_error(
    error: Exception,
    context: str,
    severity: Union[ErrorSeverity, str] = ErrorSeverity.ERROR,
    reraise: bool = True,
    logger: Optional[logging.Logger] = None
) -> None:
    """
    Handle errors with consistent logging and optional re-raising.

    Args:
        error: The exception that occurred
        context: Context description of where the error occurred
        severity: Severity level for logging
        reraise: Whether to re-raise the exception after logging
        logger: Logger instance to use (defaults to module logger)
    """
    effective_logger = logger or globals()['logger']

    error_msg = f"Error in {context}: {error}"

    if isinstance(severity, str):
        severity_str = severity.lower()
    else:
        severity_str = severity.value

    if severity_str == "debug":
        effective_logger.debug(error_msg, exc_info=True)
    elif severity_str == "info":
        effective_logger.info(error_msg)
    elif severity_str == "warning":
        effective_logger.warning(error_msg)
    elif severity_str == "error":
        effective_logger.error(error_msg)
    elif severity_str == "critical":
        effective_logger.critical(error_msg, exc_info=True)

    if reraise:
        raise error


def handle_config_error(error: Exception, context: str, **kwargs) -> None:
    """Handle configuration-related errors."""
    handle_error(error, f"config {context}", **kwargs)


def handle_cli_error(error: Exception, context: str, **kwargs) -> None:
    """Log a CLI-level error and exit the interpreter."""
    exit_code = kwargs.pop('exit_code', 1)
    include_traceback = kwargs.pop('include_traceback', False)
    severity = kwargs.pop('severity', ErrorSeverity.CRITICAL if include_traceback else ErrorSeverity.ERROR)
    handle_error(error, f"CLI {context}", severity=severity, reraise=False, **kwargs)
    sys.exit(exit_code)
