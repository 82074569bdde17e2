"""
Command execution utilities.

Two ways of running an argv to completion: with the child's output
forwarded to ours (hooks and builds), or with output captured (metadata
queries).
"""

import logging
import os
import shlex
import subprocess
from pathlib import Path
from typing import Mapping, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)


def format_argv(argv: Sequence[str]) -> str:
    """Render an argv the way a user would type it."""
    if os.name == "nt":
        return subprocess.list2cmdline(list(argv))
    return shlex.join(argv)


def run_forwarding(
    argv: Sequence[str],
    cwd: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
) -> int:
    """Run a command to completion with stdout/stderr inherited.

    Stdin is closed so a hook or build can never steal the terminal from the
    supervised program.

    Args:
        argv: Command and arguments. Must be non-empty.
        cwd: Working directory, or None for the current one.
        env: Full environment for the child, or None to inherit.

    Returns:
        The exit status. Negative values are signal numbers on POSIX.

    Raises:
        ValueError: If argv is empty or contains a NUL byte.
        OSError: If the command cannot be started.
    """
    if not argv:
        raise ValueError("command argv cannot be empty")
    logger.debug(f"Executing command: '{format_argv(argv)}' in '{cwd or Path.cwd()}'")
    completed = subprocess.run(
        list(argv),
        cwd=cwd,
        env=dict(env) if env is not None else None,
        stdin=subprocess.DEVNULL,
        check=False,
    )
    return completed.returncode


def run_command(argv: Sequence[str], cwd: Optional[Path] = None) -> Tuple[int, str, str]:
    """Execute a command and capture its output with robust error handling.

    Args:
        argv: Command and arguments.
        cwd: Working directory path for command execution.

    Returns:
        Tuple of (return_code, stdout_string, stderr_string).
        return_code is -1 for execution errors.
    """
    logger.debug(f"Executing command: '{format_argv(argv)}' in '{cwd or Path.cwd()}'")
    try:
        process = subprocess.run(
            list(argv),
            cwd=cwd,
            stdin=subprocess.DEVNULL,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            check=False,
        )
        return process.returncode, process.stdout, process.stderr
    except FileNotFoundError as e:
        logger.error(f"Command not found: {argv[0]}: {type(e).__name__}: {e}")
        return -1, "", f"Error: Command not found '{argv[0]}'"
    except (OSError, ValueError) as e:
        logger.error(f"Unexpected error while running command '{format_argv(argv)[:50]}': {type(e).__name__}: {e}")
        return -1, "", f"An unexpected error occurred: {e}"
