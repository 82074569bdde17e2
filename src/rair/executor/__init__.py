"""
Hook and build execution.

Both run external commands to completion with their output forwarded to
the terminal; neither ever runs two commands at once.
"""

from .build import BuildExecutor
from .hooks import HookRunner

__all__ = [
    "BuildExecutor",
    "HookRunner",
]
