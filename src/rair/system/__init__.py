"""
System interaction utilities.

- Command execution with forwarded or captured output
- Path relevance filtering for change events
- Built artifact resolution from package-manager metadata
- Terminal control
- Windows job objects for process tree isolation
"""

from .commands import format_argv, run_command, run_forwarding
from .filters import ALWAYS_RELEVANT, PathFilter, is_relevant_path, matches_any_glob
from .job_object import JobObject
from .metadata import CargoArtifactResolver, exe_name, exe_path
from .terminal import clear_screen

__all__ = [
    # Commands
    "format_argv",
    "run_command",
    "run_forwarding",
    # Filtering
    "ALWAYS_RELEVANT",
    "PathFilter",
    "is_relevant_path",
    "matches_any_glob",
    # Artifacts
    "CargoArtifactResolver",
    "exe_name",
    "exe_path",
    # Terminal
    "clear_screen",
    # Process isolation
    "JobObject",
]
