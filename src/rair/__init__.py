"""
rair: rebuild and restart a program whenever its sources change.

The package is organized into specialized modules:
- config: Configuration file loading, merging and defaults
- models: Data structures for configuration and runtime values
- validation: Input validation and the error taxonomy
- system: Command execution, path filtering, artifact resolution
- watching: Filesystem watch source and change debouncing
- executor: Hook and build execution
- orchestration: Process tree supervision, the rebuild state machine and the watch session
- cli: Command-line interface

Usage:
    From command line:
        rair [options]
        python -m rair [options]

    Programmatically:
        from rair import WatchSession, effective_config, PartialConfig
        session = WatchSession(effective_config(PartialConfig(run=["./app"])))
        session.run()
"""

__version__ = "0.1.0"

from .config import effective_config, load_config_file
from .models import EffectiveConfig, PartialConfig
from .orchestration import Orchestrator, ProcessTreeSupervisor, WatchSession
from .validation import ConfigurationError, RairError

__all__ = [
    "__version__",
    "effective_config",
    "load_config_file",
    "EffectiveConfig",
    "PartialConfig",
    "Orchestrator",
    "ProcessTreeSupervisor",
    "WatchSession",
    "ConfigurationError",
    "RairError",
]
