"""
Orchestration module for watch sessions.

Components:
- WatchSession: Wires configuration, watcher, debouncer and orchestrator
- Orchestrator: The rebuild/restart state machine
- ProcessTreeSupervisor: Whole-tree start and termination of the run program
- SignalHandler: Signal handling management
"""

from .orchestrator import Orchestrator
from .process_manager import (
    ACTIVE_ENV_VAR,
    IsolationGroup,
    PosixProcessGroup,
    ProcessTreeSupervisor,
    SupervisedProcess,
    WindowsProcessGroup,
    default_spawner,
)
from .session import WatchSession
from .shared_state import SessionState, TimeoutConstants
from .signal_handler import SignalHandler

__all__ = [
    "ACTIVE_ENV_VAR",
    "IsolationGroup",
    "Orchestrator",
    "PosixProcessGroup",
    "ProcessTreeSupervisor",
    "SessionState",
    "SignalHandler",
    "SupervisedProcess",
    "TimeoutConstants",
    "WatchSession",
    "WindowsProcessGroup",
    "default_spawner",
]
