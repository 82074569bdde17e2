"""
Shared data structures for the orchestration module.

This module defines the runtime state shared between the session, its
signal handler and the orchestrator, and the timeout constants used across
the orchestration components.
"""

import threading
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class SessionState:
    """
    Runtime state shared across orchestration components.

    `shutdown_requested` is set from signal handlers and read by the
    session loop; `fatal_error` is written by the session only.
    """
    shutdown_requested: threading.Event = field(default_factory=threading.Event)
    # Set when a fatal collaborator failure ends the session.
    fatal_error: Optional[BaseException] = None


class TimeoutConstants:
    """
    Centralized timeout configuration.
    """
    # Process termination
    TERMINATION_GRACE_TIMEOUT = 5.0
    TERMINATION_FORCE_TIMEOUT = 2.0
    TERMINATION_POLL_INTERVAL = 0.05

    # Orchestrator worker
    IDLE_POLL_INTERVAL = 0.25

    # Session main loop
    WATCH_HEALTH_INTERVAL = 0.5
    OBSERVER_STOP_TIMEOUT = 5.0
