"""
Signal handling for the orchestration module.

SIGINT and SIGTERM request a clean shutdown of every active watch session.
Signal handlers cannot be bound to instances, so active sessions are kept
in a module-level registry.
"""

import logging
import signal
import threading
from typing import Any, Dict

from .shared_state import SessionState

logger = logging.getLogger(__name__)

_active_sessions: Dict[int, SessionState] = {}
_active_sessions_lock = threading.Lock()


class SignalHandler:
    """
    Installs shutdown handlers for the lifetime of one watch session.

    Handlers can only be installed from the main thread; elsewhere the
    session simply runs without them.
    """

    def __init__(self, state: SessionState):
        self.state = state
        self._original_sigint_handler = None
        self._original_sigterm_handler = None
        self._signal_handlers_set = False

    def setup_signal_handlers(self) -> None:
        with _active_sessions_lock:
            _active_sessions[id(self)] = self.state
        try:
            self._original_sigint_handler = signal.signal(signal.SIGINT, self._global_signal_handler)
            self._original_sigterm_handler = signal.signal(signal.SIGTERM, self._global_signal_handler)
            self._signal_handlers_set = True
            logger.debug("Signal handlers installed")
        except ValueError as e:
            # Not on the main thread
            logger.debug(f"Signal handlers not installed: {e}")

    def cleanup_signal_handlers(self) -> None:
        """Restore original signal handlers and unregister the session."""
        with _active_sessions_lock:
            _active_sessions.pop(id(self), None)
        if not self._signal_handlers_set:
            return

        try:
            if self._original_sigint_handler is not None:
                signal.signal(signal.SIGINT, self._original_sigint_handler)
            if self._original_sigterm_handler is not None:
                signal.signal(signal.SIGTERM, self._original_sigterm_handler)
            logger.debug("Signal handlers restored")
        except ValueError as e:
            logger.warning(f"Failed to restore signal handlers: {e}")
        finally:
            self._signal_handlers_set = False

    @staticmethod
    def _global_signal_handler(signum: int, frame: Any) -> None:
        with _active_sessions_lock:
            states = list(_active_sessions.values())
        if any(s.shutdown_requested.is_set() for s in states):
            logger.warning(f"Signal {signum} received; already shutting down")
        else:
            logger.warning(f"Signal {signum} received; shutting down")
        for state in states:
            state.shutdown_requested.set()
