"""
Change event debouncing.

Every ingested event re-arms a single timer; only the timer armed by the
most recent event may fire, and when it does the whole burst collapses
into one Trigger.
"""

import logging
import threading
import time
from typing import Callable, Dict, List, Optional

from ..models.runtime import ChangeEvent, Trigger

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.25


class Debouncer:
    """
    Coalesces bursts of ChangeEvents into Triggers.

    The consumer callback runs on the timer's thread and must not block for
    long; the orchestrator only records the trigger as pending.

    Args:
        on_trigger: Called with each emitted Trigger
        delay: Quiet period in seconds that ends a burst
    """

    def __init__(self, on_trigger: Callable[[Trigger], None], delay: float = DEFAULT_DEBOUNCE_SECONDS):
        if delay < 0:
            raise ValueError(f"debounce delay must be >= 0, got {delay}")
        self.delay = delay
        self._on_trigger = on_trigger
        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._generation = 0
        self._pending: Dict[str, ChangeEvent] = {}
        self._closed = False
        self.triggers_emitted = 0

    def ingest(self, event: ChangeEvent) -> None:
        """Record an event and restart the quiet-period timer."""
        with self._lock:
            if self._closed:
                return
            self._pending[str(event.path)] = event
            self._generation += 1
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self.delay, self._fire, args=(self._generation,))
            self._timer.daemon = True
            self._timer.start()

    def _fire(self, generation: int) -> None:
        with self._lock:
            # A later ingest re-armed the timer after this one started firing.
            if generation != self._generation or self._closed:
                return
            events: List[ChangeEvent] = list(self._pending.values())
            self._pending.clear()
            self._timer = None
            self.triggers_emitted += 1

        trigger = Trigger(timestamp=time.monotonic(), paths=tuple(e.path for e in events))
        logger.debug(f"Debounced {len(events)} path(s) into one trigger")
        self._on_trigger(trigger)

    def close(self) -> None:
        """Cancel any armed timer. Later ingests are ignored."""
        with self._lock:
            self._closed = True
            self._generation += 1
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._pending.clear()

    @property
    def armed(self) -> bool:
        with self._lock:
            return self._timer is not None
